"""
Configuration module for Statement Extractor.

All tuneable parameters — thresholds, scan windows, feature flags — live
here and are injected into each component at construction.  Nothing is read
from ambient or global state in the business-logic modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value!r}")


@dataclass(frozen=True)
class LocatorConfig:
    """Controls page detection and evidence fusion."""

    # Fused candidates below this confidence are discarded.
    min_page_confidence: float = 0.5

    # Number of leading pages searched for a table of contents.
    toc_scan_window: int = 20

    # Largest |actual - reported| page offset the ToC detector will consider.
    toc_max_offset: int = 30

    # Pages covered by a single ToC entry (the statement start page onward).
    toc_page_span: int = 1

    # Once every statement type has a candidate at or above this confidence,
    # page-scanning detectors stop early.  ``None`` disables early stopping.
    heading_early_stop_confidence: Optional[float] = 0.9

    # A heading within the first N lines of a page earns the position bonus.
    heading_top_lines: int = 3

    # Lines longer than this are prose, not headings.
    heading_max_words: int = 15

    # Minimum partial-ratio similarity (0–1) for a fuzzy heading match.
    heading_fuzzy_min_similarity: float = 0.7

    # Minimum per-page layout score for a layout candidate.
    layout_min_score: float = 0.5

    # Minimum domain-keyword hits before a page is attributed to a statement.
    layout_min_keyword_hits: int = 2

    # Layout evidence alone never exceeds this confidence.
    layout_confidence_cap: float = 0.8

    # Upper bound on a fused (noisy-OR) confidence.
    fusion_cap: float = 0.99

    # Thread pool size for detector invocation.
    max_workers: int = 3

    def __post_init__(self) -> None:
        _check_unit_interval("min_page_confidence", self.min_page_confidence)
        _check_unit_interval(
            "heading_fuzzy_min_similarity", self.heading_fuzzy_min_similarity
        )
        _check_unit_interval("layout_min_score", self.layout_min_score)
        _check_unit_interval("layout_confidence_cap", self.layout_confidence_cap)
        _check_unit_interval("fusion_cap", self.fusion_cap)
        if self.heading_early_stop_confidence is not None:
            _check_unit_interval(
                "heading_early_stop_confidence",
                self.heading_early_stop_confidence,
            )
        if self.toc_scan_window < 0:
            raise ValueError("toc_scan_window must be >= 0")
        if self.toc_page_span < 1:
            raise ValueError("toc_page_span must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


@dataclass(frozen=True)
class MatchingConfig:
    """Controls the label-mapping cascade."""

    # Fuzzy matching: minimum similarity score (0–100) to accept a match
    fuzzy_threshold: float = 85.0

    # Confidence assigned to a synonym-dictionary hit
    synonym_confidence: float = 0.95

    # Fuzzy confidence = score / 100 * scale, so fuzzy never outranks a
    # synonym or exact hit at an equal score.
    fuzzy_confidence_scale: float = 0.95

    # If the runner-up fuzzy candidate (a different canonical field) is within
    # this delta of the best, the mapping carries an ambiguity warning.
    fuzzy_ambiguity_delta: float = 2.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.fuzzy_threshold <= 100.0:
            raise ValueError(
                f"fuzzy_threshold must be within [0, 100], got {self.fuzzy_threshold!r}"
            )
        _check_unit_interval("synonym_confidence", self.synonym_confidence)
        _check_unit_interval("fuzzy_confidence_scale", self.fuzzy_confidence_scale)


@dataclass(frozen=True)
class NormalizerConfig:
    """Controls numeric cell parsing."""

    # Currency prefixes / symbols stripped before parsing (case-insensitive).
    # Longer tokens must come first so "rs." is removed before "rs".
    currency_symbols: tuple[str, ...] = (
        "lkr", "usd", "inr", "rs.", "rs", "us$", "$", "₨", "₹", "€", "£",
    )

    # Cells that mean "no value" rather than "unreadable".
    null_tokens: tuple[str, ...] = (
        "-", "–", "—", "−", "nil", "n/a", "na", "not applicable",
    )


@dataclass(frozen=True)
class ColumnConfig:
    """Controls header interpretation."""

    # Entity adopted by year-only columns when no header names an entity.
    # ``None`` leaves such columns unknown.
    default_entity: Optional[str] = None

    def __post_init__(self) -> None:
        if self.default_entity not in (None, "Bank", "Group"):
            raise ValueError(
                f"default_entity must be 'Bank', 'Group' or None, "
                f"got {self.default_entity!r}"
            )


@dataclass(frozen=True)
class ValidationConfig:
    """Controls the validation layer."""

    # Canonical fields that *must* be present per (entity, year, statement).
    # An empty list disables the check.
    required_fields: list[str] = field(default_factory=list)

    # Maximum allowed absolute value; catches obvious unit errors
    max_absolute_value: float = 1e15

    # When True, duplicates trigger an error; when False, a warning.
    error_on_duplicate: bool = True

    # Relative tolerance for the balance-sheet equation check.
    balance_tolerance: float = 0.01


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level configuration aggregating all sub-configs."""

    locator: LocatorConfig = field(default_factory=LocatorConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    # Logging level for the extraction audit trail
    log_level: int = logging.INFO

    # Optional path to a user-supplied synonym JSON file that is *merged*
    # with the built-in dictionary.
    custom_synonym_path: Optional[Path] = None

    # When True the pipeline raises on validation errors instead of
    # returning partial results.
    strict_mode: bool = False

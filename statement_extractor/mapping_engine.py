"""
Label Mapping Engine.

Maps one raw row label onto a canonical field of a given statement type by
trying, in order:

    1. Exact    case-insensitive, whitespace-normalised equality  → 1.0
    2. Synonym  per-statement dictionary hit                      → synonym_confidence
    3. Fuzzy    rapidfuzz score ≥ fuzzy_threshold                 → score/100 × scale
    4. None     canonical_key=None, confidence 0.0

An unmapped label is a normal outcome (the caller routes it to a review
queue), never an exception.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional

from statement_extractor.config import MatchingConfig
from statement_extractor.fuzzy_matcher import FuzzyMatcher
from statement_extractor.logging_setup import get_logger
from statement_extractor.normalizer import LabelNormalizer
from statement_extractor.schema import (
    STATEMENT_FIELDS,
    MappingResult,
    MatchMethod,
    StatementType,
)
from statement_extractor.synonym_mapper import SynonymMapper

logger = get_logger("mapping_engine")


class MappingEngine:
    """Cascading exact → synonym → fuzzy label mapper.

    Parameters
    ----------
    config:
        Thresholds for the synonym and fuzzy steps.
    normalizer, synonyms:
        Optional shared instances; fresh ones are built when omitted.
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        normalizer: Optional[LabelNormalizer] = None,
        synonyms: Optional[SynonymMapper] = None,
    ) -> None:
        self._config = config or MatchingConfig()
        self._normalizer = normalizer or LabelNormalizer()
        self._synonyms = synonyms or SynonymMapper(self._normalizer)
        self._fuzzy = FuzzyMatcher(self._config, self._normalizer, self._synonyms)

        # statement → collapsed canonical → canonical
        self._exact: Dict[StatementType, Dict[str, str]] = {
            st: {LabelNormalizer.collapse(f): f for f in fields}
            for st, fields in STATEMENT_FIELDS.items()
        }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def map_label(self, raw_label: str, statement_type: StatementType) -> MappingResult:
        """Map *raw_label* to a canonical field of *statement_type*."""
        label = raw_label if isinstance(raw_label, str) else str(raw_label)

        # --- Step 1: Exact --------------------------------------------
        exact = self._exact[statement_type].get(LabelNormalizer.collapse(label))
        if exact is not None:
            logger.info("MAPPED: %r → %r [exact] confidence=1.00", label, exact)
            return MappingResult(label, exact, MatchMethod.EXACT, 1.0)

        norm_label = self._normalizer.normalize_label(label)

        # --- Step 2: Synonym ------------------------------------------
        canonical = self._synonyms.resolve(norm_label, statement_type)
        if canonical is not None:
            confidence = self._config.synonym_confidence
            logger.info(
                "MAPPED: %r → %r [synonym] confidence=%.2f", label, canonical, confidence
            )
            return MappingResult(label, canonical, MatchMethod.SYNONYM, confidence)

        # --- Step 3: Fuzzy --------------------------------------------
        candidate = self._fuzzy.match(norm_label, statement_type)
        if candidate is not None:
            warnings: tuple[str, ...] = ()
            if candidate.is_ambiguous:
                warnings = (
                    f"Ambiguous fuzzy match for '{label}' → "
                    f"'{candidate.canonical_name}' (score={candidate.score:.1f}); "
                    f"runner-up '{candidate.runner_up}'",
                )
            confidence = min(
                1.0, candidate.score / 100.0 * self._config.fuzzy_confidence_scale
            )
            logger.info(
                "MAPPED: %r → %r [fuzzy] confidence=%.2f",
                label,
                candidate.canonical_name,
                confidence,
            )
            return MappingResult(
                label, candidate.canonical_name, MatchMethod.FUZZY, confidence, warnings
            )

        # --- No match -------------------------------------------------
        logger.warning("UNMAPPED: %r (normalised=%r)", label, norm_label)
        return MappingResult(label, None, MatchMethod.NONE, 0.0)

    # ------------------------------------------------------------------ #
    # Synonym extension
    # ------------------------------------------------------------------ #

    def add_synonym(self, statement_type: StatementType, variant: str, canonical: str) -> None:
        self._synonyms.add_synonym(statement_type, variant, canonical)
        self._fuzzy.refresh()

    def add_synonyms(
        self, statement_type: StatementType, mapping: Dict[str, Iterable[str]]
    ) -> None:
        """Hot-add ``{canonical: [variants]}`` after construction."""
        self._synonyms.add_synonyms(statement_type, mapping)
        self._fuzzy.refresh()

    def load_custom_synonyms(self, path: Path) -> int:
        count = self._synonyms.load_custom_synonyms(path)
        self._fuzzy.refresh()
        return count

    @property
    def synonym_count(self) -> int:
        return self._synonyms.size

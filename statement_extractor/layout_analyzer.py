"""
Layout Analyzer.

Scores pages by how much they *look* like a financial statement, without
relying on a title:

==========================  ======
signal                      weight
==========================  ======
numeric-token density       0.35
aligned tabular rows        0.25
dual-year header row        0.20
entity keyword pair         0.20
==========================  ======

Text-heavy pages (many words per number) are penalised.  The statement type
is attributed from domain-keyword density ("interest income" →
income statement).  Layout evidence alone is capped at
``layout_confidence_cap`` so it corroborates rather than decides.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from statement_extractor.config import LocatorConfig
from statement_extractor.detectors import (
    DetectorKind,
    EarlyStopSignal,
    PageHit,
    merge_page_hits,
)
from statement_extractor.document import DocumentProvider, Word, page_lines
from statement_extractor.keywords import DOMAIN_KEYWORDS, ENTITY_PAIRS
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import EvidenceItem, PageCandidate, StatementType

logger = get_logger("layout_analyzer")

W_DENSITY = 0.35
W_TABULAR = 0.25
W_DUAL_YEAR = 0.20
W_ENTITY_PAIR = 0.20

_NUMERIC_RE = re.compile(r"^[\(\-−]?\d[\d,]*(?:\.\d+)?\)?%?$")
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")

# Lines at the top of a page that count as the header region.
_HEADER_LINES = 15

# Tabular rows needed for a full tabular score.
_FULL_TABULAR_ROWS = 8

# x1 positions (points) within this bucket count as one right-aligned column.
_ALIGN_BUCKET = 6.0
_MIN_COLUMN_WORDS = 3

# After an early stop, pages this close to a heading hit are still scanned.
_ANCHOR_REACH = 1


@dataclass(frozen=True)
class LayoutSignals:
    """Layout analysis signals for one page."""

    page: int
    numeric_density: float
    tabular: float
    has_dual_year: bool
    has_entity_pair: bool
    text_ratio: float
    score: float
    keyword_hits: Dict[StatementType, int]

    @property
    def total_hits(self) -> int:
        return sum(self.keyword_hits.values())

    def attribution(self) -> Optional[StatementType]:
        """Statement type owning the largest keyword share (``None`` on ties)."""
        if not self.total_hits:
            return None
        ranked = sorted(self.keyword_hits.items(), key=lambda kv: kv[1], reverse=True)
        if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
            return None
        return ranked[0][0]

    def share(self, statement_type: StatementType) -> float:
        total = self.total_hits
        return self.keyword_hits.get(statement_type, 0) / total if total else 0.0


def _is_numeric(token: str) -> bool:
    return bool(_NUMERIC_RE.match(token))


def _near(page: int, anchors: List[int]) -> bool:
    return any(abs(page - a) <= _ANCHOR_REACH for a in anchors)


def _normalised_density(density: float) -> float:
    # Statements run at 30-60% numeric tokens, notes pages at 10-20%.
    if density >= 0.3:
        return min(1.0, 0.8 + (density - 0.3) * 0.67)
    if density >= 0.2:
        return 0.5 + (density - 0.2) * 3.0
    return density * 2.5


class LayoutAnalyzer:
    """Structural page scorer.

    Parameters
    ----------
    config:
        ``layout_min_score``, ``layout_min_keyword_hits`` and
        ``layout_confidence_cap``.
    """

    kind = DetectorKind.LAYOUT

    def __init__(self, config: LocatorConfig) -> None:
        self._config = config
        self._entity_pairs = [
            (re.compile(rf"\b{a}\b"), re.compile(rf"\b{b}\b")) for a, b in ENTITY_PAIRS
        ]

    def detect(
        self,
        document: DocumentProvider,
        statement_type: StatementType,
        stop_signal: Optional[EarlyStopSignal] = None,
    ) -> List[PageCandidate]:
        hits: Dict[int, PageHit] = {}
        skipped = 0
        for page in range(1, document.page_count + 1):
            # Once stopped, only the pages around known hits and the
            # continuation of a run still get scanned.
            if (
                stop_signal is not None
                and stop_signal.should_stop()
                and page - 1 not in hits
                and not _near(page, stop_signal.anchors(statement_type))
            ):
                skipped += 1
                continue
            signals = self.analyze_page(document, page)
            if signals.score < self._config.layout_min_score:
                continue
            if signals.attribution() is not statement_type:
                continue
            if signals.keyword_hits[statement_type] < self._config.layout_min_keyword_hits:
                continue

            share = signals.share(statement_type)
            confidence = min(
                self._config.layout_confidence_cap, signals.score * (0.5 + 0.5 * share)
            )
            detail = (
                f"page {page}: score {signals.score:.2f} (density "
                f"{signals.numeric_density:.2f}, tabular {signals.tabular:.2f}, "
                f"dual-year {signals.has_dual_year}, entity pair "
                f"{signals.has_entity_pair}), keyword share {share:.2f}"
            )
            hits[page] = (confidence, [EvidenceItem("layout", detail, confidence)])

        candidates = merge_page_hits(hits, statement_type, self.kind)
        logger.info(
            "Layout: %d page(s), %d candidate(s) for %s (%d page(s) skipped by early stop)",
            len(hits),
            len(candidates),
            statement_type.value,
            skipped,
        )
        return candidates

    def analyze_page(self, document: DocumentProvider, page: int) -> LayoutSignals:
        """Compute every layout signal for one page."""
        text = document.page_text(page)
        lines = page_lines(text)
        tokens = text.split()
        numeric = [t for t in tokens if _is_numeric(t)]

        density = len(numeric) / len(tokens) if tokens else 0.0
        words = len(tokens) - len(numeric)
        text_ratio = words / len(numeric) if numeric else (10.0 if tokens else 0.0)

        tabular_rows = sum(
            1 for line in lines if sum(_is_numeric(t) for t in line.split()) >= 2
        )
        tabular = min(1.0, tabular_rows / _FULL_TABULAR_ROWS)
        aligned = self._aligned_columns(document.page_words(page))
        if aligned >= 2:
            tabular = max(tabular, min(1.0, aligned / 3))

        has_dual_year = any(len(set(_YEAR_RE.findall(line))) >= 2 for line in lines)
        header = " ".join(lines[:_HEADER_LINES]).lower()
        has_entity_pair = any(a.search(header) and b.search(header) for a, b in self._entity_pairs)

        score = (
            W_DENSITY * _normalised_density(density)
            + W_TABULAR * tabular
            + W_DUAL_YEAR * float(has_dual_year)
            + W_ENTITY_PAIR * float(has_entity_pair)
        )
        if text_ratio > 5.0:
            score *= 0.5
        elif text_ratio > 3.0:
            score *= 0.7

        lowered = " ".join(lines).lower()
        keyword_hits = {
            st: sum(lowered.count(k) for k in kws) for st, kws in DOMAIN_KEYWORDS.items()
        }

        signals = LayoutSignals(
            page=page,
            numeric_density=round(density, 4),
            tabular=round(tabular, 4),
            has_dual_year=has_dual_year,
            has_entity_pair=has_entity_pair,
            text_ratio=round(text_ratio, 2),
            score=round(min(1.0, score), 4),
            keyword_hits=keyword_hits,
        )
        logger.debug("Layout signals: %r", signals)
        return signals

    @staticmethod
    def _aligned_columns(words: List[Word]) -> int:
        """Number of right-aligned numeric columns found in the word boxes."""
        numeric = [w for w in words if _is_numeric(w.text)]
        if not numeric:
            return 0
        buckets = Counter(round(w.x1 / _ALIGN_BUCKET) for w in numeric)
        return sum(1 for count in buckets.values() if count >= _MIN_COLUMN_WORDS)

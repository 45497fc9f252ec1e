"""
Table-of-Contents Detector.

Finds ``<statement title> ..... <page>`` lines (or the mirrored
``<page> <statement title>``) in the leading pages of a report and turns the
reported page numbers into actual page candidates.

Printed page numbers rarely equal physical page numbers: covers, inserts and
unnumbered divider pages shift them.  The offset (actual − reported) is
*observed* two ways and the most frequent observation wins:

* title pages: a page within ``toc_max_offset`` of a reported page whose
  leading lines carry the statement title;
* printed folios: a bare number on the first or last line of a page.

Ties, weakly supported winners, and the no-observation fallback (offset 0)
all lower the confidence and are recorded as evidence.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from statement_extractor.config import LocatorConfig
from statement_extractor.detectors import DetectorKind, EarlyStopSignal
from statement_extractor.document import DocumentProvider, page_lines
from statement_extractor.keywords import STATEMENT_TITLES
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import EvidenceItem, PageCandidate, StatementType

logger = get_logger("toc_detector")

_LEADER = r"[\s\.\-_·…:]*"
_FOLIO_RE = re.compile(r"^(?:page\s+)?(\d{1,4})$", re.IGNORECASE)
_YEAR_RE = re.compile(r"(?:19|20)\d{2}")

_BASE_CONFIDENCE = 0.6
_PER_LINE_BONUS = 0.1
_MAX_CONFIDENCE = 0.95
_AMBIGUOUS_PENALTY = 0.15
_CONFLICT_PENALTY = 0.1
_NO_OFFSET_PENALTY = 0.1

# Leading lines of a page searched for a statement title.
_TITLE_LINES = 5


@dataclass(frozen=True)
class TocEntry:
    """One ToC line pointing at a statement."""

    statement_type: StatementType
    title: str
    reported_page: int
    toc_page: int
    line_index: int
    line: str


@dataclass(frozen=True)
class OffsetEstimate:
    offset: int
    observations: int
    support: int
    ambiguous: bool = False

    @property
    def conflicting(self) -> bool:
        return self.observations > 0 and self.support * 2 < self.observations


def title_index(
    titles: Dict[StatementType, Tuple[str, ...]]
) -> List[Tuple[str, StatementType]]:
    """All titles across statement types, longest first."""
    flat = [(t, st) for st, ts in titles.items() for t in ts]
    return sorted(flat, key=lambda item: len(item[0]), reverse=True)


def match_toc_line(
    line: str, index: List[Tuple[str, StatementType]]
) -> Optional[Tuple[StatementType, str, int]]:
    """Parse ``title ..... 225`` or ``225 title``; ``None`` for other lines.

    Four-digit years ("Income Statement 2023") are not page numbers.
    """
    lowered = line.lower()
    for title, statement_type in index:
        pos = lowered.find(title)
        if pos < 0:
            continue
        before = lowered[:pos].strip()
        after = lowered[pos + len(title):].strip()
        m = re.fullmatch(_LEADER + r"(\d{1,4})", after)
        if m is None:
            m = re.fullmatch(r"(\d{1,4})" + _LEADER, before)
            if m is not None and re.search(r"\d", after):
                m = None
        if m is None or _YEAR_RE.fullmatch(m.group(1)):
            return None
        return statement_type, title, int(m.group(1))
    return None


class TocDetector:
    """Locate statements through the report's table of contents.

    Parameters
    ----------
    config:
        ``toc_scan_window``, ``toc_max_offset`` and ``toc_page_span``.
    titles:
        Statement title phrases; defaults to ``keywords.STATEMENT_TITLES``.
    """

    kind = DetectorKind.TOC

    def __init__(
        self,
        config: LocatorConfig,
        titles: Optional[Dict[StatementType, Tuple[str, ...]]] = None,
    ) -> None:
        self._config = config
        self._titles = titles or STATEMENT_TITLES
        self._title_index = title_index(self._titles)

    # ------------------------------------------------------------------ #
    # Detection
    # ------------------------------------------------------------------ #

    def detect(
        self,
        document: DocumentProvider,
        statement_type: StatementType,
        stop_signal: Optional[EarlyStopSignal] = None,
    ) -> List[PageCandidate]:
        """Return ToC-derived candidates for *statement_type* (may be empty)."""
        entries = self.find_entries(document)
        if not entries:
            logger.debug("No ToC entries in first %d pages", self._config.toc_scan_window)
            return []

        estimate = self.estimate_offset(document, entries)
        penalty, offset_evidence = self._offset_penalty(estimate)

        page_count = document.page_count
        span = self._config.toc_page_span
        ranges: List[Tuple[int, int, TocEntry]] = []
        for entry in entries:
            if entry.statement_type is not statement_type:
                continue
            start = entry.reported_page + estimate.offset
            if not 1 <= start <= page_count:
                logger.debug(
                    "ToC entry %r → page %d outside document; dropped", entry.line, start
                )
                continue
            ranges.append((start, min(page_count, start + span - 1), entry))

        candidates = [
            self._build_candidate(statement_type, group, estimate, penalty, offset_evidence)
            for group in self._group_ranges(ranges)
        ]
        logger.info(
            "ToC: %d candidate(s) for %s (offset %+d)",
            len(candidates),
            statement_type.value,
            estimate.offset,
        )
        return candidates

    def find_entries(self, document: DocumentProvider) -> List[TocEntry]:
        """Parse ToC lines from the leading ``toc_scan_window`` pages."""
        entries: List[TocEntry] = []
        window = min(self._config.toc_scan_window, document.page_count)
        for page in range(1, window + 1):
            for idx, line in enumerate(page_lines(document.page_text(page))):
                parsed = self.parse_toc_line(line)
                if parsed is None:
                    continue
                statement_type, title, reported = parsed
                if not 1 <= reported <= document.page_count:
                    logger.debug("ToC page %d outside document: %r", reported, line)
                    continue
                entries.append(
                    TocEntry(statement_type, title, reported, page, idx, line)
                )
        return entries

    def parse_toc_line(self, line: str) -> Optional[Tuple[StatementType, str, int]]:
        """Return ``(statement_type, title, reported_page)`` for a ToC line."""
        return match_toc_line(line, self._title_index)

    # ------------------------------------------------------------------ #
    # Offset estimation
    # ------------------------------------------------------------------ #

    def estimate_offset(
        self, document: DocumentProvider, entries: Iterable[TocEntry]
    ) -> OffsetEstimate:
        entries = list(entries)
        toc_pages = {e.toc_page for e in entries}
        max_offset = self._config.toc_max_offset
        page_count = document.page_count
        observed: List[int] = []
        neighbourhood: set[int] = set()

        for entry in entries:
            best: Optional[int] = None
            for offset in range(-max_offset, max_offset + 1):
                page = entry.reported_page + offset
                if not 1 <= page <= page_count or page in toc_pages:
                    continue
                neighbourhood.add(page)
                if self._has_title(document, page, entry.statement_type):
                    if best is None or abs(offset) < abs(best):
                        best = offset
            if best is not None:
                observed.append(best)

        for page in sorted(neighbourhood):
            folio = self._folio(document, page)
            if folio is not None and abs(page - folio) <= max_offset:
                observed.append(page - folio)

        if not observed:
            return OffsetEstimate(offset=0, observations=0, support=0)

        counts = Counter(observed)
        top = max(counts.values())
        winners = sorted((o for o, c in counts.items() if c == top), key=lambda o: (abs(o), o))
        estimate = OffsetEstimate(
            offset=winners[0],
            observations=len(observed),
            support=top,
            ambiguous=len(winners) > 1,
        )
        logger.debug("ToC offset observations %s → %r", dict(counts), estimate)
        return estimate

    def _has_title(
        self, document: DocumentProvider, page: int, statement_type: StatementType
    ) -> bool:
        for line in page_lines(document.page_text(page))[:_TITLE_LINES]:
            lowered = line.lower()
            if self.parse_toc_line(line) is not None:
                continue
            if any(t in lowered for t in self._titles[statement_type]):
                return True
        return False

    @staticmethod
    def _folio(document: DocumentProvider, page: int) -> Optional[int]:
        lines = page_lines(document.page_text(page))
        for line in (lines[:1] + lines[-1:]) if lines else []:
            m = _FOLIO_RE.match(line)
            if m:
                return int(m.group(1))
        return None

    @staticmethod
    def _offset_penalty(estimate: OffsetEstimate) -> Tuple[float, List[EvidenceItem]]:
        penalty = 0.0
        evidence: List[EvidenceItem] = []
        if estimate.observations == 0:
            penalty += _NO_OFFSET_PENALTY
            evidence.append(
                EvidenceItem("toc", "no page offset observed; assuming 0", -_NO_OFFSET_PENALTY)
            )
            return penalty, evidence
        if estimate.ambiguous:
            penalty += _AMBIGUOUS_PENALTY
            evidence.append(
                EvidenceItem(
                    "toc",
                    f"ambiguous page offset; chose {estimate.offset:+d}",
                    -_AMBIGUOUS_PENALTY,
                )
            )
        if estimate.conflicting:
            penalty += _CONFLICT_PENALTY
            evidence.append(
                EvidenceItem(
                    "toc",
                    f"page offset {estimate.offset:+d} backed by "
                    f"{estimate.support}/{estimate.observations} observations",
                    -_CONFLICT_PENALTY,
                )
            )
        return penalty, evidence

    # ------------------------------------------------------------------ #
    # Grouping
    # ------------------------------------------------------------------ #

    @staticmethod
    def _group_ranges(
        ranges: List[Tuple[int, int, TocEntry]]
    ) -> List[List[Tuple[int, int, TocEntry]]]:
        groups: List[List[Tuple[int, int, TocEntry]]] = []
        for item in sorted(ranges, key=lambda r: (r[0], r[1])):
            if groups and item[0] <= max(r[1] for r in groups[-1]) + 1:
                groups[-1].append(item)
            else:
                groups.append([item])
        return groups

    @staticmethod
    def _build_candidate(
        statement_type: StatementType,
        group: List[Tuple[int, int, TocEntry]],
        estimate: OffsetEstimate,
        penalty: float,
        offset_evidence: List[EvidenceItem],
    ) -> PageCandidate:
        lines = {(e.toc_page, e.line_index) for _, _, e in group}
        confidence = min(_MAX_CONFIDENCE, _BASE_CONFIDENCE + _PER_LINE_BONUS * (len(lines) - 1))
        confidence = max(0.0, min(1.0, confidence - penalty))

        evidence = [
            EvidenceItem(
                "toc",
                f"ToC page {e.toc_page}: '{e.line}' → reported {e.reported_page}, "
                f"actual {start} (offset {estimate.offset:+d})",
                confidence,
            )
            for start, _, e in group
        ]
        evidence.extend(offset_evidence)
        return PageCandidate(
            statement_type=statement_type,
            page_range=(min(r[0] for r in group), max(r[1] for r in group)),
            confidence=round(confidence, 4),
            evidence=tuple(evidence),
            sources=frozenset({DetectorKind.TOC.value}),
        )

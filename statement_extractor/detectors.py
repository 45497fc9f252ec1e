"""
Shared detector plumbing.

The three page detectors form a closed set tagged by ``DetectorKind``.  Each
exposes the same capability::

    detect(document, statement_type, stop_signal) -> list[PageCandidate]

so the locator never needs to know how a detector works.  This module also
holds the cooperative early-stop signal and the page-run merging used by
every detector.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from statement_extractor.document import DocumentProvider
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import EvidenceItem, PageCandidate, StatementType

logger = get_logger("detectors")


class DetectorKind(str, Enum):
    TOC = "toc"
    HEADING = "heading"
    LAYOUT = "layout"


class EarlyStopSignal:
    """Best confidence seen so far per statement type, shared across threads.

    Once every tracked statement type has reached ``threshold``, page-scanning
    detectors stop looking at further pages, apart from the pages around the
    recorded hits (``anchors``).  A ``None`` threshold disables the signal
    entirely.

    An unarmed signal only collects; ``should_stop`` stays false until
    ``arm()``.  The locator arms it once the heading pass is complete so
    that the layout pass sees a settled signal.
    """

    def __init__(
        self,
        statement_types: Iterable[StatementType],
        threshold: Optional[float],
        armed: bool = True,
    ) -> None:
        self._threshold = threshold
        self._armed = armed
        self._best: Dict[StatementType, float] = {st: 0.0 for st in statement_types}
        self._anchors: Dict[StatementType, Set[int]] = {st: set() for st in self._best}
        self._lock = threading.Lock()

    def record(
        self, statement_type: StatementType, confidence: float, page: Optional[int] = None
    ) -> None:
        with self._lock:
            if confidence > self._best.get(statement_type, 0.0):
                self._best[statement_type] = confidence
            if page is not None:
                self._anchors.setdefault(statement_type, set()).add(page)

    def arm(self) -> None:
        with self._lock:
            self._armed = True

    def best(self, statement_type: StatementType) -> float:
        with self._lock:
            return self._best.get(statement_type, 0.0)

    def anchors(self, statement_type: StatementType) -> List[int]:
        """Pages recorded as hits for *statement_type*, ascending."""
        with self._lock:
            return sorted(self._anchors.get(statement_type, ()))

    def should_stop(self) -> bool:
        if self._threshold is None:
            return False
        with self._lock:
            return self._armed and bool(self._best) and all(
                c >= self._threshold for c in self._best.values()
            )


class PageDetector(Protocol):
    """The uniform detection capability."""

    kind: DetectorKind

    def detect(
        self,
        document: DocumentProvider,
        statement_type: StatementType,
        stop_signal: Optional[EarlyStopSignal] = None,
    ) -> List[PageCandidate]: ...


# ---------------------------------------------------------------------------
# Page-run merging
# ---------------------------------------------------------------------------

PageHit = Tuple[float, List[EvidenceItem]]


def merge_page_hits(
    hits: Dict[int, PageHit],
    statement_type: StatementType,
    kind: DetectorKind,
) -> List[PageCandidate]:
    """Merge per-page hits into runs of adjacent pages.

    A run's confidence is the maximum of its pages; its evidence is the
    concatenation in page order.
    """
    candidates: List[PageCandidate] = []
    run: List[int] = []

    def flush() -> None:
        if not run:
            return
        confidence = max(hits[p][0] for p in run)
        evidence = tuple(e for p in run for e in hits[p][1])
        candidates.append(
            PageCandidate(
                statement_type=statement_type,
                page_range=(run[0], run[-1]),
                confidence=min(1.0, max(0.0, confidence)),
                evidence=evidence,
                sources=frozenset({kind.value}),
            )
        )

    for page in sorted(hits):
        if run and page > run[-1] + 1:
            flush()
            run = []
        run.append(page)
    flush()
    return candidates

"""
Page Locator.

Runs every page detector for every statement type and fuses their
candidates into ranked page ranges:

1. Candidates whose ranges overlap or touch (gap ≤ 1 page) form a cluster.
2. Each source contributes its best confidence in the cluster; sources
   combine by noisy-OR, ``1 − Π(1 − cᵢ)``, capped at ``fusion_cap``.
3. Evidence and sources are the union of the cluster's members.
4. Clusters below ``min_page_confidence`` are dropped.
5. Ranking: confidence, then more sources, narrower range, earlier page.

Detectors run on a thread pool in two passes: the ToC and heading detectors
first, then the layout analyzer, which honours the early-stop signal the
heading pass has settled.  Results are collected in fixed detector order so
fusion is deterministic for identical detector output.  A detector that
raises is logged and contributes nothing.
"""

from __future__ import annotations

import json
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from statement_extractor.config import LocatorConfig
from statement_extractor.detectors import DetectorKind, EarlyStopSignal, PageDetector
from statement_extractor.document import DocumentProvider
from statement_extractor.heading_scanner import HeadingScanner
from statement_extractor.layout_analyzer import LayoutAnalyzer
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import EvidenceItem, PageCandidate, StatementType
from statement_extractor.toc_detector import TocDetector

logger = get_logger("page_locator")

LocationResults = Dict[StatementType, List[PageCandidate]]

_SOURCE_ORDER = {kind.value: i for i, kind in enumerate(DetectorKind)}

# Detectors that run after the title-driven ones.
_LATE_KINDS = frozenset({DetectorKind.LAYOUT})


def _scans_late(detector: PageDetector) -> bool:
    return getattr(detector, "kind", None) in _LATE_KINDS


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------

def noisy_or(confidences: Iterable[float], cap: float = 0.99) -> float:
    """``1 − Π(1 − cᵢ)``, capped."""
    miss = 1.0
    for c in confidences:
        miss *= 1.0 - c
    return min(cap, 1.0 - miss)


def _source_key(source: str) -> tuple[int, str]:
    return (_SOURCE_ORDER.get(source, len(_SOURCE_ORDER)), source)


def _member_key(candidate: PageCandidate) -> tuple:
    return (
        candidate.start,
        candidate.end,
        [_source_key(s) for s in sorted(candidate.sources, key=_source_key)],
        -candidate.confidence,
    )


def cluster_candidates(candidates: Sequence[PageCandidate]) -> List[List[PageCandidate]]:
    """Group candidates whose ranges overlap or are adjacent."""
    clusters: List[List[PageCandidate]] = []
    cluster_end = 0
    for candidate in sorted(candidates, key=_member_key):
        if clusters and candidate.start <= cluster_end + 1:
            clusters[-1].append(candidate)
            cluster_end = max(cluster_end, candidate.end)
        else:
            clusters.append([candidate])
            cluster_end = candidate.end
    return clusters


def fuse_cluster(
    statement_type: StatementType, cluster: Sequence[PageCandidate], cap: float = 0.99
) -> PageCandidate:
    """Fuse one cluster into a single candidate."""
    per_source: Dict[str, float] = {}
    for candidate in cluster:
        for source in candidate.sources or frozenset({"unknown"}):
            per_source[source] = max(per_source.get(source, 0.0), candidate.confidence)

    ordered_sources = sorted(per_source, key=_source_key)
    if len(cluster) == 1:
        confidence = min(cap, cluster[0].confidence)
    else:
        confidence = noisy_or((per_source[s] for s in ordered_sources), cap)

    evidence: List[EvidenceItem] = [e for c in cluster for e in c.evidence]
    if len(cluster) > 1:
        evidence.append(
            EvidenceItem(
                "fusion",
                "noisy-OR of "
                + ", ".join(f"{s}={per_source[s]:.2f}" for s in ordered_sources),
                confidence,
            )
        )

    return PageCandidate(
        statement_type=statement_type,
        page_range=(min(c.start for c in cluster), max(c.end for c in cluster)),
        confidence=round(confidence, 6),
        evidence=tuple(evidence),
        sources=frozenset(s for c in cluster for s in c.sources),
    )


def rank_key(candidate: PageCandidate) -> tuple:
    return (-candidate.confidence, -len(candidate.sources), candidate.width, candidate.start)


def fuse_candidates(
    statement_type: StatementType,
    candidates: Sequence[PageCandidate],
    min_confidence: float = 0.5,
    cap: float = 0.99,
) -> List[PageCandidate]:
    """Cluster, fuse, filter and rank the candidates of one statement type."""
    fused = [
        fuse_cluster(statement_type, cluster, cap)
        for cluster in cluster_candidates(candidates)
    ]
    kept = [c for c in fused if c.confidence >= min_confidence]
    dropped = len(fused) - len(kept)
    if dropped:
        logger.debug(
            "%s: dropped %d cluster(s) below %.2f", statement_type.value, dropped, min_confidence
        )
    return sorted(kept, key=rank_key)


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------

class PageLocator:
    """Evidence-fusion page locator.

    Parameters
    ----------
    config:
        Detector and fusion settings.
    detectors:
        Override the detector set (mainly for tests).  Defaults to ToC,
        heading and layout detectors, in that order.
    """

    def __init__(
        self,
        config: Optional[LocatorConfig] = None,
        detectors: Optional[Sequence[PageDetector]] = None,
    ) -> None:
        self._config = config or LocatorConfig()
        if detectors is None:
            detectors = (
                TocDetector(self._config),
                HeadingScanner(self._config),
                LayoutAnalyzer(self._config),
            )
        self._detectors = tuple(detectors)

    @property
    def detectors(self) -> tuple:
        return self._detectors

    def locate(
        self,
        document: DocumentProvider,
        min_confidence: Optional[float] = None,
        statement_types: Optional[Iterable[StatementType]] = None,
    ) -> LocationResults:
        """Locate every statement type in *document*.

        Parameters
        ----------
        document:
            Any provider with ``page_count`` / ``page_text`` / ``page_words``.
        min_confidence:
            Per-call override of ``min_page_confidence``.
        statement_types:
            Restrict the search; defaults to all three statements.

        Returns
        -------
        dict[StatementType, list[PageCandidate]]
            Ranked candidates per statement type (possibly empty lists).
        """
        threshold = self._config.min_page_confidence if min_confidence is None else min_confidence
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {threshold!r}")

        types = list(statement_types) if statement_types is not None else list(StatementType)
        stop_signal = EarlyStopSignal(
            types, self._config.heading_early_stop_confidence, armed=False
        )
        logger.info(
            "Locating %s in %d pages (min_confidence=%.2f)",
            [t.value for t in types],
            document.page_count,
            threshold,
        )

        results: LocationResults = {}
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
            futures: Dict[StatementType, Dict[int, Future]] = {st: {} for st in types}
            early = [i for i, d in enumerate(self._detectors) if not _scans_late(d)]
            late = [i for i, d in enumerate(self._detectors) if _scans_late(d)]

            # Title-driven detectors first; the layout pass then sees a
            # settled signal, so its output never depends on scheduling.
            for indices in (early, late):
                for i in indices:
                    for st in types:
                        futures[st][i] = executor.submit(
                            self._detectors[i].detect, document, st, stop_signal
                        )
                wait([futures[st][i] for i in indices for st in types])
                stop_signal.arm()

            for st in types:
                raw: List[PageCandidate] = []
                for i, det in enumerate(self._detectors):
                    raw.extend(self._collect(det, st, futures[st][i]))
                results[st] = fuse_candidates(st, raw, threshold, self._config.fusion_cap)
                logger.info(
                    "%s: %d raw → %d fused candidate(s)%s",
                    st.value,
                    len(raw),
                    len(results[st]),
                    f", best pages {results[st][0].page_range} "
                    f"({results[st][0].confidence:.2f})" if results[st] else "",
                )
        return results

    @staticmethod
    def _collect(
        detector: PageDetector, statement_type: StatementType, future: Future
    ) -> List[PageCandidate]:
        try:
            found = future.result()
        except Exception:
            logger.exception(
                "%s detector failed for %s",
                getattr(detector, "kind", type(detector).__name__),
                statement_type.value,
            )
            return []
        return [c for c in found if c.statement_type is statement_type]

    # ------------------------------------------------------------------ #
    # Result helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def get_best_candidates(results: LocationResults, n: int = 1) -> LocationResults:
        """Top-*n* candidates per statement type."""
        if n < 0:
            raise ValueError("n must be >= 0")
        return {st: list(candidates[:n]) for st, candidates in results.items()}

    @staticmethod
    def to_dict(results: LocationResults) -> Dict[str, list]:
        return {st.value: [c.to_dict() for c in cands] for st, cands in results.items()}

    @classmethod
    def save_location_results(cls, results: LocationResults, path: Union[str, Path]) -> Path:
        """Write results as JSON, creating parent directories."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(cls.to_dict(results), indent=2), encoding="utf-8")
        logger.info("Location results written to %s", out)
        return out

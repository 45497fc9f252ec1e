"""
Heading Scanner.

Scans every page for a line that reads like a statement title.

* An exact (normalised) containment of a title scores 0.9.
* A fuzzy containment (``rapidfuzz.fuzz.partial_ratio``) at or above
  ``heading_fuzzy_min_similarity`` scores 0.9 × similarity.  This tolerates
  OCR noise such as ``"Incme Statment"``.
* A line near the top of the page, or set in a larger font than the page's
  median, earns a +0.05 position bonus (capped at 0.95).

Cross-references ("refer to note 12", "notes to the financial
statements"), ToC entries and prose-length lines never count as headings.
"""

from __future__ import annotations

import re
import statistics
from typing import Dict, List, Optional, Set, Tuple

from rapidfuzz import fuzz

from statement_extractor.config import LocatorConfig
from statement_extractor.detectors import (
    DetectorKind,
    EarlyStopSignal,
    PageHit,
    merge_page_hits,
)
from statement_extractor.document import DocumentProvider, Word, page_lines
from statement_extractor.keywords import STATEMENT_TITLES
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import EvidenceItem, PageCandidate, StatementType
from statement_extractor.toc_detector import match_toc_line, title_index

logger = get_logger("heading_scanner")

_EXACT_CONFIDENCE = 0.9
_POSITION_BONUS = 0.05
_MAX_CONFIDENCE = 0.95

# Words shared by most titles; a fuzzy hit must resemble one of the others.
_GENERIC_WORDS = {"statement", "statements", "of", "the", "and", "or", "consolidated"}
_KEY_WORD_MIN_RATIO = 80

_CROSS_REF_RE = re.compile(
    r"\bnotes?\s+(?:no\.?\s*)?\d+|\brefer(?:red)?\s+to\b|\bnotes\s+to\s+the\b"
    r"|\bsee\s+(?:page|note)\b|\bset\s+out\s+(?:in|on)\b",
    re.IGNORECASE,
)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


_NUMERIC_TOKEN_RE = re.compile(r"^[(\-−–]?[\d.,']*\d[\d.,']*\)?%?$")


def _norm(text: str) -> str:
    return _NON_ALNUM_RE.sub(" ", text.lower()).strip()


def _is_numeric_row(line: str) -> bool:
    """Two or more figures, or figures making up half the tokens."""
    tokens = line.split()
    numeric = sum(1 for t in tokens if _NUMERIC_TOKEN_RE.match(t))
    return numeric >= 2 or (bool(tokens) and numeric * 2 >= len(tokens))


class HeadingScanner:
    """Find statement headings page by page.

    Parameters
    ----------
    config:
        ``heading_top_lines``, ``heading_max_words`` and
        ``heading_fuzzy_min_similarity``.
    titles:
        Statement title phrases; defaults to ``keywords.STATEMENT_TITLES``.
    """

    kind = DetectorKind.HEADING

    def __init__(
        self,
        config: LocatorConfig,
        titles: Optional[Dict[StatementType, Tuple[str, ...]]] = None,
    ) -> None:
        self._config = config
        self._titles = titles or STATEMENT_TITLES
        self._title_index = title_index(self._titles)
        self._norm_titles = {
            st: tuple(_norm(t) for t in ts) for st, ts in self._titles.items()
        }

    def detect(
        self,
        document: DocumentProvider,
        statement_type: StatementType,
        stop_signal: Optional[EarlyStopSignal] = None,
    ) -> List[PageCandidate]:
        hits: Dict[int, PageHit] = {}
        for page in range(1, document.page_count + 1):
            # An open run of heading pages is always finished before stopping.
            if (
                stop_signal is not None
                and page - 1 not in hits
                and stop_signal.should_stop()
            ):
                logger.info(
                    "Early stop for %s after page %d", statement_type.value, page - 1
                )
                break
            hit = self.scan_page(document, page, statement_type)
            if hit is None:
                continue
            hits[page] = hit
            if stop_signal is not None:
                stop_signal.record(statement_type, hit[0], page)

        candidates = merge_page_hits(hits, statement_type, self.kind)
        logger.info(
            "Headings: %d page(s), %d candidate(s) for %s",
            len(hits),
            len(candidates),
            statement_type.value,
        )
        return candidates

    def scan_page(
        self, document: DocumentProvider, page: int, statement_type: StatementType
    ) -> Optional[PageHit]:
        """Best heading hit on one page, or ``None``."""
        lines = page_lines(document.page_text(page))
        large = self._large_font_lines(document.page_words(page))

        best: Optional[Tuple[float, EvidenceItem]] = None
        for idx, line in enumerate(lines):
            scored = self.score_line(line, statement_type)
            if scored is None:
                continue
            confidence, how = scored
            prominent = idx < self._config.heading_top_lines or _norm(line) in large
            if prominent:
                confidence = min(_MAX_CONFIDENCE, confidence + _POSITION_BONUS)
            if best is None or confidence > best[0]:
                detail = f"page {page} line {idx + 1}: '{line}' ({how}"
                detail += ", prominent)" if prominent else ")"
                best = (confidence, EvidenceItem("heading", detail, confidence))

        if best is None:
            return None
        return best[0], [best[1]]

    def score_line(
        self, line: str, statement_type: StatementType
    ) -> Optional[Tuple[float, str]]:
        """Return ``(confidence, description)`` if *line* is a heading."""
        if len(line.split()) > self._config.heading_max_words:
            return None
        if _CROSS_REF_RE.search(line):
            return None
        if match_toc_line(line, self._title_index) is not None:
            return None

        normalised = _norm(line)
        if not normalised:
            return None
        for title in self._norm_titles[statement_type]:
            if title in normalised:
                return _EXACT_CONFIDENCE, f"exact '{title}'"

        # A line naming another statement outright is never a fuzzy hit.
        for other, titles in self._norm_titles.items():
            if other is not statement_type and any(t in normalised for t in titles):
                return None

        # Table rows ("Income tax expense 80 70") are never fuzzy titles.
        if _is_numeric_row(line):
            return None

        best_similarity = 0.0
        best_title = ""
        words = normalised.split()
        for title in self._norm_titles[statement_type]:
            if len(normalised) < 0.8 * len(title):
                continue
            if not self._shares_key_word(words, title):
                continue
            similarity = fuzz.partial_ratio(title, normalised) / 100.0
            if similarity > best_similarity:
                best_similarity, best_title = similarity, title

        if best_similarity >= self._config.heading_fuzzy_min_similarity:
            return _EXACT_CONFIDENCE * best_similarity, (
                f"fuzzy '{best_title}' {best_similarity:.2f}"
            )
        return None

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _shares_key_word(words: List[str], title: str) -> bool:
        keys = [w for w in title.split() if w not in _GENERIC_WORDS]
        if not keys:
            return True
        return any(
            fuzz.ratio(k, w) >= _KEY_WORD_MIN_RATIO for k in keys for w in words
        )

    @staticmethod
    def _large_font_lines(words: List[Word]) -> Set[str]:
        """Normalised text of visual lines set larger than the page median."""
        sized = [w for w in words if w.size is not None]
        if not sized:
            return set()
        median = statistics.median(w.size for w in sized)

        rows: Dict[int, List[Word]] = {}
        for w in sized:
            rows.setdefault(round(w.top), []).append(w)

        large: Set[str] = set()
        for row in rows.values():
            if max(w.size for w in row) > median:
                text = " ".join(w.text for w in sorted(row, key=lambda w: w.x0))
                large.add(_norm(text))
        return large

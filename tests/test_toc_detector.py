"""
Unit tests for the TocDetector.
"""

from __future__ import annotations

import pytest

from statement_extractor.config import LocatorConfig
from statement_extractor.document import InMemoryDocument
from statement_extractor.schema import StatementType
from statement_extractor.toc_detector import OffsetEstimate, TocDetector

IS = StatementType.INCOME_STATEMENT
FP = StatementType.FINANCIAL_POSITION
CF = StatementType.CASH_FLOW

FILLER = "Our strategy for the year focused on sustainable growth and service quality."

TOC_PAGE = "\n".join([
    "Contents",
    "Chairman's Review ..... 4",
    "Income Statement ..... 10",
    "Statement of Financial Position ..... 11",
    "Statement of Cash Flows ..... 13",
])


def _report(with_titles: bool = True, with_folios: bool = True) -> InMemoryDocument:
    """20 pages; statements printed on pages 10/11/13 sit on physical 12/13/15."""
    pages = [FILLER] * 20
    pages[0] = "Annual Report 2023"
    pages[1] = TOC_PAGE
    for physical, printed, title in ((12, 10, "Income Statement"),
                                     (13, 11, "Statement of Financial Position"),
                                     (15, 13, "Statement of Cash Flows")):
        lines = [title if with_titles else "Financial information", "Bank Group", FILLER]
        if with_folios:
            lines.append(str(printed))
        pages[physical - 1] = "\n".join(lines)
    return InMemoryDocument(pages)


@pytest.fixture
def detector() -> TocDetector:
    return TocDetector(LocatorConfig(toc_scan_window=5))


# ======================================================================
# Line parsing
# ======================================================================

class TestParseTocLine:
    def test_dotted_leader(self, detector: TocDetector) -> None:
        assert detector.parse_toc_line("Income Statement ..... 225") == (
            IS, "income statement", 225,
        )

    def test_space_leader(self, detector: TocDetector) -> None:
        parsed = detector.parse_toc_line("Statement of Cash Flows   231")
        assert parsed == (CF, "statement of cash flows", 231)

    def test_page_first(self, detector: TocDetector) -> None:
        parsed = detector.parse_toc_line("228 Statement of Financial Position")
        assert parsed == (FP, "statement of financial position", 228)

    def test_longest_title_wins(self, detector: TocDetector) -> None:
        parsed = detector.parse_toc_line("Consolidated Statement of Financial Position .... 12")
        assert parsed is not None
        assert parsed[1] == "consolidated statement of financial position"

    @pytest.mark.parametrize("line", [
        "Income Statement 2023",
        "Income Statement",
        "Notes to the Income Statement explain the figures",
        "Chairman's Review ..... 4",
        "2023 Income Statement 2022",
    ])
    def test_non_toc_lines(self, detector: TocDetector, line: str) -> None:
        assert detector.parse_toc_line(line) is None


# ======================================================================
# Entries and offsets
# ======================================================================

class TestFindEntries:
    def test_entries_from_window(self, detector: TocDetector) -> None:
        entries = detector.find_entries(_report())
        assert [(e.statement_type, e.reported_page, e.toc_page) for e in entries] == [
            (IS, 10, 2), (FP, 11, 2), (CF, 13, 2),
        ]

    def test_window_excludes_toc(self) -> None:
        detector = TocDetector(LocatorConfig(toc_scan_window=1))
        assert detector.find_entries(_report()) == []
        assert detector.detect(_report(), IS) == []

    def test_reported_page_beyond_document_dropped(self, detector: TocDetector) -> None:
        doc = InMemoryDocument(["Contents\nIncome Statement ..... 450", FILLER])
        assert detector.find_entries(doc) == []


class TestOffset:
    def test_offset_from_titles_and_folios(self, detector: TocDetector) -> None:
        doc = _report()
        estimate = detector.estimate_offset(doc, detector.find_entries(doc))
        assert estimate.offset == 2
        assert estimate.observations == 6
        assert estimate.support == 6
        assert not estimate.ambiguous
        assert not estimate.conflicting

    def test_offset_from_folios_only(self, detector: TocDetector) -> None:
        doc = _report(with_titles=False)
        estimate = detector.estimate_offset(doc, detector.find_entries(doc))
        assert estimate.offset == 2
        assert estimate.observations == 3

    def test_no_observations(self, detector: TocDetector) -> None:
        doc = _report(with_titles=False, with_folios=False)
        estimate = detector.estimate_offset(doc, detector.find_entries(doc))
        assert estimate == OffsetEstimate(offset=0, observations=0, support=0)

    def test_conflicting_property(self) -> None:
        assert OffsetEstimate(offset=1, observations=5, support=2).conflicting
        assert not OffsetEstimate(offset=1, observations=4, support=2).conflicting


# ======================================================================
# Detection
# ======================================================================

class TestDetect:
    def test_offset_corrected_candidates(self, detector: TocDetector) -> None:
        doc = _report()
        for statement_type, page in ((IS, 12), (FP, 13), (CF, 15)):
            candidates = detector.detect(doc, statement_type)
            assert len(candidates) == 1
            candidate = candidates[0]
            assert candidate.page_range == (page, page)
            assert candidate.confidence == pytest.approx(0.6)
            assert candidate.sources == frozenset({"toc"})
            assert "offset +2" in candidate.evidence[0].detail

    def test_no_offset_lowers_confidence(self, detector: TocDetector) -> None:
        candidates = detector.detect(_report(with_titles=False, with_folios=False), IS)
        assert candidates[0].page_range == (10, 10)
        assert candidates[0].confidence == pytest.approx(0.5)
        assert any(e.weight < 0 for e in candidates[0].evidence)

    def test_repeated_entries_raise_confidence(self, detector: TocDetector) -> None:
        doc = _report()
        pages = [doc.page_text(p) for p in range(1, doc.page_count + 1)]
        pages[2] = "Financial Statements\nIncome Statement ..... 10"
        candidates = detector.detect(InMemoryDocument(pages), IS)
        assert len(candidates) == 1
        assert candidates[0].confidence == pytest.approx(0.7)
        assert len([e for e in candidates[0].evidence if e.weight > 0]) == 2

    def test_page_span(self) -> None:
        detector = TocDetector(LocatorConfig(toc_scan_window=5, toc_page_span=3))
        candidates = detector.detect(_report(), IS)
        assert candidates[0].page_range == (12, 14)

    def test_no_toc(self, detector: TocDetector) -> None:
        assert detector.detect(InMemoryDocument([FILLER] * 5), IS) == []

"""
Unit tests for the LayoutAnalyzer.
"""

from __future__ import annotations

import pytest

from statement_extractor.config import LocatorConfig
from statement_extractor.detectors import EarlyStopSignal
from statement_extractor.document import InMemoryDocument, Word
from statement_extractor.layout_analyzer import LayoutAnalyzer, LayoutSignals
from statement_extractor.schema import StatementType

IS = StatementType.INCOME_STATEMENT
FP = StatementType.FINANCIAL_POSITION
CF = StatementType.CASH_FLOW

INCOME_TABLE = "\n".join([
    "Bank Group",
    "2023 2022 2023 2022",
    "Interest income 1,000 900 1,100 950",
    "Interest expenses (500) (450) (520) (470)",
    "Net interest income 500 450 580 480",
    "Fee and commission income 200 180 210 190",
    "Personnel expenses (100) (90) (110) (95)",
    "Profit before income tax 300 280 310 290",
    "Income tax expense (80) (70) (85) (75)",
    "Profit for the year 220 210 225 215",
])

POSITION_TABLE = "\n".join([
    "Bank Group",
    "2023 2022 2023 2022",
    "Cash and cash equivalents 1,000 900 1,100 950",
    "Placements with banks 500 450 520 470",
    "Total assets 9,500 9,000 9,800 9,200",
    "Due to banks 300 250 320 260",
    "Due to depositors 7,000 6,800 7,100 6,900",
    "Total liabilities 8,000 7,700 8,200 7,800",
    "Stated capital 500 500 500 500",
    "Retained earnings 1,000 800 1,100 900",
    "Total equity 1,500 1,300 1,600 1,400",
])

NOTES_PROSE = (
    "The Bank recognises interest income using the effective interest rate method. "
    "Interest income and interest expenses are presented in the income statement "
    "for all interest bearing financial instruments measured at amortised cost, "
    "as described in note 4 of these financial statements for 2023."
)


@pytest.fixture
def analyzer() -> LayoutAnalyzer:
    return LayoutAnalyzer(LocatorConfig())


# ======================================================================
# Signals
# ======================================================================

class TestAnalyzePage:
    def test_statement_page_signals(self, analyzer: LayoutAnalyzer) -> None:
        signals = analyzer.analyze_page(InMemoryDocument([INCOME_TABLE]), 1)
        assert signals.numeric_density > 0.5
        assert signals.tabular == 1.0
        assert signals.has_dual_year
        assert signals.has_entity_pair
        assert signals.score > 0.9
        assert signals.attribution() is IS
        assert signals.keyword_hits[FP] == 0

    def test_prose_page_penalised(self, analyzer: LayoutAnalyzer) -> None:
        signals = analyzer.analyze_page(InMemoryDocument([NOTES_PROSE]), 1)
        assert signals.text_ratio > 5.0
        assert not signals.has_dual_year
        assert signals.score < 0.2

    def test_empty_page(self, analyzer: LayoutAnalyzer) -> None:
        signals = analyzer.analyze_page(InMemoryDocument([""]), 1)
        assert signals.score == 0.0
        assert signals.attribution() is None

    def test_aligned_word_columns(self, analyzer: LayoutAnalyzer) -> None:
        words = [
            Word(text, x0, x1, top, top + 9)
            for top in (100, 120, 140)
            for text, x0, x1 in (("1,000", 300, 330), ("900", 380, 400), ("(50)", 460, 480))
        ]
        doc = InMemoryDocument(["Interest income 1,000 900 (50)"], words={1: words})
        signals = analyzer.analyze_page(doc, 1)
        assert signals.tabular == 1.0

    def test_company_consolidated_pair(self, analyzer: LayoutAnalyzer) -> None:
        text = INCOME_TABLE.replace("Bank Group", "Company Consolidated")
        signals = analyzer.analyze_page(InMemoryDocument([text]), 1)
        assert signals.has_entity_pair


class TestAttribution:
    def _signals(self, hits: dict) -> LayoutSignals:
        return LayoutSignals(
            page=1, numeric_density=0.5, tabular=1.0, has_dual_year=True,
            has_entity_pair=True, text_ratio=1.0, score=0.9, keyword_hits=hits,
        )

    def test_majority(self) -> None:
        signals = self._signals({IS: 6, FP: 2, CF: 0})
        assert signals.attribution() is IS
        assert signals.share(IS) == pytest.approx(0.75)

    def test_tie_has_no_attribution(self) -> None:
        assert self._signals({IS: 3, FP: 3, CF: 0}).attribution() is None

    def test_no_hits(self) -> None:
        signals = self._signals({IS: 0, FP: 0, CF: 0})
        assert signals.attribution() is None
        assert signals.share(IS) == 0.0


# ======================================================================
# Detection
# ======================================================================

class TestDetect:
    def test_attributed_candidates(self, analyzer: LayoutAnalyzer) -> None:
        doc = InMemoryDocument([NOTES_PROSE, INCOME_TABLE, POSITION_TABLE, NOTES_PROSE])
        income = analyzer.detect(doc, IS)
        position = analyzer.detect(doc, FP)
        assert [c.page_range for c in income] == [(2, 2)]
        assert [c.page_range for c in position] == [(3, 3)]
        assert analyzer.detect(doc, CF) == []

    def test_confidence_capped(self, analyzer: LayoutAnalyzer) -> None:
        candidates = analyzer.detect(InMemoryDocument([INCOME_TABLE]), IS)
        assert candidates[0].confidence == pytest.approx(0.8)
        assert candidates[0].sources == frozenset({"layout"})
        assert candidates[0].evidence[0].kind == "layout"

    def test_custom_cap(self) -> None:
        analyzer = LayoutAnalyzer(LocatorConfig(layout_confidence_cap=0.6))
        candidates = analyzer.detect(InMemoryDocument([INCOME_TABLE]), IS)
        assert candidates[0].confidence == pytest.approx(0.6)

    def test_keyword_minimum(self) -> None:
        analyzer = LayoutAnalyzer(LocatorConfig(layout_min_keyword_hits=50))
        assert analyzer.detect(InMemoryDocument([INCOME_TABLE]), IS) == []


class TestEarlyStop:
    PAGES = [
        INCOME_TABLE, NOTES_PROSE, NOTES_PROSE, INCOME_TABLE,
        INCOME_TABLE, NOTES_PROSE, INCOME_TABLE,
    ]

    def test_full_scan_without_signal(self, analyzer: LayoutAnalyzer) -> None:
        found = analyzer.detect(InMemoryDocument(self.PAGES), IS)
        assert [c.page_range for c in found] == [(1, 1), (4, 5), (7, 7)]

    def test_stopped_scan_keeps_pages_around_heading_hits(
        self, analyzer: LayoutAnalyzer
    ) -> None:
        signal = EarlyStopSignal([IS], threshold=0.9)
        signal.record(IS, 0.95, page=4)
        found = analyzer.detect(InMemoryDocument(self.PAGES), IS, signal)
        assert [c.page_range for c in found] == [(4, 5)]

    def test_unsettled_signal_scans_everything(self, analyzer: LayoutAnalyzer) -> None:
        signal = EarlyStopSignal([IS, CF], threshold=0.9)
        signal.record(IS, 0.95, page=4)
        found = analyzer.detect(InMemoryDocument(self.PAGES), IS, signal)
        assert len(found) == 3

"""
Unit tests for the FuzzyMatcher.
"""

from __future__ import annotations

import pytest

from statement_extractor.config import MatchingConfig
from statement_extractor.fuzzy_matcher import FuzzyMatcher
from statement_extractor.normalizer import LabelNormalizer
from statement_extractor.schema import StatementType
from statement_extractor.synonym_mapper import SynonymMapper

IS = StatementType.INCOME_STATEMENT
FP = StatementType.FINANCIAL_POSITION


@pytest.fixture
def normalizer() -> LabelNormalizer:
    return LabelNormalizer()


@pytest.fixture
def matcher(normalizer: LabelNormalizer) -> FuzzyMatcher:
    return FuzzyMatcher(MatchingConfig(), normalizer, SynonymMapper(normalizer))


class TestFuzzyMatch:
    def test_typo_matches(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("net interst income", IS)
        assert result is not None
        assert result.canonical_name == "Net interest income"
        assert result.score >= 85.0

    def test_word_order_insensitive(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("income interest net", IS)
        assert result is not None
        assert result.canonical_name == "Net interest income"
        assert result.score == 100.0

    def test_synonym_variants_in_pool(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("customer deposit", FP)
        assert result is not None
        assert result.canonical_name == (
            "Financial liabilities measured at amortised cost due to depositors"
        )
        assert result.matched_text == "customer deposits"

    def test_below_threshold_returns_none(self, matcher: FuzzyMatcher) -> None:
        assert matcher.match("quantum flux capacitor", IS) is None

    def test_empty_label(self, matcher: FuzzyMatcher) -> None:
        assert matcher.match("", IS) is None

    def test_statement_scoped(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("total asets", FP)
        assert result is not None and result.canonical_name == "Total assets"
        other = matcher.match("total asets", IS)
        assert other is None or other.canonical_name != "Total assets"


class TestAmbiguity:
    def test_clear_winner_not_ambiguous(self, matcher: FuzzyMatcher) -> None:
        result = matcher.match("net interst income", IS)
        assert result is not None
        assert not result.is_ambiguous
        assert result.runner_up is None

    def test_wide_delta_flags_runner_up(self, normalizer: LabelNormalizer) -> None:
        matcher = FuzzyMatcher(
            MatchingConfig(fuzzy_ambiguity_delta=100.0), normalizer, SynonymMapper(normalizer)
        )
        result = matcher.match("net interst income", IS)
        assert result is not None
        assert result.is_ambiguous
        assert result.runner_up is not None
        assert result.runner_up != result.canonical_name


class TestThreshold:
    def test_lower_threshold_never_loses_matches(self, normalizer: LabelNormalizer) -> None:
        strict = FuzzyMatcher(MatchingConfig(fuzzy_threshold=90.0), normalizer)
        loose = FuzzyMatcher(MatchingConfig(fuzzy_threshold=60.0), normalizer)
        labels = ["net interst income", "personel expenses", "profit for year", "gross incme"]
        for label in labels:
            if strict.match(label, IS) is not None:
                assert loose.match(label, IS) is not None

    def test_refresh_picks_up_new_synonyms(self, normalizer: LabelNormalizer) -> None:
        synonyms = SynonymMapper(normalizer)
        matcher = FuzzyMatcher(MatchingConfig(), normalizer, synonyms)
        assert matcher.match("bottom line result", IS) is None
        synonyms.add_synonym(IS, "bottom line result", "Profit for the year")
        matcher.refresh()
        result = matcher.match("bottom line results", IS)
        assert result is not None
        assert result.canonical_name == "Profit for the year"

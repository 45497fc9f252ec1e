"""
Unit tests for the LabelNormalizer and NumericNormalizer.
"""

from __future__ import annotations

import pytest

from statement_extractor.config import NormalizerConfig
from statement_extractor.normalizer import LabelNormalizer, NumericNormalizer
from statement_extractor.schema import NormalizedValue


@pytest.fixture
def normalizer() -> LabelNormalizer:
    return LabelNormalizer()


@pytest.fixture
def numeric() -> NumericNormalizer:
    return NumericNormalizer()


# ======================================================================
# Label normalisation
# ======================================================================

class TestNormalizeLabel:
    def test_lowercase_and_strip(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("  Interest Income  ") == "interest income"

    def test_ampersand_expanded(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("Fee & commission income") == "fee and commission income"

    def test_punctuation_removal(self, normalizer: LabelNormalizer) -> None:
        result = normalizer.normalize_label("Net gains/(losses) from trading")
        assert result == "net gains losses from trading"

    def test_unicode_dash_normalised(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("Non–controlling interests") == "non controlling interests"
        assert normalizer.normalize_label("Non—controlling interests") == "non controlling interests"

    def test_enumerator_prefix_removed(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("1. Gross income") == "gross income"
        assert normalizer.normalize_label("(a) Due to banks") == "due to banks"
        assert normalizer.normalize_label("iv. Other assets") == "other assets"

    def test_whitespace_collapse(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("Net   interest\tincome") == "net interest income"

    def test_empty_string(self, normalizer: LabelNormalizer) -> None:
        assert normalizer.normalize_label("") == ""

    def test_collapse_keeps_punctuation(self) -> None:
        assert LabelNormalizer.collapse("  Net gains /  losses ") == "net gains / losses"


# ======================================================================
# Numeric normalisation
# ======================================================================

class TestNegatives:
    def test_bracketed_value_is_negative(self, numeric: NumericNormalizer) -> None:
        result = numeric.normalize("(5,000)")
        assert result.is_negative
        assert result.value == -5000.0
        assert not result.is_null
        assert not result.parse_failed

    def test_leading_minus(self, numeric: NumericNormalizer) -> None:
        result = numeric.normalize("-1,250.5")
        assert result.is_negative
        assert result.value == -1250.5

    def test_currency_outside_bracket(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("Rs. (1,000)").value == -1000.0

    def test_currency_inside_bracket(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("(Rs. 1,000)").value == -1000.0


class TestNulls:
    @pytest.mark.parametrize("raw", ["-", "–", "—", "nil", "NIL", "Nil", "", "   ", "n/a"])
    def test_null_tokens(self, numeric: NumericNormalizer, raw: str) -> None:
        result = numeric.normalize(raw)
        assert result.is_null
        assert result.value is None
        assert not result.parse_failed

    def test_none_is_null(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize(None).is_null

    def test_bracketed_dash_is_null(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("(-)").is_null

    def test_currency_only_is_null(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("Rs.").is_null


class TestParsing:
    def test_thousands_separators(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("1,234,567.89").value == 1234567.89

    def test_currency_prefix(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("Rs. 1,000,000").value == 1000000.0

    @pytest.mark.parametrize("raw", ["LKR 2,500", "USD 2,500", "$2,500", "2,500 LKR", "₨ 2,500"])
    def test_currency_variants(self, numeric: NumericNormalizer, raw: str) -> None:
        assert numeric.normalize(raw).value == 2500.0

    def test_space_and_apostrophe_separators(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("1 234 567").value == 1234567.0
        assert numeric.normalize("1'234").value == 1234.0

    def test_percentage_sign_dropped(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize("12.5%").value == 12.5

    def test_numeric_passthrough(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize(500000).value == 500000.0
        assert numeric.normalize(-3.5).is_negative

    def test_raw_preserved(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize(" (5,000) ").raw == " (5,000) "


class TestParseFailures:
    @pytest.mark.parametrize("raw", ["abc", "1.2.3", "12abc", "Note 5"])
    def test_junk_is_parse_failure(self, numeric: NumericNormalizer, raw: str) -> None:
        result = numeric.normalize(raw)
        assert result.parse_failed
        assert result.value is None
        assert not result.is_null

    def test_nan_is_parse_failure(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize(float("nan")).parse_failed

    def test_bool_is_parse_failure(self, numeric: NumericNormalizer) -> None:
        assert numeric.normalize(True).parse_failed

    def test_null_and_failed_are_exclusive(self) -> None:
        with pytest.raises(ValueError):
            NormalizedValue(raw="x", value=None, is_null=True, parse_failed=True)


class TestProperties:
    @pytest.mark.parametrize("raw", ["(5,000)", "1,234,567.89", "Rs. 1,000,000", "-42", "0"])
    def test_idempotent_on_own_output(self, numeric: NumericNormalizer, raw: str) -> None:
        first = numeric.normalize(raw)
        again = numeric.normalize(str(first.value))
        assert again.value == first.value

    def test_magnitude_monotonic(self, numeric: NumericNormalizer) -> None:
        values = [numeric.normalize(s).value for s in ["1,000", "10,000", "100,000"]]
        assert values == sorted(values)

    def test_custom_null_tokens(self) -> None:
        numeric = NumericNormalizer(NormalizerConfig(null_tokens=("-", "none")))
        assert numeric.normalize("None").is_null
        assert numeric.normalize("nil").parse_failed


class TestScale:
    def test_scale_multiplies(self, numeric: NumericNormalizer) -> None:
        scaled = NumericNormalizer.scale(numeric.normalize("(1,500)"), 1000)
        assert scaled.value == -1_500_000.0
        assert scaled.is_negative

    def test_scale_keeps_null(self, numeric: NumericNormalizer) -> None:
        scaled = NumericNormalizer.scale(numeric.normalize("-"), 1000)
        assert scaled.is_null
        assert scaled.value is None

    def test_normalize_row(self, numeric: NumericNormalizer) -> None:
        row = numeric.normalize_row(["1,000", "(200)", "-", "x"])
        assert [v.value for v in row] == [1000.0, -200.0, None, None]
        assert row[3].parse_failed

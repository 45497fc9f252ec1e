"""
Unit tests for the Validator.
"""

from __future__ import annotations

import math

import pytest

from statement_extractor.config import ValidationConfig
from statement_extractor.schema import CanonicalRecord, Entity, MatchMethod, StatementType
from statement_extractor.validator import Validator

IS = StatementType.INCOME_STATEMENT
FP = StatementType.FINANCIAL_POSITION


def _record(
    field: str = "Profit for the year",
    value: float = 100_000,
    raw: str = "PAT",
    entity: Entity = Entity.BANK,
    slot: str = "Year1",
    statement_type: StatementType = IS,
) -> CanonicalRecord:
    return CanonicalRecord(
        entity=entity,
        year_slot=slot,
        statement_type=statement_type,
        canonical_field=field,
        value=value,
        raw_label=raw,
        match_method=MatchMethod.SYNONYM,
        confidence=0.95,
    )


@pytest.fixture
def validator() -> Validator:
    return Validator(config=ValidationConfig())


@pytest.fixture
def strict_validator() -> Validator:
    return Validator(config=ValidationConfig(
        required_fields=["Profit for the year", "Total assets"],
        error_on_duplicate=True,
    ))


# ======================================================================
# Duplicate detection
# ======================================================================

class TestDuplicates:
    def test_no_duplicates_clean(self, validator: Validator) -> None:
        records = [
            _record("Profit for the year", 100_000),
            _record("Interest income", 200_000, "Interest revenue"),
        ]
        assert validator.validate(records).is_valid

    def test_duplicate_detected(self, validator: Validator) -> None:
        records = [
            _record("Profit for the year", 100_000, "PAT"),
            _record("Profit for the year", 200_000, "Net profit"),
        ]
        report = validator.validate(records)
        assert not report.is_valid
        assert any("Duplicate" in e for e in report.errors)

    def test_same_field_other_slot_is_not_duplicate(self, validator: Validator) -> None:
        records = [
            _record("Profit for the year", 100_000, slot="Year1"),
            _record("Profit for the year", 90_000, slot="Year2"),
            _record("Profit for the year", 110_000, entity=Entity.GROUP),
        ]
        assert validator.validate(records).is_valid

    def test_duplicate_as_warning(self) -> None:
        v = Validator(config=ValidationConfig(error_on_duplicate=False))
        records = [
            _record("Profit for the year", 100_000, "PAT"),
            _record("Profit for the year", 200_000, "Net profit"),
        ]
        report = v.validate(records)
        assert report.is_valid
        assert len(report.warnings) >= 1


# ======================================================================
# Required fields
# ======================================================================

class TestRequiredFields:
    def test_all_present(self, strict_validator: Validator) -> None:
        records = [
            _record("Profit for the year", 100),
            _record("Total assets", 500, "Total assets", statement_type=FP),
        ]
        assert strict_validator.validate(records).is_valid

    def test_missing_field(self, strict_validator: Validator) -> None:
        records = [_record("Interest income", 100, "Interest revenue")]
        report = strict_validator.validate(records)
        assert not report.is_valid
        assert any("Profit for the year" in e for e in report.errors)

    def test_only_checked_for_owning_statement(self, strict_validator: Validator) -> None:
        # "Total assets" belongs to the financial position, not the income statement.
        report = strict_validator.validate([_record("Profit for the year", 100)])
        assert report.is_valid

    def test_checked_per_entity_and_slot(self, strict_validator: Validator) -> None:
        records = [
            _record("Profit for the year", 100),
            _record("Interest income", 50, "Interest revenue", entity=Entity.GROUP),
        ]
        report = strict_validator.validate(records)
        assert len(report.errors) == 1
        assert "Group Year1" in report.errors[0]


# ======================================================================
# Value sanity
# ======================================================================

class TestValueChecks:
    def test_nan_is_error(self, validator: Validator) -> None:
        report = validator.validate([_record("Profit for the year", math.nan)])
        assert not report.is_valid

    def test_inf_is_error(self, validator: Validator) -> None:
        report = validator.validate([_record("Profit for the year", math.inf)])
        assert not report.is_valid

    def test_missing_value_is_warning(self, validator: Validator) -> None:
        report = validator.validate([_record("Profit for the year", None)])
        assert report.is_valid
        assert any("has no value" in w for w in report.warnings)

    def test_huge_value_warning(self, validator: Validator) -> None:
        report = validator.validate([_record("Profit for the year", 1e16)])
        assert report.is_valid
        assert any("max_absolute_value" in w for w in report.warnings)


# ======================================================================
# Balance check
# ======================================================================

class TestBalance:
    def _position(self, assets: float, liabilities: float, equity: float) -> list:
        return [
            _record("Total assets", assets, "Total assets", statement_type=FP),
            _record("Total liabilities", liabilities, "Total liabilities", statement_type=FP),
            _record("Total equity", equity, "Total equity", statement_type=FP),
        ]

    def test_balanced(self, validator: Validator) -> None:
        report = validator.validate(self._position(1_000, 800, 200))
        assert report.is_valid
        assert report.warnings == []

    def test_within_tolerance(self, validator: Validator) -> None:
        report = validator.validate(self._position(1_000, 800, 205))
        assert report.warnings == []

    def test_unbalanced_warns(self, validator: Validator) -> None:
        report = validator.validate(self._position(1_000, 800, 100))
        assert report.is_valid
        assert any("Balance check failed" in w for w in report.warnings)

    def test_incomplete_totals_skipped(self, validator: Validator) -> None:
        report = validator.validate(self._position(1_000, 800, 100)[:2])
        assert report.warnings == []

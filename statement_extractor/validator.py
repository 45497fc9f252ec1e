"""
Validation Layer.

Post-mapping validation of canonical records *before* they are handed to
downstream consumers.

Checks performed
----------------
1. **Duplicate detection**: one value per (entity, year slot, statement,
   field).
2. **Required fields**: configurable canonical fields that must be present
   for every (entity, year slot) of a statement.
3. **Numeric sanity**: values must be finite and within a plausible range.
4. **Balance check**: Total assets ≈ Total liabilities + Total equity.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from statement_extractor.config import ValidationConfig
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import (
    STATEMENT_FIELDS,
    CanonicalRecord,
    Entity,
    StatementType,
)

logger = get_logger("validator")

_GroupKey = Tuple[Entity, str, StatementType]


class ValidationReport:
    """Accumulates errors and warnings during a validation pass."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)
        logger.error("Validation ERROR: %s", msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)
        logger.warning("Validation WARNING: %s", msg)


class Validator:
    """Validates a list of ``CanonicalRecord`` objects.

    Parameters
    ----------
    config:
        Validation thresholds and behaviour flags.
    """

    def __init__(self, config: Optional[ValidationConfig] = None) -> None:
        self._config = config or ValidationConfig()

    def validate(self, records: List[CanonicalRecord]) -> ValidationReport:
        """Run all checks and return a ``ValidationReport``."""
        report = ValidationReport()
        self._check_duplicates(records, report)
        self._check_required_fields(records, report)
        self._check_values(records, report)
        self._check_balance(records, report)
        return report

    # ------------------------------------------------------------------ #
    # Individual checks
    # ------------------------------------------------------------------ #

    def _check_duplicates(
        self, records: List[CanonicalRecord], report: ValidationReport
    ) -> None:
        seen: dict[tuple, str] = {}  # key → first raw_label
        for r in records:
            if r.key in seen:
                msg = (
                    f"Duplicate canonical mapping '{r.canonical_field}' "
                    f"({r.entity.value} {r.year_slot}): first from "
                    f"'{seen[r.key]}', again from '{r.raw_label}'"
                )
                if self._config.error_on_duplicate:
                    report.add_error(msg)
                else:
                    report.add_warning(msg)
            else:
                seen[r.key] = r.raw_label

    def _check_required_fields(
        self, records: List[CanonicalRecord], report: ValidationReport
    ) -> None:
        if not self._config.required_fields:
            return

        present: Dict[_GroupKey, set] = defaultdict(set)
        for r in records:
            present[(r.entity, r.year_slot, r.statement_type)].add(r.canonical_field)

        for (entity, slot, statement), fields in sorted(
            present.items(), key=lambda kv: (kv[0][0].value, kv[0][1], kv[0][2].value)
        ):
            for req in self._config.required_fields:
                if req in STATEMENT_FIELDS[statement] and req not in fields:
                    report.add_error(
                        f"Required field missing: '{req}' ({entity.value} {slot}, "
                        f"{statement.display_name})"
                    )

    def _check_values(
        self, records: List[CanonicalRecord], report: ValidationReport
    ) -> None:
        for r in records:
            if r.value is None:
                report.add_warning(
                    f"'{r.canonical_field}' (from '{r.raw_label}', {r.entity.value} "
                    f"{r.year_slot}) has no value"
                )
                continue

            if math.isnan(r.value) or math.isinf(r.value):
                report.add_error(f"'{r.canonical_field}' has non-finite value: {r.value}")
                continue

            if abs(r.value) > self._config.max_absolute_value:
                report.add_warning(
                    f"'{r.canonical_field}' value {r.value} exceeds "
                    f"max_absolute_value ({self._config.max_absolute_value}). "
                    f"Possible unit error?"
                )

    def _check_balance(
        self, records: List[CanonicalRecord], report: ValidationReport
    ) -> None:
        groups: Dict[Tuple[Entity, str], Dict[str, float]] = defaultdict(dict)
        for r in records:
            if r.statement_type is StatementType.FINANCIAL_POSITION and r.value is not None:
                groups[(r.entity, r.year_slot)].setdefault(r.canonical_field, r.value)

        for (entity, slot), values in groups.items():
            assets = values.get("Total assets")
            liabilities = values.get("Total liabilities")
            equity = values.get("Total equity")
            if assets is None or liabilities is None or equity is None:
                continue
            difference = abs(assets - (liabilities + equity))
            allowed = abs(assets) * self._config.balance_tolerance
            if difference > allowed:
                report.add_warning(
                    f"Balance check failed ({entity.value} {slot}): Total assets "
                    f"{assets} ≠ Total liabilities + Total equity "
                    f"{liabilities + equity} (difference {difference})"
                )
            else:
                logger.info("Balance check passed (%s %s)", entity.value, slot)

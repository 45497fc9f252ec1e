"""
Canonical financial schema and data models.

Defines the target schema (the canonical line items that raw row labels are
mapped into, per statement type) and the immutable value objects carried
through the locator and the extraction pipeline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class StatementType(str, Enum):
    """The three primary statements located in an annual report."""

    INCOME_STATEMENT = "income_statement"
    FINANCIAL_POSITION = "financial_position"
    CASH_FLOW = "cash_flow"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, raw: str) -> "StatementType":
        """Case/format-tolerant lookup: accepts values, member names and
        display names (``"Income Statement"``, ``"cash-flow"``, ...)."""
        key = re.sub(r"[\s\-]+", "_", raw.strip().lower())
        for st in cls:
            if key in (st.value, st.name.lower(), _slug(st.display_name)):
                return st
        raise ValueError(f"Unknown statement type: {raw!r}")


_DISPLAY_NAMES = {
    StatementType.INCOME_STATEMENT: "Income Statement",
    StatementType.FINANCIAL_POSITION: "Statement of Financial Position",
    StatementType.CASH_FLOW: "Statement of Cash Flows",
}


def _slug(text: str) -> str:
    return re.sub(r"[\s\-]+", "_", text.strip().lower())


class Entity(str, Enum):
    """Reporting perspective of a value column."""

    BANK = "Bank"
    GROUP = "Group"


class ColumnType(str, Enum):
    """Semantic role of a table column."""

    DESCRIPTION = "description"
    BANK_YEAR1 = "bank_year1"
    BANK_YEAR2 = "bank_year2"
    GROUP_YEAR1 = "group_year1"
    GROUP_YEAR2 = "group_year2"
    NOTE = "note"
    UNKNOWN = "unknown"

    @property
    def is_value_column(self) -> bool:
        return self in _VALUE_COLUMNS

    @property
    def year_slot(self) -> Optional[str]:
        """``"Year1"`` / ``"Year2"`` for value columns, else ``None``."""
        if self in (ColumnType.BANK_YEAR1, ColumnType.GROUP_YEAR1):
            return "Year1"
        if self in (ColumnType.BANK_YEAR2, ColumnType.GROUP_YEAR2):
            return "Year2"
        return None

    @classmethod
    def for_slot(cls, entity: Entity, slot: int) -> "ColumnType":
        """Column type for *entity* in year slot 1 or 2."""
        return _SLOT_TYPES[(entity, slot)]


_VALUE_COLUMNS = {
    ColumnType.BANK_YEAR1,
    ColumnType.BANK_YEAR2,
    ColumnType.GROUP_YEAR1,
    ColumnType.GROUP_YEAR2,
}

_SLOT_TYPES = {
    (Entity.BANK, 1): ColumnType.BANK_YEAR1,
    (Entity.BANK, 2): ColumnType.BANK_YEAR2,
    (Entity.GROUP, 1): ColumnType.GROUP_YEAR1,
    (Entity.GROUP, 2): ColumnType.GROUP_YEAR2,
}


class MatchMethod(str, Enum):
    """How a row label reached its canonical field."""

    EXACT = "exact"
    SYNONYM = "synonym"
    FUZZY = "fuzzy"
    NONE = "none"


# ---------------------------------------------------------------------------
# Canonical Schema
# ---------------------------------------------------------------------------

STATEMENT_FIELDS: dict[StatementType, tuple[str, ...]] = {
    StatementType.INCOME_STATEMENT: (
        "Gross income",
        "Interest income",
        "Interest expenses",
        "Net interest income",
        "Fee and commission income",
        "Fee and commission expenses",
        "Net fee and commission income",
        "Net gains / losses from trading",
        "Net gains from financial investments at fair value through other "
        "comprehensive income",
        "Net insurance premium income",
        "Net other operating income",
        "Total operating income",
        "Impairment charge / reversal for loans and other losses",
        "Net operating income",
        "Personnel expenses",
        "Benefits claims and underwriting expenditure",
        "Other expenses",
        "Total operating expenses",
        "Operating profit before taxes on financial services",
        "Taxes on financial services",
        "Operating profit after taxes on financial services",
        "Share of profit of joint venture net of income tax",
        "Profit before income tax",
        "Income tax expense",
        "Profit for the year",
        "Equity holders of the Bank",
        "Non-controlling interests",
        "Basic earnings per ordinary share",
        "Diluted earnings per ordinary share",
        "Dividend per share",
    ),
    StatementType.FINANCIAL_POSITION: (
        "Cash and cash equivalents",
        "Balances with Central Bank",
        "Placements with banks",
        "Reverse repurchase agreements",
        "Derivative financial instruments",
        "Financial assets measured at fair value through profit or loss",
        "Financial assets measured at amortised cost loans and advances to "
        "customers",
        "Financial assets measured at amortised cost debt and other "
        "financial instruments",
        "Financial assets measured at fair value through other comprehensive "
        "income",
        "Investment in joint venture",
        "Investment in subsidiaries",
        "Investment properties",
        "Property plant and equipment",
        "Right of use assets",
        "Intangible assets and goodwill",
        "Deferred tax assets",
        "Other assets",
        "Total assets",
        "Due to banks",
        "Securities sold under repurchase agreements",
        "Financial liabilities measured at amortised cost due to depositors",
        "Dividends payable",
        "Financial liabilities measured at amortised cost other borrowings",
        "Debt securities issued",
        "Current tax liabilities",
        "Deferred tax liabilities",
        "Insurance provision life",
        "Insurance provision non-life",
        "Other provisions",
        "Other liabilities",
        "Subordinated term debts",
        "Total liabilities",
        "Stated capital",
        "Statutory reserve fund",
        "Retained earnings",
        "Other reserves",
        "Total equity",
        "Total equity and liabilities",
    ),
    StatementType.CASH_FLOW: (
        "Interest receipts",
        "Interest payments",
        "Net commission receipts",
        "Payments to employees",
        "Taxes on financial services",
        "Receipts from other operating activities",
        "Payments for other operating activities",
        "Operating profit before changes in operating assets and liabilities",
        "Increase / decrease in operating assets",
        "Increase / decrease in operating liabilities",
        "Net cash generated from operating activities before income tax",
        "Income tax paid",
        "Net cash generated from operating activities",
        "Purchase of property plant and equipment",
        "Proceeds from the sale of property plant and equipment",
        "Net proceeds from sale maturity and purchase of financial investments",
        "Net purchase of intangible assets",
        "Dividends received from investment in subsidiaries",
        "Dividends received from other investments",
        "Net cash used in investing activities",
        "Proceeds from the issue of subordinated debt",
        "Repayment of subordinated debt",
        "Dividend paid to non-controlling interest",
        "Dividend paid to shareholders of the parent company",
        "Net cash used in financing activities",
        "Net increase in cash and cash equivalents",
        "Cash and cash equivalents at the beginning of the period",
        "Cash and cash equivalents at the end of the period",
    ),
}


def canonical_lookup(name: str, statement_type: StatementType) -> Optional[str]:
    """Case-insensitive lookup of a canonical field within one statement."""
    _lower = " ".join(name.split()).lower()
    for f in STATEMENT_FIELDS[statement_type]:
        if f.lower() == _lower:
            return f
    return None


def _check_confidence(confidence: float) -> None:
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence must be within [0, 1], got {confidence!r}")


# ---------------------------------------------------------------------------
# Locator Value Objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EvidenceItem:
    """One piece of evidence supporting a page candidate."""

    kind: str  # detector tag: "toc" | "heading" | "layout" | "fusion"
    detail: str
    weight: float

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail, "weight": round(self.weight, 4)}


@dataclass(frozen=True)
class PageCandidate:
    """A contiguous, inclusive, 1-based page range believed to hold a statement."""

    statement_type: StatementType
    page_range: tuple[int, int]
    confidence: float
    evidence: tuple[EvidenceItem, ...] = ()
    sources: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        start, end = self.page_range
        if start < 1 or end < start:
            raise ValueError(f"Invalid page range: {self.page_range!r}")
        _check_confidence(self.confidence)

    @property
    def start(self) -> int:
        return self.page_range[0]

    @property
    def end(self) -> int:
        return self.page_range[1]

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    @property
    def pages(self) -> list[int]:
        return list(range(self.start, self.end + 1))

    def to_dict(self) -> dict[str, Any]:
        return {
            "statement_type": self.statement_type.value,
            "page_range": list(self.page_range),
            "confidence": round(self.confidence, 4),
            "evidence": [e.to_dict() for e in self.evidence],
            "sources": sorted(self.sources),
        }


# ---------------------------------------------------------------------------
# Extraction Value Objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnInfo:
    """Semantic classification of one table column."""

    column_index: int
    column_type: ColumnType
    entity: Optional[Entity] = None
    year: Optional[int] = None
    confidence: float = 0.2
    header_text: str = ""

    def __post_init__(self) -> None:
        _check_confidence(self.confidence)

    def to_dict(self) -> dict[str, Any]:
        return {
            "column_index": self.column_index,
            "column_type": self.column_type.value,
            "entity": self.entity.value if self.entity else None,
            "year": self.year,
            "confidence": round(self.confidence, 2),
            "header_text": self.header_text,
        }


@dataclass(frozen=True)
class NormalizedValue:
    """A parsed table cell.

    ``is_null`` marks a semantic blank (dash, "nil", empty) while
    ``parse_failed`` marks junk that could not be read; they never both hold.
    """

    raw: str
    value: Optional[float]
    is_negative: bool = False
    is_null: bool = False
    parse_failed: bool = False

    def __post_init__(self) -> None:
        if self.is_null and self.parse_failed:
            raise ValueError("A value cannot be both null and unparseable")

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "value": self.value,
            "is_negative": self.is_negative,
            "is_null": self.is_null,
            "parse_failed": self.parse_failed,
        }


@dataclass(frozen=True)
class MappingResult:
    """A single raw-label → canonical-field decision."""

    raw_label: str
    canonical_key: Optional[str]
    match_method: MatchMethod
    confidence: float
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _check_confidence(self.confidence)
        if (self.canonical_key is None) != (self.match_method is MatchMethod.NONE):
            raise ValueError(
                "canonical_key must be None exactly when match_method is 'none'"
            )

    @property
    def is_mapped(self) -> bool:
        return self.canonical_key is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw_label": self.raw_label,
            "canonical_key": self.canonical_key,
            "match_method": self.match_method.value,
            "confidence": round(self.confidence, 4),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class CanonicalRecord:
    """One value in the canonical (entity × year × statement × field) space."""

    entity: Entity
    year_slot: str  # "Year1" | "Year2"
    statement_type: StatementType
    canonical_field: str
    value: Optional[float]
    year: Optional[int] = None
    raw_label: str = ""
    match_method: MatchMethod = MatchMethod.EXACT
    confidence: float = 1.0

    @property
    def key(self) -> tuple[Entity, str, StatementType, str]:
        return (self.entity, self.year_slot, self.statement_type, self.canonical_field)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity.value,
            "year_slot": self.year_slot,
            "year": self.year,
            "statement_type": self.statement_type.value,
            "canonical_field": self.canonical_field,
            "value": self.value,
            "raw_label": self.raw_label,
            "match_method": self.match_method.value,
            "confidence": round(self.confidence, 4),
        }


@dataclass
class TableExtraction:
    """Aggregate result of extracting one statement table."""

    statement_type: StatementType
    columns: dict[int, ColumnInfo] = field(default_factory=dict)
    records: list[CanonicalRecord] = field(default_factory=list)
    unmapped: list[dict[str, Any]] = field(default_factory=list)
    unit_scale: float = 1.0
    validation_errors: list[str] = field(default_factory=list)
    validation_warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.validation_errors) == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "statement_type": self.statement_type.value,
            "success": self.success,
            "unit_scale": self.unit_scale,
            "columns": [c.to_dict() for _, c in sorted(self.columns.items())],
            "records": [r.to_dict() for r in self.records],
            "unmapped": self.unmapped,
            "validation_errors": self.validation_errors,
            "validation_warnings": self.validation_warnings,
        }

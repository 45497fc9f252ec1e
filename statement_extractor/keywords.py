"""Keyword lists used by the page detectors and the column interpreter."""

from __future__ import annotations

from statement_extractor.schema import StatementType


# Statement titles as printed in headings and tables of contents.
# Longer phrases first: detectors report the first (most specific) hit.
STATEMENT_TITLES: dict[StatementType, tuple[str, ...]] = {
    StatementType.INCOME_STATEMENT: (
        "statement of profit and loss and other comprehensive income",
        "statement of profit or loss and other comprehensive income",
        "consolidated income statement",
        "statement of comprehensive income",
        "statement of profit or loss",
        "statement of profit and loss",
        "income statement",
        "statement of income",
        "profit and loss account",
    ),
    StatementType.FINANCIAL_POSITION: (
        "consolidated statement of financial position",
        "statement of financial position",
        "statement of assets and liabilities",
        "balance sheet",
    ),
    StatementType.CASH_FLOW: (
        "consolidated statement of cash flows",
        "statement of cash flows",
        "statement of cash flow",
        "cash flow statement",
        "statement of cashflows",
    ),
}

# Line items whose density attributes a numeric page to a statement type.
DOMAIN_KEYWORDS: dict[StatementType, tuple[str, ...]] = {
    StatementType.INCOME_STATEMENT: (
        "gross income",
        "interest income",
        "interest expenses",
        "net interest income",
        "fee and commission income",
        "net fee and commission",
        "total operating income",
        "impairment charge",
        "personnel expenses",
        "profit before income tax",
        "income tax expense",
        "profit for the year",
        "earnings per share",
    ),
    StatementType.FINANCIAL_POSITION: (
        "cash and cash equivalents",
        "placements with banks",
        "loans and advances",
        "property, plant and equipment",
        "property plant and equipment",
        "total assets",
        "due to banks",
        "due to depositors",
        "debt securities issued",
        "total liabilities",
        "stated capital",
        "retained earnings",
        "total equity",
    ),
    StatementType.CASH_FLOW: (
        "operating activities",
        "investing activities",
        "financing activities",
        "interest receipts",
        "interest payments",
        "payments to employees",
        "income tax paid",
        "dividends paid",
        "net increase in cash",
        "at the beginning of the",
        "at the end of the",
    ),
}

# Header words that identify the reporting entity of a column.
BANK_KEYWORDS: tuple[str, ...] = ("bank", "company")
GROUP_KEYWORDS: tuple[str, ...] = ("group", "consolidated")

# Entity pairs that mark a two-perspective (standalone + consolidated) table.
ENTITY_PAIRS: tuple[tuple[str, str], ...] = (
    ("bank", "group"),
    ("company", "consolidated"),
    ("company", "group"),
)

NOTE_KEYWORDS: tuple[str, ...] = ("note", "notes")

# Header phrases that imply a unit multiplier for every value in the table.
UNIT_SCALES: tuple[tuple[str, float], ...] = (
    (r"'000,000,000|\bbillions?\b|\bbn\b", 1_000_000_000.0),
    (r"'000,000|\bmillions?\b|\bmn\b|\bmln\b", 1_000_000.0),
    (r"'000\b|\bthousands?\b|\b000s\b", 1_000.0),
)

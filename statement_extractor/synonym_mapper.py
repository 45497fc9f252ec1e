"""
Synonym Dictionary Engine.

A curated, configurable mapping from commonly-seen row-label variants to
their canonical field names, kept separately for each statement type (the
same words mean different lines in different statements: "taxes on
financial services" is an expense in the income statement and a payment in
the cash flow statement).

Design decisions
----------------
* Keys are stored **normalised** (``LabelNormalizer``) so that a single
  normalisation pass on the input label is sufficient for lookup.
* One variant may legitimately point at several canonical fields; the tie is
  broken by the longest literal overlap with the label, then by dictionary
  order.
* Users can extend at runtime via ``load_custom_synonyms`` (JSON file) or
  ``add_synonym`` / ``add_synonyms``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rapidfuzz.distance import LCSseq

from statement_extractor.logging_setup import get_logger
from statement_extractor.normalizer import LabelNormalizer
from statement_extractor.schema import STATEMENT_FIELDS, StatementType, canonical_lookup

logger = get_logger("synonym_mapper")


# ---------------------------------------------------------------------------
# Built-in synonym dictionary
# ---------------------------------------------------------------------------
# Convention: canonical name exactly as in ``STATEMENT_FIELDS`` → variants.

_IS = StatementType.INCOME_STATEMENT
_FP = StatementType.FINANCIAL_POSITION
_CF = StatementType.CASH_FLOW

_BUILTIN_SYNONYMS: Dict[StatementType, Dict[str, tuple[str, ...]]] = {
    _IS: {
        "Gross income": ("total gross income", "gross revenue"),
        "Interest income": (
            "interest revenue", "total interest income", "interest and similar income",
        ),
        "Interest expenses": (
            "interest expense", "interest paid", "cost of funds",
            "interest and similar expenses",
        ),
        "Net interest income": ("nii", "interest income net", "net interest revenue"),
        "Fee and commission income": ("fee income", "commission income", "fees and commissions"),
        "Fee and commission expenses": (
            "fee expenses", "commission expenses", "fees and commissions paid",
        ),
        "Net fee and commission income": (
            "net fee income", "net commission income", "net fees and commissions",
        ),
        "Net gains / losses from trading": (
            "net gains from trading", "net losses from trading", "net trading gains",
            "trading income", "net gains losses from trading",
        ),
        "Net gains from financial investments at fair value through other "
        "comprehensive income": ("net gains from fvoci", "fvoci gains"),
        "Net insurance premium income": ("insurance premium income", "net premiums"),
        "Net other operating income": (
            "other operating income", "other income", "miscellaneous income",
        ),
        "Total operating income": ("gross operating income",),
        "Impairment charge / reversal for loans and other losses": (
            "impairment charges", "impairment charge", "loan impairment",
            "provision for loan losses", "credit loss expense",
            "impairment charges for loans and other losses",
        ),
        "Net operating income": (
            "operating income after impairment", "income after provisions",
        ),
        "Personnel expenses": (
            "staff expenses", "employee expenses", "salaries and benefits",
            "staff costs",
        ),
        "Benefits claims and underwriting expenditure": (
            "insurance claims", "claims expense", "underwriting expenses",
        ),
        "Other expenses": (
            "other operating expenses", "administrative expenses",
            "miscellaneous expenses",
        ),
        "Total operating expenses": ("operating expenses", "total expenses"),
        "Operating profit before taxes on financial services": (
            "operating profit before vat", "profit before vat",
            "operating profit before tax on financial services",
        ),
        "Taxes on financial services": (
            "vat on financial services", "financial services tax",
            "tax on financial services",
        ),
        "Operating profit after taxes on financial services": (
            "operating profit after vat", "profit after vat",
            "operating profit after tax on financial services",
        ),
        "Share of profit of joint venture net of income tax": (
            "share of profit of joint venture", "joint venture profit",
            "jv profit share",
        ),
        "Profit before income tax": ("profit before tax", "pbt", "earnings before tax"),
        "Income tax expense": ("tax expense", "income tax", "provision for taxation"),
        "Profit for the year": (
            "net profit", "profit after tax", "pat", "net income",
            "profit for the period",
        ),
        "Equity holders of the Bank": (
            "shareholders of the bank", "owners of the parent",
            "equity holders of the parent",
        ),
        "Non-controlling interests": ("nci", "minority interests", "minority interest"),
        "Basic earnings per ordinary share": (
            "basic earnings per share", "basic eps",
            "basic earnings per ordinary share rs",
        ),
        "Diluted earnings per ordinary share": (
            "diluted earnings per share", "diluted eps",
            "diluted earnings per ordinary share rs",
        ),
        "Dividend per share": ("dps", "gross dividend per share", "dividend per share gross rs"),
    },
    _FP: {
        "Cash and cash equivalents": ("cash", "cash and bank balances", "cash equivalents"),
        "Balances with Central Bank": (
            "balances with central bank of sri lanka", "balances with central banks",
            "central bank balances", "cbsl balances",
        ),
        "Placements with banks": ("bank placements", "deposits with banks"),
        "Reverse repurchase agreements": (
            "reverse repurchases agreements", "reverse repo", "reverse repurchase",
            "securities purchased under resale agreements",
        ),
        "Derivative financial instruments": ("derivatives", "derivative assets"),
        "Financial assets measured at fair value through profit or loss": (
            "financial assets fair value through profit or loss", "fvtpl assets",
            "financial assets recognised through profit or loss",
        ),
        "Financial assets measured at amortised cost loans and advances to "
        "customers": (
            "financial assets at amortised cost loans and advances to customers",
            "financial assets measured at amortized cost loans and advances to customers",
            "loans and advances to customers", "loans and advances",
            "loans and receivables to customers",
        ),
        "Financial assets measured at amortised cost debt and other "
        "financial instruments": (
            "financial assets at amortised cost debt and other instruments",
            "financial assets measured at amortized cost debt and other financial instruments",
            "debt and other instruments", "debt instruments",
        ),
        "Financial assets measured at fair value through other comprehensive "
        "income": (
            "financial assets fair value through other comprehensive income",
            "fvoci assets", "available for sale",
        ),
        "Investment in joint venture": ("investment in joint ventures", "jv investment"),
        "Investment in subsidiaries": ("investments in subsidiaries", "subsidiary investments"),
        "Investment properties": ("investment property",),
        "Property plant and equipment": ("ppe", "property and equipment", "fixed assets"),
        "Right of use assets": ("rou assets", "right-of-use assets", "lease assets"),
        "Intangible assets and goodwill": ("intangible assets", "intangibles", "goodwill"),
        "Deferred tax assets": ("dta",),
        "Other assets": ("miscellaneous assets",),
        "Total assets": ("assets total",),
        "Due to banks": ("bank borrowings", "interbank borrowings", "due to other banks"),
        "Securities sold under repurchase agreements": (
            "repurchase agreements", "repo borrowings",
        ),
        "Financial liabilities measured at amortised cost due to depositors": (
            "financial liabilities at amortised cost due to depositors",
            "financial liabilities measured at amortized cost due to depositors",
            "due to depositors", "customer deposits", "deposits from customers",
        ),
        "Dividends payable": ("dividend payable", "unclaimed dividends"),
        "Financial liabilities measured at amortised cost other borrowings": (
            "financial liabilities at amortised cost other borrowings",
            "financial liabilities measured at amortized cost other borrowings",
            "other borrowings", "borrowings",
        ),
        "Debt securities issued": ("debt securities", "bonds issued"),
        "Current tax liabilities": ("tax payable", "income tax payable", "current tax payable"),
        "Deferred tax liabilities": ("dtl",),
        "Insurance provision life": ("life insurance provision", "insurance provision - life"),
        "Insurance provision non-life": (
            "insurance provision nonlife", "general insurance provision",
            "non-life insurance provision",
        ),
        "Other provisions": ("provisions",),
        "Other liabilities": ("miscellaneous liabilities",),
        "Subordinated term debts": ("subordinated debt", "subordinated liabilities"),
        "Total liabilities": ("liabilities total",),
        "Stated capital": ("share capital", "issued capital", "stated capital assigned capital"),
        "Statutory reserve fund": ("statutory reserve", "reserve fund"),
        "Retained earnings": ("retained profits", "accumulated profits"),
        "Other reserves": ("reserves",),
        "Total equity": (
            "total equity attributable to equity holders",
            "shareholders equity", "total shareholders equity",
        ),
        "Total equity and liabilities": (
            "total liabilities and equity", "total equity and liabilities",
        ),
    },
    _CF: {
        "Interest receipts": ("interest received", "interest collections"),
        "Interest payments": ("interest paid",),
        "Net commission receipts": ("commission received", "net commissions received"),
        "Payments to employees": ("employee payments", "staff costs paid"),
        "Taxes on financial services": (
            "vat paid", "financial services tax paid", "taxes paid on financial services",
        ),
        "Receipts from other operating activities": (
            "loss receipts from other operating activities", "other operating receipts",
        ),
        "Payments for other operating activities": (
            "other operating payments", "payments on other operating activities",
        ),
        "Operating profit before changes in operating assets and liabilities": (
            "operating profit before working capital changes",
        ),
        "Increase / decrease in operating assets": (
            "increase in operating assets", "decrease in operating assets",
            "changes in operating assets",
        ),
        "Increase / decrease in operating liabilities": (
            "increase in operating liabilities", "decrease in operating liabilities",
            "changes in operating liabilities",
        ),
        "Net cash generated from operating activities before income tax": (
            "net cash used in generated from operating activities before income tax",
            "net cash generated used in generated from operating activities before income tax",
            "cash generated from operations before tax",
        ),
        "Income tax paid": ("tax paid", "taxation paid"),
        "Net cash generated from operating activities": (
            "net cash used in generated from operating activities",
            "net cash from operating activities", "net operating cash flow",
        ),
        "Purchase of property plant and equipment": (
            "capital expenditure", "capex", "acquisition of property plant and equipment",
        ),
        "Proceeds from the sale of property plant and equipment": (
            "proceeds from sale of property plant and equipment",
            "disposal of property plant and equipment",
        ),
        "Net proceeds from sale maturity and purchase of financial investments": (
            "net proceeds from financial investments",
        ),
        "Net purchase of intangible assets": (
            "purchase of intangible assets", "software purchases",
        ),
        "Dividends received from investment in subsidiaries": (
            "dividends from subsidiaries", "subsidiary dividends",
        ),
        "Dividends received from other investments": (
            "dividend income received", "investment dividends",
        ),
        "Net cash used in investing activities": (
            "net cash used in from investing activities",
            "net cash from investing activities", "net investing cash flow",
        ),
        "Proceeds from the issue of subordinated debt": (
            "subordinated debt issued", "issue of subordinated debentures",
        ),
        "Repayment of subordinated debt": (
            "repayment of subordinated debt debt securities issued",
            "redemption of subordinated debt",
        ),
        "Dividend paid to non-controlling interest": (
            "nci dividends", "dividends paid to minority shareholders",
        ),
        "Dividend paid to shareholders of the parent company": (
            "dividends paid", "dividend paid to equity holders",
            "dividends paid to shareholders",
        ),
        "Net cash used in financing activities": (
            "net cash generated in financing activities",
            "net cash from financing activities", "net financing cash flow",
        ),
        "Net increase in cash and cash equivalents": (
            "net increase decrease in cash and cash equivalents", "net change in cash",
        ),
        "Cash and cash equivalents at the beginning of the period": (
            "cash and cash equivalents at the beginning of the year",
            "opening cash balance",
        ),
        "Cash and cash equivalents at the end of the period": (
            "cash and cash equivalents at the end of the year",
            "closing cash balance",
        ),
    },
}


class SynonymMapper:
    """Dictionary-based label → canonical-field mapper, per statement type.

    Look-ups are hash-table hits; no fuzzy logic is involved.

    Parameters
    ----------
    normalizer:
        An instance of ``LabelNormalizer`` used to normalise both incoming
        labels and any user-supplied synonyms.
    extra_synonyms:
        Optional ``{statement_type: {canonical: [variants]}}`` to merge in at
        construction time.
    """

    def __init__(
        self,
        normalizer: LabelNormalizer,
        extra_synonyms: Optional[Dict[StatementType, Dict[str, Iterable[str]]]] = None,
    ) -> None:
        self._normalizer = normalizer
        # statement → normalised variant → canonical names (insertion order)
        self._dict: Dict[StatementType, Dict[str, List[str]]] = {
            st: {} for st in StatementType
        }
        for statement_type, entries in _BUILTIN_SYNONYMS.items():
            for canonical, variants in entries.items():
                for variant in variants:
                    self._register(statement_type, variant, canonical)

        if extra_synonyms:
            for statement_type, entries in extra_synonyms.items():
                self.add_synonyms(statement_type, entries)

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def lookup(self, normalised_label: str, statement_type: StatementType) -> List[str]:
        """Return every canonical field whose synonym list holds the label.

        Parameters
        ----------
        normalised_label:
            A label that has **already** been through ``LabelNormalizer``.
        """
        return list(self._dict[statement_type].get(normalised_label, ()))

    def resolve(
        self, normalised_label: str, statement_type: StatementType
    ) -> Optional[str]:
        """Return the single best canonical field for the label, or ``None``.

        Several hits are broken by the longest common character sequence
        between the label and the canonical name; remaining ties keep
        dictionary order.
        """
        hits = self.lookup(normalised_label, statement_type)
        if not hits:
            return None
        if len(hits) == 1:
            chosen = hits[0]
        else:
            chosen = max(
                hits,
                key=lambda c: LCSseq.similarity(
                    normalised_label, self._normalizer.normalize_label(c)
                ),
            )
            logger.info(
                "Synonym %r matches %d fields %r; chose %r by literal overlap",
                normalised_label,
                len(hits),
                hits,
                chosen,
            )
        logger.info("Synonym hit: %r → %r", normalised_label, chosen)
        return chosen

    # ------------------------------------------------------------------ #
    # Extension API
    # ------------------------------------------------------------------ #

    def add_synonym(
        self, statement_type: StatementType, variant: str, canonical: str
    ) -> None:
        """Register a single new synonym.

        Raises
        ------
        ValueError
            If ``canonical`` is not a field of ``statement_type``.
        """
        resolved = canonical_lookup(canonical, statement_type)
        if resolved is None:
            raise ValueError(
                f"Unknown canonical name {canonical!r} for {statement_type.value}. "
                f"Must be one of the STATEMENT_FIELDS entries."
            )
        self._register(statement_type, variant, resolved)
        logger.debug("Added synonym: %r → %r (%s)", variant, resolved, statement_type.value)

    def add_synonyms(
        self, statement_type: StatementType, mapping: Dict[str, Iterable[str]]
    ) -> None:
        """Bulk-add synonyms from a ``{canonical: [variants]}`` dict."""
        for canonical, variants in mapping.items():
            if isinstance(variants, str):
                variants = [variants]
            for variant in variants:
                self.add_synonym(statement_type, variant, canonical)

    def load_custom_synonyms(self, path: Path) -> int:
        """Load synonyms from a JSON file.

        Expected shape: ``{statement_type: {canonical: [variants]}}`` where the
        statement type is anything ``StatementType.parse`` accepts.

        Returns the number of variants added.
        """
        with open(path, encoding="utf-8") as fh:
            data: Dict[str, Dict[str, List[str]]] = json.load(fh)

        count = 0
        for raw_type, mapping in data.items():
            statement_type = StatementType.parse(raw_type)
            self.add_synonyms(statement_type, mapping)
            count += sum(
                1 if isinstance(v, str) else len(v) for v in mapping.values()
            )
        logger.info("Loaded %d custom synonyms from %s", count, path)
        return count

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def size(self) -> int:
        return sum(len(d) for d in self._dict.values())

    def all_synonyms(self, statement_type: StatementType) -> Dict[str, List[str]]:
        """Return a *copy* of the ``{variant: [canonical]}`` dictionary."""
        return {k: list(v) for k, v in self._dict[statement_type].items()}

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _register(self, statement_type: StatementType, variant: str, canonical: str) -> None:
        if canonical not in STATEMENT_FIELDS[statement_type]:
            raise ValueError(f"{canonical!r} is not a {statement_type.value} field")
        nk = self._normalizer.normalize_label(variant)
        targets = self._dict[statement_type].setdefault(nk, [])
        if canonical not in targets:
            if targets:
                logger.debug(
                    "Synonym %r now shared by %r and %r", nk, targets, canonical
                )
            targets.append(canonical)

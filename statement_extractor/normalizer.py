"""
Normalization Layer.

Two stateless normalisers live here:

``LabelNormalizer``
    Transforms raw row labels into a uniform representation so that
    downstream matchers operate on clean, comparable strings.

``NumericNormalizer``
    Parses a raw table cell into a signed value, a semantic blank, or a
    parse failure.  Steps applied (in order):

    1. Trim whitespace
    2. Null tokens (dash variants, "nil", empty) → ``is_null``
    3. Bracket form ``(X)`` → negative
    4. Strip currency prefixes / symbols
    5. Strip thousands separators, keep a single decimal point
    6. Anything left that is not a number → ``parse_failed``

Unit scaling ("in thousands") is a caller decision; see
``NumericNormalizer.scale``.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from statement_extractor.config import NormalizerConfig
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import NormalizedValue

logger = get_logger("normalizer")


class LabelNormalizer:
    """Stateless label normaliser.  All methods are pure functions."""

    # Leading enumerators: "1.", "iv.", "(a)", "a)"
    _ENUM_PREFIX_RE = re.compile(
        r"^(?:\(?[ivxlc]+[\.\)]|\(?\d{1,2}[\.\)]|\(?[a-h]\))\s+", re.IGNORECASE
    )

    # Characters replaced by a space (keep letters, digits, spaces)
    _PUNCT_RE = re.compile(r"[^a-z0-9\s]")

    # Collapse whitespace
    _MULTI_SPACE_RE = re.compile(r"\s+")

    _DASHES = ("–", "—", "−")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def normalize_label(self, raw: str) -> str:
        """Return the canonical-comparable form of a raw label string.

        Parameters
        ----------
        raw:
            The original row label as found in the extracted table.

        Returns
        -------
        str
            Cleaned label ready for synonym lookup and fuzzy matching.
        """
        text = raw.strip().lower()
        for dash in self._DASHES:
            text = text.replace(dash, "-")
        text = self._ENUM_PREFIX_RE.sub("", text)
        text = text.replace("&", " and ")
        text = self._PUNCT_RE.sub(" ", text)
        text = self._MULTI_SPACE_RE.sub(" ", text).strip()

        logger.debug("normalize_label: %r → %r", raw, text)
        return text

    @staticmethod
    def collapse(raw: str) -> str:
        """Case-fold and whitespace-normalise only (used for exact matching)."""
        return " ".join(raw.split()).casefold()


class NumericNormalizer:
    """Parse financial-statement cells into ``NormalizedValue`` objects.

    Parameters
    ----------
    config:
        Currency symbols and null tokens to recognise.
    """

    _BRACKET_RE = re.compile(r"^\((.*)\)$", re.DOTALL)

    # Thousands separators: comma, apostrophe and any whitespace
    # (no-break and thin spaces included).
    _SEPARATOR_RE = re.compile(r"[,\s']")

    _NUMBER_RE = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$")

    _LEADING_MINUS = ("-", "−", "–")

    def __init__(self, config: Optional[NormalizerConfig] = None) -> None:
        self._config = config or NormalizerConfig()
        self._null_tokens = {t.lower() for t in self._config.null_tokens}
        symbols = sorted(self._config.currency_symbols, key=len, reverse=True)
        alternation = "|".join(re.escape(s) for s in symbols)
        self._currency_re = re.compile(
            rf"^(?:{alternation})\s*|\s*(?:{alternation})$", re.IGNORECASE
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def normalize(self, raw: Any) -> NormalizedValue:
        """Parse one raw cell.

        Handles:
        * Thousands separators: ``"1,234,567.89"``
        * Currency prefixes: ``"Rs. 1,000,000"``
        * Bracketed negatives: ``"(5,000)"``
        * Dash / "nil" blanks
        * Already-numeric inputs (int / float)

        Never raises; unreadable input comes back with ``parse_failed=True``.
        """
        if raw is None:
            return NormalizedValue(raw="", value=None, is_null=True)

        if isinstance(raw, bool):
            return self._failed(str(raw))

        if isinstance(raw, (int, float)):
            value = float(raw)
            if math.isnan(value) or math.isinf(value):
                return self._failed(str(raw))
            return NormalizedValue(raw=str(raw), value=value, is_negative=value < 0)

        original = str(raw)
        text = original.strip()
        if self._is_null_token(text):
            return NormalizedValue(raw=original, value=None, is_null=True)

        text, bracketed = self._strip_brackets(text)
        negative = bracketed
        if bracketed and self._is_null_token(text):
            return NormalizedValue(raw=original, value=None, is_null=True)

        text = self._strip_currency(text)

        # Currency outside the bracket: "Rs. (1,000)"
        if not bracketed:
            text, bracketed = self._strip_brackets(text)
            negative = negative or bracketed

        if self._is_null_token(text):
            return NormalizedValue(raw=original, value=None, is_null=True)

        if text[:1] in self._LEADING_MINUS and len(text) > 1:
            negative = True
            text = text[1:].strip()

        text = self._SEPARATOR_RE.sub("", text)
        if text.endswith("%"):
            text = text[:-1]

        if not text:
            return NormalizedValue(raw=original, value=None, is_null=True)

        if text.count(".") > 1 or not self._NUMBER_RE.match(text):
            return self._failed(original)

        magnitude = float(text)
        value = -magnitude if negative else magnitude
        logger.debug("normalize: %r → %s", original, value)
        return NormalizedValue(raw=original, value=value, is_negative=negative)

    def normalize_row(self, cells: list[Any]) -> list[NormalizedValue]:
        """Normalise every cell of a table row."""
        return [self.normalize(c) for c in cells]

    @staticmethod
    def scale(value: NormalizedValue, factor: float) -> NormalizedValue:
        """Return a copy of *value* multiplied by a unit factor (e.g. 1000)."""
        if value.value is None or factor == 1:
            return value
        return NormalizedValue(
            raw=value.raw,
            value=value.value * factor,
            is_negative=value.is_negative,
            is_null=value.is_null,
            parse_failed=value.parse_failed,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _is_null_token(self, text: str) -> bool:
        return not text or text.lower() in self._null_tokens

    def _strip_brackets(self, text: str) -> tuple[str, bool]:
        m = self._BRACKET_RE.match(text)
        if m:
            return m.group(1).strip(), True
        return text, False

    def _strip_currency(self, text: str) -> str:
        previous = None
        while previous != text:
            previous = text
            text = self._currency_re.sub("", text).strip()
        return text

    @staticmethod
    def _failed(raw: str) -> NormalizedValue:
        logger.debug("normalize: %r is not numeric", raw)
        return NormalizedValue(raw=raw, value=None, parse_failed=True)

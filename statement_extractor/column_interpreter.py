"""
Column Interpreter.

Classifies the columns of a statement table from its (possibly multi-row)
header: which column carries the row labels, which carry note references,
and which carry Bank / Group values for the most recent (Year1) and prior
(Year2) period.

Header rows are padded to equal width and merged top-to-bottom into one
text per column.  An entity cell that spans several columns (``"Bank"``
above ``"2023" "2022"``) is carried rightwards across the empty cells of its
row, onto the columns that carry a year.

Year slots
----------
When every column of an entity carries a distinct explicit year, the most
recent year is Year1.  Otherwise the columns are ordered left to right: the
first is Year1, the second Year2, any others are ``unknown``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from statement_extractor.config import ColumnConfig
from statement_extractor.keywords import (
    BANK_KEYWORDS,
    GROUP_KEYWORDS,
    NOTE_KEYWORDS,
    UNIT_SCALES,
)
from statement_extractor.logging_setup import get_logger
from statement_extractor.schema import ColumnInfo, ColumnType, Entity

logger = get_logger("column_interpreter")

_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")

_ENTITY_RES: tuple[tuple[re.Pattern[str], Entity], ...] = tuple(
    (re.compile(rf"\b{kw}\b"), Entity.BANK) for kw in BANK_KEYWORDS
) + tuple(
    (re.compile(rf"\b{kw}\b"), Entity.GROUP) for kw in GROUP_KEYWORDS
)

_NOTE_RE = re.compile(r"\b(?:" + "|".join(NOTE_KEYWORDS) + r")\b")

_UNIT_RES = tuple((re.compile(p), factor) for p, factor in UNIT_SCALES)

_BASE = 0.2
_ENTITY_BONUS = 0.3
_YEAR_BONUS = 0.3
_POSITION_BONUS = 0.2


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return " ".join(str(cell).split())


def _find_entity(text: str) -> Optional[Entity]:
    """Return the entity whose keyword appears first in *text*."""
    lowered = text.lower()
    best: Optional[tuple[int, Entity]] = None
    for pattern, entity in _ENTITY_RES:
        m = pattern.search(lowered)
        if m and (best is None or m.start() < best[0]):
            best = (m.start(), entity)
    return best[1] if best else None


def _find_year(text: str) -> Optional[int]:
    m = _YEAR_RE.search(text)
    return int(m.group(0)) if m else None


class ColumnInterpreter:
    """Header-driven column classifier.

    Parameters
    ----------
    config:
        ``default_entity`` for tables whose headers name only years.
    """

    def __init__(self, config: Optional[ColumnConfig] = None) -> None:
        self._config = config or ColumnConfig()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def interpret_columns(
        self, header_rows: Sequence[Sequence[Any]]
    ) -> Dict[int, ColumnInfo]:
        """Classify every column of the table.

        Parameters
        ----------
        header_rows:
            Header rows top to bottom, each a list of cells.

        Returns
        -------
        dict[int, ColumnInfo]
            One entry per column index.  Never raises for unrecognised
            headers; such columns come back ``unknown``.
        """
        rows = [[_cell_text(c) for c in row] for row in header_rows if row is not None]
        width = max((len(r) for r in rows), default=0)
        if width == 0:
            return {}
        rows = [r + [""] * (width - len(r)) for r in rows]

        merged = [
            " ".join(r[col] for r in rows if r[col]) for col in range(width)
        ]
        years = [_find_year(text) for text in merged]
        entities = [_find_entity(text) for text in merged]
        is_note = [
            bool(_NOTE_RE.search(text.lower())) and years[i] is None
            for i, text in enumerate(merged)
        ]

        self._carry_spanning_entities(rows, entities, years)

        if self._config.default_entity and not any(entities):
            default = Entity(self._config.default_entity)
            for i, year in enumerate(years):
                if year is not None:
                    entities[i] = default
            logger.info("No entity keywords in header; defaulting to %s", default.value)

        slots = self._assign_year_slots(entities, years)

        description_idx: Optional[int] = None
        for i in range(width):
            if entities[i] is None and years[i] is None and not is_note[i]:
                description_idx = i
                break

        types: List[ColumnType] = []
        for i in range(width):
            if i == description_idx:
                types.append(ColumnType.DESCRIPTION)
            elif is_note[i] and entities[i] is None:
                types.append(ColumnType.NOTE)
            elif i in slots:
                types.append(ColumnType.for_slot(entities[i], slots[i]))
            else:
                types.append(ColumnType.UNKNOWN)

        result: Dict[int, ColumnInfo] = {}
        for i in range(width):
            column_type = types[i]
            result[i] = ColumnInfo(
                column_index=i,
                column_type=column_type,
                entity=entities[i] if column_type.is_value_column else None,
                year=years[i],
                confidence=self._confidence(i, types, entities[i], years[i]),
                header_text=merged[i],
            )

        logger.info(
            "Interpreted %d columns: %s",
            width,
            ", ".join(f"{i}={info.column_type.value}" for i, info in result.items()),
        )
        return result

    @staticmethod
    def detect_unit_scale(header_rows: Sequence[Sequence[Any]]) -> float:
        """Return the unit multiplier implied by the header (1.0 if none).

        Recognises ``"Rs '000"``, ``"in thousands"``, ``"Rs Mn"``,
        ``"millions"`` and ``"Bn"`` style markers.
        """
        text = " ".join(
            _cell_text(c) for row in header_rows if row for c in row
        ).lower().replace("’", "'")
        for pattern, factor in _UNIT_RES:
            if pattern.search(text):
                logger.debug("Unit scale %s detected in header", factor)
                return factor
        return 1.0

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _carry_spanning_entities(
        rows: List[List[str]],
        entities: List[Optional[Entity]],
        years: List[Optional[int]],
    ) -> None:
        for row in rows:
            carried: Optional[Entity] = None
            for col, cell in enumerate(row):
                if cell:
                    carried = _find_entity(cell)
                    continue
                if carried is not None and entities[col] is None and years[col] is not None:
                    entities[col] = carried

    @staticmethod
    def _assign_year_slots(
        entities: List[Optional[Entity]], years: List[Optional[int]]
    ) -> Dict[int, int]:
        slots: Dict[int, int] = {}
        for entity in Entity:
            cols = [i for i, e in enumerate(entities) if e is entity]
            if not cols:
                continue
            explicit = [years[i] for i in cols]
            if all(y is not None for y in explicit) and len(set(explicit)) == len(cols):
                ordered = sorted(cols, key=lambda i: years[i], reverse=True)
            else:
                ordered = cols
                if len(cols) > 1:
                    logger.info(
                        "%s columns %s have ambiguous years; using left-to-right order",
                        entity.value,
                        cols,
                    )
            for slot, col in enumerate(ordered[:2], start=1):
                slots[col] = slot
            for col in ordered[2:]:
                logger.warning("Extra %s column %d left unknown", entity.value, col)
        return slots

    @staticmethod
    def _confidence(
        index: int,
        types: List[ColumnType],
        entity: Optional[Entity],
        year: Optional[int],
    ) -> float:
        column_type = types[index]
        if column_type is ColumnType.UNKNOWN:
            return _BASE

        score = _BASE
        if column_type.is_value_column:
            score += _ENTITY_BONUS if entity else 0.0
            score += _YEAR_BONUS if year is not None else 0.0

        if _position_plausible(index, types):
            score += _POSITION_BONUS
        return min(1.0, round(score, 4))


def _position_plausible(index: int, types: List[ColumnType]) -> bool:
    column_type = types[index]
    value_cols = [i for i, t in enumerate(types) if t.is_value_column]

    if column_type is ColumnType.DESCRIPTION:
        return index == 0
    if column_type is ColumnType.NOTE:
        return all(index < i for i in value_cols)

    bank_cols = [i for i, t in enumerate(types) if t in (ColumnType.BANK_YEAR1, ColumnType.BANK_YEAR2)]
    group_cols = [i for i, t in enumerate(types) if t in (ColumnType.GROUP_YEAR1, ColumnType.GROUP_YEAR2)]
    if column_type in (ColumnType.BANK_YEAR1, ColumnType.BANK_YEAR2):
        entity_ok = all(index < g for g in group_cols)
        partner = ColumnType.BANK_YEAR2 if column_type is ColumnType.BANK_YEAR1 else ColumnType.BANK_YEAR1
    else:
        entity_ok = all(index > b for b in bank_cols)
        partner = ColumnType.GROUP_YEAR2 if column_type is ColumnType.GROUP_YEAR1 else ColumnType.GROUP_YEAR1

    partner_cols = [i for i, t in enumerate(types) if t is partner]
    if column_type.year_slot == "Year1":
        order_ok = all(index < p for p in partner_cols)
    else:
        order_ok = all(index > p for p in partner_cols)
    return entity_ok and order_ok

"""
Table Reader.

Turns an already-extracted statement table into ``header_rows`` and
``data_rows`` for the extraction pipeline.  Sources:

* in-memory rows (lists of cells)
* CSV files or CSV text
* Excel workbooks (``.xlsx``) through ``openpyxl``

A row is a *data row* when its first non-empty cell is a text label and
some cell to its right holds a number (or a dash / nil blank).  Every row
above the first data row is a header row.  Rows whose only numbers are
years (``2023``, ``2022``) are headers.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass, field
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import openpyxl

from statement_extractor.keywords import UNIT_SCALES
from statement_extractor.logging_setup import get_logger
from statement_extractor.normalizer import NumericNormalizer

logger = get_logger("table_reader")

_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")


@dataclass
class RawTable:
    """A table split into header and data rows."""

    header_rows: List[List[Any]] = field(default_factory=list)
    data_rows: List[List[Any]] = field(default_factory=list)
    source: str = ""


def _is_blank(cell: Any) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


class TableReader:
    """Read statement tables from rows, CSV or Excel.

    Parameters
    ----------
    normalizer:
        Used to decide whether a cell is numeric.
    """

    def __init__(self, normalizer: Optional[NumericNormalizer] = None) -> None:
        self._normalizer = normalizer or NumericNormalizer()

    # ------------------------------------------------------------------ #
    # Readers
    # ------------------------------------------------------------------ #

    def read_rows(self, rows: Sequence[Sequence[Any]], source: str = "rows") -> RawTable:
        """Split in-memory rows; fully blank rows are skipped."""
        cleaned = [
            [None if isinstance(c, datetime) else c for c in row]
            for row in rows
            if row is not None and not all(_is_blank(c) for c in row)
        ]
        first_data = next(
            (i for i, row in enumerate(cleaned) if self.is_data_row(row)), None
        )
        if first_data is None:
            logger.warning("%s: no data rows found (%d rows)", source, len(cleaned))
            return RawTable(header_rows=cleaned, data_rows=[], source=source)

        table = RawTable(
            header_rows=cleaned[:first_data],
            data_rows=cleaned[first_data:],
            source=source,
        )
        logger.info(
            "%s: %d header row(s), %d data row(s)",
            source,
            len(table.header_rows),
            len(table.data_rows),
        )
        return table

    def read_csv(self, source: Union[str, Path], delimiter: str = ",") -> RawTable:
        """Read from a CSV file or raw CSV text."""
        if isinstance(source, Path) or (
            isinstance(source, str) and "\n" not in source and Path(source).exists()
        ):
            with open(Path(source), encoding="utf-8", newline="") as fh:
                rows = list(csv.reader(fh, delimiter=delimiter))
            name = Path(source).name
        else:
            rows = list(csv.reader(StringIO(source), delimiter=delimiter))
            name = "csv"
        return self.read_rows(rows, source=name)

    def read_excel(
        self, path: Union[str, Path], sheet: Optional[str] = None
    ) -> RawTable:
        """Read one worksheet of an ``.xlsx`` workbook (the first by default)."""
        path = Path(path)
        wb = openpyxl.load_workbook(path, data_only=True, read_only=True)
        try:
            if sheet is not None and sheet not in wb.sheetnames:
                raise ValueError(f"Sheet {sheet!r} not found in {path.name}: {wb.sheetnames}")
            ws = wb[sheet] if sheet is not None else wb[wb.sheetnames[0]]
            title = ws.title
            rows = [list(r) for r in ws.iter_rows(values_only=True)]
            logger.info("Read sheet '%s' from %s (%d rows)", title, path.name, len(rows))
        finally:
            wb.close()
        return self.read_rows(rows, source=f"{path.name}:{title}")

    # ------------------------------------------------------------------ #
    # Row classification
    # ------------------------------------------------------------------ #

    def is_data_row(self, row: Sequence[Any]) -> bool:
        cells = list(row)
        start = next((i for i, c in enumerate(cells) if not _is_blank(c)), None)
        if start is None:
            return False

        label = cells[start]
        if not isinstance(label, str) or self._looks_numeric(label):
            return False

        has_value = False
        for cell in cells[start + 1:]:
            if _is_blank(cell):
                continue
            if self._is_year(cell) or self._is_unit_marker(cell):
                continue
            parsed = self._normalizer.normalize(cell)
            if parsed.value is not None or parsed.is_null:
                has_value = True
        return has_value

    def _looks_numeric(self, text: str) -> bool:
        return self._normalizer.normalize(text).value is not None

    @staticmethod
    def _is_unit_marker(cell: Any) -> bool:
        if not isinstance(cell, str):
            return False
        text = cell.lower().replace("’", "'")
        return any(re.search(pattern, text) for pattern, _ in UNIT_SCALES)

    @staticmethod
    def _is_year(cell: Any) -> bool:
        if isinstance(cell, bool):
            return False
        if isinstance(cell, int):
            return 1900 <= cell <= 2099
        if isinstance(cell, float):
            return cell.is_integer() and 1900 <= cell <= 2099
        return bool(_YEAR_RE.match(str(cell).strip()))

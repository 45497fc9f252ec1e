"""
Unit tests for the TableReader (rows, CSV and Excel input).
"""

from __future__ import annotations

from pathlib import Path

import openpyxl
import pytest

from statement_extractor.table_reader import TableReader

ROWS = [
    [None, "Bank", "Bank", "Group", "Group"],
    ["Particulars", 2023, 2022, 2023, 2022],
    ["Interest income", 1_000, 900, 1_100, 950],
    ["Interest expenses", "(500)", "(450)", "(520)", "(470)"],
    [None, None, None, None, None],
    ["Other income", "-", "-", 10, 5],
]


@pytest.fixture
def reader() -> TableReader:
    return TableReader()


class TestReadRows:
    def test_split_header_and_data(self, reader: TableReader) -> None:
        table = reader.read_rows(ROWS)
        assert len(table.header_rows) == 2
        assert len(table.data_rows) == 3
        assert table.data_rows[0][0] == "Interest income"

    def test_unit_marker_row_is_header(self, reader: TableReader) -> None:
        table = reader.read_rows([
            ["", "Bank", "Bank"],
            ["", "2023", "2022"],
            ["Particulars", "Rs '000", "Rs '000"],
            ["Gross income", "5,000", "4,000"],
        ])
        assert len(table.header_rows) == 3
        assert table.data_rows == [["Gross income", "5,000", "4,000"]]

    def test_section_rows_stay_in_data(self, reader: TableReader) -> None:
        table = reader.read_rows([
            ["", "2023", "2022"],
            ["Assets", None, None],
            ["Cash and cash equivalents", 10, 9],
            ["Liabilities", None, None],
            ["Due to banks", 5, 4],
        ])
        assert [r[0] for r in table.header_rows] == ["", "Assets"]
        assert [r[0] for r in table.data_rows] == [
            "Cash and cash equivalents", "Liabilities", "Due to banks",
        ]

    def test_no_data_rows(self, reader: TableReader) -> None:
        table = reader.read_rows([["Particulars", "Bank"], ["", "2023"]])
        assert table.data_rows == []
        assert len(table.header_rows) == 2

    @pytest.mark.parametrize("row, expected", [
        (["Interest income", "1,000"], True),
        (["Interest income", "-"], True),
        (["Particulars", "2023", "2022"], False),
        (["", "Bank", "Group"], False),
        (["1,000", "2,000"], False),
        (["Interest income", "n.a.x"], False),
    ])
    def test_is_data_row(self, reader: TableReader, row: list, expected: bool) -> None:
        assert reader.is_data_row(row) is expected


class TestReadCsv:
    CSV_TEXT = (
        ",Bank,Bank\n"
        "Particulars,2023,2022\n"
        "Interest income,\"1,000\",900\n"
        "Interest expenses,(500),(450)\n"
    )

    def test_csv_text(self, reader: TableReader) -> None:
        table = reader.read_csv(self.CSV_TEXT)
        assert len(table.header_rows) == 2
        assert table.data_rows[0] == ["Interest income", "1,000", "900"]
        assert table.source == "csv"

    def test_csv_file(self, reader: TableReader, tmp_path: Path) -> None:
        path = tmp_path / "income.csv"
        path.write_text(self.CSV_TEXT, encoding="utf-8")
        table = reader.read_csv(path)
        assert len(table.data_rows) == 2
        assert table.source == "income.csv"


class TestReadExcel:
    def _workbook(self, tmp_path: Path) -> Path:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Income"
        for row in ROWS:
            ws.append(row)
        other = wb.create_sheet("Position")
        other.append([None, "Bank", "Group"])
        other.append(["Total assets", 9_500, 9_800])
        path = tmp_path / "statements.xlsx"
        wb.save(path)
        return path

    def test_first_sheet_default(self, reader: TableReader, tmp_path: Path) -> None:
        table = reader.read_excel(self._workbook(tmp_path))
        assert len(table.header_rows) == 2
        assert len(table.data_rows) == 3
        assert table.data_rows[0][1] == 1_000
        assert table.source == "statements.xlsx:Income"

    def test_named_sheet(self, reader: TableReader, tmp_path: Path) -> None:
        table = reader.read_excel(self._workbook(tmp_path), sheet="Position")
        assert table.data_rows == [["Total assets", 9_500, 9_800]]

    def test_missing_sheet(self, reader: TableReader, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            reader.read_excel(self._workbook(tmp_path), sheet="Cash Flow")

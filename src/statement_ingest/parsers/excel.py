"""
Generic spreadsheet reader.

Opens XLSX (openpyxl) and legacy XLS (xlrd) workbooks from bytes and
exposes sheets as lists of rows of plain Python cell values:
None, str, int, float, bool, datetime.
"""

import io
import logging
from typing import Any

import openpyxl
import xlrd

from .cells import cell_to_string, is_cell_empty
from .errors import ParseError

logger = logging.getLogger(__name__)

Row = list[Any]

# XLSX is a zip container; XLS is an OLE2 compound document
XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class ExcelReader:
    """
    In-memory workbook with all sheets loaded as rows.

    Construct with from_bytes(); the reader holds no open file handles.
    """

    def __init__(self, sheets: dict[str, list[Row]]):
        self._sheets = sheets

    @classmethod
    def from_bytes(cls, data: bytes) -> "ExcelReader":
        """
        Open a workbook from raw bytes.

        Raises:
            ParseError: If the bytes are not a readable XLS/XLSX workbook
        """
        if not data:
            raise ParseError("Failed to open Excel file: empty input")

        if data.startswith(XLSX_MAGIC):
            loader = _load_xlsx
        elif data.startswith(XLS_MAGIC):
            loader = _load_xls
        else:
            raise ParseError("Failed to open Excel file: not an XLS/XLSX workbook")

        try:
            sheets = loader(data)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(f"Failed to open Excel file: {e}") from e

        return cls(sheets)

    @staticmethod
    def looks_like_workbook(data: bytes) -> bool:
        """Cheap magic-number check for XLS/XLSX content."""
        return data.startswith(XLSX_MAGIC) or data.startswith(XLS_MAGIC)

    def sheet_names(self) -> list[str]:
        """Sheet names in workbook order."""
        return list(self._sheets)

    def get_rows(self) -> list[Row]:
        """
        All rows of the first sheet.

        Raises:
            ParseError: If the workbook has no sheets
        """
        names = self.sheet_names()
        if not names:
            raise ParseError("No sheets found in workbook")
        return self.get_rows_from_sheet(names[0])

    def get_rows_from_sheet(self, sheet_name: str) -> list[Row]:
        """All rows of the named sheet."""
        try:
            return self._sheets[sheet_name]
        except KeyError:
            raise ParseError(f"Failed to read sheet '{sheet_name}': no such sheet") from None

    def text(self) -> str:
        """Flattened text of every non-empty cell in every sheet."""
        parts = []
        for rows in self._sheets.values():
            for row in rows:
                parts.extend(cell_to_string(c) for c in row if not is_cell_empty(c))
        return "\n".join(parts)


def _load_xlsx(data: bytes) -> dict[str, list[Row]]:
    workbook = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    try:
        return {
            ws.title: [list(row) for row in ws.iter_rows(values_only=True)]
            for ws in workbook.worksheets
        }
    finally:
        workbook.close()


def _load_xls(data: bytes) -> dict[str, list[Row]]:
    book = xlrd.open_workbook(file_contents=data)
    sheets: dict[str, list[Row]] = {}
    for sheet in book.sheets():
        rows = []
        for r in range(sheet.nrows):
            rows.append([_xls_cell_value(cell, book.datemode) for cell in sheet.row(r)])
        sheets[sheet.name] = rows
    return sheets


def _xls_cell_value(cell: "xlrd.sheet.Cell", datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            logger.debug("Unconvertible XLS date cell: %r", cell.value)
            return cell.value
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return None
    return cell.value

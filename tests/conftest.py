"""Test fixtures and utilities."""

import io
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence

import openpyxl
import pytest

from statement_ingest.schemas.transaction import ParsedTransaction, TransactionType

ICICI_HEADER = [
    "S No.",
    "Value Date",
    "Transaction Date",
    "Cheque Number",
    "Transaction Remarks",
    "Withdrawal Amount(INR)",
    "Deposit Amount(INR)",
    "Balance(INR)",
]

IDFC_HEADER = [
    "Transaction Date",
    "Value Date",
    "Particulars",
    "Cheque No.",
    "Debit",
    "Credit",
    "Balance",
]


def build_workbook(rows: Sequence[Optional[Sequence[Any]]], title: str = "Sheet1") -> bytes:
    """Build XLSX bytes; rows keep their index, None/[] rows stay blank."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for r, row in enumerate(rows, start=1):
        for c, value in enumerate(row or [], start=1):
            if value is not None:
                sheet.cell(row=r, column=c, value=value)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def icici_rows(data_rows: Sequence[Sequence[Any]], trailer: bool = True) -> list:
    """ICICI layout: metadata rows 0-9, header on row 10, data from row 11."""
    rows: list = [[None] * 8 for _ in range(10)]
    rows[0] = ["ICICI Bank Limited"]
    rows[2] = ["Account Number: 123456789012"]
    rows[4] = ["Transactions List - From 01/04/2024 To 30/04/2024"]
    rows.append(ICICI_HEADER)
    rows.extend(list(r) for r in data_rows)
    if trailer:
        rows.append([])
        rows.append(["Legend", "Description"])
        rows.append([99, "05/04/2024", "05/04/2024", None, "After legend", 1.0, None, 0])
    return rows


def idfc_rows(data_rows: Sequence[Sequence[Any]], trailer: bool = True) -> list:
    """IDFC First layout: metadata rows 0-18, header on row 19, data from row 20."""
    rows: list = [[None] * 7 for _ in range(19)]
    rows[0] = ["IDFC FIRST Bank"]
    rows[3] = ["Account No : 10012345678"]
    rows[5] = ["Statement Period: 01-Jan-2025 to 31-Jan-2025"]
    rows.append(IDFC_HEADER)
    rows.extend(list(r) for r in data_rows)
    if trailer:
        rows.append(["Total", None, None, None, 15000, 120.5, None])
    return rows


ICICI_DATA = [
    [1, "01/04/2024", "01/04/2024", "-", "UPI/412345678901/Coffee Shop", 250.0, 0, 9750.0],
    [2, "02/04/2024", "02/04/2024", 123456, "NEFT-SALARY APRIL", None, 50000, 59750.0],
]

IDFC_DATA = [
    ["16-Jan-2025", "16-Jan-2025", "IMPS/P2A/501612345/Rent", None, 15000, None, 85000],
    ["17-Jan-2025", "17-Jan-2025", "Interest credit", "0", None, 120.5, 85120.5],
]


@pytest.fixture
def icici_xlsx() -> bytes:
    """ICICI statement export with two transactions."""
    return build_workbook(icici_rows(ICICI_DATA))


@pytest.fixture
def idfc_xlsx() -> bytes:
    """IDFC First statement export with two transactions."""
    return build_workbook(idfc_rows(IDFC_DATA))


@pytest.fixture
def generic_xlsx() -> bytes:
    """Export from an unregistered bank with a plain header row."""
    return build_workbook(
        [
            ["Some Credit Union"],
            ["Date", "Description", "Debit", "Credit", "Balance"],
            ["2024-03-01", "Groceries", "45.10", None, "954.90"],
            ["2024-03-02", "Refund", None, "10.00", "964.90"],
        ]
    )


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_ledger.db"


@pytest.fixture
def sample_parsed_transaction() -> ParsedTransaction:
    """A debit row as an extractor would produce it."""
    return ParsedTransaction(
        date=date(2024, 4, 1),
        description="UPI/412345678901/Coffee Shop",
        amount=Decimal("250.00"),
        transaction_type=TransactionType.DEBIT,
        balance=Decimal("9750.00"),
        reference="UPI412345678901",
    )


def build_xls_workbook(rows: Sequence[Optional[Sequence[Any]]], title: str = "Sheet1") -> bytes:
    """Build legacy XLS bytes; date values are written as date-formatted cells."""
    xlwt = pytest.importorskip("xlwt")
    date_style = xlwt.easyxf(num_format_str="DD/MM/YYYY")

    workbook = xlwt.Workbook()
    sheet = workbook.add_sheet(title)
    for r, row in enumerate(rows):
        for c, value in enumerate(row or []):
            if value is None:
                continue
            if isinstance(value, date):
                sheet.write(r, c, value, date_style)
            else:
                sheet.write(r, c, value)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


ICICI_XLS_DATA = [
    [1, date(2024, 4, 1), date(2024, 4, 1), "-", "UPI/412345678901/Coffee Shop", 250.0, 0, 9750.0],
    [2, date(2024, 4, 2), date(2024, 4, 2), 123456, "NEFT-SALARY APRIL", None, 50000, 59750.0],
]


@pytest.fixture
def icici_xls() -> bytes:
    """ICICI statement in its native XLS format, with real date cells."""
    return build_xls_workbook(icici_rows(ICICI_XLS_DATA))

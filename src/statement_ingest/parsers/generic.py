"""
Header-inferring Excel parser.

Last-resort parser for exports from banks without a registered layout.
It scans for the first row whose headers map to a usable ColumnMapping
and reads transactions below it.
"""

import logging
from typing import Optional

from ..schemas.transaction import ParsedTransaction, ParseResult, ParserOptions, TransactionType
from .base import FileFormat, FormatParser
from .cells import (
    ColumnMapping,
    cell_to_string,
    detect_columns,
    is_row_empty,
    normalize_amount,
    normalize_date,
)
from .errors import ParseError
from .excel import ExcelReader, Row
from .layout import REFERENCE_PLACEHOLDERS, find_account_number

logger = logging.getLogger(__name__)

GENERIC_BANK_CODE = "generic"

# Rows scanned for a header before giving up
HEADER_SCAN_LIMIT = 50

# Type/mode cell values that mark a single-amount row as a debit
DEBIT_TYPE_MARKERS = ("dr", "debit", "withdrawal")
CREDIT_TYPE_MARKERS = ("cr", "credit", "deposit")


class GenericExcelParser(FormatParser):
    """Excel parser that infers its column layout from the header row."""

    @property
    def format(self) -> FileFormat:
        return FileFormat.EXCEL

    @property
    def bank_code(self) -> str:
        return GENERIC_BANK_CODE

    def parse_bytes(self, data: bytes, options: Optional[ParserOptions] = None) -> ParseResult:
        options = options or ParserOptions()
        rows = ExcelReader.from_bytes(data).get_rows()

        header_index, mapping = self.find_header(rows, options.skip_rows)
        logger.debug("%s: header at row %d, columns %s", self.name, header_index, mapping.as_dict())

        transactions = []
        for row in rows[header_index + 1 :]:
            if is_row_empty(row):
                continue
            txn = self._parse_row(row, mapping, options)
            if txn is not None:
                transactions.append(txn)

        return ParseResult.from_transactions(
            transactions,
            account_number=find_account_number(rows[:header_index]),
        )

    def find_header(self, rows: list[Row], skip_rows: int = 0) -> tuple[int, ColumnMapping]:
        """
        Find the first row that yields a usable column mapping.

        Raises:
            ParseError: If no such row exists within the scan window
        """
        end = min(len(rows), skip_rows + HEADER_SCAN_LIMIT)
        for i in range(skip_rows, end):
            mapping = detect_columns(rows[i])
            if mapping.is_valid():
                return i, mapping

        raise ParseError("Could not infer columns from any header row")

    def _parse_row(
        self, row: Row, mapping: ColumnMapping, options: ParserOptions
    ) -> Optional[ParsedTransaction]:
        def cell(index: Optional[int]):
            if index is None or index >= len(row):
                return None
            return row[index]

        txn_date = normalize_date(cell(mapping.date), options.date_format)
        if txn_date is None:
            return None

        description = cell_to_string(cell(mapping.description)).strip()
        if not description:
            return None

        mode = cell_to_string(cell(mapping.transaction_type)).strip() or None

        debit = normalize_amount(cell(mapping.debit))
        credit = normalize_amount(cell(mapping.credit))

        if debit is not None and not debit.is_zero():
            amount, tx_type = abs(debit), TransactionType.DEBIT
        elif credit is not None and not credit.is_zero():
            amount, tx_type = abs(credit), TransactionType.CREDIT
        else:
            single = normalize_amount(cell(mapping.amount))
            if single is None or single.is_zero():
                return None
            amount = abs(single)
            tx_type = _direction_from_amount(single, mode)

        reference = cell_to_string(cell(mapping.reference)).strip()
        if reference in REFERENCE_PLACEHOLDERS:
            reference = None

        return ParsedTransaction(
            date=txn_date,
            description=description,
            amount=amount,
            transaction_type=tx_type,
            balance=normalize_amount(cell(mapping.balance)),
            reference=reference,
            mode=mode,
        )


def _direction_from_amount(amount, mode: Optional[str]) -> TransactionType:
    """Sign decides, unless a type/mode column says otherwise."""
    if mode:
        lower = mode.lower()
        if lower in DEBIT_TYPE_MARKERS:
            return TransactionType.DEBIT
        if lower in CREDIT_TYPE_MARKERS:
            return TransactionType.CREDIT
    return TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT

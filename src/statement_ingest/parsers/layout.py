"""
Static-layout spreadsheet extraction.

Banks export statements with a fixed layout: a known header row, a known
first data row and fixed column positions. StaticLayout captures that as
data; LayoutExcelParser runs the shared extraction algorithm over it.

Each data row is classified as exactly one of:
- Accepted: a transaction was produced
- Skipped: the row is ignored (with a reason)
- Stop: a terminator row ends the transaction table
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from ..schemas.transaction import ParsedTransaction, ParseResult, ParserOptions, TransactionType
from .base import FileFormat, FormatParser
from .cells import (
    cell_to_string,
    detect_columns,
    is_row_empty,
    normalize_amount,
    normalize_date,
    row_text,
)
from .errors import ParseError
from .excel import ExcelReader, Row

if TYPE_CHECKING:
    from ..detection.patterns import InstitutionDescriptor

logger = logging.getLogger(__name__)

# Cheque/reference placeholders that mean "no reference"
REFERENCE_PLACEHOLDERS = ("", "0", "-")

ACCOUNT_NUMBER_RE = re.compile(
    r"\b(?:account|a/c)\s*(?:no\.?|number|num)?\s*[:.\-]?\s*([0-9x*]{6,20})\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class StaticLayout:
    """
    Known export layout of one institution. All indices are 0-based.

    header_keywords: any of these in the expected header row validates it
    header_search: keyword groups for the fallback header scan; a row is
        the header if it contains every keyword of at least one group and
        its description column sits at the layout's description index
    stop_markers: first-cell substrings that end the table
    max_consecutive_empty_rows: stop after this many blank rows in a row
        (None = blank rows are skipped indefinitely)
    search_when_short: scan for the header instead of failing when the
        sheet has fewer rows than the layout expects
    """

    header_row: int
    data_start_row: int
    date: int
    description: int
    debit: int
    credit: int
    balance: int
    reference: int
    header_keywords: tuple[str, ...]
    header_search: tuple[tuple[str, ...], ...]
    stop_markers: tuple[str, ...]
    max_consecutive_empty_rows: Optional[int] = None
    search_when_short: bool = False


class SkipReason(str, Enum):
    """Why a data row produced no transaction."""

    EMPTY_ROW = "empty row"
    NO_DATE = "no valid date"
    NO_DESCRIPTION = "empty description"
    NO_AMOUNT = "no debit or credit amount"


@dataclass(frozen=True)
class Accepted:
    transaction: ParsedTransaction


@dataclass(frozen=True)
class Skipped:
    reason: SkipReason


@dataclass(frozen=True)
class Stop:
    marker: str


RowOutcome = Union[Accepted, Skipped, Stop]


def _get_cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


class LayoutExcelParser(FormatParser):
    """
    Excel parser driven by a StaticLayout.

    Subclasses provide bank_code, display_name and layout, and optionally
    the institution descriptor whose account number patterns are tried
    before the generic metadata scan.
    """

    display_name: str = ""
    layout: StaticLayout
    descriptor: Optional["InstitutionDescriptor"] = None

    @property
    def format(self) -> FileFormat:
        return FileFormat.EXCEL

    def parse_bytes(self, data: bytes, options: Optional[ParserOptions] = None) -> ParseResult:
        """
        Extract transactions from an Excel export.

        Raises:
            ParseError: Unreadable workbook, too few rows, or header not found
        """
        options = options or ParserOptions()
        rows = ExcelReader.from_bytes(data).get_rows()
        start_row = self.locate_data_start(rows)
        return self.parse_rows(rows, start_row, options)

    def locate_data_start(self, rows: Sequence[Row]) -> int:
        """
        Return the index of the first data row.

        Uses the layout's fixed position when the expected header row
        validates, otherwise scans for the header.
        """
        layout = self.layout

        if len(rows) <= layout.data_start_row:
            if not layout.search_when_short:
                raise ParseError(
                    f"File does not have enough rows for {self.display_name} format"
                )
            return self._search_header(rows)

        header_text = row_text(rows[layout.header_row])
        if any(kw in header_text for kw in layout.header_keywords):
            return layout.data_start_row

        logger.debug(
            "%s: expected header not at row %d, scanning", self.name, layout.header_row
        )
        return self._search_header(rows)

    def _search_header(self, rows: Sequence[Row]) -> int:
        for i, row in enumerate(rows):
            text = row_text(row)
            if not any(all(kw in text for kw in group) for group in self.layout.header_search):
                continue
            # Same keywords, different column order: another bank's export
            if detect_columns(row).description != self.layout.description:
                logger.debug("%s: row %d has a foreign column layout", self.name, i)
                continue
            logger.debug("%s: header found at row %d", self.name, i)
            return i + 1

        raise ParseError(f"Could not find {self.display_name} header row")

    def is_terminator(self, first_cell_text: str) -> bool:
        """True if a row whose first cell reads like this ends the table."""
        return any(marker in first_cell_text for marker in self.layout.stop_markers)

    def classify_row(self, row: Row, options: ParserOptions) -> RowOutcome:
        """Turn one data row into Accepted, Skipped or Stop."""
        layout = self.layout

        if is_row_empty(row):
            return Skipped(SkipReason.EMPTY_ROW)

        first_cell = cell_to_string(row[0]).strip().lower() if row else ""
        if first_cell and self.is_terminator(first_cell):
            return Stop(first_cell)

        txn_date = normalize_date(_get_cell(row, layout.date), options.date_format)
        if txn_date is None:
            return Skipped(SkipReason.NO_DATE)

        description = cell_to_string(_get_cell(row, layout.description)).strip()
        if not description:
            return Skipped(SkipReason.NO_DESCRIPTION)

        debit = normalize_amount(_get_cell(row, layout.debit))
        credit = normalize_amount(_get_cell(row, layout.credit))

        if debit is not None and not debit.is_zero():
            amount, tx_type = abs(debit), TransactionType.DEBIT
        elif credit is not None and not credit.is_zero():
            amount, tx_type = abs(credit), TransactionType.CREDIT
        else:
            return Skipped(SkipReason.NO_AMOUNT)

        balance = normalize_amount(_get_cell(row, layout.balance))

        reference = cell_to_string(_get_cell(row, layout.reference)).strip()
        if reference in REFERENCE_PLACEHOLDERS:
            reference = None

        return Accepted(
            ParsedTransaction(
                date=txn_date,
                description=description,
                amount=amount,
                transaction_type=tx_type,
                balance=balance,
                reference=reference,
            )
        )

    def parse_rows(
        self,
        rows: Sequence[Row],
        start_row: int,
        options: Optional[ParserOptions] = None,
    ) -> ParseResult:
        """Run row classification from start_row until the table ends."""
        options = options or ParserOptions()
        limit = self.layout.max_consecutive_empty_rows

        transactions: list[ParsedTransaction] = []
        skipped = 0
        consecutive_empty = 0

        for index in range(start_row, len(rows)):
            outcome = self.classify_row(rows[index], options)

            if isinstance(outcome, Stop):
                logger.debug("%s: stopping at row %d (%r)", self.name, index, outcome.marker)
                break

            if isinstance(outcome, Skipped):
                if outcome.reason is SkipReason.EMPTY_ROW:
                    consecutive_empty += 1
                    if limit is not None and consecutive_empty >= limit:
                        break
                    continue
                consecutive_empty = 0
                skipped += 1
                logger.debug("%s: skipping row %d: %s", self.name, index, outcome.reason.value)
                continue

            consecutive_empty = 0
            transactions.append(outcome.transaction)

        logger.debug(
            "%s: extracted %d transactions, skipped %d rows",
            self.name,
            len(transactions),
            skipped,
        )

        return ParseResult.from_transactions(
            transactions,
            account_number=find_account_number(rows[:start_row], self.descriptor),
            bank_name=self.display_name or None,
        )


def find_account_number(
    rows: Sequence[Row],
    descriptor: Optional["InstitutionDescriptor"] = None,
) -> Optional[str]:
    """
    Look for an account number in statement metadata rows.

    The institution's own account number patterns win over the generic
    "Account No: ..." scan.
    """
    if descriptor is not None:
        number = descriptor.extract_account_number(
            "\n".join(" ".join(cell_to_string(c) for c in row) for row in rows)
        )
        if number:
            return number

    for row in rows:
        match = ACCOUNT_NUMBER_RE.search(" ".join(cell_to_string(c) for c in row))
        if match:
            return match.group(1)
    return None

"""
ICICI Bank.

ICICI XLS exports:
- Metadata rows 0-10, header on row 10 (0-indexed)
- Columns: S No., Value Date, Transaction Date, Cheque Number,
  Transaction Remarks, Withdrawal Amount(INR), Deposit Amount(INR),
  Balance(INR)
- Data starts on row 11; dates are DD/MM/YYYY
- A "Legend" section follows the transactions
"""

from ..detection.patterns import (
    AccountNumberRegex,
    ContentContains,
    FilenamePattern,
    InstitutionDescriptor,
)
from ..parsers.base import FormatParser
from ..parsers.layout import LayoutExcelParser, StaticLayout
from .base import Bank

ICICI_CODE = "icici"
ICICI_NAME = "ICICI Bank"

ICICI_DESCRIPTOR = InstitutionDescriptor(
    name=ICICI_NAME,
    code=ICICI_CODE,
    aliases=(
        "ICICI",
        "ICICI Bank",
        "Industrial Credit and Investment Corporation of India",
    ),
    detection_patterns=(
        ContentContains(
            (
                "ICICI Bank",
                "Industrial Credit and Investment Corporation",
                "ICICI Ltd",
            )
        ),
        FilenamePattern(r"(?i)icici.*statement"),
        # "Account Number: XXXXXXXX9012 ( INR ) - NAME"
        AccountNumberRegex(r"(?i)account number\s*:?\s*([0-9x*]{8,20})\s*\(\s*inr\s*\)"),
    ),
)

ICICI_EXCEL_LAYOUT = StaticLayout(
    header_row=10,
    data_start_row=11,
    date=1,  # Value Date
    description=4,  # Transaction Remarks
    debit=5,  # Withdrawal Amount(INR)
    credit=6,  # Deposit Amount(INR)
    balance=7,
    reference=3,  # Cheque Number
    header_keywords=("value date", "transaction"),
    header_search=(("value date",), ("transaction date",)),
    stop_markers=("legend", "note:"),
)


class IciciExcelParser(LayoutExcelParser):
    """ICICI Bank XLS/XLSX statement parser."""

    display_name = ICICI_NAME
    layout = ICICI_EXCEL_LAYOUT
    descriptor = ICICI_DESCRIPTOR

    @property
    def bank_code(self) -> str:
        return ICICI_CODE

    def is_terminator(self, first_cell_text: str) -> bool:
        # Legend entries are short footnote markers like "*" or "**"
        if "*" in first_cell_text and len(first_cell_text) < 10:
            return True
        return super().is_terminator(first_cell_text)


class ICICIBank(Bank):
    """ICICI Bank: Excel statements only."""

    def __init__(self) -> None:
        self._excel_parser = IciciExcelParser()

    @property
    def info(self) -> InstitutionDescriptor:
        return ICICI_DESCRIPTOR

    def parsers(self) -> list[FormatParser]:
        return [self._excel_parser]

"""
IDFC First Bank.

IDFC First XLSX exports:
- Metadata rows 0-18, header on row 19 (0-indexed)
- Columns: Transaction Date, Value Date, Particulars, Cheque No.,
  Debit, Credit, Balance
- Data starts on row 20; dates are DD-Mon-YYYY (e.g. "16-Jan-2025")
- Summary rows ("Total", "Closing Balance") or blank rows end the table
"""

from ..detection.patterns import ContentContains, FilenamePattern, InstitutionDescriptor
from ..parsers.base import FormatParser
from ..parsers.layout import LayoutExcelParser, StaticLayout
from .base import Bank

IDFC_FIRST_CODE = "idfc_first"
IDFC_FIRST_NAME = "IDFC First Bank"

IDFC_FIRST_DESCRIPTOR = InstitutionDescriptor(
    name=IDFC_FIRST_NAME,
    code=IDFC_FIRST_CODE,
    aliases=(
        "IDFC FIRST",
        "IDFC First",
        "IDFC First Bank",
        "IDFCFirstBank",
        "IDFCFIRST",
    ),
    detection_patterns=(
        ContentContains(("IDFC FIRST", "IDFC First Bank", "IDFCFirstBank")),
        FilenamePattern(r"(?i)idfc.*first.*statement"),
        FilenamePattern(r"(?i)idfcfirst.*bank.*statement"),
        FilenamePattern(r"(?i)IDFCFIRSTBank"),
    ),
)

IDFC_FIRST_EXCEL_LAYOUT = StaticLayout(
    header_row=19,
    data_start_row=20,
    date=0,  # Transaction Date
    description=2,  # Particulars
    debit=4,
    credit=5,
    balance=6,
    reference=3,  # Cheque No.
    header_keywords=("transaction date", "particulars"),
    header_search=(("transaction date",), ("particulars", "debit", "credit")),
    stop_markers=("total", "opening balance", "closing balance", "summary"),
    max_consecutive_empty_rows=3,
    search_when_short=True,
)


class IdfcFirstExcelParser(LayoutExcelParser):
    """IDFC First Bank XLSX statement parser."""

    display_name = IDFC_FIRST_NAME
    layout = IDFC_FIRST_EXCEL_LAYOUT
    descriptor = IDFC_FIRST_DESCRIPTOR

    @property
    def bank_code(self) -> str:
        return IDFC_FIRST_CODE


class IDFCFirstBank(Bank):
    """IDFC First Bank: Excel statements only."""

    def __init__(self) -> None:
        self._excel_parser = IdfcFirstExcelParser()

    @property
    def info(self) -> InstitutionDescriptor:
        return IDFC_FIRST_DESCRIPTOR

    def parsers(self) -> list[FormatParser]:
        return [self._excel_parser]

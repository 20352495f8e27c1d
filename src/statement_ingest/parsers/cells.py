"""
Cell normalization utilities.

Institution-independent date/amount parsing for spreadsheet cell values,
plus header-based column inference for layouts that are not known ahead
of time. Nothing in here raises on malformed input: unparseable values
come back as None.
"""

import math
import re
from dataclasses import dataclass, fields
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

# ============================================================================
# Dates
# ============================================================================

# Spreadsheet epoch: serial 0 is 1899-12-30
EXCEL_EPOCH = date(1899, 12, 30)

# Serial 60 is the phantom 1900-02-29
EXCEL_LEAP_BUG_SERIAL = 60

# Tried in order; the first successful parse wins
DATE_FORMATS = (
    "%d-%m-%Y",  # 31-12-2024
    "%d/%m/%Y",  # 31/12/2024
    "%d-%m-%y",  # 31-12-24
    "%d/%m/%y",  # 31/12/24
    "%d %b %Y",  # 31 Dec 2024
    "%d-%b-%Y",  # 16-Jan-2025
    "%d %B %Y",  # 31 December 2024
    "%Y-%m-%d",  # 2024-12-31
    "%Y/%m/%d",  # 2024/12/31
    "%m-%d-%Y",  # 12-31-2024 (US)
    "%m/%d/%Y",  # 12/31/2024 (US)
    "%b %d %Y",  # Dec 31 2024
    "%B %d %Y",  # December 31 2024
    "%d-%b-%y",  # 16-Jan-25
)

_ISO_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})[ T]\d{2}:\d{2}")


def from_excel_serial(serial: float) -> Optional[date]:
    """
    Convert a spreadsheet serial day number to a date.

    Serials >= 60 are shifted back one day to undo the 1900 leap-year bug.
    Fractional parts (time of day) are dropped.

    Returns:
        date, or None for serials < 1 or out of range
    """
    if isinstance(serial, bool) or not math.isfinite(serial) or serial < 1:
        return None

    adjusted = serial - 1 if serial >= EXCEL_LEAP_BUG_SERIAL else serial

    try:
        return EXCEL_EPOCH + timedelta(days=int(adjusted))
    except OverflowError:
        return None


def parse_date_string(text: str, date_format: Optional[str] = None) -> Optional[date]:
    """
    Parse a date from free-form text.

    Args:
        text: Cell text
        date_format: Optional caller-supplied strptime pattern, tried first

    Returns:
        date of the first matching pattern, or None
    """
    trimmed = text.strip()
    if not trimmed:
        return None

    iso = _ISO_DATETIME_RE.match(trimmed)
    if iso:
        trimmed = iso.group(1)

    formats = DATE_FORMATS if not date_format else (date_format, *DATE_FORMATS)
    for fmt in formats:
        try:
            return datetime.strptime(trimmed, fmt).date()
        except ValueError:
            continue

    return None


def normalize_date(cell: Any, date_format: Optional[str] = None) -> Optional[date]:
    """
    Normalize a spreadsheet cell to a calendar date.

    Accepts native date/datetime values, numeric serial dates and text.
    """
    if cell is None or isinstance(cell, bool):
        return None
    if isinstance(cell, datetime):
        return cell.date()
    if isinstance(cell, date):
        return cell
    if isinstance(cell, (int, float)):
        return from_excel_serial(float(cell))
    if isinstance(cell, Decimal):
        return from_excel_serial(float(cell)) if cell.is_finite() else None
    if isinstance(cell, str):
        return parse_date_string(cell, date_format)
    return None


# ============================================================================
# Amounts
# ============================================================================

# Removed in this order ("Rs." before "Rs")
CURRENCY_TOKENS = ("$", "₹", "Rs.", "Rs", "INR", "USD", "EUR", "GBP")

# Literals meaning "no amount", not zero
EMPTY_AMOUNT_LITERALS = ("", "-", "0")


def clean_amount(text: str) -> Optional[str]:
    """
    Strip currency tokens and formatting from amount text.

    (100.00) -> -100.00, 100.00CR -> 100.00, 100.00DR -> -100.00

    Returns:
        Cleaned numeric text, or None when the cell holds no amount
    """
    cleaned = text.strip()
    if cleaned in EMPTY_AMOUNT_LITERALS:
        return None

    for token in CURRENCY_TOKENS:
        cleaned = cleaned.replace(token, "")

    # Thousands separators and any inner whitespace
    cleaned = cleaned.replace(",", "")
    cleaned = "".join(cleaned.split())

    if len(cleaned) >= 2 and cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = f"-{cleaned[1:-1]}"

    if cleaned.endswith("CR"):
        cleaned = cleaned[:-2]
    elif cleaned.endswith(("Dr", "DR")):
        cleaned = f"-{cleaned[:-2]}"

    if not cleaned or cleaned == "-":
        return None

    return cleaned


def parse_amount_string(text: str) -> Optional[Decimal]:
    """Parse amount text into a Decimal (None when absent or malformed)."""
    cleaned = clean_amount(text)
    if cleaned is None:
        return None

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None

    return value if value.is_finite() else None


def normalize_amount(cell: Any) -> Optional[Decimal]:
    """
    Normalize a spreadsheet cell to a Decimal amount.

    Numeric cells are taken as-is; floats go through str() so 0.1
    stays 0.1 instead of its binary expansion.
    """
    if cell is None or isinstance(cell, bool):
        return None
    if isinstance(cell, Decimal):
        return cell if cell.is_finite() else None
    if isinstance(cell, int):
        return Decimal(cell)
    if isinstance(cell, float):
        if not math.isfinite(cell):
            return None
        return Decimal(str(cell))
    if isinstance(cell, str):
        return parse_amount_string(cell)
    return None


# ============================================================================
# Generic cell helpers
# ============================================================================


def cell_to_string(cell: Any) -> str:
    """
    Render a cell as text.

    Integral floats lose their ".0" so numeric cheque numbers read
    naturally ("123456", not "123456.0").
    """
    if cell is None:
        return ""
    if isinstance(cell, str):
        return cell
    if isinstance(cell, bool):
        return "true" if cell else "false"
    if isinstance(cell, float):
        if not math.isfinite(cell):
            return ""
        if cell.is_integer():
            return str(int(cell))
        return str(cell)
    if isinstance(cell, datetime):
        if cell.time() == datetime.min.time():
            return cell.date().isoformat()
        return cell.isoformat(sep=" ")
    if isinstance(cell, date):
        return cell.isoformat()
    return str(cell)


def is_cell_empty(cell: Any) -> bool:
    """True for missing cells, NaN and whitespace-only text."""
    if cell is None:
        return True
    if isinstance(cell, str):
        return not cell.strip()
    if isinstance(cell, float):
        return math.isnan(cell)
    return False


def is_row_empty(row: Sequence[Any]) -> bool:
    """True if every cell in the row is empty."""
    return all(is_cell_empty(cell) for cell in row)


def row_text(row: Sequence[Any]) -> str:
    """Lowercased, space-joined text of a row (for keyword checks)."""
    return " ".join(cell_to_string(cell).lower() for cell in row)


# ============================================================================
# Column inference
# ============================================================================

DESCRIPTION_KEYWORDS = ("description", "particulars", "narration", "details", "remark")
DEBIT_KEYWORDS = ("debit", "withdrawal", "withdraw")
CREDIT_KEYWORDS = ("credit", "deposit")
REFERENCE_KEYWORDS = ("ref", "cheque", "check", "transaction id", "txn id")
TYPE_KEYWORDS = ("type", "mode", "category")
POSTED_DATE_KEYWORDS = ("post", "value", "txn")


@dataclass
class ColumnMapping:
    """Column index per semantic role (None = column not present)."""

    date: Optional[int] = None
    posted_date: Optional[int] = None
    description: Optional[int] = None
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    balance: Optional[int] = None
    reference: Optional[int] = None
    transaction_type: Optional[int] = None

    def is_valid(self) -> bool:
        """Usable only with a date and at least one amount-bearing column."""
        return self.date is not None and (
            self.amount is not None or self.debit is not None or self.credit is not None
        )

    def as_dict(self) -> dict[str, int]:
        """Mapped roles only."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(kw in text for kw in keywords)


def detect_columns(headers: Sequence[Any]) -> ColumnMapping:
    """
    Infer column roles from a header row.

    Matching is a case-insensitive substring check. The first header
    matching a role wins; later headers for the same role are ignored.
    Debit/credit/balance are checked before the generic "amount" keyword
    so "Withdrawal Amount" maps to debit.
    """
    mapping = ColumnMapping()

    for i, header in enumerate(headers):
        lower = cell_to_string(header).strip().lower()
        if not lower:
            continue

        if "date" in lower:
            if _contains_any(lower, POSTED_DATE_KEYWORDS):
                if mapping.posted_date is None:
                    mapping.posted_date = i
            elif mapping.date is None:
                mapping.date = i
        elif _contains_any(lower, DESCRIPTION_KEYWORDS):
            if mapping.description is None:
                mapping.description = i
        elif _contains_any(lower, DEBIT_KEYWORDS) or lower == "dr":
            if mapping.debit is None:
                mapping.debit = i
        elif _contains_any(lower, CREDIT_KEYWORDS) or lower == "cr":
            if mapping.credit is None:
                mapping.credit = i
        elif "balance" in lower:
            if mapping.balance is None:
                mapping.balance = i
        elif "amount" in lower:
            if mapping.amount is None:
                mapping.amount = i
        elif _contains_any(lower, REFERENCE_KEYWORDS):
            if mapping.reference is None:
                mapping.reference = i
        elif _contains_any(lower, TYPE_KEYWORDS):
            if mapping.transaction_type is None:
                mapping.transaction_type = i

    # A lone "Value Date"/"Txn Date" column is still the transaction date
    if mapping.date is None and mapping.posted_date is not None:
        mapping.date = mapping.posted_date

    return mapping

"""
Statement format parsers.

Provides:
- FormatParser: base class for (institution, format) parsers
- LayoutExcelParser: shared extraction over a fixed bank layout
- GenericExcelParser: header-inferring last-resort parser
- Cell normalization helpers (dates, amounts, column inference)
"""

from .base import FileFormat, FormatParser
from .cells import ColumnMapping, detect_columns, normalize_amount, normalize_date
from .errors import (
    FileNotFound,
    IoError,
    OtherParserError,
    ParseError,
    ParserError,
    UnsupportedFormat,
)
from .excel import ExcelReader
from .generic import GenericExcelParser
from .layout import LayoutExcelParser, StaticLayout

__all__ = [
    "FileFormat",
    "FormatParser",
    "LayoutExcelParser",
    "StaticLayout",
    "GenericExcelParser",
    "ExcelReader",
    "ColumnMapping",
    "detect_columns",
    "normalize_amount",
    "normalize_date",
    "ParserError",
    "FileNotFound",
    "UnsupportedFormat",
    "ParseError",
    "IoError",
    "OtherParserError",
]

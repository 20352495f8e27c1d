"""
Bank-specific implementations.

Each bank exposes a static descriptor (for detection) and one parser per
supported file format.
"""

from .base import CONTENT_MATCH_WEIGHT, FILENAME_MATCH_WEIGHT, Bank
from .icici import ICICIBank, IciciExcelParser
from .idfc_first import IDFCFirstBank, IdfcFirstExcelParser

__all__ = [
    "Bank",
    "ICICIBank",
    "IDFCFirstBank",
    "IciciExcelParser",
    "IdfcFirstExcelParser",
    "FILENAME_MATCH_WEIGHT",
    "CONTENT_MATCH_WEIGHT",
]

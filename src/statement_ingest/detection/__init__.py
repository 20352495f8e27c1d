"""
Bank detection module.

Scores registered institutions against a file's name and content and
picks the most likely one.
"""

from .detector import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    FILENAME_ONLY_CONFIDENCE,
    BankDetector,
    DetectionResult,
    describe_confidence,
    document_text,
)
from .patterns import (
    AccountNumberRegex,
    ContentContains,
    ContentRegex,
    DetectionPattern,
    FilenamePattern,
    InstitutionDescriptor,
)

__all__ = [
    "BankDetector",
    "DetectionResult",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "FILENAME_ONLY_CONFIDENCE",
    "describe_confidence",
    "document_text",
    "DetectionPattern",
    "ContentContains",
    "ContentRegex",
    "FilenamePattern",
    "AccountNumberRegex",
    "InstitutionDescriptor",
]

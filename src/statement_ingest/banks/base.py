"""
Base institution interface.

A Bank bundles an InstitutionDescriptor with one FormatParser per
supported file format. Instances are built once and shared read-only.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..detection.patterns import InstitutionDescriptor
from ..parsers.base import FileFormat, FormatParser

# Confidence contributions (summed, capped at 1.0)
FILENAME_MATCH_WEIGHT = 0.4
CONTENT_MATCH_WEIGHT = 0.6


class Bank(ABC):
    """
    Base class for institution implementations.

    Each bank provides its static descriptor and its format parsers.
    """

    @property
    @abstractmethod
    def info(self) -> InstitutionDescriptor:
        """Static descriptor (name, code, aliases, detection patterns)."""
        pass

    @abstractmethod
    def parsers(self) -> list[FormatParser]:
        """All parsers this bank provides, one per supported format."""
        pass

    @property
    def code(self) -> str:
        return self.info.code

    @property
    def name(self) -> str:
        return self.info.name

    def get_parser(self, file_format: FileFormat) -> Optional[FormatParser]:
        """Parser for the given format, or None if unsupported."""
        for parser in self.parsers():
            if parser.format == file_format:
                return parser
        return None

    def can_handle(self, file_path: str, content: Optional[bytes] = None) -> bool:
        """Cheap check on filename, then on raw content if given."""
        if self.info.matches_filename(file_path):
            return True
        if content is not None:
            return self.info.matches_content(content.decode("utf-8", errors="replace"))
        return False

    def detect_confidence(self, file_path: str, content: str) -> float:
        """
        Score how likely this bank produced the file.

        +0.4 for a filename/alias match, +0.6 for a content match,
        capped at 1.0.
        """
        confidence = 0.0

        if self.info.matches_filename(file_path):
            confidence += FILENAME_MATCH_WEIGHT

        if self.info.matches_content(content):
            confidence += CONTENT_MATCH_WEIGHT

        return min(1.0, confidence)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.code}>"

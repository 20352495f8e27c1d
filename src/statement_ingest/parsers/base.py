"""
Base format parser interface and file format enumeration.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional

from ..schemas.transaction import ParseResult, ParserOptions
from .errors import FileNotFound, IoError


class FileFormat(str, Enum):
    """Statement file formats known to the system."""

    EXCEL = "excel"
    OFX = "ofx"
    QFX = "qfx"

    @property
    def extension(self) -> str:
        """Canonical file extension for this format."""
        return _CANONICAL_EXTENSIONS[self]

    def as_str(self) -> str:
        """String tag used in parser names and metadata."""
        return self.value

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_extension(cls, extension: str) -> Optional["FileFormat"]:
        """
        Map a file extension (with or without the dot) to a format.

        Returns:
            FileFormat, or None if the extension is not recognized
        """
        ext = extension.strip().lstrip(".").lower()
        return _EXTENSION_MAP.get(ext)

    @classmethod
    def from_filename(cls, filename: str) -> Optional["FileFormat"]:
        """Map a filename's extension to a format (None if absent/unknown)."""
        suffix = Path(filename).suffix
        if not suffix:
            return None
        return cls.from_extension(suffix)


_CANONICAL_EXTENSIONS = {
    FileFormat.EXCEL: "xlsx",
    FileFormat.OFX: "ofx",
    FileFormat.QFX: "qfx",
}

_EXTENSION_MAP = {
    "xlsx": FileFormat.EXCEL,
    "xls": FileFormat.EXCEL,
    "ofx": FileFormat.OFX,
    "qfx": FileFormat.QFX,
}


class FormatParser(ABC):
    """
    Base class for institution-specific format parsers.

    Each parser handles one (institution, file format) pair. Parsers hold
    no per-call state, so a single instance is shared across threads.
    They never assume a target ledger account and perform no I/O beyond
    reading their input.
    """

    @property
    @abstractmethod
    def format(self) -> FileFormat:
        """The file format this parser handles."""
        pass

    @property
    @abstractmethod
    def bank_code(self) -> str:
        """Code of the institution this parser belongs to."""
        pass

    @property
    def name(self) -> str:
        """Parser identifier, e.g. "icici-excel"."""
        return f"{self.bank_code}-{self.format.as_str()}"

    def can_parse(self, file_path: str, content: Optional[bytes] = None) -> bool:
        """
        Cheap check whether this parser should be attempted.

        Default: the file extension maps to this parser's format.
        """
        return FileFormat.from_filename(file_path) == self.format

    def parse(self, file_path: str | Path, options: Optional[ParserOptions] = None) -> ParseResult:
        """
        Parse a statement file from disk.

        Raises:
            FileNotFound: If the path does not exist
            IoError: If the file cannot be read
            ParseError: On structural failures
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFound(str(file_path))

        try:
            data = path.read_bytes()
        except OSError as e:
            raise IoError(f"{file_path}: {e}") from e

        return self.parse_bytes(data, options)

    @abstractmethod
    def parse_bytes(self, data: bytes, options: Optional[ParserOptions] = None) -> ParseResult:
        """
        Parse a statement from an in-memory buffer.

        Args:
            data: Raw file bytes
            options: Parsing hints (defaults apply when None)

        Returns:
            ParseResult with transactions in document order
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

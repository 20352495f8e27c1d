"""
Bank detection.

Identifies which institution produced a statement file by combining
filename matching, content keyword analysis and file-format detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Any, Optional

from ..parsers.base import FileFormat
from ..parsers.errors import ParseError, ParserError, UnsupportedFormat
from ..parsers.excel import ExcelReader

if TYPE_CHECKING:
    from ..banks.base import Bank

logger = logging.getLogger(__name__)

# Minimum score for a content/filename detection to be accepted
DEFAULT_CONFIDENCE_THRESHOLD = 0.3

# Fixed score for the filename-only path
FILENAME_ONLY_CONFIDENCE = 0.7


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of bank detection. Produced fresh per call, never stored."""

    bank: str
    confidence: float
    format: FileFormat
    suggested_parser: str
    detection_reason: str

    @property
    def confidence_percent(self) -> int:
        """Confidence as an integer percentage (for statement metadata)."""
        return int(self.confidence * 100)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bank": self.bank,
            "confidence": self.confidence,
            "format": self.format.value,
            "suggested_parser": self.suggested_parser,
            "detection_reason": self.detection_reason,
        }


def describe_confidence(confidence: float) -> str:
    """Human-readable rationale for a confidence score."""
    if confidence > 0.8:
        return "Strong match from filename and content"
    elif confidence > 0.5:
        return "Moderate match from filename or content"
    else:
        return "Weak match, low confidence"


def document_text(data: bytes, file_format: Optional[FileFormat] = None) -> str:
    """
    Text used for content pattern matching.

    The raw bytes decoded leniently, plus the cell text of the workbook
    for spreadsheets. An unreadable workbook contributes nothing.
    """
    text = data.decode("utf-8", errors="replace")

    if file_format == FileFormat.EXCEL and ExcelReader.looks_like_workbook(data):
        try:
            text = f"{text}\n{ExcelReader.from_bytes(data).text()}"
        except ParserError as e:
            logger.debug("Workbook text unavailable for detection: %s", e)

    return text


class BankDetector:
    """
    Bank detector for automatic institution identification.

    Holds the registered banks in registration order. The detector is
    read-only after setup and safe to share across threads.
    """

    def __init__(
        self,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        filename_confidence: float = FILENAME_ONLY_CONFIDENCE,
    ) -> None:
        self.confidence_threshold = confidence_threshold
        self.filename_confidence = filename_confidence
        self._banks: list[Bank] = []

    def register_bank(self, bank: Bank) -> None:
        """Register a bank, replacing any earlier bank with the same code."""
        self._banks = [b for b in self._banks if b.code != bank.code]
        self._banks.append(bank)

    def detect(self, file_path: str, content: bytes) -> DetectionResult:
        """
        Detect bank and format from a file's name and bytes.

        Raises:
            ParseError: No extension, or no bank scored above the threshold
            UnsupportedFormat: Unknown extension
        """
        file_format = self.detect_format(file_path)
        text = document_text(content, file_format)

        detection = self.detect_from_content(text, file_path, file_format)
        if detection is None:
            raise ParseError(f"Could not detect bank from file: {file_path}")

        return detection

    def detect_from_content(
        self,
        content: str,
        file_path: str,
        file_format: FileFormat,
    ) -> Optional[DetectionResult]:
        """
        Score every bank that has a parser for the format; keep the best.

        Ties keep the bank registered first. Returns None when the best
        score is below the confidence threshold.
        """
        best: Optional[DetectionResult] = None

        for bank in self._banks:
            parser = bank.get_parser(file_format)
            if parser is None:
                continue

            confidence = bank.detect_confidence(file_path, content)
            logger.debug("Detection score for %s: %.2f", bank.code, confidence)

            if best is None or confidence > best.confidence:
                best = DetectionResult(
                    bank=bank.code,
                    confidence=confidence,
                    format=file_format,
                    suggested_parser=parser.name,
                    detection_reason=describe_confidence(confidence),
                )

        if best is None or best.confidence < self.confidence_threshold:
            return None

        return best

    def detect_from_filename(self, filename: str) -> Optional[DetectionResult]:
        """
        Lower-assurance detection from the filename alone.

        The first bank whose aliases or filename patterns match, and that
        has a parser for the format, wins at a fixed confidence.
        """
        name = PurePath(filename).name
        if not name:
            return None

        try:
            file_format = self.detect_format(filename)
        except ParserError:
            return None

        for bank in self._banks:
            if not bank.info.matches_filename(name):
                continue
            parser = bank.get_parser(file_format)
            if parser is not None:
                return DetectionResult(
                    bank=bank.code,
                    confidence=self.filename_confidence,
                    format=file_format,
                    suggested_parser=parser.name,
                    detection_reason="Matched from filename pattern",
                )

        return None

    def detect_format(self, file_path: str) -> FileFormat:
        """
        Detect file format from the extension.

        Raises:
            ParseError: If the path has no extension
            UnsupportedFormat: If the extension is not recognized
        """
        suffix = PurePath(file_path).suffix
        if not suffix or suffix == ".":
            raise ParseError(f"No file extension found: {file_path}")

        extension = suffix[1:]
        file_format = FileFormat.from_extension(extension)
        if file_format is None:
            raise UnsupportedFormat(f"Unsupported file extension: {extension}")

        return file_format

    def registered_banks(self) -> list[str]:
        """Codes of registered banks, in registration order."""
        return [b.code for b in self._banks]

    def get_bank_info(self, code: str) -> Optional[Bank]:
        """Registered bank with the given code."""
        for bank in self._banks:
            if bank.code == code:
                return bank
        return None

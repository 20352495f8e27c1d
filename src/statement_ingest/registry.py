"""
Parser registry - chooses and applies institution parsers.

Composes bank detection, parser selection and the extension-based fallback
into one entry point. Tries, in order:
1. Detected bank's parser for the detected format
2. Every registered bank's parser for the file's format
3. Generic header-inference parser (if enabled)
"""

import logging
from typing import Optional

from .banks import Bank, ICICIBank, IDFCFirstBank
from .config import ParsingConfig
from .detection import BankDetector, DetectionResult
from .parsers.base import FileFormat, FormatParser
from .parsers.errors import ParserError, UnsupportedFormat
from .parsers.generic import GenericExcelParser
from .schemas.transaction import ParseResult, ParserOptions

logger = logging.getLogger(__name__)


def default_banks() -> list[Bank]:
    """Institutions registered on every new registry, in priority order."""
    return [ICICIBank(), IDFCFirstBank()]


class ParserRegistry:
    """
    Registry of institutions and their format parsers.

    Built once at startup and shared read-only across parse requests;
    register_bank() is for setup only.
    """

    def __init__(self, config: Optional[ParsingConfig] = None):
        self.config = config or ParsingConfig()
        self._detector = BankDetector(
            confidence_threshold=self.config.detection_threshold,
            filename_confidence=self.config.filename_confidence,
        )
        self._banks: dict[str, Bank] = {}
        self._generic_parser: Optional[FormatParser] = (
            GenericExcelParser() if self.config.generic_fallback else None
        )

        for bank in default_banks():
            self.register_bank(bank)

    @property
    def detector(self) -> BankDetector:
        return self._detector

    def register_bank(self, bank: Bank) -> None:
        """Register a bank. A second bank with the same code replaces the first."""
        self._banks.pop(bank.code, None)
        self._banks[bank.code] = bank
        self._detector.register_bank(bank)

    def get_bank(self, code: str) -> Optional[Bank]:
        return self._banks.get(code)

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def auto_parse(
        self,
        filename: str,
        data: bytes,
        options: Optional[ParserOptions] = None,
    ) -> ParseResult:
        """
        Detect the bank and parse the file.

        Falls back to extension-based parsing when detection is
        inconclusive or the detected bank has no parser for the format.

        Raises:
            UnsupportedFormat: Unknown extension, or no parser accepted the file
            ParseError: No extension
        """
        result, _ = self.auto_parse_with_detection(filename, data, options)
        return result

    def auto_parse_with_detection(
        self,
        filename: str,
        data: bytes,
        options: Optional[ParserOptions] = None,
    ) -> tuple[ParseResult, Optional[DetectionResult]]:
        """
        Like auto_parse, also returning the detection that drove the parse.

        The detection is None when the extension fallback produced the result.
        """
        try:
            detection: Optional[DetectionResult] = self._detector.detect(filename, data)
        except ParserError as e:
            logger.debug("Detection inconclusive for %s: %s", filename, e)
            detection = None

        if detection is not None:
            bank = self._banks.get(detection.bank)
            parser = bank.get_parser(detection.format) if bank else None
            if bank is not None and parser is not None:
                logger.info(
                    "Detected %s for %s (confidence %.2f)",
                    bank.name,
                    filename,
                    detection.confidence,
                )
                result = parser.parse_bytes(data, options).with_bank_name(bank.name)
                logger.info(
                    "Parsed %d transactions from %s with %s",
                    len(result),
                    filename,
                    parser.name,
                )
                return result, detection

        return self.parse_by_extension(filename, data, options), None

    def parse_with_bank(
        self,
        bank_code: str,
        file_format: FileFormat,
        data: bytes,
        options: Optional[ParserOptions] = None,
    ) -> ParseResult:
        """
        Parse with an explicitly chosen bank, bypassing detection.

        Raises:
            UnsupportedFormat: Unknown bank code, or no parser for the format
        """
        bank = self._banks.get(bank_code)
        if bank is None:
            raise UnsupportedFormat(f"Unknown bank: {bank_code}")

        parser = bank.get_parser(file_format)
        if parser is None:
            raise UnsupportedFormat(
                f"Bank {bank_code} does not support format {file_format.as_str()}"
            )

        result = parser.parse_bytes(data, options).with_bank_name(bank.name)
        logger.info("Parsed %d transactions with %s", len(result), parser.name)
        return result

    def parse_by_extension(
        self,
        filename: str,
        data: bytes,
        options: Optional[ParserOptions] = None,
    ) -> ParseResult:
        """
        Try every registered bank's parser for the file's format in turn.

        The first parse that yields transactions wins; individual parser
        failures are not propagated. A bank parser that finds no
        transactions does not stop the search: the generic parser still
        runs, and the first empty bank result is returned only when
        nothing produced transactions.

        Raises:
            ParseError: No extension
            UnsupportedFormat: Unknown extension, or every parser failed
        """
        file_format = self._detector.detect_format(filename)
        empty_result: Optional[ParseResult] = None

        for bank in self._banks.values():
            parser = bank.get_parser(file_format)
            if parser is None or not parser.can_parse(filename, data):
                continue
            try:
                result = parser.parse_bytes(data, options).with_bank_name(bank.name)
            except ParserError as e:
                logger.debug("%s could not parse %s: %s", parser.name, filename, e)
                continue

            if not result.transactions:
                logger.debug("%s found no transactions in %s", parser.name, filename)
                if empty_result is None:
                    empty_result = result
                continue

            logger.info(
                "Parsed %d transactions from %s with %s (extension fallback)",
                len(result),
                filename,
                parser.name,
            )
            return result

        generic = self._generic_parser
        if generic is not None and generic.format == file_format:
            try:
                result = generic.parse_bytes(data, options)
            except ParserError as e:
                logger.debug("%s could not parse %s: %s", generic.name, filename, e)
            else:
                if result.transactions or empty_result is None:
                    logger.info(
                        "Parsed %d transactions from %s with %s",
                        len(result),
                        filename,
                        generic.name,
                    )
                    return result

        if empty_result is not None:
            logger.info("No transactions found in %s (%s)", filename, empty_result.bank_name)
            return empty_result

        raise UnsupportedFormat(f"No parser could handle file: {filename}")

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_banks(self) -> list[str]:
        """Registered bank codes, in registration order."""
        return list(self._banks)

    def bank_info(self) -> list[tuple[str, str]]:
        """(code, display name) of every registered bank."""
        return [(code, bank.name) for code, bank in self._banks.items()]

    def get_bank_parsers(self, bank_code: str) -> list[str]:
        """Parser names for a bank (empty if the code is unknown)."""
        bank = self._banks.get(bank_code)
        if bank is None:
            return []
        return [p.name for p in bank.parsers()]

    def supported_extensions(self) -> list[str]:
        """File extensions accepted for upload."""
        return ["xls", "xlsx"]

    def list(self) -> list[str]:
        """Format tags handled by at least one registered parser."""
        formats: list[str] = []
        for bank in self._banks.values():
            for parser in bank.parsers():
                tag = parser.format.as_str()
                if tag not in formats:
                    formats.append(tag)
        return formats

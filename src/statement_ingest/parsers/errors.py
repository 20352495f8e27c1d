"""
Parser error types.

Row-level anomalies never surface here; extractors skip those rows.
These errors describe document-level failures only.
"""


class ParserError(Exception):
    """Base class for all parsing failures."""

    prefix = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class FileNotFound(ParserError):
    """Path-based entry point was given a path that does not exist."""

    prefix = "File not found"


class UnsupportedFormat(ParserError):
    """Extension unrecognized, or no parser registered for the format."""

    prefix = "Unsupported format"


class ParseError(ParserError):
    """Structural failure: unreadable document, header not found, too few rows."""

    prefix = "Parse error"


class IoError(ParserError):
    """Low-level read failure."""

    prefix = "IO error"


class OtherParserError(ParserError):
    """Anything that does not fit the other kinds."""

    prefix = "Error"

"""
Detection patterns and institution descriptors.

Patterns are immutable: expressions are compiled once when the
descriptor is built at startup and only read afterwards.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional

logger = logging.getLogger(__name__)


def _compile(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.warning("Invalid detection pattern %r: %s", pattern, e)
        return None


@dataclass(frozen=True)
class DetectionPattern:
    """Base matching strategy. Matches nothing unless overridden."""

    def matches_content(self, content: str) -> bool:
        return False

    def matches_filename(self, filename: str) -> bool:
        return False


@dataclass(frozen=True)
class ContentContains(DetectionPattern):
    """Content contains any of the keywords (case-insensitive)."""

    keywords: tuple[str, ...]

    def matches_content(self, content: str) -> bool:
        lower = content.lower()
        return any(kw.lower() in lower for kw in self.keywords)


@dataclass(frozen=True)
class _RegexPattern(DetectionPattern):
    pattern: str
    _regex: Optional[re.Pattern] = field(init=False, repr=False, compare=False, default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", _compile(self.pattern))

    def search(self, text: str) -> Optional[re.Match]:
        if self._regex is None:
            return None
        return self._regex.search(text)


@dataclass(frozen=True)
class ContentRegex(_RegexPattern):
    """Content matches a regular expression."""

    def matches_content(self, content: str) -> bool:
        return self.search(content) is not None


@dataclass(frozen=True)
class FilenamePattern(_RegexPattern):
    """Filename matches a regular expression."""

    def matches_filename(self, filename: str) -> bool:
        return self.search(filename) is not None


@dataclass(frozen=True)
class AccountNumberRegex(_RegexPattern):
    """
    Institution-specific account number format found in the content.

    When the expression has a group, the first group is the account number.
    """

    def matches_content(self, content: str) -> bool:
        return self.search(content) is not None

    def extract(self, content: str) -> Optional[str]:
        match = self.search(content)
        if match is None:
            return None
        return match.group(1) if match.groups() else match.group(0)


@dataclass(frozen=True)
class InstitutionDescriptor:
    """
    Static information about one institution.

    name: display name, e.g. "ICICI Bank"
    code: unique short key, e.g. "icici"
    aliases: cheap filename substrings
    detection_patterns: ordered matching strategies
    """

    name: str
    code: str
    aliases: tuple[str, ...] = ()
    detection_patterns: tuple[DetectionPattern, ...] = ()

    def matches_content(self, content: str) -> bool:
        """True if any content pattern matches."""
        return any(p.matches_content(content) for p in self.detection_patterns)

    def matches_filename(self, filename: str) -> bool:
        """True if an alias or a filename pattern matches the file's name."""
        name = PurePath(filename).name or filename
        lower = name.lower()
        if any(alias.lower() in lower for alias in self.aliases):
            return True
        return any(p.matches_filename(name) for p in self.detection_patterns)

    def extract_account_number(self, content: str) -> Optional[str]:
        """Account number found by the first matching AccountNumberRegex."""
        for pattern in self.detection_patterns:
            if isinstance(pattern, AccountNumberRegex):
                number = pattern.extract(content)
                if number:
                    return number
        return None

"""
Configuration management (SSOT).

This module defines ALL configuration for the statement ingest application.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- Detection thresholds are fractions in [0, 1]
- The ledger database path is the only persistent state
- Uploaded files are kept under upload_dir with a unique prefix
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# 10 MiB
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class ParsingConfig:
    """Detection and parsing settings."""

    # Minimum combined filename/content score to accept a bank
    detection_threshold: float = 0.3
    # Fixed confidence reported for filename-only detection
    filename_confidence: float = 0.7
    # Try the header-inferring parser when no bank parser succeeds
    generic_fallback: bool = True


@dataclass
class LedgerConfig:
    """Ledger store settings."""

    db_path: Path = field(default_factory=lambda: Path("data/ledger.db"))


@dataclass
class IngestConfig:
    """Statement upload settings."""

    upload_dir: Path = field(default_factory=lambda: Path("data/uploads"))
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    # Extensions accepted on upload (lowercase, no dot)
    allowed_extensions: tuple[str, ...] = ("xls", "xlsx")


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not 0.0 <= self.parsing.detection_threshold <= 1.0:
            errors.append("parsing.detection_threshold must be between 0 and 1")
        if not 0.0 <= self.parsing.filename_confidence <= 1.0:
            errors.append("parsing.filename_confidence must be between 0 and 1")

        if self.ingest.max_file_size <= 0:
            errors.append("ingest.max_file_size must be positive")
        if not self.ingest.allowed_extensions:
            errors.append("ingest.allowed_extensions must not be empty")

        if not str(self.ledger.db_path):
            errors.append("ledger.db_path is required")

        return errors

    def validate_or_raise(self) -> None:
        """Raise ConfigValidationError listing every problem found."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables can
    override config values:
    - STATEMENT_INGEST_DB_PATH
    - STATEMENT_INGEST_UPLOAD_DIR
    - STATEMENT_INGEST_DETECTION_THRESHOLD
    - STATEMENT_INGEST_GENERIC_FALLBACK (true/false)
    - STATEMENT_INGEST_MAX_FILE_SIZE (bytes)

    Raises:
        ConfigValidationError: If a value has the wrong type
    """
    if config_path.exists():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"{config_path}: invalid YAML: {e}") from e
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path}: top level must be a mapping")

    try:
        # Parsing config
        parsing_data = data.get("parsing", {}) or {}
        parsing = ParsingConfig(
            detection_threshold=float(
                os.environ.get(
                    "STATEMENT_INGEST_DETECTION_THRESHOLD",
                    parsing_data.get("detection_threshold", 0.3),
                )
            ),
            filename_confidence=float(parsing_data.get("filename_confidence", 0.7)),
            generic_fallback=_env_bool(
                "STATEMENT_INGEST_GENERIC_FALLBACK",
                bool(parsing_data.get("generic_fallback", True)),
            ),
        )

        # Ledger config
        ledger_data = data.get("ledger", {}) or {}
        ledger = LedgerConfig(
            db_path=Path(
                os.environ.get(
                    "STATEMENT_INGEST_DB_PATH", ledger_data.get("db_path", "data/ledger.db")
                )
            ),
        )

        # Ingest config
        ingest_data = data.get("ingest", {}) or {}
        extensions = ingest_data.get("allowed_extensions", ["xls", "xlsx"])
        ingest = IngestConfig(
            upload_dir=Path(
                os.environ.get(
                    "STATEMENT_INGEST_UPLOAD_DIR",
                    ingest_data.get("upload_dir", "data/uploads"),
                )
            ),
            max_file_size=int(
                os.environ.get(
                    "STATEMENT_INGEST_MAX_FILE_SIZE",
                    ingest_data.get("max_file_size", DEFAULT_MAX_FILE_SIZE),
                )
            ),
            allowed_extensions=tuple(str(e).lower().lstrip(".") for e in extensions),
        )
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"{config_path}: {e}") from e

    return Config(parsing=parsing, ledger=ledger, ingest=ingest)


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Bank Statement Ingest Configuration

# Bank detection and parsing
parsing:
  detection_threshold: 0.3     # Minimum score to accept a detected bank
  filename_confidence: 0.7     # Confidence reported for filename-only matches
  generic_fallback: true       # Infer columns from headers when no bank parser fits

# Ledger database
ledger:
  db_path: "data/ledger.db"

# Statement uploads
ingest:
  upload_dir: "data/uploads"
  max_file_size: 10485760      # 10 MiB
  allowed_extensions: ["xls", "xlsx"]
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)

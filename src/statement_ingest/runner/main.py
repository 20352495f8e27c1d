"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..ledger import LedgerError, SQLiteLedgerStore
from ..parsers.base import FileFormat
from ..parsers.errors import FileNotFound, IoError, ParserError, UnsupportedFormat
from ..registry import ParserRegistry
from ..schemas.transaction import ParseResult, ParserOptions
from ..services import StatementIngestService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="statement-ingest",
        description="Detect, parse and import bank statement exports",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # banks command
    subparsers.add_parser("banks", help="List supported banks and their parsers")

    # detect command
    detect_parser = subparsers.add_parser("detect", help="Detect which bank produced a file")
    detect_parser.add_argument("file", type=Path, help="Statement file")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a statement and print transactions")
    parse_parser.add_argument("file", type=Path, help="Statement file")
    parse_parser.add_argument(
        "--bank",
        type=str,
        help="Bank code to use instead of auto-detection",
    )
    parse_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parse_parser.add_argument(
        "--skip-rows",
        type=int,
        default=0,
        help="Rows to skip before header search (generic parser only)",
    )
    parse_parser.add_argument(
        "--date-format",
        type=str,
        help="strptime pattern tried before the built-in date formats",
    )

    # import command
    import_parser = subparsers.add_parser(
        "import", help="Upload a statement and import its transactions into the ledger"
    )
    import_parser.add_argument("file", type=Path, help="Statement file")
    import_parser.add_argument("--user-id", type=int, required=True, help="Ledger user ID")
    import_parser.add_argument("--account-id", type=int, required=True, help="Target account ID")

    # status command
    subparsers.add_parser("status", help="Show ledger and statement statistics")

    # init-config command
    subparsers.add_parser("init-config", help="Write a default config file")

    return parser


def _read_file(path: Path) -> bytes:
    if not path.exists():
        raise FileNotFound(str(path))
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoError(f"{path}: {e}") from e


def _print_result(result: ParseResult) -> None:
    print(f"\n🏦 Bank: {result.bank_name or 'unknown'}")
    if result.account_number:
        print(f"   Account: {result.account_number}")
    if result.start_date and result.end_date:
        print(f"   Period: {result.start_date} → {result.end_date}")
    print()
    for tx in result.transactions:
        sign = "-" if tx.transaction_type.value == "debit" else "+"
        print(f"  {tx.date}  {sign}{tx.amount:>12}  {tx.description}")
    print(f"\n✓ {len(result)} transaction(s)")


def cmd_banks(registry: ParserRegistry) -> int:
    """List supported banks."""
    print("\n🏦 Supported banks")
    print("=" * 40)
    for code, name in registry.bank_info():
        parsers = ", ".join(registry.get_bank_parsers(code))
        print(f"  {code:<12} {name:<20} [{parsers}]")
    print(f"\n  Extensions: {', '.join(registry.supported_extensions())}")
    return 0


def cmd_detect(registry: ParserRegistry, file: Path) -> int:
    """Detect the bank of a statement file."""
    data = _read_file(file)
    detection = registry.detector.detect(file.name, data)

    print(f"🔍 {file.name}")
    print(f"  Bank:       {detection.bank}")
    print(f"  Confidence: {detection.confidence_percent}%")
    print(f"  Format:     {detection.format.as_str()}")
    print(f"  Parser:     {detection.suggested_parser}")
    print(f"  Reason:     {detection.detection_reason}")
    return 0


def cmd_parse(
    registry: ParserRegistry,
    file: Path,
    bank: str | None,
    as_json: bool,
    options: ParserOptions,
) -> int:
    """Parse a statement file and print its transactions."""
    data = _read_file(file)

    if bank:
        file_format = FileFormat.from_filename(file.name)
        if file_format is None:
            raise UnsupportedFormat(f"Unsupported file extension: {file.suffix or '(none)'}")
        result = registry.parse_with_bank(bank, file_format, data, options)
    else:
        result = registry.auto_parse(file.name, data, options)

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)
    return 0


def cmd_import(
    config: Config,
    registry: ParserRegistry,
    file: Path,
    user_id: int,
    account_id: int,
) -> int:
    """Upload a statement and commit its transactions."""
    data = _read_file(file)
    store = SQLiteLedgerStore(config.ledger.db_path)
    service = StatementIngestService(registry, store, config.ingest)

    print(f"📤 Uploading {file.name}...")
    outcome = service.upload(user_id, file.name, data, account_id=account_id)
    statement = outcome.statement
    print(
        f"  Statement {statement.id}: {statement.transaction_count} transaction(s), "
        f"bank={statement.bank_name or 'unknown'}"
    )
    if outcome.previous_statement_id is not None:
        print(f"  ⚠ Same file as statement {outcome.previous_statement_id}")

    result = service.confirm_import(user_id, statement.id, account_id)
    print(
        f"\n✓ Imported: {result.created_count} created, "
        f"{result.skipped_count} skipped as duplicates"
    )
    return 0


def cmd_status(config: Config) -> int:
    """Show ledger status."""
    store = SQLiteLedgerStore(config.ledger.db_path)
    stats = store.get_stats()

    print("\n📊 Ledger Status")
    print("=" * 40)
    print(f"  Transactions:           {stats['transactions_total']}")
    print(f"  Statements total:       {stats['statements_total']}")
    print(f"  Statements completed:   {stats['statements_completed']}")
    print(f"  Statements failed:      {stats['statements_failed']}")
    print(f"  Statements pending:     {stats['statements_pending']}")
    print()

    return 0


def cmd_init_config(config_path: Path) -> int:
    """Write the default configuration file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
        config.validate_or_raise()
    except (ConfigValidationError, OSError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    registry = ParserRegistry(config.parsing)

    # Route to command
    try:
        if parsed.command == "banks":
            return cmd_banks(registry)
        elif parsed.command == "detect":
            return cmd_detect(registry, parsed.file)
        elif parsed.command == "parse":
            options = ParserOptions(date_format=parsed.date_format, skip_rows=parsed.skip_rows)
            return cmd_parse(registry, parsed.file, parsed.bank, parsed.json, options)
        elif parsed.command == "import":
            return cmd_import(config, registry, parsed.file, parsed.user_id, parsed.account_id)
        elif parsed.command == "status":
            return cmd_status(config)
        else:
            parser.print_help()
            return 1
    except (ParserError, LedgerError, OSError) as e:
        logger.debug("Command %s failed", parsed.command, exc_info=True)
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

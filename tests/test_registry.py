"""Tests for the parser registry and the generic fallback parser."""

import pytest
from conftest import build_workbook, icici_rows

from statement_ingest.banks import ICICIBank
from statement_ingest.config import ParsingConfig
from statement_ingest.parsers.base import FileFormat
from statement_ingest.parsers.errors import ParseError, UnsupportedFormat
from statement_ingest.parsers.generic import GenericExcelParser
from statement_ingest.registry import ParserRegistry
from statement_ingest.schemas.transaction import ParserOptions, TransactionType


@pytest.fixture
def registry():
    return ParserRegistry()


class TestAutoParse:
    """Tests for detection-driven parsing."""

    def test_detected_by_content(self, registry, idfc_xlsx):
        result, detection = registry.auto_parse_with_detection("statement.xlsx", idfc_xlsx)

        assert detection.bank == "idfc_first"
        assert detection.suggested_parser == "idfc_first-excel"
        assert result.bank_name == "IDFC First Bank"
        assert len(result) == 2

    def test_detected_by_filename_and_content(self, registry, icici_xlsx):
        result = registry.auto_parse("ICICI_statement.xlsx", icici_xlsx)

        assert result.bank_name == "ICICI Bank"
        assert result.account_number == "123456789012"

    def test_generic_fallback(self, registry, generic_xlsx):
        """Unknown banks fall through to header inference."""
        result, detection = registry.auto_parse_with_detection("export.xlsx", generic_xlsx)

        assert detection is None
        assert result.bank_name is None
        assert [(t.description, t.transaction_type) for t in result.transactions] == [
            ("Groceries", TransactionType.DEBIT),
            ("Refund", TransactionType.CREDIT),
        ]

    def test_unknown_bank_with_common_header(self, registry):
        """A plain "Transaction Date" export from another bank reaches the generic parser."""
        rows = [["Transaction Date", "Description", "Debit", "Credit", "Balance"]]
        rows += [
            [f"2024-03-{day:02d}", f"Purchase {day}", "10.00", None, "100.00"]
            for day in range(1, 16)
        ]
        result, detection = registry.auto_parse_with_detection("export.xlsx", build_workbook(rows))

        assert detection is None
        assert result.bank_name is None
        assert len(result) == 15
        assert result.transactions[0].description == "Purchase 1"

    def test_fallback_disabled(self, generic_xlsx):
        registry = ParserRegistry(ParsingConfig(generic_fallback=False))

        with pytest.raises(UnsupportedFormat, match="No parser could handle file: export.xlsx"):
            registry.auto_parse("export.xlsx", generic_xlsx)

    def test_unknown_extension(self, registry):
        with pytest.raises(UnsupportedFormat):
            registry.auto_parse("statement.pdf", b"ICICI Bank")

    def test_no_extension(self, registry):
        with pytest.raises(ParseError):
            registry.auto_parse("statement", b"ICICI Bank")

    def test_options_forwarded(self, registry):
        """Caller date format reaches the parser."""
        data = build_workbook(
            [
                ["Date", "Description", "Amount"],
                ["01/02/2024", "Fee", "-5.00"],
            ]
        )
        result = registry.auto_parse("export.xlsx", data, ParserOptions(date_format="%m/%d/%Y"))

        assert result.transactions[0].date.month == 1


class TestParseWithBank:
    """Tests for explicit bank selection."""

    def test_parse(self, registry, icici_xlsx):
        result = registry.parse_with_bank("icici", FileFormat.EXCEL, icici_xlsx)

        assert result.bank_name == "ICICI Bank"
        assert len(result) == 2

    def test_unknown_bank(self, registry, icici_xlsx):
        with pytest.raises(UnsupportedFormat, match="Unknown bank: hdfc"):
            registry.parse_with_bank("hdfc", FileFormat.EXCEL, icici_xlsx)

    def test_unsupported_format(self, registry):
        with pytest.raises(UnsupportedFormat, match="does not support format ofx"):
            registry.parse_with_bank("icici", FileFormat.OFX, b"")

    def test_parser_errors_propagate(self, registry):
        with pytest.raises(ParseError):
            registry.parse_with_bank("icici", FileFormat.EXCEL, b"not a workbook")


class TestParseByExtension:
    """Tests for the extension-based fallback."""

    def test_first_successful_bank_wins(self, registry, icici_xlsx):
        result = registry.parse_by_extension("export.xlsx", icici_xlsx)
        assert result.bank_name == "ICICI Bank"

    def test_unreadable_file(self, registry):
        with pytest.raises(UnsupportedFormat):
            registry.parse_by_extension("export.xlsx", b"garbage")

    def test_empty_bank_result_is_last_resort(self):
        """A bank layout with no rows is returned only when nothing else parses."""
        registry = ParserRegistry(ParsingConfig(generic_fallback=False))
        result = registry.parse_by_extension("export.xlsx", build_workbook(icici_rows([])))

        assert result.bank_name == "ICICI Bank"
        assert len(result) == 0


class TestListing:
    """Tests for registry accessors."""

    def test_default_banks(self, registry):
        assert registry.list_banks() == ["icici", "idfc_first"]
        assert registry.bank_info() == [
            ("icici", "ICICI Bank"),
            ("idfc_first", "IDFC First Bank"),
        ]

    def test_bank_parsers(self, registry):
        assert registry.get_bank_parsers("icici") == ["icici-excel"]
        assert registry.get_bank_parsers("missing") == []

    def test_formats_and_extensions(self, registry):
        assert registry.list() == ["excel"]
        assert registry.supported_extensions() == ["xls", "xlsx"]

    def test_reregistering_replaces(self, registry):
        replacement = ICICIBank()
        registry.register_bank(replacement)

        assert registry.get_bank("icici") is replacement
        assert registry.list_banks() == ["idfc_first", "icici"]
        assert registry.detector.registered_banks() == ["idfc_first", "icici"]

    def test_detector_uses_config(self):
        registry = ParserRegistry(ParsingConfig(detection_threshold=0.9))
        assert registry.detector.confidence_threshold == 0.9


class TestGenericParser:
    """Tests for header inference on unknown layouts."""

    @pytest.fixture
    def parser(self):
        return GenericExcelParser()

    def test_name(self, parser):
        assert parser.name == "generic-excel"

    def test_single_amount_column_sign(self, parser):
        data = build_workbook(
            [
                ["Date", "Narration", "Amount", "Balance"],
                ["2024-03-01", "Card payment", "-12.00", "88.00"],
                ["2024-03-02", "Transfer in", "30.00", "118.00"],
            ]
        )
        debit, credit = parser.parse_bytes(data).transactions

        assert debit.transaction_type is TransactionType.DEBIT
        assert str(debit.amount) == "12.00"
        assert credit.transaction_type is TransactionType.CREDIT

    def test_type_column_overrides_sign(self, parser):
        data = build_workbook(
            [
                ["Date", "Narration", "Amount", "Type"],
                ["2024-03-01", "Card payment", "12.00", "DR"],
            ]
        )
        txn = parser.parse_bytes(data).transactions[0]

        assert txn.transaction_type is TransactionType.DEBIT
        assert txn.mode == "DR"

    def test_skip_rows(self, parser):
        """Header candidates above skip_rows are ignored."""
        data = build_workbook(
            [
                ["Date", "Description", "Amount"],
                ["2024-03-01", "Ignored", "1.00"],
                ["Date", "Description", "Amount"],
                ["2024-03-02", "Kept", "2.00"],
            ]
        )
        result = parser.parse_bytes(data, ParserOptions(skip_rows=2))

        assert [t.description for t in result.transactions] == ["Kept"]

    def test_bad_rows_skipped(self, parser):
        data = build_workbook(
            [
                ["Date", "Description", "Debit", "Credit"],
                ["someday", "Bad date", "1.00", None],
                ["2024-03-01", None, "1.00", None],
                ["2024-03-01", "No amount", None, None],
                ["2024-03-01", "Good", "1.00", None],
            ]
        )
        result = parser.parse_bytes(data)

        assert [t.description for t in result.transactions] == ["Good"]

    def test_no_header(self, parser):
        data = build_workbook([["just", "words"], ["more", "words"]])

        with pytest.raises(ParseError, match="Could not infer columns"):
            parser.parse_bytes(data)

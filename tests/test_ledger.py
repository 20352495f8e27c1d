"""Tests for the ledger store and the deduplication engine."""

import sqlite3
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.ledger import (
    BulkImportResult,
    CandidateTransaction,
    DeduplicationEngine,
    DuplicateStrategy,
    DuplicateTransactionError,
    SQLiteLedgerStore,
    StatementNotFoundError,
    StatementStatus,
)
from statement_ingest.ledger.engine import candidate_hash
from statement_ingest.schemas.transaction import TransactionType


def _candidate(**overrides) -> CandidateTransaction:
    fields = {
        "account_id": 7,
        "transaction_date": date(2024, 4, 1),
        "description": "Coffee Shop",
        "amount": Decimal("250.00"),
        "transaction_type": TransactionType.DEBIT,
    }
    fields.update(overrides)
    return CandidateTransaction(**fields)


@pytest.fixture
def store(temp_db):
    return SQLiteLedgerStore(temp_db)


@pytest.fixture
def engine(store):
    return DeduplicationEngine(store)


class TestLedgerStore:
    """Tests for SQLiteLedgerStore."""

    def test_init_creates_tables(self, store, temp_db):
        assert temp_db.exists()

        conn = sqlite3.connect(temp_db)
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}
        conn.close()

        assert "transactions" in tables
        assert "statements" in tables
        assert "schema_version" in tables

    def test_reopen_existing_database(self, store, temp_db):
        store.insert_transaction(1, _candidate(), "h1")

        reopened = SQLiteLedgerStore(temp_db)
        assert len(reopened.list_transactions(1)) == 1

    def test_insert_and_read_back(self, store):
        row = store.insert_transaction(
            1,
            _candidate(reference_number=" UPI123 ", posted_date=date(2024, 4, 2), notes="x"),
            "h1",
        )

        assert row.id > 0
        assert row.pid
        assert row.user_id == 1
        assert row.amount == Decimal("250.00")
        assert row.transaction_type is TransactionType.DEBIT
        assert row.reference_number == "upi123"
        assert row.posted_date == date(2024, 4, 2)
        assert row.transaction_hash == "h1"
        assert row.to_dict()["amount"] == "250.00"

    def test_hash_unique_per_user(self, store):
        store.insert_transaction(1, _candidate(), "same")
        store.insert_transaction(2, _candidate(), "same")

        with pytest.raises(DuplicateTransactionError):
            store.insert_transaction(1, _candidate(description="Other"), "same")

    def test_reference_unique_globally(self, store):
        store.insert_transaction(1, _candidate(reference_number="REF1"), "h1")

        with pytest.raises(DuplicateTransactionError):
            store.insert_transaction(2, _candidate(reference_number="ref1"), "h2")

    def test_missing_references_not_unique(self, store):
        store.insert_transaction(1, _candidate(), "h1")
        store.insert_transaction(1, _candidate(), "h2")

        assert len(store.list_transactions(1)) == 2

    def test_find_by_reference_normalizes(self, store):
        store.insert_transaction(1, _candidate(reference_number="UPI123"), "h1")

        assert store.find_by_reference("  upi123 ").reference_number == "upi123"
        assert store.find_by_reference("   ") is None

    def test_find_by_fields_compares_amounts_numerically(self, store):
        store.insert_transaction(1, _candidate(amount=Decimal("100.00")), "h1")

        day = date(2024, 4, 1)
        assert len(store.find_by_fields(1, 7, day, Decimal("100"), TransactionType.DEBIT)) == 1
        assert store.find_by_fields(1, 7, day, Decimal("100"), TransactionType.CREDIT) == []
        assert store.find_by_fields(1, 8, day, Decimal("100"), TransactionType.DEBIT) == []

    def test_list_transactions_by_account(self, store):
        store.insert_transaction(1, _candidate(), "h1")
        store.insert_transaction(1, _candidate(account_id=8), "h2")

        assert len(store.list_transactions(1)) == 2
        assert [t.account_id for t in store.list_transactions(1, account_id=8)] == [8]
        assert store.list_transactions(2) == []


class TestStatements:
    """Tests for statement bookkeeping."""

    def test_create_statement(self, store):
        record = store.create_statement(1, "icici.xlsx", "/tmp/x_icici.xlsx", "excel", 1024)

        assert record.id > 0
        assert record.status is StatementStatus.PENDING
        assert record.transaction_count == 0
        assert record.account_id is None
        assert record.file_hash is None
        assert store.get_statement(record.id) == record

    def test_get_missing_statement(self, store):
        assert store.get_statement(999) is None

    def test_status_transitions(self, store):
        record = store.create_statement(1, "a.xlsx", "/tmp/a.xlsx", "excel", 10)

        store.set_statement_status(record.id, StatementStatus.PROCESSING)
        assert store.get_statement(record.id).status is StatementStatus.PROCESSING

        store.set_statement_status(record.id, StatementStatus.FAILED, "Parse error: bad")
        failed = store.get_statement(record.id)
        assert failed.status is StatementStatus.FAILED
        assert failed.error_message == "Parse error: bad"

    def test_completed_with_metadata(self, store):
        record = store.create_statement(1, "a.xlsx", "/tmp/a.xlsx", "excel", 10)

        store.set_statement_completed(record.id, 5, date(2024, 4, 1), date(2024, 4, 30))
        store.set_statement_bank_info(record.id, "ICICI Bank", 100, "icici-excel")

        done = store.get_statement(record.id)
        assert done.status is StatementStatus.COMPLETED
        assert done.transaction_count == 5
        assert done.start_date == date(2024, 4, 1)
        assert done.end_date == date(2024, 4, 30)
        assert done.bank_name == "ICICI Bank"
        assert done.detection_confidence == 100
        assert done.parser_used == "icici-excel"
        assert done.to_dict()["status"] == "completed"

    def test_update_missing_statement(self, store):
        with pytest.raises(StatementNotFoundError):
            store.set_statement_status(999, StatementStatus.FAILED)

    def test_list_statements_newest_first(self, store):
        first = store.create_statement(1, "a.xlsx", "/tmp/a.xlsx", "excel", 10)
        second = store.create_statement(1, "b.xlsx", "/tmp/b.xlsx", "excel", 10)
        store.create_statement(2, "c.xlsx", "/tmp/c.xlsx", "excel", 10)

        assert [s.id for s in store.list_statements(1)] == [second.id, first.id]
        assert len(store.list_statements()) == 3

    def test_find_statements_by_file_hash(self, store):
        first = store.create_statement(1, "a.xlsx", "/tmp/a.xlsx", "excel", 10, file_hash="abc")
        second = store.create_statement(1, "b.xlsx", "/tmp/b.xlsx", "excel", 10, file_hash="abc")
        store.create_statement(2, "c.xlsx", "/tmp/c.xlsx", "excel", 10, file_hash="abc")
        store.create_statement(1, "d.xlsx", "/tmp/d.xlsx", "excel", 10)

        assert [s.id for s in store.find_statements_by_file_hash(1, "abc")] == [first.id, second.id]
        assert first.file_hash == "abc"
        assert store.find_statements_by_file_hash(1, "other") == []

    def test_stats(self, store):
        done = store.create_statement(1, "a.xlsx", "/tmp/a.xlsx", "excel", 10)
        failed = store.create_statement(1, "b.xlsx", "/tmp/b.xlsx", "excel", 10)
        store.create_statement(1, "c.xlsx", "/tmp/c.xlsx", "excel", 10)
        store.set_statement_completed(done.id, 1, None, None)
        store.set_statement_status(failed.id, StatementStatus.FAILED, "boom")
        store.insert_transaction(1, _candidate(), "h1")

        assert store.get_stats() == {
            "transactions_total": 1,
            "statements_total": 3,
            "statements_completed": 1,
            "statements_failed": 1,
            "statements_pending": 1,
        }


class TestDeduplicationEngine:
    """Tests for layered duplicate detection."""

    def test_commit_new(self, engine):
        row = engine.commit(1, _candidate())

        assert row is not None
        assert row.transaction_hash == candidate_hash(1, _candidate())

    def test_hash_duplicate_skipped(self, engine):
        engine.commit(1, _candidate())

        assert engine.commit(1, _candidate(description="  COFFEE shop ")) is None
        match = engine.find_duplicate(1, _candidate())
        assert match.strategy is DuplicateStrategy.HASH

    def test_hash_is_per_user(self, engine):
        engine.commit(1, _candidate())

        assert not engine.is_duplicate(2, _candidate())
        assert engine.commit(2, _candidate()) is not None

    def test_reference_checked_before_hash(self, engine):
        engine.commit(1, _candidate(reference_number="UPI999"))

        match = engine.find_duplicate(1, _candidate(reference_number="upi999"))
        assert match.strategy is DuplicateStrategy.REFERENCE

    def test_reference_duplicate_across_users_and_accounts(self, engine):
        """A bank-issued reference identifies the transaction globally."""
        engine.commit(1, _candidate(reference_number="IMPS42"))

        other = _candidate(
            account_id=99,
            reference_number="IMPS42",
            description="Different text",
            amount=Decimal("1.00"),
        )
        assert engine.is_duplicate(2, other)
        assert engine.commit(2, other) is None

    def test_same_fields_different_reference_not_duplicate(self, engine):
        """Two genuine identical purchases with distinct references both commit."""
        assert engine.commit(1, _candidate(reference_number="A1")) is not None
        assert engine.commit(1, _candidate(reference_number="A2")) is not None

    def test_insert_race_counted_as_skip(self, store, engine, monkeypatch):
        """A constraint rejection after the lookups is a skip, not an error."""
        engine.commit(1, _candidate())
        monkeypatch.setattr(store, "find_by_hash", lambda user_id, h: None)

        assert engine.commit(1, _candidate()) is None

    def test_find_duplicate_by_fields(self, engine):
        engine.commit(1, _candidate(amount=Decimal("100.00")))

        match = engine.find_duplicate_by_fields(
            1, 7, date(2024, 4, 1), Decimal("100"), TransactionType.DEBIT, " coffee SHOP"
        )
        assert match.strategy is DuplicateStrategy.FIELDS

        assert (
            engine.find_duplicate_by_fields(
                1, 7, date(2024, 4, 1), Decimal("100"), TransactionType.DEBIT, "Tea"
            )
            is None
        )

    def test_bulk_commit_idempotent(self, engine, store):
        candidates = [
            _candidate(reference_number="R1"),
            _candidate(description="Lunch", amount=Decimal("80")),
        ]

        assert tuple(engine.bulk_commit(1, 7, candidates)) == (2, 0)
        assert tuple(engine.bulk_commit(1, 7, candidates)) == (0, 2)
        assert len(store.list_transactions(1)) == 2

    def test_same_transaction_twice_in_one_batch(self, engine):
        assert tuple(engine.bulk_commit(1, 7, [_candidate(), _candidate()])) == (1, 1)

    def test_bulk_commit_partial(self, engine):
        engine.commit(1, _candidate())

        result = engine.bulk_commit(1, 7, [_candidate(), _candidate(description="New")])
        assert result == BulkImportResult(created_count=1, skipped_count=1)
        assert result.total == 2
        assert result.to_dict() == {"created_count": 1, "skipped_count": 1}

    def test_bulk_commit_targets_account(self, engine, store):
        engine.bulk_commit(1, 42, [replace(_candidate(), account_id=7)])

        assert [t.account_id for t in store.list_transactions(1)] == [42]

    def test_bulk_commit_empty(self, engine):
        assert tuple(engine.bulk_commit(1, 7, [])) == (0, 0)


class TestCandidateTransaction:
    """Tests for CandidateTransaction."""

    def test_from_parsed(self, sample_parsed_transaction):
        candidate = CandidateTransaction.from_parsed(sample_parsed_transaction, 7, statement_id=3)

        assert candidate.account_id == 7
        assert candidate.statement_id == 3
        assert candidate.transaction_date == date(2024, 4, 1)
        assert candidate.amount == Decimal("250.00")
        assert candidate.reference_number == "UPI412345678901"

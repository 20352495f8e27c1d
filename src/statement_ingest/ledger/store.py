"""
Ledger store.

LedgerStore is the storage interface the deduplication engine and the
ingest service depend on. SQLiteLedgerStore is the bundled implementation.

Tables:
- transactions: Committed ledger rows with their fingerprint hash
- statements: Uploaded statement files and their processing status

Uniqueness is enforced at commit time, as a backstop to the engine's
pre-insert lookups:
- UNIQUE(user_id, transaction_hash)
- UNIQUE(reference_number) (NULLs allowed)
"""

import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from ..schemas.dedupe import normalize_amount, normalize_reference
from ..schemas.transaction import TransactionType
from .errors import DuplicateTransactionError, StatementNotFoundError
from .models import CandidateTransaction, LedgerTransaction, StatementRecord, StatementStatus

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LedgerStore(ABC):
    """Storage collaborator for ledger rows and statement bookkeeping."""

    # Transactions

    @abstractmethod
    def find_by_reference(self, reference_number: str) -> Optional[LedgerTransaction]:
        """Any transaction, across all users, with this normalized reference."""
        pass

    @abstractmethod
    def find_by_hash(self, user_id: int, transaction_hash: str) -> Optional[LedgerTransaction]:
        """The user's transaction with this fingerprint hash."""
        pass

    @abstractmethod
    def find_by_fields(
        self,
        user_id: int,
        account_id: int,
        transaction_date: date,
        amount: Decimal,
        transaction_type: TransactionType,
    ) -> list[LedgerTransaction]:
        """Transactions on the account matching date, amount and direction."""
        pass

    @abstractmethod
    def insert_transaction(
        self,
        user_id: int,
        candidate: CandidateTransaction,
        transaction_hash: str,
    ) -> LedgerTransaction:
        """
        Insert a ledger row.

        Raises:
            DuplicateTransactionError: A uniqueness constraint rejected the row
        """
        pass

    # Statements

    @abstractmethod
    def create_statement(
        self,
        user_id: int,
        filename: str,
        file_path: str,
        file_type: str,
        file_size: int,
        account_id: Optional[int] = None,
        file_hash: Optional[str] = None,
    ) -> StatementRecord:
        pass

    @abstractmethod
    def find_statements_by_file_hash(self, user_id: int, file_hash: str) -> list[StatementRecord]:
        pass

    @abstractmethod
    def get_statement(self, statement_id: int) -> Optional[StatementRecord]:
        pass

    @abstractmethod
    def set_statement_status(
        self,
        statement_id: int,
        status: StatementStatus,
        error_message: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    def set_statement_completed(
        self,
        statement_id: int,
        transaction_count: int,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> None:
        pass

    @abstractmethod
    def set_statement_bank_info(
        self,
        statement_id: int,
        bank_name: Optional[str],
        detection_confidence: Optional[int],
        parser_used: Optional[str],
    ) -> None:
        pass


class SQLiteLedgerStore(LedgerStore):
    """
    SQLite-based ledger store.

    Opens a fresh connection per operation; safe for single-writer use
    from multiple threads.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str):
        """
        Initialize ledger store.

        Args:
            db_path: Path to SQLite database file (created if missing)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS statements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    account_id INTEGER,
                    filename TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    file_size INTEGER NOT NULL,
                    file_hash TEXT,  -- SHA256 of the uploaded bytes
                    status TEXT NOT NULL,
                    transaction_count INTEGER NOT NULL DEFAULT 0,
                    start_date TEXT,
                    end_date TEXT,
                    bank_name TEXT,
                    detection_confidence INTEGER,  -- percent
                    parser_used TEXT,
                    error_message TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    pid TEXT NOT NULL UNIQUE,
                    user_id INTEGER NOT NULL,
                    account_id INTEGER NOT NULL,
                    statement_id INTEGER,
                    category_id INTEGER,
                    transaction_date TEXT NOT NULL,  -- YYYY-MM-DD
                    posted_date TEXT,
                    description TEXT NOT NULL,
                    amount TEXT NOT NULL,  -- Decimal string, non-negative
                    transaction_type TEXT NOT NULL,
                    reference_number TEXT,  -- normalized
                    transaction_hash TEXT NOT NULL,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (user_id, transaction_hash),
                    FOREIGN KEY (statement_id) REFERENCES statements(id)
                )
            """
            )

            conn.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_transactions_reference_unique "
                "ON transactions(reference_number)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_account_date "
                "ON transactions(user_id, account_id, transaction_date)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_statements_user ON statements(user_id)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_statements_file_hash "
                "ON statements(user_id, file_hash)"
            )

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
            )

    # Transaction methods

    def find_by_reference(self, reference_number: str) -> Optional[LedgerTransaction]:
        normalized = normalize_reference(reference_number)
        if normalized is None:
            return None
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM transactions WHERE reference_number = ?", (normalized,)
            ).fetchone()
            return LedgerTransaction.from_row(row) if row else None

    def find_by_hash(self, user_id: int, transaction_hash: str) -> Optional[LedgerTransaction]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM transactions WHERE user_id = ? AND transaction_hash = ?",
                (user_id, transaction_hash),
            ).fetchone()
            return LedgerTransaction.from_row(row) if row else None

    def find_by_fields(
        self,
        user_id: int,
        account_id: int,
        transaction_date: date,
        amount: Decimal,
        transaction_type: TransactionType,
    ) -> list[LedgerTransaction]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM transactions
                WHERE user_id = ? AND account_id = ? AND transaction_date = ?
                  AND transaction_type = ?
                ORDER BY id
                """,
                (user_id, account_id, transaction_date.isoformat(), str(transaction_type)),
            ).fetchall()

        # Amounts are compared normalized so "100", "100.0" and "100.00" agree
        wanted = normalize_amount(amount)
        return [
            LedgerTransaction.from_row(row)
            for row in rows
            if normalize_amount(Decimal(row["amount"])) == wanted
        ]

    def insert_transaction(
        self,
        user_id: int,
        candidate: CandidateTransaction,
        transaction_hash: str,
    ) -> LedgerTransaction:
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO transactions (
                        pid, user_id, account_id, statement_id, category_id,
                        transaction_date, posted_date, description, amount,
                        transaction_type, reference_number, transaction_hash,
                        notes, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(uuid.uuid4()),
                        user_id,
                        candidate.account_id,
                        candidate.statement_id,
                        candidate.category_id,
                        candidate.transaction_date.isoformat(),
                        candidate.posted_date.isoformat() if candidate.posted_date else None,
                        candidate.description,
                        str(abs(candidate.amount)),
                        str(candidate.transaction_type),
                        normalize_reference(candidate.reference_number),
                        transaction_hash,
                        candidate.notes,
                        _now(),
                    ),
                )
                row = conn.execute(
                    "SELECT * FROM transactions WHERE id = ?", (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            raise DuplicateTransactionError(str(e)) from e

        return LedgerTransaction.from_row(row)

    def list_transactions(
        self,
        user_id: int,
        account_id: Optional[int] = None,
    ) -> list[LedgerTransaction]:
        """A user's transactions, oldest first."""
        query = "SELECT * FROM transactions WHERE user_id = ?"
        params: list[Any] = [user_id]
        if account_id is not None:
            query += " AND account_id = ?"
            params.append(account_id)
        query += " ORDER BY transaction_date, id"

        with self._transaction() as conn:
            return [LedgerTransaction.from_row(row) for row in conn.execute(query, params)]

    # Statement methods

    def create_statement(
        self,
        user_id: int,
        filename: str,
        file_path: str,
        file_type: str,
        file_size: int,
        account_id: Optional[int] = None,
        file_hash: Optional[str] = None,
    ) -> StatementRecord:
        now = _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO statements (
                    user_id, account_id, filename, file_path, file_type,
                    file_size, file_hash, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    account_id,
                    filename,
                    file_path,
                    file_type,
                    file_size,
                    file_hash,
                    StatementStatus.PENDING.value,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                "SELECT * FROM statements WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return StatementRecord.from_row(row)

    def get_statement(self, statement_id: int) -> Optional[StatementRecord]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM statements WHERE id = ?", (statement_id,)).fetchone()
            return StatementRecord.from_row(row) if row else None

    def list_statements(self, user_id: Optional[int] = None) -> list[StatementRecord]:
        """Statements, newest first (optionally for one user)."""
        with self._transaction() as conn:
            if user_id is None:
                rows = conn.execute("SELECT * FROM statements ORDER BY id DESC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM statements WHERE user_id = ? ORDER BY id DESC", (user_id,)
                ).fetchall()
            return [StatementRecord.from_row(row) for row in rows]

    def find_statements_by_file_hash(self, user_id: int, file_hash: str) -> list[StatementRecord]:
        """A user's earlier uploads of the same file, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM statements WHERE user_id = ? AND file_hash = ? ORDER BY id",
                (user_id, file_hash),
            ).fetchall()
            return [StatementRecord.from_row(row) for row in rows]

    def _update_statement(self, statement_id: int, **fields: Any) -> None:
        fields["updated_at"] = _now()
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE statements SET {assignments} WHERE id = ?",
                (*fields.values(), statement_id),
            )
            if cursor.rowcount == 0:
                raise StatementNotFoundError(f"Statement {statement_id} not found")

    def set_statement_status(
        self,
        statement_id: int,
        status: StatementStatus,
        error_message: Optional[str] = None,
    ) -> None:
        self._update_statement(statement_id, status=status.value, error_message=error_message)

    def set_statement_completed(
        self,
        statement_id: int,
        transaction_count: int,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> None:
        self._update_statement(
            statement_id,
            status=StatementStatus.COMPLETED.value,
            transaction_count=transaction_count,
            start_date=start_date.isoformat() if start_date else None,
            end_date=end_date.isoformat() if end_date else None,
            error_message=None,
        )

    def set_statement_bank_info(
        self,
        statement_id: int,
        bank_name: Optional[str],
        detection_confidence: Optional[int],
        parser_used: Optional[str],
    ) -> None:
        self._update_statement(
            statement_id,
            bank_name=bank_name,
            detection_confidence=detection_confidence,
            parser_used=parser_used,
        )

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Get ledger statistics."""
        with self._transaction() as conn:
            transactions = conn.execute("SELECT COUNT(*) as count FROM transactions").fetchone()
            statements = conn.execute("SELECT COUNT(*) as count FROM statements").fetchone()
            by_status = {
                row["status"]: row["count"]
                for row in conn.execute(
                    "SELECT status, COUNT(*) as count FROM statements GROUP BY status"
                )
            }

            return {
                "transactions_total": transactions["count"] if transactions else 0,
                "statements_total": statements["count"] if statements else 0,
                "statements_completed": by_status.get(StatementStatus.COMPLETED.value, 0),
                "statements_failed": by_status.get(StatementStatus.FAILED.value, 0),
                "statements_pending": by_status.get(StatementStatus.PENDING.value, 0)
                + by_status.get(StatementStatus.PROCESSING.value, 0),
            }

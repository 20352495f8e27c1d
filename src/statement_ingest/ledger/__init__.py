"""
Ledger (SQLite-based) and deduplication.

Commits parsed statement rows to a user's ledger without introducing
duplicates. Enforces uniqueness on (user_id, transaction_hash) and on
reference_number.
"""

from .engine import (
    BulkImportResult,
    DeduplicationEngine,
    DuplicateMatch,
    DuplicateStrategy,
    candidate_hash,
)
from .errors import (
    DuplicateTransactionError,
    LedgerError,
    StatementNotFoundError,
    StatementStateError,
)
from .models import CandidateTransaction, LedgerTransaction, StatementRecord, StatementStatus
from .store import LedgerStore, SQLiteLedgerStore

__all__ = [
    "DeduplicationEngine",
    "DuplicateMatch",
    "DuplicateStrategy",
    "BulkImportResult",
    "candidate_hash",
    "CandidateTransaction",
    "LedgerTransaction",
    "StatementRecord",
    "StatementStatus",
    "LedgerStore",
    "SQLiteLedgerStore",
    "LedgerError",
    "DuplicateTransactionError",
    "StatementNotFoundError",
    "StatementStateError",
]

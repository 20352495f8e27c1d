"""
Ledger records.

CandidateTransaction is what callers hand to the deduplication engine;
LedgerTransaction and StatementRecord are rows read back from the store.
"""

import sqlite3
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..schemas.transaction import ParsedTransaction, TransactionType


class StatementStatus(str, Enum):
    """Processing status of an uploaded statement."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CandidateTransaction:
    """A transaction about to be committed to a user's ledger."""

    account_id: int
    transaction_date: date
    description: str
    amount: Decimal
    transaction_type: TransactionType
    reference_number: Optional[str] = None
    posted_date: Optional[date] = None
    statement_id: Optional[int] = None
    category_id: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_parsed(
        cls,
        parsed: ParsedTransaction,
        account_id: int,
        statement_id: Optional[int] = None,
    ) -> "CandidateTransaction":
        """Target a parsed statement row at a ledger account."""
        return cls(
            account_id=account_id,
            transaction_date=parsed.date,
            description=parsed.description,
            amount=parsed.amount,
            transaction_type=parsed.transaction_type,
            reference_number=parsed.reference,
            statement_id=statement_id,
        )


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@dataclass
class LedgerTransaction:
    """A committed ledger row."""

    id: int
    pid: str
    user_id: int
    account_id: int
    statement_id: int | None
    category_id: int | None
    transaction_date: date
    posted_date: date | None
    description: str
    amount: Decimal
    transaction_type: TransactionType
    reference_number: str | None
    transaction_hash: str
    notes: str | None
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "LedgerTransaction":
        """Create from database row."""
        return cls(
            id=row["id"],
            pid=row["pid"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            statement_id=row["statement_id"],
            category_id=row["category_id"],
            transaction_date=date.fromisoformat(row["transaction_date"]),
            posted_date=_parse_date(row["posted_date"]),
            description=row["description"],
            amount=Decimal(row["amount"]),
            transaction_type=TransactionType(row["transaction_type"]),
            reference_number=row["reference_number"],
            transaction_hash=row["transaction_hash"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "pid": self.pid,
            "account_id": self.account_id,
            "statement_id": self.statement_id,
            "transaction_date": self.transaction_date.isoformat(),
            "description": self.description,
            "amount": str(self.amount),
            "transaction_type": self.transaction_type.value,
            "reference_number": self.reference_number,
        }


@dataclass
class StatementRecord:
    """Record of an uploaded statement file."""

    id: int
    user_id: int
    account_id: int | None
    filename: str
    file_path: str
    file_type: str
    file_size: int
    file_hash: str | None  # SHA256 of the uploaded bytes
    status: StatementStatus
    transaction_count: int
    start_date: date | None
    end_date: date | None
    bank_name: str | None
    detection_confidence: int | None  # percent
    parser_used: str | None
    error_message: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StatementRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            filename=row["filename"],
            file_path=row["file_path"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            file_hash=row["file_hash"],
            status=StatementStatus(row["status"]),
            transaction_count=row["transaction_count"],
            start_date=_parse_date(row["start_date"]),
            end_date=_parse_date(row["end_date"]),
            bank_name=row["bank_name"],
            detection_confidence=row["detection_confidence"],
            parser_used=row["parser_used"],
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "filename": self.filename,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "file_hash": self.file_hash,
            "status": self.status.value,
            "transaction_count": self.transaction_count,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "bank_name": self.bank_name,
            "detection_confidence": self.detection_confidence,
            "parser_used": self.parser_used,
            "error_message": self.error_message,
        }

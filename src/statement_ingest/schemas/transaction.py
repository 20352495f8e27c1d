"""
Canonical transaction records (SSOT).

Every bank extractor produces these types and nothing else. The ledger,
the CLI and the ingest service all consume them.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional


class TransactionType(str, Enum):
    """Direction of a transaction. The amount itself is always positive."""

    CREDIT = "credit"
    DEBIT = "debit"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ParsedTransaction:
    """
    One row extracted from a bank statement.

    Invariant: amount is a non-negative magnitude; the sign lives
    only in transaction_type.
    """

    date: date
    description: str
    amount: Decimal
    transaction_type: TransactionType
    balance: Optional[Decimal] = None
    reference: Optional[str] = None  # cheque / UPI / IMPS id
    mode: Optional[str] = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative, got: {self.amount}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": str(self.amount),
            "transaction_type": self.transaction_type.value,
            "balance": str(self.balance) if self.balance is not None else None,
            "reference": self.reference,
            "mode": self.mode,
        }


@dataclass(frozen=True)
class ParseResult:
    """
    Output of a single parse call.

    Transactions keep document order. start_date/end_date are derived
    once, when the result is built, and never recomputed.
    """

    transactions: tuple[ParsedTransaction, ...] = ()
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None

    @classmethod
    def from_transactions(
        cls,
        transactions: Iterable[ParsedTransaction],
        account_number: Optional[str] = None,
        bank_name: Optional[str] = None,
    ) -> "ParseResult":
        """Build a result, deriving the statement period from the rows."""
        txns = tuple(transactions)
        dates = [t.date for t in txns]
        return cls(
            transactions=txns,
            start_date=min(dates) if dates else None,
            end_date=max(dates) if dates else None,
            account_number=account_number,
            bank_name=bank_name,
        )

    def with_bank_name(self, bank_name: str) -> "ParseResult":
        """Return a copy stamped with the institution display name."""
        return replace(self, bank_name=bank_name)

    def __len__(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "transaction_count": len(self.transactions),
            "transactions": [t.to_dict() for t in self.transactions],
        }


@dataclass(frozen=True)
class ParserOptions:
    """
    Caller-supplied parsing hints.

    date_format: extra strptime pattern tried before the built-in list
    skip_rows: leading rows to ignore (header-inferring parsers only)
    """

    date_format: Optional[str] = None
    skip_rows: int = 0

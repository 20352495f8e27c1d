"""
Deduplication engine.

Decides whether a candidate transaction already exists in a user's ledger
before it is committed. Strategies, in strict priority order:
1. Reference number (global): bank-issued ids (UPI/IMPS/cheque) are unique
2. Fingerprint hash (per user): see schemas.dedupe.compute_transaction_hash
3. Field match (per account): manual duplicate search only, never on commit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

from ..schemas.dedupe import compute_transaction_hash, normalize_description, normalize_reference
from ..schemas.transaction import TransactionType
from .errors import DuplicateTransactionError
from .models import CandidateTransaction, LedgerTransaction

if TYPE_CHECKING:
    from .store import LedgerStore

logger = logging.getLogger(__name__)


class DuplicateStrategy(str, Enum):
    """Which strategy identified a duplicate."""

    REFERENCE = "reference"
    HASH = "hash"
    FIELDS = "fields"


@dataclass(frozen=True)
class DuplicateMatch:
    """An existing ledger row that a candidate duplicates."""

    strategy: DuplicateStrategy
    existing: LedgerTransaction


@dataclass(frozen=True)
class BulkImportResult:
    """Outcome of a bulk commit. Unpacks as (created_count, skipped_count)."""

    created_count: int = 0
    skipped_count: int = 0

    @property
    def total(self) -> int:
        return self.created_count + self.skipped_count

    def __iter__(self) -> Iterator[int]:
        return iter((self.created_count, self.skipped_count))

    def to_dict(self) -> dict[str, int]:
        return {"created_count": self.created_count, "skipped_count": self.skipped_count}


def candidate_hash(user_id: int, candidate: CandidateTransaction) -> str:
    """Fingerprint hash of a candidate for the given user."""
    return compute_transaction_hash(
        user_id=user_id,
        account_id=candidate.account_id,
        transaction_date=candidate.transaction_date,
        amount=candidate.amount,
        description=candidate.description,
        transaction_type=str(candidate.transaction_type),
        reference=candidate.reference_number,
    )


class DeduplicationEngine:
    """
    Layered duplicate detection in front of a LedgerStore.

    The pre-insert lookups are not atomic with the insert; the store's
    uniqueness constraints reject any race loser, which is then counted
    as a skip like any other duplicate.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def find_duplicate(
        self,
        user_id: int,
        candidate: CandidateTransaction,
    ) -> Optional[DuplicateMatch]:
        """
        Run the commit-time strategies (reference, then hash).

        Returns:
            The first match found, or None
        """
        reference = normalize_reference(candidate.reference_number)
        if reference is not None:
            existing = self.store.find_by_reference(reference)
            if existing is not None:
                return DuplicateMatch(DuplicateStrategy.REFERENCE, existing)

        existing = self.store.find_by_hash(user_id, candidate_hash(user_id, candidate))
        if existing is not None:
            return DuplicateMatch(DuplicateStrategy.HASH, existing)

        return None

    def is_duplicate(self, user_id: int, candidate: CandidateTransaction) -> bool:
        return self.find_duplicate(user_id, candidate) is not None

    def find_duplicate_by_fields(
        self,
        user_id: int,
        account_id: int,
        transaction_date: date,
        amount: Decimal,
        transaction_type: TransactionType,
        description: str,
    ) -> Optional[DuplicateMatch]:
        """
        Looser manual search: same account, date, amount and direction,
        then an exact trimmed case-insensitive description match.

        Not used by commit(); it has no reference or hash requirement and
        would suppress legitimate repeated transactions.
        """
        wanted = normalize_description(description)
        for existing in self.store.find_by_fields(
            user_id, account_id, transaction_date, amount, transaction_type
        ):
            if normalize_description(existing.description) == wanted:
                return DuplicateMatch(DuplicateStrategy.FIELDS, existing)
        return None

    def commit(
        self,
        user_id: int,
        candidate: CandidateTransaction,
    ) -> Optional[LedgerTransaction]:
        """
        Commit a candidate unless it duplicates an existing row.

        Returns:
            The new ledger row, or None if the candidate was a duplicate
        """
        match = self.find_duplicate(user_id, candidate)
        if match is not None:
            logger.debug(
                "Skipping duplicate of transaction %d (%s match): %s",
                match.existing.id,
                match.strategy.value,
                candidate.description,
            )
            return None

        try:
            return self.store.insert_transaction(
                user_id, candidate, candidate_hash(user_id, candidate)
            )
        except DuplicateTransactionError as e:
            logger.debug("Insert rejected as duplicate: %s", e)
            return None

    def bulk_commit(
        self,
        user_id: int,
        account_id: int,
        candidates: Iterable[CandidateTransaction],
    ) -> BulkImportResult:
        """
        Commit each candidate into the given account.

        Duplicates are counted as skipped and never abort the batch.
        """
        created = 0
        skipped = 0

        for candidate in candidates:
            if candidate.account_id != account_id:
                candidate = replace(candidate, account_id=account_id)
            if self.commit(user_id, candidate) is None:
                skipped += 1
            else:
                created += 1

        logger.info(
            "Bulk import for user %d account %d: %d created, %d skipped",
            user_id,
            account_id,
            created,
            skipped,
        )
        return BulkImportResult(created_count=created, skipped_count=skipped)

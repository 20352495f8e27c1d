"""
SSOT (Single Source of Truth) schemas.

These canonical schemas are the ONLY transaction models used across
parsers, detection and the ledger.
"""

from .dedupe import (
    HASH_FIELD_SEPARATOR,
    HASH_LENGTH,
    compute_file_hash,
    compute_transaction_hash,
    normalize_amount,
    normalize_description,
    normalize_reference,
)
from .transaction import (
    ParsedTransaction,
    ParseResult,
    ParserOptions,
    TransactionType,
)

__all__ = [
    # Canonical records
    "ParsedTransaction",
    "ParseResult",
    "ParserOptions",
    "TransactionType",
    # Dedupe
    "HASH_FIELD_SEPARATOR",
    "HASH_LENGTH",
    "compute_transaction_hash",
    "compute_file_hash",
    "normalize_amount",
    "normalize_description",
    "normalize_reference",
]

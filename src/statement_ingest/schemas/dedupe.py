"""
Dedupe key generation (CRITICAL).

This module defines THE deterministic transaction fingerprint.
This is the ONLY way to generate ledger transaction hashes in the system.

Hash format:
    SHA256(user_id|account_id|date|amount|description|type[|reference])

The hash must be:
- Stable: Same inputs always produce same output, across processes
- Order-independent of document layout: only normalized field values count
- Reproducible: Can be regenerated from stored ledger rows
- Deduplicated: Same logical transaction = same hash = blocked duplicate
"""

import hashlib
from datetime import date
from decimal import Decimal, InvalidOperation

# ============================================================================
# SSOT Constants for Fingerprint Generation
# ============================================================================

# Separator between canonical fields
HASH_FIELD_SEPARATOR = "|"

# Length of a hex SHA256 digest
HASH_LENGTH = 64


def normalize_amount(amount: Decimal | str | int | float) -> str:
    """
    Normalize amount to a consistent string for hashing.

    The absolute value is used since direction is hashed separately.
    Trailing zeros are dropped so 100, 100.0 and 100.00 agree.

    Args:
        amount: Amount in various formats

    Returns:
        Fixed-point string without exponent, e.g. "1234.5"

    Raises:
        ValueError: If the amount cannot be interpreted as a number
    """
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    elif isinstance(amount, (str, int)):
        try:
            amount = Decimal(str(amount).strip())
        except InvalidOperation as e:
            raise ValueError(f"amount is not a number: {amount!r}") from e
    elif not isinstance(amount, Decimal):
        raise ValueError(f"amount must be Decimal, str, int or float, got: {type(amount)}")

    if not amount.is_finite():
        raise ValueError(f"amount must be finite, got: {amount}")

    normalized = abs(amount).normalize()
    # normalize() turns 100 into 1E+2
    return format(normalized, "f")


def normalize_description(value: str | None) -> str:
    """Normalize a description for hashing (strip whitespace, lowercase)."""
    if not value:
        return ""
    return value.strip().lower()


def normalize_reference(value: str | None) -> str | None:
    """
    Normalize a bank reference token (UPI/IMPS id, cheque number).

    Returns:
        Trimmed lowercase reference, or None when blank
    """
    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized or None


def compute_transaction_hash(
    user_id: int,
    account_id: int,
    transaction_date: date,
    amount: Decimal | str | int | float,
    description: str,
    transaction_type: str,
    reference: str | None = None,
) -> str:
    """
    Compute the deterministic fingerprint of a ledger transaction.

    This is the SSOT function for transaction identity hashes.

    Hash components (in order):
    - user_id, account_id
    - transaction_date: YYYY-MM-DD
    - amount: absolute value, normalized
    - description: trimmed, lowercased
    - transaction_type: "credit" / "debit"
    - reference: trimmed, lowercased (only when present)

    Returns:
        64-character lowercase hex SHA256 hash

    Examples:
        >>> h = compute_transaction_hash(1, 2, date(2024, 1, 15), "10.50", "Coffee", "debit")
        >>> len(h)
        64
    """
    parts = [
        str(int(user_id)),
        str(int(account_id)),
        transaction_date.isoformat(),
        normalize_amount(amount),
        normalize_description(description),
        str(transaction_type).strip().lower(),
    ]

    normalized_ref = normalize_reference(reference)
    if normalized_ref is not None:
        parts.append(normalized_ref)

    canonical = HASH_FIELD_SEPARATOR.join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_file_hash(file_bytes: bytes) -> str:
    """
    Compute SHA256 hash of file bytes.

    Args:
        file_bytes: Raw file content

    Returns:
        64-character lowercase hex string
    """
    return hashlib.sha256(file_bytes).hexdigest()

"""Tests for dedupe module - transaction fingerprint generation."""

import hashlib
from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.schemas.dedupe import (
    HASH_LENGTH,
    compute_file_hash,
    compute_transaction_hash,
    normalize_amount,
    normalize_description,
    normalize_reference,
)

BASE = {
    "user_id": 1,
    "account_id": 7,
    "transaction_date": date(2024, 4, 1),
    "amount": Decimal("250.00"),
    "description": "Coffee Shop",
    "transaction_type": "debit",
}


class TestNormalization:
    """Tests for the field normalizers used in hashing."""

    def test_amount_drops_sign_and_trailing_zeros(self):
        assert normalize_amount(Decimal("-250.00")) == "250"
        assert normalize_amount("100.50") == "100.5"
        assert normalize_amount(100) == "100"
        assert normalize_amount(0.1) == "0.1"

    def test_amount_rejects_garbage(self):
        with pytest.raises(ValueError):
            normalize_amount("abc")
        with pytest.raises(ValueError):
            normalize_amount(Decimal("NaN"))

    def test_description(self):
        assert normalize_description("  Coffee SHOP ") == "coffee shop"
        assert normalize_description(None) == ""

    def test_reference(self):
        assert normalize_reference(" UPI123 ") == "upi123"
        assert normalize_reference("   ") is None
        assert normalize_reference(None) is None


class TestComputeTransactionHash:
    """Tests for the transaction fingerprint."""

    def test_format(self):
        h = compute_transaction_hash(**BASE)
        assert len(h) == HASH_LENGTH
        assert all(c in "0123456789abcdef" for c in h)

    def test_matches_canonical_string(self):
        """The hash is SHA256 over the pipe-joined normalized fields."""
        expected = hashlib.sha256(b"1|7|2024-04-01|250|coffee shop|debit").hexdigest()
        assert compute_transaction_hash(**BASE) == expected

    def test_reference_appended_when_present(self):
        expected = hashlib.sha256(b"1|7|2024-04-01|250|coffee shop|debit|upi123").hexdigest()
        assert compute_transaction_hash(**BASE, reference=" UPI123 ") == expected

    def test_blank_reference_ignored(self):
        assert compute_transaction_hash(**BASE, reference="  ") == compute_transaction_hash(**BASE)

    def test_deterministic(self):
        """Same inputs produce same output."""
        assert compute_transaction_hash(**BASE) == compute_transaction_hash(**BASE)

    def test_equivalent_formatting_agrees(self):
        """Amount and description formatting differences do not matter."""
        variant = dict(BASE, amount="250", description="  COFFEE shop")
        assert compute_transaction_hash(**variant) == compute_transaction_hash(**BASE)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("user_id", 2),
            ("account_id", 8),
            ("transaction_date", date(2024, 4, 2)),
            ("amount", Decimal("250.01")),
            ("description", "Tea Shop"),
            ("transaction_type", "credit"),
        ],
    )
    def test_each_field_matters(self, field, value):
        changed = dict(BASE, **{field: value})
        assert compute_transaction_hash(**changed) != compute_transaction_hash(**BASE)


class TestComputeFileHash:
    """Tests for file hash."""

    def test_sha256(self):
        assert compute_file_hash(b"statement") == hashlib.sha256(b"statement").hexdigest()

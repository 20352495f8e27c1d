"""Ledger-side errors."""


class LedgerError(Exception):
    """Base class for ledger store and ingest workflow errors."""

    pass


class DuplicateTransactionError(LedgerError):
    """Insert rejected by a uniqueness constraint (hash or reference)."""

    pass


class StatementNotFoundError(LedgerError):
    """No statement with that id exists for the user."""

    pass


class StatementStateError(LedgerError):
    """Statement is not in a state that allows the requested operation."""

    pass

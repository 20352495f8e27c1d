"""
Bank statement export → canonical transactions → deduplicated ledger.

Detects which bank produced a spreadsheet export, extracts transactions
from the bank-specific layout, and folds them into a user's ledger
without introducing duplicates.
"""

__version__ = "0.1.0"

"""
CLI runner module.

Provides commands:
- banks: List supported banks
- detect: Identify the bank of a statement file
- parse: Print a statement's transactions
- import: Upload a statement and commit it to the ledger
- status: Ledger statistics
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]

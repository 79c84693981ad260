"""Personal finance ledger: categories, transactions, statistics and backups."""

from pocket_ledger.app import LedgerApp, open_app
from pocket_ledger.errors import (
    BackupError,
    LedgerError,
    NotFoundError,
    StoreError,
    ValidationError,
)

__all__ = [
    "BackupError",
    "LedgerApp",
    "LedgerError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
    "open_app",
]

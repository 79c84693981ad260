"""Exception types raised by the ledger core."""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError, ValueError):
    """Raised when caller input is malformed (empty name, duplicate ids...)."""


class NotFoundError(LedgerError, LookupError):
    """Raised when a referenced category or transaction does not exist."""


class StoreError(LedgerError, IOError):
    """Raised when the underlying database cannot be read or saved."""


class BackupError(StoreError):
    """Raised when a backup archive cannot be written or restored."""

# pocket_ledger/backup.py
from __future__ import annotations

import logging
import os
import shutil
import sqlite3
import tempfile
from pathlib import Path

from pocket_ledger.database import RecordStore, verify_database
from pocket_ledger.errors import BackupError, StoreError
from pocket_ledger.events import ChangeNotifier

logger = logging.getLogger(__name__)

BACKUP_NAME = "LedgerBackup.sqlite"


def _temp_path(directory: Path, prefix: str) -> Path:
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=".tmp", dir=directory)
    os.close(fd)
    return Path(name)


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", path, exc)


class BackupManager:
    """Snapshots the ledger database to a single archive and restores it.

    There is exactly one archive, ``<backup_dir>/LedgerBackup.sqlite``; each
    backup replaces the previous one.
    """

    def __init__(
        self,
        store: RecordStore,
        backup_dir: str | Path,
        notifier: ChangeNotifier | None = None,
    ):
        self.store = store
        self.backup_dir = Path(backup_dir)
        self.notifier = notifier or ChangeNotifier()

    @property
    def archive_path(self) -> Path:
        return self.backup_dir / BACKUP_NAME

    def backup(self) -> Path:
        """Write a consistent copy of the live store to :attr:`archive_path`.

        The copy is built in a temporary file and moved over the previous
        archive in one step, so a failure leaves the old archive in place.
        The live database is only read.
        """
        target = self.archive_path
        tmp: Path | None = None
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            tmp = _temp_path(self.backup_dir, ".backup-")
            with self.store.lock:
                source = self.store.connection
                dest = sqlite3.connect(tmp)
                try:
                    source.backup(dest)
                finally:
                    dest.close()
            os.replace(tmp, target)
        except (OSError, sqlite3.Error, StoreError) as exc:
            if tmp is not None:
                _discard(tmp)
            logger.error("Backup to %s failed: %s", target, exc)
            raise BackupError(f"Backup failed: {exc}") from exc
        logger.info("Backed up %s to %s", self.store.path, target)
        return target

    def restore(self, locator: str | Path) -> None:
        """Replace the live store with the archive at *locator*.

        The store handle is closed and reopens on next use; callers must
        re-read any categories or transactions they hold in memory.
        """
        archive = Path(locator)
        try:
            verify_database(archive)
        except StoreError as exc:
            logger.error("Refusing to restore from %s: %s", archive, exc)
            raise BackupError(f"Cannot restore from {archive}: {exc}") from exc

        live = self.store.path
        tmp: Path | None = None
        with self.store.lock:
            try:
                live.parent.mkdir(parents=True, exist_ok=True)
                tmp = _temp_path(live.parent, ".restore-")
                shutil.copyfile(archive, tmp)
                self.store.close()
                os.replace(tmp, live)
            except OSError as exc:
                if tmp is not None:
                    _discard(tmp)
                logger.error("Restore from %s failed: %s", archive, exc)
                raise BackupError(f"Restore failed: {exc}") from exc
        logger.info("Restored %s from %s", live, archive)
        self.notifier.emit("store")

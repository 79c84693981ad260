"""SQLite-backed record store used by the registry and the ledger.

The store owns a single connection to the ledger database file. Writes are
collected in an implicit SQLite transaction and only become durable when
:meth:`RecordStore.save` commits them, so a logical operation wrapped in
:meth:`RecordStore.atomic` is either fully applied or fully rolled back.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple

from pocket_ledger.errors import StoreError

logger = logging.getLogger(__name__)

CATEGORY = "category"
TRANSACTION = "transaction"

_TABLES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    CATEGORY: ("categories", ("id", "name", "icon", "sort_order")),
    TRANSACTION: ("transactions", ("id", "amount", "category_id", "note", "date")),
}


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS categories (
            seq INTEGER PRIMARY KEY,
            id TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            icon TEXT NOT NULL,
            sort_order INTEGER NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            seq INTEGER PRIMARY KEY,
            id TEXT NOT NULL UNIQUE,
            amount REAL NOT NULL,
            category_id TEXT,
            note TEXT NOT NULL DEFAULT '',
            date TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _table(kind: str) -> Tuple[str, Tuple[str, ...]]:
    try:
        return _TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind '{kind}'") from None


def _check_columns(kind: str, names: Iterable[str]) -> None:
    _, columns = _table(kind)
    for name in names:
        if name not in columns:
            raise ValueError(f"Unknown column '{name}' for {kind} records")


def verify_database(path: str | Path) -> None:
    """Raise :class:`StoreError` unless *path* is a readable ledger database."""

    target = Path(path)
    if not target.is_file():
        raise StoreError(f"Database not found: {target}")
    try:
        conn = sqlite3.connect(target.resolve().as_uri() + "?mode=ro", uri=True)
        try:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        raise StoreError(f"Unreadable database {target}: {exc}") from exc
    tables = {row[0] for row in rows}
    missing = {name for name, _ in _TABLES.values()} - tables
    if missing:
        raise StoreError(
            f"{target} is not a ledger database (missing {', '.join(sorted(missing))})"
        )


class RecordStore:
    """Durable, key-indexed storage for category and transaction records."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        # Guards every read, write and replacement of the database file.
        self.lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        with self.lock:
            if self._conn is None:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(self.path, check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    _init_db(conn)
                except (OSError, sqlite3.Error) as exc:
                    logger.error("Cannot open database %s: %s", self.path, exc)
                    raise StoreError(f"Cannot open database {self.path}: {exc}") from exc
                self._conn = conn
            return self._conn

    def _execute(self, query: str, params: Iterable[object] = ()) -> sqlite3.Cursor:
        try:
            return self.connection.execute(query, tuple(params))
        except sqlite3.Error as exc:
            logger.error("Query failed on %s: %s", self.path, exc)
            raise StoreError(str(exc)) from exc

    def fetch(
        self,
        kind: str,
        sort_keys: Iterable[Tuple[str, bool]] = (),
    ) -> List[Dict[str, object]]:
        """Return all records of *kind* ordered by *sort_keys*.

        Parameters
        ----------
        kind:
            ``"category"`` or ``"transaction"``.
        sort_keys:
            ``(column, ascending)`` pairs. Insertion order always breaks ties.
        """
        table, columns = _table(kind)
        sort_keys = list(sort_keys)
        _check_columns(kind, (col for col, _ in sort_keys))
        order = [f"{col} {'ASC' if asc else 'DESC'}" for col, asc in sort_keys]
        order.append("seq ASC")
        query = f"SELECT {', '.join(columns)} FROM {table} ORDER BY {', '.join(order)}"
        with self.lock:
            rows = self._execute(query).fetchall()
        return [dict(row) for row in rows]

    def get(self, kind: str, record_id: str) -> Dict[str, object] | None:
        table, columns = _table(kind)
        with self.lock:
            row = self._execute(
                f"SELECT {', '.join(columns)} FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
        return dict(row) if row is not None else None

    def insert(self, kind: str, values: Dict[str, object]) -> None:
        table, _ = _table(kind)
        _check_columns(kind, values)
        names = list(values)
        placeholders = ", ".join("?" for _ in names)
        with self.lock:
            self._execute(
                f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})",
                (values[name] for name in names),
            )

    def update(self, kind: str, record_id: str, values: Dict[str, object]) -> int:
        return self.update_where(kind, values, "id", record_id)

    def update_where(
        self,
        kind: str,
        values: Dict[str, object],
        column: str,
        match: object,
    ) -> int:
        """Set *values* on every record whose *column* equals *match*."""
        table, _ = _table(kind)
        _check_columns(kind, list(values) + [column])
        assignments = ", ".join(f"{name} = ?" for name in values)
        params = list(values.values()) + [match]
        with self.lock:
            cur = self._execute(
                f"UPDATE {table} SET {assignments} WHERE {column} = ?", params
            )
        return cur.rowcount

    def delete(self, kind: str, record_id: str) -> int:
        table, _ = _table(kind)
        with self.lock:
            cur = self._execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        return cur.rowcount

    def save(self) -> None:
        """Commit pending changes, if any."""
        with self.lock:
            if self._conn is None or not self._conn.in_transaction:
                return
            try:
                self._conn.commit()
            except sqlite3.Error as exc:
                logger.error("Save failed on %s: %s", self.path, exc)
                self.rollback()
                raise StoreError(f"Save failed: {exc}") from exc

    def rollback(self) -> None:
        with self.lock:
            if self._conn is None:
                return
            try:
                self._conn.rollback()
            except sqlite3.Error as exc:
                raise StoreError(f"Rollback failed: {exc}") from exc

    @contextmanager
    def atomic(self) -> Iterator["RecordStore"]:
        """Run a block of writes as one save; roll back if it raises."""
        with self.lock:
            self._depth += 1
            try:
                yield self
            except BaseException:
                if self._depth == 1:
                    self.rollback()
                raise
            else:
                if self._depth == 1:
                    self.save()
            finally:
                self._depth -= 1

    def close(self) -> None:
        with self.lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

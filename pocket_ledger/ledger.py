# pocket_ledger/ledger.py
from __future__ import annotations

import logging
import math
import uuid
from datetime import date as Date, datetime
from typing import Dict, List

from pocket_ledger.categories import CategoryRegistry
from pocket_ledger.core.models import Transaction
from pocket_ledger.database import TRANSACTION, RecordStore
from pocket_ledger.errors import NotFoundError, ValidationError
from pocket_ledger.events import ChangeNotifier

logger = logging.getLogger(__name__)


def _to_transaction(row: Dict[str, object]) -> Transaction:
    return Transaction(
        id=str(row["id"]),
        amount=float(row["amount"]),
        date=datetime.fromisoformat(str(row["date"])),
        note=str(row["note"] or ""),
        category_id=row["category_id"] or None,
    )


def _clean_amount(amount) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {amount!r}") from None
    if not math.isfinite(value):
        raise ValidationError(f"Invalid amount: {amount!r}")
    return value


def _clean_date(value) -> datetime:
    """Return *value* as a naive local datetime.

    Aware datetimes are converted to local time; plain dates become midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            return value.astimezone().replace(tzinfo=None)
        return value.replace(tzinfo=None)
    if isinstance(value, Date):
        return datetime(value.year, value.month, value.day)
    raise ValidationError(f"Invalid date: {value!r}")


class TransactionLedger:
    """Creates, edits and deletes transaction records.

    Category references are validated against the registry on every write;
    the registry is the only place that may clear them afterwards.
    """

    def __init__(
        self,
        store: RecordStore,
        registry: CategoryRegistry,
        notifier: ChangeNotifier | None = None,
    ):
        self.store = store
        self.registry = registry
        self.notifier = notifier or registry.notifier

    def list(self) -> List[Transaction]:
        """Return every transaction, newest first."""
        rows = self.store.fetch(TRANSACTION, [("date", False)])
        return [_to_transaction(row) for row in rows]

    def get(self, transaction_id: str) -> Transaction:
        row = self.store.get(TRANSACTION, transaction_id)
        if row is None:
            raise NotFoundError(f"Unknown transaction: {transaction_id}")
        return _to_transaction(row)

    def add(
        self,
        amount: float,
        category_id: str | None = None,
        note: str = "",
        date: datetime | None = None,
    ) -> Transaction:
        tx = Transaction(
            id=uuid.uuid4().hex,
            amount=_clean_amount(amount),
            date=datetime.now() if date is None else _clean_date(date),
            note=note or "",
            category_id=category_id or None,
        )
        with self.store.atomic():
            self._check_category(tx.category_id)
            self.store.insert(TRANSACTION, self._values(tx))
        logger.info("Added transaction %s (%.2f)", tx.id, tx.amount)
        self.notifier.emit(TRANSACTION)
        return tx

    def update(
        self,
        transaction_id: str,
        amount: float,
        category_id: str | None,
        note: str,
        date: datetime,
    ) -> Transaction:
        """Replace every mutable field of an existing transaction."""
        tx = Transaction(
            id=transaction_id,
            amount=_clean_amount(amount),
            date=_clean_date(date),
            note=note or "",
            category_id=category_id or None,
        )
        with self.store.atomic():
            self.get(transaction_id)
            self._check_category(tx.category_id)
            values = self._values(tx)
            del values["id"]
            self.store.update(TRANSACTION, transaction_id, values)
        logger.info("Updated transaction %s", transaction_id)
        self.notifier.emit(TRANSACTION)
        return tx

    def delete(self, transaction_id: str) -> None:
        with self.store.atomic():
            if not self.store.delete(TRANSACTION, transaction_id):
                raise NotFoundError(f"Unknown transaction: {transaction_id}")
        logger.info("Deleted transaction %s", transaction_id)
        self.notifier.emit(TRANSACTION)

    def _check_category(self, category_id: str | None) -> None:
        if category_id is not None and not self.registry.exists(category_id):
            raise NotFoundError(f"Unknown category: {category_id}")

    @staticmethod
    def _values(tx: Transaction) -> Dict[str, object]:
        return {
            "id": tx.id,
            "amount": tx.amount,
            "category_id": tx.category_id,
            "note": tx.note,
            "date": tx.date.isoformat(timespec="microseconds"),
        }

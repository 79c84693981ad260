"""Wires the store, registry, ledger and backup manager together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from pocket_ledger.backup import BackupManager
from pocket_ledger.categories import CategoryRegistry
from pocket_ledger.config import data_dir, db_path, load_config
from pocket_ledger.database import RecordStore
from pocket_ledger.events import ChangeNotifier
from pocket_ledger.ledger import TransactionLedger
from pocket_ledger.queries import parse_weekday

logger = logging.getLogger(__name__)


@dataclass
class LedgerApp:
    store: RecordStore
    categories: CategoryRegistry
    transactions: TransactionLedger
    backups: BackupManager
    notifier: ChangeNotifier
    first_weekday: int
    config: Dict[str, object] = field(default_factory=dict)

    def close(self) -> None:
        self.store.close()


def open_app(config: Dict[str, object] | None = None) -> LedgerApp:
    """Open the ledger described by *config* and seed starter categories.

    Seeding only happens on an empty registry and can be disabled with
    ``seed_defaults: false``.
    """
    config = config if config is not None else load_config()
    notifier = ChangeNotifier()
    store = RecordStore(db_path(config))
    registry = CategoryRegistry(store, notifier)
    app = LedgerApp(
        store=store,
        categories=registry,
        transactions=TransactionLedger(store, registry, notifier),
        backups=BackupManager(store, data_dir(config), notifier),
        notifier=notifier,
        first_weekday=parse_weekday(config.get("first_weekday")),
        config=config,
    )
    if config.get("seed_defaults", True):
        app.categories.seed_defaults()
    logger.debug("Opened ledger at %s", store.path)
    return app

# pocket_ledger/categories.py
from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Sequence, Tuple

from pocket_ledger.core.models import Category
from pocket_ledger.database import CATEGORY, TRANSACTION, RecordStore
from pocket_ledger.errors import NotFoundError, ValidationError
from pocket_ledger.events import ChangeNotifier

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("food", "fork.knife"),
    ("transport", "car"),
    ("shopping", "cart"),
    ("entertainment", "gamecontroller"),
    ("household", "house"),
)


def _to_category(row: Dict[str, object]) -> Category:
    return Category(
        id=str(row["id"]),
        name=str(row["name"]),
        icon=str(row["icon"]),
        sort_order=int(row["sort_order"]),
    )


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Category name must not be empty")
    return cleaned


class CategoryRegistry:
    """Category definitions and their display order."""

    def __init__(self, store: RecordStore, notifier: ChangeNotifier | None = None):
        self.store = store
        self.notifier = notifier or ChangeNotifier()

    def list(self) -> List[Category]:
        rows = self.store.fetch(CATEGORY, [("sort_order", True)])
        return [_to_category(row) for row in rows]

    def get(self, category_id: str) -> Category:
        row = self.store.get(CATEGORY, category_id)
        if row is None:
            raise NotFoundError(f"Unknown category: {category_id}")
        return _to_category(row)

    def exists(self, category_id: str) -> bool:
        return self.store.get(CATEGORY, category_id) is not None

    def by_id(self) -> Dict[str, Category]:
        return {cat.id: cat for cat in self.list()}

    def add(self, name: str, icon: str = "") -> Category:
        """Create a category placed after every existing one."""
        name = _clean_name(name)
        with self.store.atomic():
            orders = [cat.sort_order for cat in self.list()]
            category = Category(
                id=uuid.uuid4().hex,
                name=name,
                icon=icon or "",
                sort_order=max(orders) + 1 if orders else 0,
            )
            self.store.insert(CATEGORY, self._values(category))
        logger.info("Added category %s (%s)", category.name, category.id)
        self.notifier.emit(CATEGORY)
        return category

    def rename(self, category_id: str, new_name: str, new_icon: str | None = None) -> Category:
        """Change the name and, when given, the icon of a category."""
        name = _clean_name(new_name)
        with self.store.atomic():
            category = self.get(category_id)
            category.name = name
            if new_icon is not None:
                category.icon = new_icon
            self.store.update(CATEGORY, category.id, {"name": category.name, "icon": category.icon})
        logger.info("Renamed category %s to %s", category.id, category.name)
        self.notifier.emit(CATEGORY)
        return category

    def reorder(self, ordered_ids: Sequence[str]) -> List[Category]:
        """Rewrite ``sort_order`` so categories follow *ordered_ids*.

        Listed categories get ``0..n-1``. Categories left out of a partial
        list keep their relative order and follow the listed ones.
        """
        ordered_ids = list(ordered_ids)
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("Duplicate category ids in reorder request")
        with self.store.atomic():
            current = self.list()
            known = {cat.id for cat in current}
            unknown = [cid for cid in ordered_ids if cid not in known]
            if unknown:
                raise ValidationError(f"Unknown category ids: {', '.join(unknown)}")
            listed = set(ordered_ids)
            rest = [cat.id for cat in current if cat.id not in listed]
            for index, cid in enumerate(ordered_ids + rest):
                self.store.update(CATEGORY, cid, {"sort_order": index})
        logger.info("Reordered %d categories", len(ordered_ids))
        self.notifier.emit(CATEGORY)
        return self.list()

    def delete(self, category_id: str) -> int:
        """Delete a category and uncategorize its transactions.

        Returns the number of transactions whose reference was cleared.
        """
        with self.store.atomic():
            self.get(category_id)
            orphaned = self.store.update_where(
                TRANSACTION, {"category_id": None}, "category_id", category_id
            )
            self.store.delete(CATEGORY, category_id)
        logger.info(
            "Deleted category %s; %d transaction(s) now uncategorized",
            category_id,
            orphaned,
        )
        self.notifier.emit(CATEGORY)
        if orphaned:
            self.notifier.emit(TRANSACTION)
        return orphaned

    def seed_defaults(self) -> List[Category]:
        """Insert the starter categories when the registry is empty."""
        with self.store.atomic():
            if self.list():
                return []
            created = []
            for index, (name, icon) in enumerate(DEFAULT_CATEGORIES):
                category = Category(id=uuid.uuid4().hex, name=name, icon=icon, sort_order=index)
                self.store.insert(CATEGORY, self._values(category))
                created.append(category)
        logger.info("Seeded %d default categories", len(created))
        self.notifier.emit(CATEGORY)
        return created

    @staticmethod
    def _values(category: Category) -> Dict[str, object]:
        return {
            "id": category.id,
            "name": category.name,
            "icon": category.icon,
            "sort_order": category.sort_order,
        }

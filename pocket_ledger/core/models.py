# pocket_ledger/core/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

UNCATEGORIZED = "uncategorized"


@dataclass
class Category:
    id: str
    name: str
    icon: str
    sort_order: int


@dataclass
class Transaction:
    id: str
    amount: float
    date: datetime
    note: str = ""
    category_id: Optional[str] = None

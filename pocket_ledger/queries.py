"""Read-side filtering, grouping and aggregation over transaction lists.

Everything here is a pure function of its arguments and, for the relative
date ranges, the current time. Pass ``now`` explicitly to get repeatable
results; a call that straddles midnight may otherwise see a different
"today" than the previous one.
"""

from __future__ import annotations

import calendar
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from pocket_ledger.core.models import UNCATEGORIZED, Category, Transaction
from pocket_ledger.errors import ValidationError

PALETTE: Tuple[str, ...] = ("blue", "green", "orange", "red", "purple", "pink")

RANGE_KINDS: Tuple[str, ...] = ("all", "today", "week", "month", "year", "custom")

WEEKDAYS: Dict[str, int] = {
    name.lower(): index for index, name in enumerate(calendar.day_name)
}

DateLike = Union[date, datetime]


def start_of_day(value: DateLike) -> datetime:
    return datetime(value.year, value.month, value.day)


def _parse_day(value: DateLike | str | None, field_name: str) -> date:
    if value is None or value == "":
        raise ValidationError(f"A custom date range requires '{field_name}'")
    if isinstance(value, (date, datetime)):
        return value
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value}") from None


def parse_weekday(value: int | str | None) -> int:
    """Return a ``calendar`` weekday index for a name or number.

    ``None`` falls back to :func:`calendar.firstweekday`.
    """
    if value is None:
        return calendar.firstweekday()
    if isinstance(value, int):
        if not 0 <= value <= 6:
            raise ValidationError(f"Invalid weekday index: {value}")
        return value
    try:
        return WEEKDAYS[value.strip().lower()]
    except KeyError:
        raise ValidationError(f"Invalid weekday: {value}") from None


@dataclass(frozen=True)
class DateRange:
    """A window of calendar days.

    ``kind`` is one of ``RANGE_KINDS``; ``start``/``end`` are only used by
    custom ranges and are both inclusive.
    """

    kind: str = "all"
    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.kind not in RANGE_KINDS:
            raise ValidationError(f"Unknown date range '{self.kind}'")
        if self.kind == "custom":
            if self.start is None or self.end is None:
                raise ValidationError("A custom date range requires start and end")
            if start_of_day(self.start) > start_of_day(self.end):
                raise ValidationError("start must be on or before end")

    @classmethod
    def custom(cls, start: DateLike, end: DateLike) -> "DateRange":
        return cls("custom", start, end)

    @classmethod
    def parse(
        cls,
        kind: str | None,
        start: DateLike | str | None = None,
        end: DateLike | str | None = None,
    ) -> "DateRange":
        """Build a range from user input such as CLI options.

        Giving ``start`` or ``end`` without a kind implies a custom range;
        giving them with any other kind is an error.
        """
        kind = (kind or "").strip().lower()
        if not kind:
            kind = "custom" if (start or end) else "all"
        if kind == "custom":
            return cls.custom(_parse_day(start, "start"), _parse_day(end, "end"))
        if start or end:
            raise ValidationError(f"start/end only apply to a custom range, not '{kind}'")
        return cls(kind)


ALL_TIME = DateRange("all")
TODAY = DateRange("today")
THIS_WEEK = DateRange("week")
THIS_MONTH = DateRange("month")
THIS_YEAR = DateRange("year")


def _window(
    date_range: DateRange,
    now: datetime | None = None,
    first_weekday: int | str | None = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Return the half-open ``[start, stop)`` interval for *date_range*."""
    if date_range.kind == "all":
        return None, None
    if date_range.kind == "custom":
        return (
            start_of_day(date_range.start),
            start_of_day(date_range.end) + timedelta(days=1),
        )

    today = start_of_day(now or datetime.now())
    if date_range.kind == "today":
        return today, today + timedelta(days=1)
    if date_range.kind == "week":
        offset = (today.weekday() - parse_weekday(first_weekday)) % 7
        start = today - timedelta(days=offset)
        return start, start + timedelta(days=7)
    if date_range.kind == "month":
        start = today.replace(day=1)
        if start.month == 12:
            return start, start.replace(year=start.year + 1, month=1)
        return start, start.replace(month=start.month + 1)
    start = today.replace(month=1, day=1)
    return start, start.replace(year=start.year + 1)


def date_bounds(
    date_range: DateRange,
    now: datetime | None = None,
    first_weekday: int | str | None = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Return the first and last instant covered by *date_range*.

    Both are ``None`` for the all-time range.
    """
    start, stop = _window(date_range, now, first_weekday)
    if stop is None:
        return start, None
    return start, stop - timedelta(microseconds=1)


def filter_transactions(
    transactions: Iterable[Transaction],
    category_id: str | None = None,
    date_range: DateRange | None = None,
    now: datetime | None = None,
    first_weekday: int | str | None = None,
) -> List[Transaction]:
    """Select transactions by category and date window, keeping input order.

    Parameters
    ----------
    transactions:
        Transactions to filter, usually ``TransactionLedger.list()``.
    category_id:
        Only keep transactions in this category. ``None`` matches all.
    date_range:
        Window to keep; defaults to all time.
    now:
        Reference time for the relative ranges. Defaults to the wall clock.
    first_weekday:
        First day of the week for the ``week`` range.
    """
    start, stop = _window(date_range or ALL_TIME, now, first_weekday)
    selected = []
    for tx in transactions:
        if category_id is not None and tx.category_id != category_id:
            continue
        if start is not None and not (start <= tx.date < stop):
            continue
        selected.append(tx)
    return selected


class DayGroup(NamedTuple):
    day: datetime
    transactions: List[Transaction]


def group_by_day(transactions: Iterable[Transaction]) -> List[DayGroup]:
    """Bucket transactions by calendar day, newest day first."""
    buckets: Dict[datetime, List[Transaction]] = OrderedDict()
    for tx in transactions:
        buckets.setdefault(start_of_day(tx.date), []).append(tx)
    return [
        DayGroup(day, items)
        for day, items in sorted(buckets.items(), key=lambda item: item[0], reverse=True)
    ]


class CategoryTotal(NamedTuple):
    label: str
    total: float


def _category_names(
    categories: Mapping[str, Category] | Iterable[Category] | None,
) -> Dict[str, str]:
    if categories is None:
        return {}
    if isinstance(categories, Mapping):
        return {cid: cat.name for cid, cat in categories.items()}
    return {cat.id: cat.name for cat in categories}


def aggregate_by_category(
    transactions: Iterable[Transaction],
    categories: Mapping[str, Category] | Iterable[Category] | None = None,
) -> List[CategoryTotal]:
    """Sum absolute amounts per category name, largest total first.

    Transactions without a category, or whose category can no longer be
    resolved, are counted under ``"uncategorized"``. Equal totals keep the
    order in which their labels were first seen.
    """
    names = _category_names(categories)
    totals: Dict[str, float] = OrderedDict()
    for tx in transactions:
        label = names.get(tx.category_id, UNCATEGORIZED) if tx.category_id else UNCATEGORIZED
        totals[label] = totals.get(label, 0.0) + abs(tx.amount)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(label, total) for label, total in ranked]


class CategoryPalette:
    """Hands out display colors to labels in first-seen order.

    The mapping lives for as long as the palette object; it is never
    stored with the ledger data.
    """

    def __init__(self, colors: Iterable[str] = PALETTE):
        self.colors = tuple(colors)
        if not self.colors:
            raise ValueError("palette needs at least one color")
        self._assigned: Dict[str, str] = {}

    def color_for(self, label: str) -> str:
        if label not in self._assigned:
            self._assigned[label] = self.colors[len(self._assigned) % len(self.colors)]
        return self._assigned[label]

    def colorize(self, totals: Iterable[CategoryTotal]) -> List[Tuple[str, float, str]]:
        return [(item.label, item.total, self.color_for(item.label)) for item in totals]


def overview(transactions: Iterable[Transaction]) -> Dict[str, object]:
    """Return count, income, expense and net totals for *transactions*."""
    txs = list(transactions)
    income = sum(tx.amount for tx in txs if tx.amount > 0)
    expense = sum(-tx.amount for tx in txs if tx.amount < 0)
    dates = [tx.date for tx in txs]
    return {
        "transactions": len(txs),
        "income": float(income),
        "expense": float(expense),
        "net": float(income - expense),
        "first_date": min(dates).isoformat() if dates else None,
        "last_date": max(dates).isoformat() if dates else None,
    }

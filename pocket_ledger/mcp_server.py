from __future__ import annotations

from dataclasses import asdict

import anyio
from mcp.server.fastmcp import FastMCP

from pocket_ledger.app import open_app
from pocket_ledger.config import db_path, load_config
from pocket_ledger.queries import (
    DateRange,
    aggregate_by_category,
    filter_transactions,
    overview,
)

server = FastMCP(name="PocketLedger", instructions="Read-only access to the personal ledger")


def _open(config_path: str | None):
    cfg = load_config(config_path)
    if not db_path(cfg).exists():
        raise FileNotFoundError(f"Database not found: {db_path(cfg)}")
    # Tools only read; never seed a ledger that someone else owns.
    cfg["seed_defaults"] = False
    return open_app(cfg)


def _date_range(range_kind: str | None, start: str | None, end: str | None) -> DateRange:
    try:
        return DateRange.parse(range_kind, start, end)
    except ValueError as exc:
        raise ValueError(f"Invalid date range: {exc}") from exc


@server.tool(name="get_categories", description="List categories in display order")
async def get_categories(config_path: str | None = None) -> list[dict]:
    def _run() -> list[dict]:
        app = _open(config_path)
        try:
            return [asdict(cat) for cat in app.categories.list()]
        finally:
            app.close()

    return await anyio.to_thread.run_sync(_run)


@server.tool(
    name="get_transactions",
    description="Fetch transactions, newest first, filtered by category and date range",
)
async def get_transactions(
    range_kind: str | None = None,
    category_id: str | None = None,
    start: str | None = None,
    end: str | None = None,
    config_path: str | None = None,
) -> list[dict]:
    """Return transactions matching the filters.

    Parameters
    ----------
    range_kind:
        ``all``, ``today``, ``week``, ``month``, ``year`` or ``custom``.
    category_id:
        Optional category id to filter on.
    start, end:
        ISO dates bounding a custom range (both inclusive).
    config_path:
        Optional config file locating the ledger database.
    """
    date_range = _date_range(range_kind, start, end)

    def _run() -> list[dict]:
        app = _open(config_path)
        try:
            txs = filter_transactions(
                app.transactions.list(),
                category_id=category_id,
                date_range=date_range,
                first_weekday=app.first_weekday,
            )
        finally:
            app.close()
        rows = []
        for tx in txs:
            row = asdict(tx)
            row["date"] = tx.date.isoformat()
            rows.append(row)
        return rows

    return await anyio.to_thread.run_sync(_run)


@server.tool(
    name="summarize_spend_by_category",
    description="Sum absolute amounts per category over a date range",
)
async def summarize_spend_by_category(
    range_kind: str | None = "month",
    start: str | None = None,
    end: str | None = None,
    config_path: str | None = None,
) -> dict:
    date_range = _date_range(range_kind, start, end)

    def _run() -> dict:
        app = _open(config_path)
        try:
            txs = filter_transactions(
                app.transactions.list(),
                date_range=date_range,
                first_weekday=app.first_weekday,
            )
            totals = aggregate_by_category(txs, app.categories.by_id())
        finally:
            app.close()
        return {
            "categories": [{"category": label, "total": total} for label, total in totals],
            "overview": overview(txs),
        }

    return await anyio.to_thread.run_sync(_run)


def main() -> None:
    server.run()


if __name__ == "__main__":
    main()

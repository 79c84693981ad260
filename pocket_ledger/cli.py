# pocket_ledger/cli.py
import logging
import os
from contextlib import contextmanager

import click
from dotenv import load_dotenv

from pocket_ledger.app import open_app
from pocket_ledger.config import load_config
from pocket_ledger.core.models import UNCATEGORIZED
from pocket_ledger.errors import LedgerError, NotFoundError
from pocket_ledger.queries import (
    RANGE_KINDS,
    CategoryPalette,
    DateRange,
    aggregate_by_category,
    filter_transactions,
    group_by_day,
    overview,
)

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S"]


@contextmanager
def _ledger_errors():
    try:
        yield
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc


def _resolve(ref, items, label):
    """Match *ref* against ids, then names, then unique id prefixes."""
    for item in items:
        if item.id == ref:
            return item.id
    named = [item for item in items if getattr(item, "name", "").lower() == ref.lower()]
    if len(named) == 1:
        return named[0].id
    prefixed = [item for item in items if item.id.startswith(ref)]
    if len(prefixed) == 1:
        return prefixed[0].id
    if len(named) > 1 or len(prefixed) > 1:
        raise click.ClickException(f"Ambiguous {label} '{ref}'")
    raise NotFoundError(f"Unknown {label}: {ref}")


def _category_id(app, ref):
    if ref is None:
        return None
    return _resolve(ref, app.categories.list(), "category")


def _date_range(kind, start, end):
    return DateRange.parse(kind, start, end)


def _format_tx(tx, names):
    label = names.get(tx.category_id, UNCATEGORIZED) if tx.category_id else UNCATEGORIZED
    note = f"  {tx.note}" if tx.note else ""
    return f"{tx.id[:8]}  {tx.date:%Y-%m-%d %H:%M}  {tx.amount:>10.2f}  {label}{note}"


range_options = [
    click.option('--range', 'range_kind', default=None, type=click.Choice(RANGE_KINDS),
                 help='Date window (default: all, or custom when --start/--end are given)'),
    click.option('--start', default=None, type=click.DateTime(["%Y-%m-%d"]),
                 help='First day of a custom range'),
    click.option('--end', default=None, type=click.DateTime(["%Y-%m-%d"]),
                 help='Last day of a custom range (inclusive)'),
]


def with_range_options(func):
    for option in reversed(range_options):
        func = option(func)
    return func


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (default: $POCKET_LEDGER_CONFIG)'
)
@click.option(
    '--data-dir', 'data_dir',
    default=None,
    type=click.Path(file_okay=False),
    help='Directory holding the ledger database and its backup'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file to load before reading the config'
)
@click.pass_context
def main(ctx, config_path, data_dir, env_file):
    """Record income and expenses, browse them and view spending statistics."""
    if env_file:
        load_dotenv(env_file)

    try:
        cfg = load_config(config_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot load config: {exc}") from exc
    if data_dir:
        cfg['data_dir'] = data_dir

    level = os.getenv("POCKET_LEDGER_LOG", str(cfg.get("log_level", "WARNING")))
    logging.basicConfig(level=level.upper())

    with _ledger_errors():
        app = open_app(cfg)
    ctx.obj = app
    ctx.call_on_close(app.close)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@main.group()
def category():
    """Manage categories and their display order."""


@category.command('list')
@click.pass_obj
def category_list(app):
    with _ledger_errors():
        cats = app.categories.list()
    if not cats:
        click.echo("No categories.")
    for cat in cats:
        click.echo(f"{cat.sort_order:>3}  {cat.id[:8]}  {cat.icon or '-':<15}  {cat.name}")


@category.command('add')
@click.argument('name')
@click.option('--icon', default='', help='Icon name shown next to the category')
@click.pass_obj
def category_add(app, name, icon):
    with _ledger_errors():
        cat = app.categories.add(name, icon)
    click.echo(f"Added category {cat.name} ({cat.id}).")


@category.command('rename')
@click.argument('ref')
@click.argument('new_name')
@click.option('--icon', default=None, help='New icon name')
@click.pass_obj
def category_rename(app, ref, new_name, icon):
    with _ledger_errors():
        cat = app.categories.rename(_category_id(app, ref), new_name, icon)
    click.echo(f"Renamed category {cat.id} to {cat.name}.")


@category.command('reorder')
@click.argument('refs', nargs=-1, required=True)
@click.pass_obj
def category_reorder(app, refs):
    """Put categories in the given order; unlisted ones follow."""
    with _ledger_errors():
        ids = [_category_id(app, ref) for ref in refs]
        cats = app.categories.reorder(ids)
    click.echo(", ".join(cat.name for cat in cats))


@category.command('delete')
@click.argument('ref')
@click.pass_obj
def category_delete(app, ref):
    with _ledger_errors():
        orphaned = app.categories.delete(_category_id(app, ref))
    click.echo(f"Deleted category; {orphaned} transaction(s) are now uncategorized.")


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

@main.group()
def tx():
    """Record, edit and browse transactions."""


@tx.command('add')
@click.argument('amount', type=float)
@click.option('--expense', is_flag=True, default=False, help='Record AMOUNT as money spent')
@click.option('--category', 'category_ref', default=None, help='Category id, id prefix or name')
@click.option('--note', default='', help='Free-text note')
@click.option('--date', 'when', default=None, type=click.DateTime(DATE_FORMATS),
              help='When it happened (default: now)')
@click.pass_obj
def tx_add(app, amount, expense, category_ref, note, when):
    if expense:
        amount = -abs(amount)
    with _ledger_errors():
        record = app.transactions.add(amount, _category_id(app, category_ref), note, when)
    click.echo(f"Added transaction {record.id} ({record.amount:.2f}).")


@tx.command('edit')
@click.argument('ref')
@click.option('--amount', default=None, type=float, help='New amount')
@click.option('--category', 'category_ref', default=None, help='New category')
@click.option('--uncategorized', is_flag=True, default=False, help='Clear the category')
@click.option('--note', default=None, help='New note')
@click.option('--date', 'when', default=None, type=click.DateTime(DATE_FORMATS), help='New date')
@click.pass_obj
def tx_edit(app, ref, amount, category_ref, uncategorized, note, when):
    with _ledger_errors():
        current = app.transactions.get(_resolve(ref, app.transactions.list(), "transaction"))
        category_id = current.category_id
        if uncategorized:
            category_id = None
        elif category_ref is not None:
            category_id = _category_id(app, category_ref)
        record = app.transactions.update(
            current.id,
            current.amount if amount is None else amount,
            category_id,
            current.note if note is None else note,
            current.date if when is None else when,
        )
    click.echo(f"Updated transaction {record.id}.")


@tx.command('delete')
@click.argument('ref')
@click.pass_obj
def tx_delete(app, ref):
    with _ledger_errors():
        tx_id = _resolve(ref, app.transactions.list(), "transaction")
        app.transactions.delete(tx_id)
    click.echo(f"Deleted transaction {tx_id}.")


@tx.command('list')
@click.option('--category', 'category_ref', default=None, help='Only this category')
@with_range_options
@click.option('--by-day', is_flag=True, default=False, help='Group the output by day')
@click.pass_obj
def tx_list(app, category_ref, range_kind, start, end, by_day):
    with _ledger_errors():
        names = {cat.id: cat.name for cat in app.categories.list()}
        txs = filter_transactions(
            app.transactions.list(),
            category_id=_category_id(app, category_ref),
            date_range=_date_range(range_kind, start, end),
            first_weekday=app.first_weekday,
        )
    if not txs:
        click.echo("No transactions.")
        return
    if by_day:
        for group in group_by_day(txs):
            click.echo(f"{group.day:%Y-%m-%d}")
            for record in group.transactions:
                click.echo("  " + _format_tx(record, names))
    else:
        for record in txs:
            click.echo(_format_tx(record, names))


# ---------------------------------------------------------------------------
# Statistics and backups
# ---------------------------------------------------------------------------

@main.command()
@with_range_options
@click.pass_obj
def stats(app, range_kind, start, end):
    """Show spending per category over a date window (default: this month)."""
    if range_kind is None and not (start or end):
        range_kind = "month"
    with _ledger_errors():
        txs = filter_transactions(
            app.transactions.list(),
            date_range=_date_range(range_kind, start, end),
            first_weekday=app.first_weekday,
        )
        totals = aggregate_by_category(txs, app.categories.by_id())
    summary = overview(txs)
    palette = CategoryPalette()
    for label, total, color in palette.colorize(totals):
        click.echo(f"{label:<20} {total:>10.2f}  {color}")
    click.echo(
        f"{summary['transactions']} transaction(s): income {summary['income']:.2f}, "
        f"expense {summary['expense']:.2f}, net {summary['net']:.2f}"
    )


@main.command()
@click.pass_obj
def backup(app):
    """Copy the ledger to the backup archive in the data directory."""
    with _ledger_errors():
        path = app.backups.backup()
    click.echo(f"Backup written to {path}")


@main.command()
@click.argument('archive', type=click.Path(dir_okay=False))
@click.pass_obj
def restore(app, archive):
    """Replace the ledger with the contents of ARCHIVE."""
    with _ledger_errors():
        app.backups.restore(archive)
    click.echo(f"Restored ledger from {archive}")


if __name__ == '__main__':
    main()

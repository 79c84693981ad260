from datetime import datetime

import pytest

from pocket_ledger.categories import DEFAULT_CATEGORIES
from pocket_ledger.errors import NotFoundError, ValidationError


def test_empty_registry_lists_nothing(app):
    assert app.categories.list() == []


def test_add_assigns_next_sort_order(app):
    food = app.categories.add("food", "fork.knife")
    car = app.categories.add("car", "car")
    assert (food.sort_order, car.sort_order) == (0, 1)

    app.categories.reorder([car.id, food.id])
    fun = app.categories.add("fun")
    assert fun.sort_order == 2
    assert [c.name for c in app.categories.list()] == ["car", "food", "fun"]


def test_list_tracks_adds_and_deletes(app):
    ids = [app.categories.add(name).id for name in ["a", "b", "c", "d"]]
    app.categories.delete(ids[1])
    app.categories.add("e")
    app.categories.delete(ids[3])

    cats = app.categories.list()
    assert [c.name for c in cats] == ["a", "c", "e"]
    orders = [c.sort_order for c in cats]
    assert orders == sorted(orders)


def test_add_rejects_empty_name(app):
    app.categories.add("food")
    with pytest.raises(ValidationError):
        app.categories.add("")
    with pytest.raises(ValidationError):
        app.categories.add("   ")
    assert [c.name for c in app.categories.list()] == ["food"]


def test_rename_changes_name_and_icon(app):
    cat = app.categories.add("food", "fork.knife")
    renamed = app.categories.rename(cat.id, "dining", "cup")
    assert (renamed.name, renamed.icon) == ("dining", "cup")
    assert app.categories.get(cat.id).name == "dining"

    app.categories.rename(cat.id, "meals")
    assert app.categories.get(cat.id).icon == "cup"


def test_rename_failures_leave_registry_unchanged(app):
    cat = app.categories.add("food", "fork.knife")
    with pytest.raises(NotFoundError):
        app.categories.rename("missing", "x", "y")
    with pytest.raises(ValidationError):
        app.categories.rename(cat.id, "", "y")
    assert app.categories.list() == [cat]


def test_reorder_full_list(app):
    c1, c2, c3 = (app.categories.add(n) for n in ["one", "two", "three"])
    cats = app.categories.reorder([c3.id, c1.id, c2.id])
    assert [c.id for c in cats] == [c3.id, c1.id, c2.id]
    assert [c.sort_order for c in cats] == [0, 1, 2]
    assert app.categories.list() == cats


def test_reorder_partial_list_keeps_rest_after(app):
    c1, c2, c3, c4 = (app.categories.add(n) for n in ["a", "b", "c", "d"])
    cats = app.categories.reorder([c4.id, c2.id])
    assert [c.id for c in cats] == [c4.id, c2.id, c1.id, c3.id]
    assert [c.sort_order for c in cats] == [0, 1, 2, 3]


def test_reorder_rejects_duplicates_and_unknown_ids(app):
    c1, c2 = app.categories.add("a"), app.categories.add("b")
    before = app.categories.list()
    with pytest.raises(ValidationError):
        app.categories.reorder([c2.id, c2.id])
    with pytest.raises(ValidationError):
        app.categories.reorder([c2.id, "nope", c1.id])
    assert app.categories.list() == before


def test_delete_uncategorizes_transactions(app):
    food = app.categories.add("food")
    other = app.categories.add("other")
    when = datetime(2025, 5, 1, 12, 0)
    for amount in (-10, -20, -30):
        app.transactions.add(amount, food.id, "", when)
    kept = app.transactions.add(-5, other.id, "", when)

    assert app.categories.delete(food.id) == 3

    txs = app.transactions.list()
    assert len(txs) == 4
    assert [tx.category_id for tx in txs if tx.id != kept.id] == [None, None, None]
    assert app.transactions.get(kept.id).category_id == other.id
    with pytest.raises(NotFoundError):
        app.categories.get(food.id)


def test_delete_unknown_category(app):
    app.categories.add("food")
    with pytest.raises(NotFoundError):
        app.categories.delete("missing")
    assert len(app.categories.list()) == 1


def test_seed_defaults_only_when_empty(app):
    created = app.categories.seed_defaults()
    assert [(c.name, c.icon) for c in created] == list(DEFAULT_CATEGORIES)
    assert [c.sort_order for c in app.categories.list()] == [0, 1, 2, 3, 4]

    assert app.categories.seed_defaults() == []
    assert len(app.categories.list()) == 5


def test_seed_defaults_is_noop_with_existing_categories(app):
    app.categories.add("custom")
    assert app.categories.seed_defaults() == []
    assert [c.name for c in app.categories.list()] == ["custom"]


def test_mutations_notify_subscribers(app):
    seen = []
    unsubscribe = app.notifier.subscribe(seen.append)
    cat = app.categories.add("food")
    app.transactions.add(-1, cat.id)
    app.categories.delete(cat.id)
    unsubscribe()
    app.categories.add("after")

    assert seen == ["category", "transaction", "category", "transaction"]


def test_failed_mutation_does_not_notify(app):
    seen = []
    app.notifier.subscribe(seen.append)
    with pytest.raises(ValidationError):
        app.categories.add("")
    assert seen == []

import yaml
from click.testing import CliRunner

from pocket_ledger.backup import BACKUP_NAME
from pocket_ledger.categories import DEFAULT_CATEGORIES
from pocket_ledger.cli import main as cli


def _run(tmp_path, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--data-dir", str(tmp_path / "data"), *args])


def _added_id(result):
    # "Added transaction <id> (<amount>)."
    return result.output.split()[2]


def test_first_run_seeds_default_categories(tmp_path, monkeypatch):
    monkeypatch.delenv("POCKET_LEDGER_CONFIG", raising=False)
    res = _run(tmp_path, "category", "list")
    assert res.exit_code == 0, res.output
    names = [line.split()[-1] for line in res.output.splitlines()]
    assert names == [name for name, _ in DEFAULT_CATEGORIES]


def test_config_file_can_disable_seeding(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    with open(cfg_path, "w") as f:
        yaml.safe_dump({"data_dir": str(tmp_path / "elsewhere"), "seed_defaults": False}, f)

    res = CliRunner().invoke(cli, ["--config", str(cfg_path), "category", "list"])
    assert res.exit_code == 0, res.output
    assert "No categories." in res.output
    assert (tmp_path / "elsewhere" / "ledger.db").exists()


def test_category_commands(tmp_path):
    assert _run(tmp_path, "category", "add", "travel", "--icon", "airplane").exit_code == 0

    res = _run(tmp_path, "category", "rename", "travel", "trips")
    assert res.exit_code == 0, res.output

    res = _run(tmp_path, "category", "reorder", "trips", "household")
    assert res.exit_code == 0, res.output
    assert res.output.strip().startswith("trips, household, food")

    res = _run(tmp_path, "category", "delete", "trips")
    assert res.exit_code == 0, res.output
    assert "0 transaction(s)" in res.output

    res = _run(tmp_path, "category", "list")
    assert "trips" not in res.output
    assert res.output.splitlines()[0].split()[-1] == "household"


def test_category_errors_are_reported(tmp_path):
    res = _run(tmp_path, "category", "add", "")
    assert res.exit_code == 1
    assert "must not be empty" in res.output

    res = _run(tmp_path, "category", "rename", "nothing-like-this", "x")
    assert res.exit_code == 1
    assert "Unknown category" in res.output


def test_transactions_and_stats(tmp_path):
    res = _run(tmp_path, "tx", "add", "50", "--expense", "--category", "food",
               "--note", "lunch", "--date", "2025-05-14 09:00")
    assert res.exit_code == 0, res.output
    lunch_id = _added_id(res)
    assert _run(tmp_path, "tx", "add", "30", "--expense", "--category", "food",
                "--date", "2025-05-13").exit_code == 0
    assert _run(tmp_path, "tx", "add", "200", "--date", "2025-05-12").exit_code == 0

    res = _run(tmp_path, "tx", "list", "--start", "2025-05-14", "--end", "2025-05-14")
    assert res.exit_code == 0, res.output
    lines = res.output.splitlines()
    assert len(lines) == 1
    assert lunch_id[:8] in lines[0]
    assert "-50.00" in lines[0]

    res = _run(tmp_path, "tx", "list", "--by-day")
    assert [line for line in res.output.splitlines() if not line.startswith(" ")] == [
        "2025-05-14",
        "2025-05-13",
        "2025-05-12",
    ]

    res = _run(tmp_path, "stats", "--start", "2025-05-12", "--end", "2025-05-14")
    assert res.exit_code == 0, res.output
    rows = [line.split() for line in res.output.splitlines()[:2]]
    assert rows == [["uncategorized", "200.00", "blue"], ["food", "80.00", "green"]]
    assert "net 120.00" in res.output


def test_edit_and_delete_transaction(tmp_path):
    res = _run(tmp_path, "tx", "add", "12", "--category", "shopping", "--date", "2025-01-02")
    tx_id = _added_id(res)

    res = _run(tmp_path, "tx", "edit", tx_id[:6], "--amount", "15", "--uncategorized",
               "--note", "gift")
    assert res.exit_code == 0, res.output
    res = _run(tmp_path, "tx", "list")
    assert "15.00" in res.output
    assert "uncategorized  gift" in res.output

    assert _run(tmp_path, "tx", "delete", tx_id).exit_code == 0
    assert "No transactions." in _run(tmp_path, "tx", "list").output

    res = _run(tmp_path, "tx", "delete", tx_id)
    assert res.exit_code == 1
    assert "Unknown transaction" in res.output


def test_unknown_category_on_add(tmp_path):
    res = _run(tmp_path, "tx", "add", "5", "--category", "no-such-thing")
    assert res.exit_code == 1
    assert "Unknown category" in res.output


def test_backup_and_restore(tmp_path):
    _run(tmp_path, "tx", "add", "5", "--note", "before", "--date", "2025-02-01")
    res = _run(tmp_path, "backup")
    assert res.exit_code == 0, res.output
    archive = tmp_path / "data" / BACKUP_NAME
    assert str(archive) in res.output

    _run(tmp_path, "tx", "add", "7", "--note", "after", "--date", "2025-02-02")
    res = _run(tmp_path, "restore", str(archive))
    assert res.exit_code == 0, res.output

    listing = _run(tmp_path, "tx", "list").output
    assert "before" in listing
    assert "after" not in listing

    res = _run(tmp_path, "restore", str(tmp_path / "missing.sqlite"))
    assert res.exit_code == 1
    assert "Cannot restore" in res.output


def test_range_with_dates_is_an_error(tmp_path):
    res = _run(tmp_path, "tx", "list", "--range", "week", "--start", "2025-01-01")
    assert res.exit_code == 1
    assert "only apply to a custom range" in res.output

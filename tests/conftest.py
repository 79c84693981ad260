import pytest

from pocket_ledger.app import open_app


def make_config(tmp_path, **overrides):
    cfg = {
        "data_dir": str(tmp_path / "data"),
        "db_name": "ledger.db",
        "first_weekday": "monday",
        "log_level": "WARNING",
        "seed_defaults": False,
    }
    cfg.update(overrides)
    return cfg


@pytest.fixture
def app(tmp_path):
    ledger_app = open_app(make_config(tmp_path))
    yield ledger_app
    ledger_app.close()

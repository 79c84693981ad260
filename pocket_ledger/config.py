from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

import yaml

CONFIG_ENV = "POCKET_LEDGER_CONFIG"

DEFAULT_CONFIG: Dict[str, object] = {
    "data_dir": "~/.pocket_ledger",
    "db_name": "ledger.db",
    "first_weekday": "monday",
    "log_level": "WARNING",
    "seed_defaults": True,
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def config_path(path: str | Path | None = None) -> Path | None:
    if path:
        return Path(path)
    env = os.getenv(CONFIG_ENV)
    return Path(env) if env else None


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    """Load the YAML config at *path* (or ``$POCKET_LEDGER_CONFIG``) over defaults."""
    target = config_path(path)
    if target is None or not target.exists():
        return dict(DEFAULT_CONFIG)
    with target.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {target} must contain a mapping")
    return _merge_defaults(data, DEFAULT_CONFIG)


def save_config(config: Dict[str, object], path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False)


def data_dir(config: Dict[str, object]) -> Path:
    return Path(str(config["data_dir"])).expanduser()


def db_path(config: Dict[str, object]) -> Path:
    return data_dir(config) / str(config["db_name"])

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

DEFAULT_DB_TIMEOUT = 30.0
CONFIG_ENV_VAR = "BIDHOUSE_CONFIG"

_REPO_ROOT = Path(__file__).resolve().parents[3]
_CONFIG_FILE = _REPO_ROOT / "config.json"


def _config_file(config_path: Path | str | None) -> Path:
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else _CONFIG_FILE


def load_config(config_path: Path | str | None = None) -> Dict[str, Any]:
    """Load ``config.json`` if present and return it as a dictionary.

    The file location can be overridden with the ``BIDHOUSE_CONFIG``
    environment variable.
    """

    path = _config_file(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_section(name: str, config_path: Path | str | None = None) -> Dict[str, Any]:
    """Return one top-level section of the configuration, or ``{}``."""

    section = load_config(config_path).get(name, {})
    return section if isinstance(section, dict) else {}


def get_path_config(config_path: Path | str | None = None) -> Dict[str, Path]:
    """Return resolved filesystem paths from the project configuration."""

    path = _config_file(config_path)
    root = path.parent
    paths_cfg = get_section("paths", config_path)
    raw_value = paths_cfg.get("db_path", root / "bidhouse.db")
    db_path = Path(raw_value)
    if not db_path.is_absolute():
        db_path = (root / db_path).resolve()
    return {"db_path": db_path}


def get_default_timeout(config_path: Path | str | None = None) -> float:
    """Read the preferred database timeout from configuration."""

    cfg = load_config(config_path)
    try:
        return float(cfg.get("db_timeout_seconds", DEFAULT_DB_TIMEOUT))
    except (TypeError, ValueError):
        return DEFAULT_DB_TIMEOUT

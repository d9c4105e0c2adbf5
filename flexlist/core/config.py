#!/usr/bin/env python3
"""
config.py
--------------------
Runtime settings for the FlexList catalog.

Settings are resolved in layers, later layers winning:

    1. Defaults from flexlist.core.paths
    2. Optional YAML settings file (flexlist.yaml)
    3. FLEXLIST_* environment variables
    4. Explicit overrides (CLI options)

Example flexlist.yaml:

    backend: local
    snapshot_path: ~/catalog/flexlist_db.json
    log_dir: ~/catalog/logs
    seed_sample_data: false
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

# --- Third party imports ---
import yaml

# --- Local imports ---
from .exceptions import ValidationError
from .paths import CONFIG_PATH, DB_PATH, LOG_DIR, SNAPSHOT_PATH

BACKENDS = ("durable", "local")

_PATH_FIELDS = ("db_path", "snapshot_path", "log_dir")

_ENV_VARS = {
    "backend": "FLEXLIST_BACKEND",
    "db_path": "FLEXLIST_DB_PATH",
    "snapshot_path": "FLEXLIST_SNAPSHOT_PATH",
    "log_dir": "FLEXLIST_LOG_DIR",
    "seed_sample_data": "FLEXLIST_SEED",
}


@dataclass(frozen=True)
class Settings:
    """
    Resolved catalog settings.

    Attributes:
        backend: Storage backend, 'durable' or 'local'
        db_path: SQLite file for the durable backend
        snapshot_path: JSON snapshot for the local backend
        log_dir: Log directory, or None to disable file logging
        seed_sample_data: Seed the sample collection on first load
    """

    backend: str = "durable"
    db_path: Path = DB_PATH
    snapshot_path: Path = SNAPSHOT_PATH
    log_dir: Optional[Path] = LOG_DIR
    seed_sample_data: bool = True


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS:
        if value is None or value == "":
            return None
        return Path(str(value)).expanduser()
    if name == "seed_sample_data":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValidationError(
            f"Cannot interpret '{value}' as a boolean", field="seed_sample_data"
        )
    if name == "backend":
        backend = str(value).strip().lower()
        if backend not in BACKENDS:
            raise ValidationError(
                f"Unknown backend '{value}' (expected one of {', '.join(BACKENDS)})",
                field="backend",
            )
        return backend
    return value


def _apply(settings: Settings, values: Mapping[str, Any]) -> Settings:
    known = {f.name for f in fields(Settings)}
    changes: Dict[str, Any] = {}
    for name, value in values.items():
        if name not in known or value is None:
            continue
        changes[name] = _coerce(name, value)
    return replace(settings, **changes) if changes else settings


def read_settings_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML settings file.

    Args:
        path: Settings file location

    Returns:
        Mapping of settings, empty if the file does not exist

    Raises:
        ValidationError: If the file is not a YAML mapping
    """
    path = Path(path)
    if not path.exists():
        return {}

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValidationError(
            f"Settings file {path} must contain a mapping", field="config"
        )
    return data


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Resolve settings from file, environment and explicit overrides.

    Args:
        config_path: YAML file to read (default: flexlist.yaml in HOME)
        overrides: Highest-priority values; None entries are ignored
        environ: Environment mapping (default: os.environ)

    Returns:
        Resolved Settings
    """
    environ = os.environ if environ is None else environ

    settings = Settings()
    settings = _apply(settings, read_settings_file(config_path or CONFIG_PATH))
    settings = _apply(
        settings,
        {name: environ.get(var) for name, var in _ENV_VARS.items()},
    )
    if overrides:
        settings = _apply(settings, overrides)
    return settings

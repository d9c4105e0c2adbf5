#!/usr/bin/env python3
"""
paths.py
-------------------
Default path constants for the FlexList catalog.

Runtime data lives under a project home directory:

    HOME/
    ├── flexlist.yaml           # Optional settings file
    ├── data/
    │   ├── flexlist.db         # Durable backend (SQLite)
    │   └── flexlist_db.json    # Local backend snapshot
    └── logs/                   # Rotating log files

HOME is $FLEXLIST_HOME when set, otherwise the current working directory.
Package-internal resources (the Alembic scripts) are resolved relative to
this file.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from pathlib import Path


def _get_project_home() -> Path:
    """
    Determine the directory that holds runtime data.

    Returns:
        Path from $FLEXLIST_HOME, or the current working directory
    """
    env_home = os.environ.get("FLEXLIST_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.cwd()


# ----- Package -----
PACKAGE_DIR: Path = Path(__file__).resolve().parent.parent
ALEMBIC_DIR = PACKAGE_DIR / "migrations"

# ----- Runtime -----
HOME: Path = _get_project_home()
CONFIG_PATH = HOME / "flexlist.yaml"
DATA_DIR = HOME / "data"
DB_PATH = DATA_DIR / "flexlist.db"
SNAPSHOT_PATH = DATA_DIR / "flexlist_db.json"
LOG_DIR = HOME / "logs"

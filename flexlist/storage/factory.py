#!/usr/bin/env python3
"""
factory.py
--------------------
Pick and open the storage backend named by the settings.

Usage:
    settings = load_settings()
    with open_storage(settings) as storage:
        storage.list_collections()
"""
from __future__ import annotations

from typing import Optional

from flexlist.core.config import BACKENDS, Settings
from flexlist.core.exceptions import ValidationError
from flexlist.core.logging_manager import FlexlistLogger

from .base import CatalogStorage
from .local import LocalStorage


def open_storage(
    settings: Settings, logger: Optional[FlexlistLogger] = None
) -> CatalogStorage:
    """
    Open the configured backend.

    Args:
        settings: Resolved settings (backend, paths, seeding)
        logger: Shared logger; when None the backend logs to settings.log_dir

    Returns:
        A loaded CatalogStorage

    Raises:
        ValidationError: If the backend name is unknown
        StorageError: If the backend cannot load its state
    """
    log_dir = None if logger is not None else settings.log_dir

    if settings.backend == "durable":
        # Imported here so the local backend never pays for SQLAlchemy/Alembic
        from flexlist.database import CatalogDB

        return CatalogDB(
            settings.db_path,
            log_dir=log_dir,
            logger=logger,
            seed_sample_data=settings.seed_sample_data,
        )

    if settings.backend == "local":
        return LocalStorage(
            settings.snapshot_path,
            log_dir=log_dir,
            logger=logger,
            seed_sample_data=settings.seed_sample_data,
        )

    raise ValidationError(
        f"Unknown backend '{settings.backend}' (expected one of {', '.join(BACKENDS)})",
        field="backend",
    )

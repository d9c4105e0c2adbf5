#!/usr/bin/env python3
"""
base_manager.py
--------------------
Base manager providing common CRUD utilities for the catalog managers.

All entity managers inherit from this class and share one session, so a
CatalogDB operation composes several managers inside a single transaction.

Key Features:
    - Get-or-create with race handling (savepoint + re-read)
    - Insertion-order positions
    - Lookup, count and scalar update helpers

Usage:
    class CollectionManager(BaseManager):
        def create(self, fields: Dict[str, Any]) -> Collection:
            with DatabaseOperation(self.logger, "create_collection"):
                ...
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from abc import ABC
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

# --- Third party imports ---
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

# --- Local imports ---
from flexlist.core.exceptions import DatabaseError
from flexlist.core.logging_manager import FlexlistLogger, safe_logger

T = TypeVar("T")


class BaseManager(ABC):
    """
    Abstract base manager providing common CRUD utilities.

    Attributes:
        session: SQLAlchemy session for database operations
        logger: Optional logger for operation tracking
    """

    def __init__(self, session: Session, logger: Optional[FlexlistLogger] = None):
        """
        Initialize the base manager.

        Args:
            session: SQLAlchemy session
            logger: Optional logger for operation tracking
        """
        self.session = session
        self.logger = logger

    # -------------------------------------------------------------------------
    # Core Helper Methods
    # -------------------------------------------------------------------------

    def _get_or_create(
        self,
        model_class: Type[T],
        lookup_fields: Dict[str, Any],
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> T:
        """
        Get an existing row matching `lookup_fields` or create it.

        Handles race conditions where another connection creates the same
        row between our check and our insert: the insert runs inside a
        savepoint, and on an integrity conflict the row is re-read.

        Args:
            model_class: ORM model class to query or create
            lookup_fields: Dictionary of field_name: value to filter/create
            extra_fields: Additional fields for new object creation only

        Returns:
            ORM instance of the model class

        Raises:
            DatabaseError: If creation fails after handling the race condition
        """
        obj = self.session.query(model_class).filter_by(**lookup_fields).first()
        if obj is not None:
            return obj

        fields = dict(lookup_fields)
        if extra_fields:
            fields.update(extra_fields)

        try:
            with self.session.begin_nested():
                obj = model_class(**fields)
                self.session.add(obj)
            return obj
        except IntegrityError:
            safe_logger(self.logger).log_debug(
                f"{model_class.__name__} created concurrently, re-reading",
                {"lookup": lookup_fields},
            )
            obj = self.session.query(model_class).filter_by(**lookup_fields).first()
            if obj is not None:
                return obj
            raise DatabaseError(
                f"Failed to create {model_class.__name__} even after handling race condition"
            )

    def _get_by_id(self, model_class: Type[T], entity_id: Optional[str]) -> Optional[T]:
        """
        Get entity by ID.

        Returns:
            Entity if found, None otherwise (also for blank ids)
        """
        if not entity_id or not isinstance(entity_id, str):
            return None
        return self.session.get(model_class, entity_id)

    def _count(self, model_class: Type[T], **filters: Any) -> int:
        """Count entities with optional filter_by conditions."""
        query = self.session.query(model_class)
        if filters:
            query = query.filter_by(**filters)
        return query.count()

    def _next_position(self, model_class: Type[T]) -> int:
        """Position after the last row of `model_class` (insertion order)."""
        current = self.session.scalar(select(func.max(model_class.position)))
        return 0 if current is None else current + 1

    @staticmethod
    def _update_scalar_fields(entity: Any, values: Mapping[str, Any]) -> bool:
        """
        Assign cleaned scalar values to an entity.

        Returns:
            True if any attribute changed
        """
        changed = False
        for name, value in values.items():
            if getattr(entity, name) != value:
                setattr(entity, name, value)
                changed = True
        return changed

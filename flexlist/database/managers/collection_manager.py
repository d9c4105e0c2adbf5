#!/usr/bin/env python3
"""
collection_manager.py
--------------------
Manages Collection entities.

Deleting a collection deletes its items (ORM cascade plus ON DELETE
CASCADE), and the item_tags rows of those items with them.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from flexlist.database.decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
    validate_metadata,
)
from flexlist.database.models import Collection, Item
from .base_manager import BaseManager


class CollectionManager(BaseManager):
    """Collection CRUD plus item counts."""

    @handle_db_errors
    def get(self, collection_id: str) -> Optional[Collection]:
        return self._get_by_id(Collection, collection_id)

    @handle_db_errors
    @log_database_operation("list_collections")
    def list_with_counts(self) -> List[Tuple[Collection, int]]:
        """
        All collections in insertion order with their item counts.

        Returns:
            List of (Collection, item_count)
        """
        stmt = (
            select(Collection, func.count(Item.id))
            .outerjoin(Item, Item.collection_id == Collection.id)
            .group_by(Collection.id)
            .order_by(Collection.position)
        )
        return [(collection, count) for collection, count in self.session.execute(stmt)]

    @handle_db_errors
    @log_database_operation("create_collection")
    @validate_metadata(["name"])
    def create(self, fields: Dict[str, Any]) -> Collection:
        """
        Create a collection.

        Args:
            fields: Cleaned fields with "name" and optional "description"

        Returns:
            The new Collection, flushed
        """
        collection = Collection(
            name=fields["name"],
            description=fields.get("description"),
            position=self._next_position(Collection),
        )
        self.session.add(collection)
        self.session.flush()
        return collection

    @handle_db_errors
    @log_database_operation("update_collection")
    def update(self, collection: Collection, fields: Dict[str, Any]) -> Collection:
        if self._update_scalar_fields(collection, fields):
            collection.touch()
            self.session.flush()
        return collection

    @handle_db_errors
    def delete(self, collection: Collection) -> None:
        with DatabaseOperation(
            self.logger, "delete_collection", collection_id=collection.id
        ):
            self.session.delete(collection)
            self.session.flush()

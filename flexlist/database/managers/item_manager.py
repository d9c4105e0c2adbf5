#!/usr/bin/env python3
"""
item_manager.py
--------------------
Manages Item entities, their tag sets and their conversion to records.

Legacy fields (key, composer, style) are written as tags under the
reserved keys and read back through the same projection the local
backend uses, so both backends return identical ItemRecords.

Usage:
    item_mgr = ItemManager(session, logger, tag_manager)

    item = item_mgr.create(cleaned_fields, plan)
    record = item_mgr.to_record(item)
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from flexlist.core.logging_manager import FlexlistLogger
from flexlist.database.decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
    validate_metadata,
)
from flexlist.database.models import Item
from flexlist.storage.records import ITEM_FIELDS, ItemRecord, TagPair, utc
from flexlist.storage.tagging import TagPlan, ordered_pairs, project_legacy
from .base_manager import BaseManager
from .tag_manager import TagManager


class ItemManager(BaseManager):
    """
    Item CRUD, tag-set replacement and record conversion.

    Attributes:
        tags: TagManager sharing this manager's session
    """

    def __init__(
        self,
        session: Session,
        logger: Optional[FlexlistLogger] = None,
        tags: Optional[TagManager] = None,
    ):
        super().__init__(session, logger)
        self.tags = tags or TagManager(session, logger)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @handle_db_errors
    def get(self, item_id: str) -> Optional[Item]:
        return self._get_by_id(Item, item_id)

    @handle_db_errors
    def list_for(self, collection_id: str) -> List[Item]:
        """Items of a collection in insertion order, tags preloaded."""
        stmt = (
            select(Item)
            .where(Item.collection_id == collection_id)
            .order_by(Item.position)
            .options(selectinload(Item.tags))
        )
        return list(self.session.scalars(stmt))

    @handle_db_errors
    def titles_in(self, collection_id: str) -> List[str]:
        stmt = select(Item.title).where(Item.collection_id == collection_id)
        return list(self.session.scalars(stmt))

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def to_record(self, item: Item) -> ItemRecord:
        """Convert an Item to an ItemRecord with the legacy projection."""
        legacy = project_legacy(self.tags.pairs_for(item))
        return ItemRecord(
            id=item.id,
            collection_id=item.collection_id,
            title=item.title,
            key=legacy["key"],
            composer=legacy["composer"],
            style=legacy["style"],
            notes=item.notes,
            media_ref=item.media_ref,
            media_start_seconds=item.media_start_seconds,
            lead_sheet_ref=item.lead_sheet_ref,
            knowledge_level=item.knowledge_level,
            created_at=utc(item.created_at),
            updated_at=utc(item.updated_at),
        )

    def view(self, collection_id: str) -> List[Tuple[ItemRecord, List[TagPair]]]:
        """A collection as (record, stored tag pairs) in listing order."""
        return [
            (self.to_record(item), self.tags.pairs_for(item))
            for item in self.list_for(collection_id)
        ]

    def effective_pairs(self, item: Item) -> List[TagPair]:
        return ordered_pairs(self.tags.pairs_for(item))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("create_item")
    @validate_metadata(["collection_id", "title"])
    def create(self, fields: Dict[str, Any], plan: TagPlan) -> Item:
        """
        Create an item and link its tags.

        Args:
            fields: Cleaned scalar fields including collection_id
            plan: Resolved tag set (legacy projection and extras)

        Returns:
            The new Item, flushed
        """
        item = Item(
            collection_id=fields["collection_id"],
            position=self._next_position(Item),
            **{name: fields.get(name) for name in ITEM_FIELDS if name in fields},
        )
        self.session.add(item)
        self.session.flush()
        self.tags.set_item_tags(item, plan.pairs)
        return item

    @handle_db_errors
    @log_database_operation("update_item")
    def update(self, item: Item, fields: Dict[str, Any], plan: TagPlan) -> Item:
        """
        Apply cleaned scalar changes and replace the tag set.

        updated_at always moves forward, also for tag-only changes.
        """
        self._update_scalar_fields(item, fields)
        self.tags.set_item_tags(item, plan.pairs)
        item.touch()
        self.session.flush()
        return item

    @handle_db_errors
    def delete(self, item: Item) -> None:
        with DatabaseOperation(self.logger, "delete_item", item_id=item.id):
            self.session.delete(item)
            self.session.flush()

    @handle_db_errors
    @log_database_operation("clone_item")
    def clone(self, source: Item, target_collection_id: str) -> Item:
        """
        Copy an item with its full tag set into another collection.

        The copy gets a new id, fresh timestamps and the next position;
        tags are shared by identity through upsert.
        """
        fields = {name: getattr(source, name) for name in ITEM_FIELDS}
        fields["collection_id"] = target_collection_id
        plan = TagPlan(legacy={}, extras=self.effective_pairs(source))
        return self.create(fields, plan)

    def create_many(
        self, collection_id: str, titles: Sequence[str], defaults: Dict[str, Any]
    ) -> List[Item]:
        """Create untagged items with default fields, one per title."""
        empty = TagPlan(legacy={}, extras=[])
        return [
            self.create({**defaults, "collection_id": collection_id, "title": title}, empty)
            for title in titles
        ]

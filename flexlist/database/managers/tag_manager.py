#!/usr/bin/env python3
"""
tag_manager.py
--------------------
Manages the global (key, value) tag vocabulary and item/tag links.

Tags are identified by their normalized pair (trim + case-fold on both
key and value). The first writer's casing is what gets stored and shown.

Key Features:
    - Upsert with normalized identity
    - Replace an item's tag set
    - Key and value listings for the whole catalog
    - Values of the reserved legacy keys still in use by items

Usage:
    tag_mgr = TagManager(session, logger)

    tag = tag_mgr.upsert("Tempo", "Slow")
    tag_mgr.upsert(" tempo ", "SLOW").id == tag.id  # True

    tag_mgr.set_item_tags(item, [TagPair("Key", "Eb"), TagPair("Tempo", "Slow")])
"""
from typing import Iterable, List, Optional

from sqlalchemy import delete, insert, select

from flexlist.core.validators import DataValidator
from flexlist.database.decorators import handle_db_errors, log_database_operation
from flexlist.database.models import Item, Tag, item_tags
from flexlist.storage.records import TagPair
from .base_manager import BaseManager


class TagManager(BaseManager):
    """
    Manages Tag table operations and the item_tags association.

    Tags are never deleted when their last item goes away; the vocabulary
    only grows.
    """

    # -------------------------------------------------------------------------
    # Lookup & Upsert
    # -------------------------------------------------------------------------

    @handle_db_errors
    def get(self, key: str, value: str) -> Optional[Tag]:
        """
        Retrieve a tag by normalized pair.

        Returns:
            Tag if found, None otherwise
        """
        return (
            self.session.query(Tag)
            .filter_by(
                key_norm=DataValidator.match_key(key),
                value_norm=DataValidator.match_key(value),
            )
            .first()
        )

    @handle_db_errors
    @log_database_operation("upsert_tag")
    def upsert(self, key: str, value: str) -> Tag:
        """
        Get the tag equivalent to (key, value) or create it.

        Args:
            key: Tag key, stored as given when the tag is new
            value: Tag value, stored as given when the tag is new

        Returns:
            Tag object (existing or newly created)

        Notes:
            - Empty keys or values are permitted; callers filter them out
        """
        return self._get_or_create(
            Tag,
            {
                "key_norm": DataValidator.match_key(key),
                "value_norm": DataValidator.match_key(value),
            },
            {"key": key, "value": value},
        )

    # -------------------------------------------------------------------------
    # Item Links
    # -------------------------------------------------------------------------

    @handle_db_errors
    def set_item_tags(self, item: Item, pairs: Iterable[TagPair]) -> List[Tag]:
        """
        Replace the tags of an item, keeping the order of `pairs`.

        Args:
            item: Item whose tag set is replaced (already flushed)
            pairs: Cleaned pairs in storage order (see flexlist.storage.tagging)

        Returns:
            The linked tags, one per distinct tag id
        """
        tags: List[Tag] = []
        seen = set()
        for pair in pairs:
            tag = self.upsert(pair.key, pair.value)
            if tag.id in seen:
                continue
            seen.add(tag.id)
            tags.append(tag)

        self.session.execute(delete(item_tags).where(item_tags.c.item_id == item.id))
        if tags:
            self.session.execute(
                insert(item_tags),
                [
                    {"item_id": item.id, "tag_id": tag.id, "position": position}
                    for position, tag in enumerate(tags)
                ],
            )
        self.session.expire(item, ["tags"])
        return tags

    @staticmethod
    def pairs_for(item: Item) -> List[TagPair]:
        """Tag pairs linked to an item, as stored."""
        return [TagPair(tag.key, tag.value) for tag in item.tags]

    # -------------------------------------------------------------------------
    # Vocabulary
    # -------------------------------------------------------------------------

    @handle_db_errors
    def all_pairs(self) -> List[TagPair]:
        """Every tag in the catalog, linked to an item or not."""
        rows = self.session.execute(select(Tag.key, Tag.value)).all()
        return [TagPair(key, value) for key, value in rows]

    @handle_db_errors
    def linked_values(self, tag_key: str) -> List[str]:
        """
        Values under `tag_key` that at least one item still carries.

        Args:
            tag_key: Reserved key such as "Composer"
        """
        stmt = (
            select(Tag.value)
            .join(item_tags, item_tags.c.tag_id == Tag.id)
            .where(Tag.key_norm == DataValidator.match_key(tag_key))
            .distinct()
        )
        return list(self.session.scalars(stmt))

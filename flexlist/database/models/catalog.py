"""
Catalog Models
---------------

Collections and the items they own.

Models:
    - Collection: A named list of items
    - Item: One entry in a collection, tagged through item_tags

Item carries no key/composer/style columns: those legacy fields live as
tags under the reserved keys "Key", "Composer" and "Style" and are
projected back by the managers.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .associations import item_tags
from .base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from .entities import Tag


class Collection(Base, TimestampMixin):
    """
    A named, ordered list of items.

    Attributes:
        id: UUID4 string primary key
        name: Display name (non-empty)
        description: Optional free text
        position: Insertion order among collections

    Relationships:
        items: One-to-many with Item, deleted with the collection
    """

    __tablename__ = "collections"
    __table_args__ = (CheckConstraint("name != ''", name="ck_collection_non_empty_name"),)

    # ---- Primary fields ----
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    # ---- Relationships ----
    items: Mapped[List["Item"]] = relationship(
        "Item",
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Item.position",
    )

    def __repr__(self) -> str:
        return f"<Collection(id={self.id}, name={self.name!r})>"


class Item(Base, TimestampMixin):
    """
    An item owned by exactly one collection.

    Attributes:
        id: UUID4 string primary key
        collection_id: Owning collection
        title: Display title (non-empty)
        notes: Free text
        media_ref: Opaque media reference
        media_start_seconds: Playback offset for media_ref
        lead_sheet_ref: Opaque lead sheet reference
        knowledge_level: does-not-know | kind-of-knows | knows
        position: Insertion order among all items

    Relationships:
        collection: Many-to-one with Collection
        tags: Many-to-many with Tag in stored order (legacy fields included),
            read-only; TagManager.set_item_tags writes the association
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("title != ''", name="ck_item_non_empty_title"),
        CheckConstraint(
            "knowledge_level IN ('does-not-know', 'kind-of-knows', 'knows')",
            name="ck_item_knowledge_level",
        ),
        CheckConstraint(
            "media_start_seconds IS NULL OR media_start_seconds >= 0",
            name="ck_item_positive_media_start",
        ),
    )

    # ---- Primary fields ----
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    collection_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    media_ref: Mapped[Optional[str]] = mapped_column(String(500))
    media_start_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    lead_sheet_ref: Mapped[Optional[str]] = mapped_column(String(500))
    knowledge_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default="does-not-know"
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    # ---- Relationships ----
    collection: Mapped["Collection"] = relationship("Collection", back_populates="items")
    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary=item_tags,
        order_by=item_tags.c.position,
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, title={self.title!r})>"

"""
Tag Model
----------

The global (key, value) tag vocabulary.

A tag is identified by its normalized pair: key_norm and value_norm hold
the trimmed, case-folded text and carry the uniqueness constraint, while
key and value keep the casing of the first writer for display.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .associations import item_tags
from .base import Base, new_id

if TYPE_CHECKING:
    from .catalog import Item


class Tag(Base):
    """
    A deduplicated (key, value) pair shared by reference.

    Attributes:
        id: UUID4 string primary key
        key: Key as first stored
        value: Value as first stored
        key_norm: Normalized key (identity)
        value_norm: Normalized value (identity)

    Relationships:
        items: Many-to-many with Item
    """

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("key_norm", "value_norm", name="uq_tag_normalized_pair"),
    )

    # ---- Primary fields ----
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(String(500), nullable=False)
    key_norm: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value_norm: Mapped[str] = mapped_column(String(500), nullable=False)

    # ---- Relationships ----
    items: Mapped[List["Item"]] = relationship(
        "Item", secondary=item_tags, viewonly=True
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, {self.key}={self.value})>"

    def __str__(self) -> str:
        return f"{self.key}: {self.value}"

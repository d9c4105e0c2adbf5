"""
Association Tables
-------------------

Many-to-many relationship tables for the FlexList catalog database.

- item_tags: Items with their (key, value) tags, in the order they were set

The position column keeps an item's tags in the order they were written;
the first tag under a reserved key is the item's legacy field value.

Deleting either endpoint removes the edge (ON DELETE CASCADE; SQLite
enforces it because the engine turns on foreign keys per connection).
"""
# --- Third party imports ---
from sqlalchemy import Column, ForeignKey, Integer, String, Table

# --- Local imports ---
from .base import Base

item_tags = Table(
    "item_tags",
    Base.metadata,
    Column(
        "item_id",
        String(36),
        ForeignKey("items.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        String(36),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column("position", Integer, nullable=False, server_default="0"),
)

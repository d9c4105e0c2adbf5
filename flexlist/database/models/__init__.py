"""
Database Models Package
------------------------

SQLAlchemy ORM models for the FlexList catalog database.

- base: Base class, timestamp mixin, id factory
- associations: item_tags many-to-many table
- catalog: Collection, Item
- entities: Tag

Usage:
    from flexlist.database.models import Collection, Item, Tag
"""
from .base import Base, TimestampMixin, new_id, utcnow
from .associations import item_tags
from .catalog import Collection, Item
from .entities import Tag

__all__ = [
    "Base",
    "TimestampMixin",
    "new_id",
    "utcnow",
    "item_tags",
    "Collection",
    "Item",
    "Tag",
]

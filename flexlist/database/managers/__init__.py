"""
Entity Managers
----------------

Session-scoped managers used by CatalogDB. Each CatalogDB operation opens
one session and composes these managers inside its transaction.

- BaseManager: shared get-or-create, lookup and position helpers
- TagManager: tag vocabulary and item/tag links
- CollectionManager: collection CRUD and counts
- ItemManager: item CRUD, cloning and record conversion
"""
from .base_manager import BaseManager
from .tag_manager import TagManager
from .collection_manager import CollectionManager
from .item_manager import ItemManager

__all__ = [
    "BaseManager",
    "TagManager",
    "CollectionManager",
    "ItemManager",
]

"""
Catalog Storage
----------------

The backend-neutral half of FlexList: the storage interface, the records
it returns, and the pure rules both backends share.

- base: CatalogStorage interface and StorageState
- records: frozen result dataclasses
- fields: input cleaning for collections and items
- tagging: write-side tag rules (legacy projection, extra tags)
- filtering: search, tag filters and vocabulary aggregation
- importing: bulk import line parsing and duplicate detection
- local: LocalStorage, the JSON snapshot backend
- factory: open_storage(settings)

The durable backend lives in flexlist.database.
"""
from .base import CatalogStorage, StorageState
from .local import LocalStorage
from .records import (
    BulkImportResult,
    CollectionRecord,
    CollectionSummary,
    ImportResult,
    ItemRecord,
    TagPair,
    TagRecord,
)

__all__ = [
    "CatalogStorage",
    "StorageState",
    "LocalStorage",
    "BulkImportResult",
    "CollectionRecord",
    "CollectionSummary",
    "ImportResult",
    "ItemRecord",
    "TagPair",
    "TagRecord",
]

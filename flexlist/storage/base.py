#!/usr/bin/env python3
"""
base.py
--------------------
The storage interface implemented by both catalog backends.

Implemented by:
    - CatalogDB (flexlist.database.manager): durable SQLAlchemy store,
      one committed transaction per operation
    - LocalStorage (flexlist.storage.local): in-memory state flushed
      to a JSON snapshot after every mutation

Conventions shared by every implementation:
    - Unknown ids return None (lookups, updates) or False (deletes)
    - Malformed input raises ValidationError
    - Persistence failures raise a StorageError subclass
    - Results are records from flexlist.storage.records, never backend objects
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .filtering import Filters
from .records import (
    BulkImportResult,
    CollectionRecord,
    CollectionSummary,
    ImportResult,
    ItemRecord,
    TagPair,
    TagRecord,
)
from .tagging import ExtraTag


class StorageState(str, Enum):
    """Backend lifecycle: Uninitialized -> Loaded <-> Mutated."""

    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    MUTATED = "mutated"


class CatalogStorage(ABC):
    """Collection/item/tag catalog with parity across backends."""

    backend_name: str = "abstract"

    # -- Lifecycle --

    @property
    @abstractmethod
    def state(self) -> StorageState: ...

    @abstractmethod
    def close(self) -> None:
        """Release files, connections and log handlers."""

    # -- Collections --

    @abstractmethod
    def list_collections(self) -> List[CollectionSummary]: ...

    @abstractmethod
    def get_collection(self, collection_id: str) -> Optional[CollectionRecord]: ...

    @abstractmethod
    def create_collection(
        self, name: str, description: Optional[str] = None
    ) -> CollectionRecord: ...

    @abstractmethod
    def update_collection(
        self, collection_id: str, patch: Mapping[str, Any]
    ) -> Optional[CollectionRecord]: ...

    @abstractmethod
    def delete_collection(self, collection_id: str) -> bool:
        """Delete a collection with all its items and their associations."""

    # -- Items --

    @abstractmethod
    def list_items(self, collection_id: str) -> List[ItemRecord]: ...

    @abstractmethod
    def get_item(self, item_id: str) -> Optional[ItemRecord]: ...

    @abstractmethod
    def get_item_tags(self, item_id: str) -> List[TagPair]:
        """The item's effective tag set, legacy pairs first."""

    @abstractmethod
    def create_item(
        self,
        fields: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> ItemRecord: ...

    @abstractmethod
    def update_item(
        self,
        item_id: str,
        patch: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> Optional[ItemRecord]: ...

    @abstractmethod
    def delete_item(self, item_id: str) -> bool: ...

    # -- Filtering & vocabulary --

    @abstractmethod
    def filter_items(
        self,
        collection_id: str,
        search: Optional[str] = None,
        filters: Optional[Filters] = None,
    ) -> List[ItemRecord]: ...

    @abstractmethod
    def get_available_tags(self, collection_id: str) -> Dict[str, List[str]]: ...

    @abstractmethod
    def upsert_tag(self, key: str, value: str) -> TagRecord: ...

    @abstractmethod
    def list_tag_keys(self) -> List[str]: ...

    @abstractmethod
    def list_tag_values(self, key: str) -> List[str]: ...

    @abstractmethod
    def list_legacy_field_values(self, field: str) -> List[str]:
        """Distinct values of key/composer/style across all items."""

    # -- Import --

    @abstractmethod
    def import_items_by_id(
        self, target_collection_id: str, source_item_ids: Sequence[str]
    ) -> ImportResult: ...

    @abstractmethod
    def bulk_import_by_title(
        self, target_collection_id: str, raw_lines: Sequence[str]
    ) -> BulkImportResult: ...

    # -- Context manager --

    def __enter__(self) -> "CatalogStorage":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

#!/usr/bin/env python3
"""
records.py
--------------------
Backend-neutral records returned by every CatalogStorage implementation.

Backends never hand out ORM objects or their internal dictionaries.
They convert to these frozen dataclasses, so both backends produce
values that compare equal field by field.

Legacy fields (key, composer, style) on ItemRecord are a projection of
the item's tags under the reserved keys "Key", "Composer" and "Style".
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# Legacy item field -> reserved tag key
RESERVED_KEYS: Dict[str, str] = {
    "key": "Key",
    "composer": "Composer",
    "style": "Style",
}
LEGACY_FIELDS: Tuple[str, ...] = tuple(RESERVED_KEYS)

# Writable item fields besides the legacy projection
ITEM_FIELDS: Tuple[str, ...] = (
    "title",
    "notes",
    "media_ref",
    "media_start_seconds",
    "lead_sheet_ref",
    "knowledge_level",
)


def utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TagPair:
    """A (key, value) pair without catalog identity."""

    key: str
    value: str


@dataclass(frozen=True)
class TagRecord:
    """A catalog tag; identity is shared by every item that uses it."""

    id: str
    key: str
    value: str

    @property
    def pair(self) -> TagPair:
        return TagPair(self.key, self.value)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CollectionRecord:
    id: str
    name: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CollectionSummary:
    """A collection with the number of items it owns."""

    id: str
    name: str
    description: Optional[str]
    item_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ItemRecord:
    """
    An item as seen by callers.

    Attributes:
        id: Item identifier
        collection_id: Owning collection
        title: Display title
        key, composer, style: Legacy fields, projected from reserved-key tags
        notes: Free text
        media_ref: Opaque media reference (parsed media link)
        media_start_seconds: Playback offset for the media reference
        lead_sheet_ref: Opaque lead sheet file reference
        knowledge_level: does-not-know | kind-of-knows | knows
        created_at, updated_at: UTC timestamps
    """

    id: str
    collection_id: str
    title: str
    key: Optional[str] = None
    composer: Optional[str] = None
    style: Optional[str] = None
    notes: Optional[str] = None
    media_ref: Optional[str] = None
    media_start_seconds: Optional[int] = None
    lead_sheet_ref: Optional[str] = None
    knowledge_level: str = "does-not-know"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def legacy_values(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in LEGACY_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for stamp in ("created_at", "updated_at"):
            if data[stamp] is not None:
                data[stamp] = data[stamp].isoformat()
        return data


@dataclass(frozen=True)
class ImportResult:
    """Outcome of an import by id; compare count with the requested ids."""

    count: int


@dataclass(frozen=True)
class BulkImportResult:
    """
    Outcome of a bulk import by title.

    Attributes:
        imported: Titles of the items created, in input order
        duplicates: Input lines rejected as duplicate titles
        truncated: Non-blank lines ignored past the line limit
    """

    imported: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)
    truncated: int = 0

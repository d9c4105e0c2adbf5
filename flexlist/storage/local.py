#!/usr/bin/env python3
"""
local.py
--------------------
Self-contained catalog backend: in-memory state flushed to one JSON file.

Snapshot layout:
    {
        "collections": [{id, name, description, created_at, updated_at}],
        "items": [{id, collection_id, title, notes, media_ref,
                   media_start_seconds, lead_sheet_ref, knowledge_level,
                   created_at, updated_at}],
        "tags": [{id, key, value}],
        "associations": [{item_id, tag_id}]
    }

List order in the snapshot is listing order. Legacy fields are stored as
associations with the reserved-key tags, exactly like the durable backend.

Snapshots written by the browser client (camelCase fields, an "itemTags"
list, key/composer/style on the item) are read and converted on load; the
next flush writes the layout above.

Every mutation runs inside `_mutation()`: the pre-call state is copied,
the change is applied and the whole snapshot is written to a temporary
file and moved over the old one. On any failure the copy is put back and
the error is re-raised.
"""
from __future__ import annotations

import copy
import json
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from flexlist.core.exceptions import SnapshotError, TemporalFileError, ValidationError
from flexlist.core.logging_manager import FlexlistLogger, safe_logger
from flexlist.core.temporal_files import TemporalFileManager
from flexlist.core.validators import DEFAULT_KNOWLEDGE_LEVEL, DataValidator

from .base import CatalogStorage, StorageState
from .fields import (
    canonical_fields,
    clean_collection_fields,
    clean_item_fields,
    require_legacy_field,
)
from .filtering import CollectionView, Filters, aggregate_tags, filter_view, group_pairs, values_for_key
from .importing import parse_bulk_lines, split_duplicates
from .records import (
    ITEM_FIELDS,
    LEGACY_FIELDS,
    RESERVED_KEYS,
    BulkImportResult,
    CollectionRecord,
    CollectionSummary,
    ImportResult,
    ItemRecord,
    TagPair,
    TagRecord,
)
from .sample_data import seed_catalog
from .tagging import ExtraTag, TagPlan, ordered_pairs, pair_identity, plan_item_tags, project_legacy

SNAPSHOT_SECTIONS = ("collections", "items", "tags", "associations")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_stamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    stamp = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


# ----- Snapshot reading -----
def _read_collection(raw: Mapping[str, Any]) -> Dict[str, Any]:
    raw = canonical_fields(raw)
    stamp = raw.get("created_at") or raw.get("createdAt") or _now()
    return {
        "id": str(raw["id"]),
        "name": str(raw["name"]),
        "description": raw.get("description"),
        "created_at": stamp,
        "updated_at": raw.get("updated_at") or raw.get("updatedAt") or stamp,
    }


def _read_item(raw: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Optional[str]]]:
    """One stored item plus any legacy field values carried on it."""
    raw = canonical_fields(raw)
    stamp = raw.get("created_at") or raw.get("createdAt") or _now()
    item = {
        "id": str(raw["id"]),
        "collection_id": str(raw["collection_id"]),
        "title": str(raw["title"]),
        "notes": raw.get("notes"),
        "media_ref": raw.get("media_ref"),
        "media_start_seconds": raw.get("media_start_seconds"),
        "lead_sheet_ref": raw.get("lead_sheet_ref"),
        "knowledge_level": raw.get("knowledge_level") or DEFAULT_KNOWLEDGE_LEVEL,
        "created_at": stamp,
        "updated_at": raw.get("updated_at") or raw.get("updatedAt") or stamp,
    }
    legacy = {name: DataValidator.normalize_string(raw.get(name)) for name in LEGACY_FIELDS}
    return item, legacy


def _read_associations(raw: Mapping[str, Any]) -> List[Tuple[str, str]]:
    edges = raw.get("associations")
    if edges is None:
        edges = raw.get("itemTags", [])
    if not isinstance(edges, list):
        raise SnapshotError("Snapshot associations must be a list")
    return [
        (str(edge.get("item_id", edge.get("itemId"))), str(edge.get("tag_id", edge.get("tagId"))))
        for edge in edges
    ]


class LocalStorage(CatalogStorage):
    """
    JSON snapshot catalog, single-threaded.

    Attributes:
        snapshot_path (Path): The JSON document holding the whole catalog
        is_fresh (bool): True if no snapshot existed when this instance loaded

    Usage:
        with LocalStorage("data/flexlist_db.json") as store:
            store.create_collection("Gig", "Friday set")
    """

    backend_name = "local"

    def __init__(
        self,
        snapshot_path: Union[str, Path],
        log_dir: Optional[Union[str, Path]] = None,
        logger: Optional[FlexlistLogger] = None,
        seed_sample_data: bool = True,
    ) -> None:
        """
        Load the snapshot, or seed a fresh catalog.

        Args:
            snapshot_path: Location of the JSON snapshot
            log_dir: Directory for log files (ignored if logger is given)
            logger: Existing logger to share
            seed_sample_data: Seed the sample collection when no snapshot exists

        Raises:
            SnapshotError: If an existing snapshot cannot be read
        """
        self.snapshot_path = Path(snapshot_path).expanduser().resolve()

        self._owns_logger = logger is None and log_dir is not None
        if logger is not None:
            self.logger = logger
        elif log_dir:
            self.logger = FlexlistLogger(
                Path(log_dir).expanduser().resolve(), component_name="local"
            )
        else:
            self.logger = None

        self._state = StorageState.UNINITIALIZED
        self._data: Dict[str, Any] = {"collections": [], "items": [], "tags": [], "links": {}}
        self._reindex()

        self.is_fresh = not self.snapshot_path.exists()
        if self.is_fresh:
            self._state = StorageState.LOADED
            if seed_sample_data:
                seed_catalog(self)
            else:
                with self._mutation("initialize_snapshot"):
                    pass
            safe_logger(self.logger).log_operation(
                "snapshot_created",
                {"path": str(self.snapshot_path), "seeded": seed_sample_data},
            )
        else:
            self._load()
            self._state = StorageState.LOADED

    # -------------------------------------------------------------------------
    # State & Persistence
    # -------------------------------------------------------------------------

    @property
    def state(self) -> StorageState:
        return self._state

    def _reindex(self) -> None:
        """Rebuild the id and tag-identity lookups from self._data."""
        self._collection_by_id = {c["id"]: c for c in self._data["collections"]}
        self._item_by_id = {i["id"]: i for i in self._data["items"]}
        self._tag_by_id = {t["id"]: t for t in self._data["tags"]}
        self._tag_by_identity = {
            pair_identity(t["key"], t["value"]): t for t in self._data["tags"]
        }

    def _load(self) -> None:
        """
        Read the snapshot into memory.

        Raises:
            SnapshotError: On unreadable JSON or a malformed document
        """
        try:
            raw = json.loads(self.snapshot_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            safe_logger(self.logger).log_error(e, {"operation": "load_snapshot"})
            raise SnapshotError(f"Could not read snapshot {self.snapshot_path}: {e}") from e

        if not isinstance(raw, dict):
            raise SnapshotError(f"Snapshot {self.snapshot_path} is not a JSON object")

        try:
            self._data = {
                "collections": [_read_collection(c) for c in raw.get("collections", [])],
                "items": [],
                "tags": [
                    {"id": str(t["id"]), "key": str(t["key"]), "value": str(t["value"])}
                    for t in raw.get("tags", [])
                ],
                "links": {},
            }
            self._reindex()

            carried: Dict[str, Dict[str, Optional[str]]] = {}
            for raw_item in raw.get("items", []):
                item, legacy = _read_item(raw_item)
                self._data["items"].append(item)
                carried[item["id"]] = legacy
            self._reindex()

            dangling = 0
            for item_id, tag_id in _read_associations(raw):
                if item_id not in self._item_by_id or tag_id not in self._tag_by_id:
                    dangling += 1
                    continue
                links = self._data["links"].setdefault(item_id, [])
                if tag_id not in links:
                    links.append(tag_id)

            self._fold_carried_legacy(carried)
        except SnapshotError:
            raise
        except (KeyError, TypeError, AttributeError, ValueError, ValidationError) as e:
            safe_logger(self.logger).log_error(e, {"operation": "load_snapshot"})
            raise SnapshotError(f"Malformed snapshot {self.snapshot_path}: {e}") from e

        if dangling:
            safe_logger(self.logger).log_warning(
                "Dropped associations to missing items or tags", {"count": dangling}
            )
        safe_logger(self.logger).log_operation(
            "snapshot_loaded",
            {
                "path": str(self.snapshot_path),
                "collections": len(self._data["collections"]),
                "items": len(self._data["items"]),
                "tags": len(self._data["tags"]),
            },
        )

    def _fold_carried_legacy(self, carried: Mapping[str, Mapping[str, Optional[str]]]) -> None:
        """Turn key/composer/style stored on items into reserved-key tags."""
        for item_id, legacy in carried.items():
            if any(legacy.values()):
                plan = TagPlan(legacy=dict(legacy), extras=self._pairs(item_id))
                self._set_item_tags(item_id, plan)

    def _snapshot(self) -> Dict[str, Any]:
        associations = [
            {"item_id": item["id"], "tag_id": tag_id}
            for item in self._data["items"]
            for tag_id in self._data["links"].get(item["id"], [])
        ]
        return {
            "collections": self._data["collections"],
            "items": self._data["items"],
            "tags": self._data["tags"],
            "associations": associations,
        }

    def _flush(self) -> None:
        """
        Write the full snapshot atomically (temp file + os.replace).

        Raises:
            SnapshotError: If the snapshot cannot be written
        """
        try:
            self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
            with TemporalFileManager(self.snapshot_path.parent) as temp_manager:
                temp_file = temp_manager.create_temp_file(suffix=".json")
                temp_file.write_text(
                    json.dumps(self._snapshot(), ensure_ascii=False, indent=2),
                    encoding="utf-8",
                )
                temp_manager.commit(temp_file, self.snapshot_path)
        except (OSError, TypeError, ValueError, TemporalFileError) as e:
            raise SnapshotError(f"Could not write snapshot {self.snapshot_path}: {e}") from e

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[None]:
        """
        Apply a change and flush it, or restore the pre-call state.

        Args:
            operation: Name used in log entries
        """
        backup = copy.deepcopy(self._data)
        self._state = StorageState.MUTATED
        try:
            yield
            self._flush()
        except Exception as e:
            self._data = backup
            self._reindex()
            self._state = StorageState.LOADED
            safe_logger(self.logger).log_error(e, {"operation": operation, "restored": True})
            raise
        self._state = StorageState.LOADED
        safe_logger(self.logger).log_debug(f"{operation}_flushed", {"path": str(self.snapshot_path)})

    # -------------------------------------------------------------------------
    # In-memory helpers
    # -------------------------------------------------------------------------

    def _pairs(self, item_id: str) -> List[TagPair]:
        return [
            TagPair(self._tag_by_id[tag_id]["key"], self._tag_by_id[tag_id]["value"])
            for tag_id in self._data["links"].get(item_id, [])
        ]

    def _upsert(self, key: str, value: str) -> Dict[str, Any]:
        identity = pair_identity(key, value)
        tag = self._tag_by_identity.get(identity)
        if tag is None:
            tag = {"id": _new_id(), "key": key, "value": value}
            self._data["tags"].append(tag)
            self._tag_by_id[tag["id"]] = tag
            self._tag_by_identity[identity] = tag
        return tag

    def _set_item_tags(self, item_id: str, plan: TagPlan) -> None:
        tag_ids: List[str] = []
        for pair in plan.pairs:
            tag_id = self._upsert(pair.key, pair.value)["id"]
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)
        self._data["links"][item_id] = tag_ids

    def _add_item(self, fields: Mapping[str, Any], plan: TagPlan) -> Dict[str, Any]:
        stamp = _now()
        item = {
            "id": _new_id(),
            "collection_id": fields["collection_id"],
            **{name: fields.get(name) for name in ITEM_FIELDS},
            "created_at": stamp,
            "updated_at": stamp,
        }
        if not item["knowledge_level"]:
            item["knowledge_level"] = DEFAULT_KNOWLEDGE_LEVEL
        self._data["items"].append(item)
        self._item_by_id[item["id"]] = item
        self._set_item_tags(item["id"], plan)
        return item

    def _remove_items(self, item_ids: Sequence[str]) -> None:
        doomed = set(item_ids)
        self._data["items"] = [i for i in self._data["items"] if i["id"] not in doomed]
        for item_id in doomed:
            self._data["links"].pop(item_id, None)
            self._item_by_id.pop(item_id, None)

    def _require_collection(self, collection_id: Any, field: str) -> Dict[str, Any]:
        collection = self._collection_by_id.get(collection_id) if isinstance(collection_id, str) else None
        if collection is None:
            raise ValidationError(f"Unknown collection: {collection_id}", field=field)
        return collection

    def _to_record(self, item: Mapping[str, Any]) -> ItemRecord:
        legacy = project_legacy(self._pairs(item["id"]))
        return ItemRecord(
            id=item["id"],
            collection_id=item["collection_id"],
            title=item["title"],
            key=legacy["key"],
            composer=legacy["composer"],
            style=legacy["style"],
            notes=item.get("notes"),
            media_ref=item.get("media_ref"),
            media_start_seconds=item.get("media_start_seconds"),
            lead_sheet_ref=item.get("lead_sheet_ref"),
            knowledge_level=item.get("knowledge_level") or DEFAULT_KNOWLEDGE_LEVEL,
            created_at=_parse_stamp(item.get("created_at")),
            updated_at=_parse_stamp(item.get("updated_at")),
        )

    def _view(self, collection_id: str) -> CollectionView:
        return [
            (self._to_record(item), self._pairs(item["id"]))
            for item in self._data["items"]
            if item["collection_id"] == collection_id
        ]

    @staticmethod
    def _collection_record(collection: Mapping[str, Any]) -> CollectionRecord:
        return CollectionRecord(
            id=collection["id"],
            name=collection["name"],
            description=collection.get("description"),
        )

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def list_collections(self) -> List[CollectionSummary]:
        counts: Dict[str, int] = {}
        for item in self._data["items"]:
            counts[item["collection_id"]] = counts.get(item["collection_id"], 0) + 1
        return [
            CollectionSummary(
                id=c["id"],
                name=c["name"],
                description=c.get("description"),
                item_count=counts.get(c["id"], 0),
            )
            for c in self._data["collections"]
        ]

    def get_collection(self, collection_id: str) -> Optional[CollectionRecord]:
        collection = self._collection_by_id.get(collection_id)
        return self._collection_record(collection) if collection else None

    def create_collection(
        self, name: str, description: Optional[str] = None
    ) -> CollectionRecord:
        fields = clean_collection_fields(
            {"name": name, "description": description}, creating=True
        )
        with self._mutation("create_collection"):
            stamp = _now()
            collection = {
                "id": _new_id(),
                "name": fields["name"],
                "description": fields.get("description"),
                "created_at": stamp,
                "updated_at": stamp,
            }
            self._data["collections"].append(collection)
            self._collection_by_id[collection["id"]] = collection
        return self._collection_record(collection)

    def update_collection(
        self, collection_id: str, patch: Mapping[str, Any]
    ) -> Optional[CollectionRecord]:
        fields = clean_collection_fields(patch, creating=False)
        if collection_id not in self._collection_by_id:
            return None
        with self._mutation("update_collection"):
            collection = self._collection_by_id[collection_id]
            if any(collection.get(name) != value for name, value in fields.items()):
                collection.update(fields)
                collection["updated_at"] = _now()
        return self._collection_record(self._collection_by_id[collection_id])

    def delete_collection(self, collection_id: str) -> bool:
        if collection_id not in self._collection_by_id:
            return False
        with self._mutation("delete_collection"):
            self._remove_items(
                [i["id"] for i in self._data["items"] if i["collection_id"] == collection_id]
            )
            self._data["collections"] = [
                c for c in self._data["collections"] if c["id"] != collection_id
            ]
            self._collection_by_id.pop(collection_id, None)
        return True

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def list_items(self, collection_id: str) -> List[ItemRecord]:
        return [record for record, _ in self._view(collection_id)]

    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        item = self._item_by_id.get(item_id)
        return self._to_record(item) if item else None

    def get_item_tags(self, item_id: str) -> List[TagPair]:
        if item_id not in self._item_by_id:
            return []
        return ordered_pairs(self._pairs(item_id))

    def create_item(
        self,
        fields: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> ItemRecord:
        fields = canonical_fields(fields)
        cleaned = clean_item_fields(fields, creating=True)
        plan = plan_item_tags(fields, extra_tags)
        collection_id = fields["collection_id"]
        self._require_collection(collection_id, "collection_id")

        with self._mutation("create_item"):
            item = self._add_item({**cleaned, "collection_id": collection_id}, plan)
        return self._to_record(item)

    def update_item(
        self,
        item_id: str,
        patch: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> Optional[ItemRecord]:
        patch = canonical_fields(patch)
        cleaned = clean_item_fields(patch, creating=False)
        if item_id not in self._item_by_id:
            return None
        plan = plan_item_tags(patch, extra_tags, self._pairs(item_id))

        with self._mutation("update_item"):
            item = self._item_by_id[item_id]
            item.update(cleaned)
            self._set_item_tags(item_id, plan)
            item["updated_at"] = _now()
        return self._to_record(self._item_by_id[item_id])

    def delete_item(self, item_id: str) -> bool:
        if item_id not in self._item_by_id:
            return False
        with self._mutation("delete_item"):
            self._remove_items([item_id])
        return True

    # -------------------------------------------------------------------------
    # Filtering & Vocabulary
    # -------------------------------------------------------------------------

    def filter_items(
        self,
        collection_id: str,
        search: Optional[str] = None,
        filters: Optional[Filters] = None,
    ) -> List[ItemRecord]:
        return filter_view(self._view(collection_id), search, filters)

    def get_available_tags(self, collection_id: str) -> Dict[str, List[str]]:
        return aggregate_tags(self._view(collection_id))

    def upsert_tag(self, key: str, value: str) -> TagRecord:
        key = "" if key is None else str(key)
        value = "" if value is None else str(value)
        existing = self._tag_by_identity.get(pair_identity(key, value))
        if existing is None:
            with self._mutation("upsert_tag"):
                existing = self._upsert(key, value)
        return TagRecord(id=existing["id"], key=existing["key"], value=existing["value"])

    def list_tag_keys(self) -> List[str]:
        return list(group_pairs(TagPair(t["key"], t["value"]) for t in self._data["tags"]))

    def list_tag_values(self, key: str) -> List[str]:
        return values_for_key((TagPair(t["key"], t["value"]) for t in self._data["tags"]), key)

    def list_legacy_field_values(self, field: str) -> List[str]:
        tag_key = RESERVED_KEYS[require_legacy_field(field)]
        linked = {tag_id for tag_ids in self._data["links"].values() for tag_id in tag_ids}
        pairs = [
            TagPair(self._tag_by_id[tag_id]["key"], self._tag_by_id[tag_id]["value"])
            for tag_id in linked
        ]
        return values_for_key(pairs, tag_key)

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def import_items_by_id(
        self, target_collection_id: str, source_item_ids: Sequence[str]
    ) -> ImportResult:
        """
        Clone items (with tags) into a collection, flushing after each clone.

        Raises:
            ValidationError: If the target collection does not exist
        """
        self._require_collection(target_collection_id, "target_collection_id")
        source_item_ids = list(source_item_ids)

        count = 0
        for source_id in source_item_ids:
            source = self._item_by_id.get(source_id)
            if source is None:
                continue
            fields = {name: source.get(name) for name in ITEM_FIELDS}
            fields["collection_id"] = target_collection_id
            plan = TagPlan(legacy={}, extras=ordered_pairs(self._pairs(source_id)))
            with self._mutation("import_item"):
                self._add_item(fields, plan)
            count += 1

        safe_logger(self.logger).log_info(
            "Imported items by id",
            {"target": target_collection_id, "requested": len(source_item_ids), "count": count},
        )
        return ImportResult(count=count)

    def bulk_import_by_title(
        self, target_collection_id: str, raw_lines: Sequence[str]
    ) -> BulkImportResult:
        """
        Create one item per new title; report duplicates without creating them.

        Raises:
            ValidationError: If the target collection does not exist
        """
        self._require_collection(target_collection_id, "target_collection_id")
        parsed = parse_bulk_lines(raw_lines)
        existing = [
            i["title"] for i in self._data["items"] if i["collection_id"] == target_collection_id
        ]
        accepted, duplicates = split_duplicates(parsed.lines, existing)

        empty = TagPlan(legacy={}, extras=[])
        created: List[Dict[str, Any]] = []
        with self._mutation("bulk_import_by_title"):
            for line in accepted:
                created.append(
                    self._add_item(
                        {
                            "collection_id": target_collection_id,
                            "title": line.title,
                            "knowledge_level": DEFAULT_KNOWLEDGE_LEVEL,
                        },
                        empty,
                    )
                )

        result = BulkImportResult(
            imported=[item["title"] for item in created],
            duplicates=[line.raw for line in duplicates],
            truncated=parsed.truncated,
        )
        safe_logger(self.logger).log_info(
            "Bulk imported titles",
            {
                "target": target_collection_id,
                "imported": len(result.imported),
                "duplicates": len(result.duplicates),
                "truncated": result.truncated,
            },
        )
        return result

    # ----- Lifecycle -----
    def close(self) -> None:
        if self._owns_logger and self.logger is not None:
            self.logger.close()
        self._state = StorageState.UNINITIALIZED

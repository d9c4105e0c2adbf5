#!/usr/bin/env python3
"""
fields.py
--------------------
Input cleaning for collection and item fields, shared by both backends.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from flexlist.core.exceptions import ValidationError
from flexlist.core.validators import DataValidator

from .records import ITEM_FIELDS, LEGACY_FIELDS

_COLLECTION_FIELDS = ("name", "description")

_ALIASES = {
    "collectionId": "collection_id",
    "knowledgeLevel": "knowledge_level",
    "leadSheetRef": "lead_sheet_ref",
    "leadSheetUrl": "lead_sheet_ref",
    "mediaRef": "media_ref",
    "mediaStartSeconds": "media_start_seconds",
    "startSeconds": "media_start_seconds",
}


def canonical_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase client names onto field names."""
    if not isinstance(fields, Mapping):
        raise ValidationError(
            f"Expected a mapping of fields, got {type(fields).__name__}"
        )
    return {_ALIASES.get(name, name): value for name, value in fields.items()}


def clean_collection_fields(patch: Mapping[str, Any], creating: bool) -> Dict[str, Any]:
    """
    Validate collection input.

    Returns:
        {"name": ..., "description": ...} restricted to supplied fields

    Raises:
        ValidationError: If the name is missing on create or blank on update
    """
    patch = canonical_fields(patch)
    if creating:
        DataValidator.validate_required_fields(patch, ["name"])

    cleaned: Dict[str, Any] = {}
    if "name" in patch:
        name = DataValidator.normalize_string(patch["name"])
        if not name:
            raise ValidationError("Collection name cannot be empty", field="name")
        cleaned["name"] = name
    if "description" in patch:
        cleaned["description"] = DataValidator.normalize_string(patch["description"])
    return cleaned


def clean_item_fields(fields: Mapping[str, Any], creating: bool) -> Dict[str, Any]:
    """
    Validate item scalars (legacy fields are handled by the tag plan).

    Args:
        fields: Create fields or update patch (canonical names)
        creating: Require title and collection_id, fill defaults

    Returns:
        Cleaned scalar values restricted to supplied fields (all of them
        when creating)

    Raises:
        ValidationError: On missing title, bad level or bad offset
    """
    if creating:
        DataValidator.validate_required_fields(fields, ["collection_id", "title"])

    cleaned: Dict[str, Any] = {}
    for name in ITEM_FIELDS:
        if name not in fields and not creating:
            continue
        value = fields.get(name)
        if name == "title":
            title = DataValidator.normalize_string(value)
            if not title:
                raise ValidationError("Item title cannot be empty", field="title")
            cleaned[name] = title
        elif name == "knowledge_level":
            cleaned[name] = DataValidator.normalize_knowledge_level(value)
        elif name == "media_start_seconds":
            cleaned[name] = DataValidator.normalize_int(value, field=name)
        else:
            cleaned[name] = DataValidator.normalize_string(value)
    return cleaned


def require_legacy_field(field: str) -> str:
    """
    Validate a legacy field name.

    Raises:
        ValidationError: If field is not key, composer or style
    """
    name = (field or "").strip().lower()
    if name not in LEGACY_FIELDS:
        raise ValidationError(
            f"Unknown legacy field: '{field}' (expected one of {', '.join(LEGACY_FIELDS)})",
            field="field",
        )
    return name

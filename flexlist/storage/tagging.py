#!/usr/bin/env python3
"""
tagging.py
--------------------
Write-side rules shared by both backends: which tag pairs an item
should carry after a create or an update.

The tag set is the single source of truth. Tag pairs are stored in
order, and a legacy field is the first pair under its reserved key;
extra tags under the same key are ordinary tags next to it. This module
folds incoming legacy values and extra tags into one deduplicated list
of pairs.

Usage:
    plan = plan_item_tags(
        {"key": "Eb", "style": "Ballad"},
        [{"key": "Tempo", "value": "Slow"}],
    )
    plan.pairs
    # [TagPair("Key", "Eb"), TagPair("Style", "Ballad"), TagPair("Tempo", "Slow")]
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from flexlist.core.exceptions import ValidationError
from flexlist.core.validators import DataValidator

from .records import LEGACY_FIELDS, RESERVED_KEYS, TagPair

ExtraTag = Union[TagPair, Mapping[str, Any], Tuple[str, str]]

# match_key(reserved tag key) -> legacy field
_RESERVED_LOOKUP: Dict[str, str] = {
    DataValidator.match_key(tag_key): name for name, tag_key in RESERVED_KEYS.items()
}


def pair_identity(key: Optional[str], value: Optional[str]) -> Tuple[str, str]:
    """Normalized identity of a (key, value) pair."""
    return DataValidator.match_key(key), DataValidator.match_key(value)


def reserved_field(tag_key: Optional[str]) -> Optional[str]:
    """Legacy field a tag key projects onto, or None for ordinary keys."""
    return _RESERVED_LOOKUP.get(DataValidator.match_key(tag_key))


def coerce_extra_tag(tag: ExtraTag) -> TagPair:
    """
    Accept a TagPair, a {"key", "value"} mapping or a 2-tuple.

    Raises:
        ValidationError: If the shape is not recognized
    """
    if isinstance(tag, TagPair):
        return tag
    if isinstance(tag, Mapping):
        return TagPair(str(tag.get("key") or ""), str(tag.get("value") or ""))
    if isinstance(tag, (tuple, list)) and len(tag) == 2:
        return TagPair(str(tag[0] or ""), str(tag[1] or ""))
    raise ValidationError(
        f"Extra tags must be key/value pairs, got {tag!r}", field="extra_tags"
    )


def clean_extra_tags(extra_tags: Optional[Iterable[ExtraTag]]) -> List[TagPair]:
    """Trim extra tags, drop blank keys or values, drop normalized repeats."""
    cleaned: List[TagPair] = []
    seen: Set[Tuple[str, str]] = set()
    for raw in extra_tags or []:
        tag = coerce_extra_tag(raw)
        key = DataValidator.normalize_string(tag.key)
        value = DataValidator.normalize_string(tag.value)
        if not key or not value:
            continue
        identity = pair_identity(key, value)
        if identity in seen:
            continue
        seen.add(identity)
        cleaned.append(TagPair(key, value))
    return cleaned


def project_legacy(pairs: Iterable[TagPair]) -> Dict[str, Optional[str]]:
    """
    Read the legacy fields off a stored tag set.

    The first stored pair under a reserved key is the field value; any
    further pairs under that key are ordinary tags of the item.
    """
    legacy: Dict[str, Optional[str]] = {name: None for name in LEGACY_FIELDS}
    for pair in pairs:
        name = reserved_field(pair.key)
        if name is not None and legacy[name] is None:
            legacy[name] = pair.value
    return legacy


@dataclass(frozen=True)
class TagPlan:
    """Resolved tag set for one item."""

    legacy: Dict[str, Optional[str]]
    extras: List[TagPair]

    @property
    def pairs(self) -> List[TagPair]:
        """
        Pairs in storage order: legacy pairs first, then extras.

        Later pairs equivalent to an earlier one are dropped, so each
        legacy value stays the first pair under its reserved key.
        """
        legacy_pairs = [
            TagPair(RESERVED_KEYS[name], value)
            for name, value in self.legacy.items()
            if value
        ]
        pairs: List[TagPair] = []
        seen: Set[Tuple[str, str]] = set()
        for pair in legacy_pairs + list(self.extras):
            identity = pair_identity(pair.key, pair.value)
            if identity in seen:
                continue
            seen.add(identity)
            pairs.append(pair)
        return pairs


def ordered_pairs(pairs: Iterable[TagPair]) -> List[TagPair]:
    """
    An item's stored tags in display order.

    Legacy pairs come first in field order (Key, Composer, Style), then
    every other tag sorted by normalized key and value.
    """
    pairs = list(pairs)
    others = sorted(
        pairs,
        key=lambda pair: (*pair_identity(pair.key, pair.value), pair.key, pair.value),
    )
    return TagPlan(legacy=project_legacy(pairs), extras=others).pairs


def plan_item_tags(
    fields: Mapping[str, Any],
    extra_tags: Optional[Sequence[ExtraTag]],
    current: Optional[Sequence[TagPair]] = None,
) -> TagPlan:
    """
    Decide the tag set of an item after a create or update.

    Args:
        fields: Create fields or update patch; legacy fields present here
            are authoritative (an empty value clears the field)
        extra_tags: New explicit tags, or None to keep the current ones
        current: The item's current tag set in storage order (None when creating)

    Returns:
        TagPlan with the legacy values and the explicit tags

    Notes:
        - Extra tags under a reserved key are kept as tags of their own;
          one fills the legacy field only when nothing else does
        - A legacy field in `fields` replaces only the pair it projected
          before; other pairs under the same key stay
        - With extra_tags=None every current pair not replaced is kept
    """
    current = list(current or [])
    projected = project_legacy(current)
    legacy = dict(projected)

    for name in LEGACY_FIELDS:
        if name in fields:
            legacy[name] = DataValidator.normalize_string(fields.get(name))

    if extra_tags is not None:
        return TagPlan(legacy=legacy, extras=clean_extra_tags(extra_tags))

    replaced = {
        pair_identity(RESERVED_KEYS[name], projected[name])
        for name in LEGACY_FIELDS
        if name in fields and projected[name]
    }
    extras = [
        pair for pair in current if pair_identity(pair.key, pair.value) not in replaced
    ]
    return TagPlan(legacy=legacy, extras=extras)

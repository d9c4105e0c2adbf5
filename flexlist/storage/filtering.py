#!/usr/bin/env python3
"""
filtering.py
--------------------
The filter and aggregation engine shared by both storage backends.

Each backend loads the items of a collection (in listing order) together
with their tag sets and hands them to the pure functions below. Running
one implementation over both backends' data is what keeps their query
semantics identical.

Filter rules:
    1. Scope: the caller passes only the collection's items, in order.
    2. Search: the trimmed, case-folded term must be a substring of the
       title, a legacy field or the notes. Missing fields never match.
    3. Knowledge level: the 'knowledgeLevel' filter keeps items whose
       level (default does-not-know) is one of the requested values.
    4. Tags: OR within a key, AND across keys, normalized equality only.
    5. Output keeps the input order.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from flexlist.core.validators import DEFAULT_KNOWLEDGE_LEVEL, DataValidator

from .records import RESERVED_KEYS, ItemRecord, TagPair

FilterValues = Union[str, Sequence[str]]
Filters = Mapping[str, FilterValues]
CollectionView = Sequence[Tuple[ItemRecord, Sequence[TagPair]]]

KNOWLEDGE_LEVEL_FILTER = "knowledgeLevel"
# "Knowledge Level" is the key older clients send
_KNOWLEDGE_LEVEL_KEYS = {
    DataValidator.match_key(KNOWLEDGE_LEVEL_FILTER),
    DataValidator.match_key("Knowledge Level"),
}


def effective_tags(item: ItemRecord, tags: Iterable[TagPair]) -> List[TagPair]:
    """
    The item's legacy fields promoted to reserved-key tags, plus its tags.

    Pairs are deduplicated by normalized identity, first occurrence kept.
    """
    promoted = [
        TagPair(RESERVED_KEYS[name], value)
        for name, value in item.legacy_values().items()
        if value and value.strip()
    ]
    result: List[TagPair] = []
    seen: Set[Tuple[str, str]] = set()
    for pair in promoted + list(tags):
        identity = (DataValidator.match_key(pair.key), DataValidator.match_key(pair.value))
        if identity in seen:
            continue
        seen.add(identity)
        result.append(pair)
    return result


def matches_search(item: ItemRecord, term: str) -> bool:
    """True if the case-folded term occurs in any searchable field."""
    searchable = (item.title, item.key, item.composer, item.style, item.notes)
    return any(text is not None and term in text.casefold() for text in searchable)


def split_filters(
    filters: Optional[Filters],
) -> Tuple[Optional[Set[str]], "OrderedDict[str, Set[str]]"]:
    """
    Separate the knowledge-level filter from tag filters.

    Returns:
        (requested levels or None, {normalized key: normalized values})
        Keys with no requested values are dropped.
    """
    levels: Optional[Set[str]] = None
    tag_filters: "OrderedDict[str, Set[str]]" = OrderedDict()

    for raw_key, raw_values in (filters or {}).items():
        values = [raw_values] if isinstance(raw_values, str) else list(raw_values or [])
        wanted = {DataValidator.match_key(v) for v in values if v is not None}
        if not wanted:
            continue

        key = DataValidator.match_key(raw_key)
        if key in _KNOWLEDGE_LEVEL_KEYS:
            levels = wanted if levels is None else levels | wanted
        else:
            tag_filters.setdefault(key, set()).update(wanted)

    return levels, tag_filters


def _satisfies_tags(tags: Sequence[TagPair], tag_filters: Mapping[str, Set[str]]) -> bool:
    values_by_key: Dict[str, Set[str]] = {}
    for pair in tags:
        values_by_key.setdefault(DataValidator.match_key(pair.key), set()).add(
            DataValidator.match_key(pair.value)
        )
    return all(
        values_by_key.get(key, set()) & wanted for key, wanted in tag_filters.items()
    )


def filter_view(
    view: CollectionView,
    search: Optional[str] = None,
    filters: Optional[Filters] = None,
) -> List[ItemRecord]:
    """
    Apply search and filters to a collection view.

    Args:
        view: (item, tag set) pairs of one collection, in listing order
        search: Free-text term; blank means no search
        filters: {key: value or values}; may include 'knowledgeLevel'

    Returns:
        Matching items in their original relative order
    """
    term = search.casefold() if search and search.strip() else None
    levels, tag_filters = split_filters(filters)

    result: List[ItemRecord] = []
    for item, tags in view:
        if term is not None and not matches_search(item, term):
            continue
        if levels is not None:
            level = DataValidator.match_key(item.knowledge_level or DEFAULT_KNOWLEDGE_LEVEL)
            if level not in levels:
                continue
        if tag_filters and not _satisfies_tags(effective_tags(item, tags), tag_filters):
            continue
        result.append(item)
    return result


def group_pairs(pairs: Iterable[TagPair]) -> Dict[str, List[str]]:
    """
    Build a {key: sorted values} vocabulary from tag pairs.

    Keys are grouped by normalized form and displayed with the smallest
    stored spelling; values are deduplicated by normalized form.
    """
    spellings: Dict[str, Set[str]] = {}
    values: Dict[str, Dict[str, str]] = {}

    for pair in pairs:
        key = DataValidator.match_key(pair.key)
        spellings.setdefault(key, set()).add(pair.key)
        bucket = values.setdefault(key, {})
        norm_value = DataValidator.match_key(pair.value)
        current = bucket.get(norm_value)
        if current is None or pair.value < current:
            bucket[norm_value] = pair.value

    result: Dict[str, List[str]] = {}
    for key in sorted(spellings, key=lambda k: min(spellings[k])):
        result[min(spellings[key])] = sorted(values[key].values())
    return result


def aggregate_tags(view: CollectionView) -> Dict[str, List[str]]:
    """The vocabulary of a collection: every effective tag of its items."""
    return group_pairs(pair for item, tags in view for pair in effective_tags(item, tags))


def values_for_key(pairs: Iterable[TagPair], key: str) -> List[str]:
    """Sorted values stored under `key` (normalized match)."""
    wanted = DataValidator.match_key(key)
    matching = [pair for pair in pairs if DataValidator.match_key(pair.key) == wanted]
    return next(iter(group_pairs(matching).values()), [])


def sorted_unique(values: Iterable[Optional[str]]) -> List[str]:
    """Distinct non-blank values in sorted order."""
    return sorted({v for v in values if v is not None and v.strip()})

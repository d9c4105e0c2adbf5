"""Tests for the shared filter and vocabulary engine."""
from flexlist.storage.filtering import (
    aggregate_tags,
    effective_tags,
    filter_view,
    group_pairs,
    split_filters,
    values_for_key,
)
from flexlist.storage.records import ItemRecord, TagPair


def _item(item_id, title, **fields):
    return ItemRecord(id=item_id, collection_id="c1", title=title, **fields)


MISTY = _item(
    "1", "Misty", key="Eb", composer="Erroll Garner", style="Ballad",
    notes="Rich harmony", knowledge_level="knows",
)
AUTUMN = _item(
    "2", "Autumn Leaves", key="Bb", composer="Joseph Kosma", knowledge_level="kind-of-knows",
)
BLUE = _item("3", "Blue Bossa")

VIEW = [
    (MISTY, [TagPair("Key", "Eb"), TagPair("Tempo", "Slow")]),
    (AUTUMN, [TagPair("Key", "Bb"), TagPair("tempo", "Medium")]),
    (BLUE, []),
]


def _titles(items):
    return [item.title for item in items]


class TestEffectiveTags:
    """Tests for effective_tags."""

    def test_promotes_legacy_fields(self):
        item = _item("9", "Solar", key="C", composer=" ")
        assert effective_tags(item, [TagPair("Form", "12-bar")]) == [
            TagPair("Key", "C"),
            TagPair("Form", "12-bar"),
        ]

    def test_deduplicates_by_normalized_identity(self):
        item = _item("9", "Solar", key="C")
        pairs = effective_tags(item, [TagPair(" key ", "c"), TagPair("Key", "C")])
        assert pairs == [TagPair("Key", "C")]


class TestSearch:
    """Tests for free-text search."""

    def test_matches_title_case_insensitively(self):
        assert _titles(filter_view(VIEW, "MISTY")) == ["Misty"]

    def test_surrounding_spaces_are_part_of_the_term(self):
        assert filter_view(VIEW, " misty") == []
        assert _titles(filter_view(VIEW, "autumn leaves")) == ["Autumn Leaves"]

    def test_matches_legacy_fields_and_notes(self):
        assert _titles(filter_view(VIEW, "kosma")) == ["Autumn Leaves"]
        assert _titles(filter_view(VIEW, "harmony")) == ["Misty"]

    def test_blank_search_returns_everything(self):
        assert _titles(filter_view(VIEW, "   ")) == ["Misty", "Autumn Leaves", "Blue Bossa"]

    def test_no_match(self):
        assert filter_view(VIEW, "coltrane") == []


class TestTagFilters:
    """Tests for OR-within-key / AND-across-keys semantics."""

    def test_or_within_key(self):
        result = filter_view(VIEW, filters={"Key": ["Eb", "Bb"]})
        assert _titles(result) == ["Misty", "Autumn Leaves"]

    def test_and_across_keys(self):
        result = filter_view(VIEW, filters={"Key": ["Eb", "Bb"], "Tempo": ["Medium"]})
        assert _titles(result) == ["Autumn Leaves"]

    def test_normalized_equality(self):
        assert _titles(filter_view(VIEW, filters={" TEMPO ": " slow"})) == ["Misty"]

    def test_no_substring_matching(self):
        assert filter_view(VIEW, filters={"Key": ["E"]}) == []

    def test_empty_value_list_is_ignored(self):
        assert len(filter_view(VIEW, filters={"Key": []})) == 3

    def test_legacy_field_without_tag_still_matches(self):
        """A legacy value on the record counts even when not in the tag list."""
        result = filter_view(VIEW, filters={"Composer": ["Erroll Garner"]})
        assert _titles(result) == ["Misty"]


class TestKnowledgeLevelFilter:
    """Tests for the knowledgeLevel pseudo-key."""

    def test_filters_by_level(self):
        assert _titles(filter_view(VIEW, filters={"knowledgeLevel": ["knows"]})) == ["Misty"]

    def test_default_level(self):
        result = filter_view(VIEW, filters={"knowledgeLevel": "does-not-know"})
        assert _titles(result) == ["Blue Bossa"]

    def test_older_key_spelling(self):
        levels, tags = split_filters({"Knowledge Level": ["knows"], "Key": "Eb"})
        assert levels == {"knows"}
        assert dict(tags) == {"key": {"eb"}}

    def test_combined_with_search(self):
        result = filter_view(VIEW, "a", {"knowledgeLevel": ["knows", "kind-of-knows"]})
        assert _titles(result) == ["Misty", "Autumn Leaves"]


class TestVocabulary:
    """Tests for group_pairs, aggregate_tags and values_for_key."""

    def test_group_pairs_merges_spellings(self):
        vocabulary = group_pairs(
            [TagPair("Tempo", "Slow"), TagPair("tempo", "Medium"), TagPair("Tempo", "slow")]
        )
        assert vocabulary == {"Tempo": ["Medium", "Slow"]}

    def test_keys_are_sorted(self):
        vocabulary = group_pairs([TagPair("Tempo", "Slow"), TagPair("Era", "1940s")])
        assert list(vocabulary) == ["Era", "Tempo"]

    def test_aggregate_includes_legacy_fields(self):
        vocabulary = aggregate_tags(VIEW)
        assert vocabulary["Composer"] == ["Erroll Garner", "Joseph Kosma"]
        assert vocabulary["Key"] == ["Bb", "Eb"]
        assert vocabulary["Style"] == ["Ballad"]
        assert vocabulary["Tempo"] == ["Medium", "Slow"]

    def test_aggregate_of_empty_view(self):
        assert aggregate_tags([]) == {}

    def test_values_for_key(self):
        pairs = [TagPair("Tempo", "Slow"), TagPair("TEMPO", "Fast"), TagPair("Era", "1940s")]
        assert values_for_key(pairs, " tempo") == ["Fast", "Slow"]
        assert values_for_key(pairs, "Form") == []

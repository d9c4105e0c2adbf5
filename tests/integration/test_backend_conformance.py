#!/usr/bin/env python3
"""
Behavioural tests run against every storage backend.

Each test receives the `storage` fixture, parametrized over the durable
SQLite backend and the local JSON snapshot backend, and checks the
observable contract both must honour.
"""
import pytest

from flexlist.core.exceptions import ValidationError
from flexlist.storage.base import StorageState
from flexlist.storage.importing import MAX_BULK_LINES
from flexlist.storage.records import BulkImportResult, ImportResult, TagPair


def _titles(items):
    return [item.title for item in items]


class TestCollections:
    """Collection CRUD."""

    def test_create_and_list_in_insertion_order(self, storage):
        first = storage.create_collection("  Gig ", "Friday")
        second = storage.create_collection("Practice")

        assert first.name == "Gig"
        summaries = storage.list_collections()
        assert [s.id for s in summaries] == [first.id, second.id]
        assert [s.item_count for s in summaries] == [0, 0]
        assert storage.get_collection(first.id) == first

    def test_blank_name_is_rejected(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            storage.create_collection("   ")
        assert exc_info.value.field == "name"

    def test_update(self, storage, collection):
        updated = storage.update_collection(collection.id, {"name": "Set List"})
        assert updated.name == "Set List"
        assert updated.description == collection.description

    def test_unknown_ids(self, storage):
        assert storage.get_collection("missing") is None
        assert storage.update_collection("missing", {"name": "x"}) is None
        assert storage.delete_collection("missing") is False

    def test_delete_cascades_to_items(self, storage, collection, jazz_items):
        misty, _ = jazz_items
        assert storage.delete_collection(collection.id) is True

        assert storage.get_collection(collection.id) is None
        assert storage.get_item(misty.id) is None
        assert storage.get_item_tags(misty.id) == []
        assert storage.list_items(collection.id) == []
        assert storage.list_legacy_field_values("key") == []
        assert storage.list_legacy_field_values("composer") == []
        assert storage.get_available_tags(collection.id) == {}

    def test_item_counts(self, storage, collection, jazz_items):
        other = storage.create_collection("Empty")
        counts = {s.id: s.item_count for s in storage.list_collections()}
        assert counts == {collection.id: 2, other.id: 0}


class TestItems:
    """Item CRUD and the legacy field projection."""

    def test_create_defaults(self, storage, collection):
        item = storage.create_item({"collection_id": collection.id, "title": " Solar "})

        assert item.title == "Solar"
        assert item.knowledge_level == "does-not-know"
        assert item.key is None
        assert item.created_at is not None
        assert item.created_at.tzinfo is not None
        assert storage.get_item_tags(item.id) == []

    def test_camel_case_fields(self, storage, collection):
        item = storage.create_item(
            {
                "collectionId": collection.id,
                "title": "Nardis",
                "knowledgeLevel": "knows",
                "mediaStartSeconds": "42",
            }
        )
        assert item.knowledge_level == "knows"
        assert item.media_start_seconds == 42

    def test_legacy_fields_are_tags(self, storage, jazz_items):
        misty, _ = jazz_items
        assert (misty.key, misty.composer, misty.style) == ("Eb", "Erroll Garner", "Ballad")
        assert storage.get_item_tags(misty.id) == [
            TagPair("Key", "Eb"),
            TagPair("Composer", "Erroll Garner"),
            TagPair("Style", "Ballad"),
            TagPair("Era", "1940s"),
            TagPair("Tempo", "Slow"),
        ]

    def test_list_in_insertion_order(self, storage, collection, jazz_items):
        assert _titles(storage.list_items(collection.id)) == ["Misty", "Autumn Leaves"]

    @pytest.mark.parametrize(
        "fields, field",
        [
            ({"title": "   "}, "title"),
            ({"title": "Solar", "knowledge_level": "expert"}, "knowledge_level"),
            ({"title": "Solar", "media_start_seconds": -3}, "media_start_seconds"),
        ],
    )
    def test_invalid_fields(self, storage, collection, fields, field):
        with pytest.raises(ValidationError) as exc_info:
            storage.create_item({"collection_id": collection.id, **fields})
        assert exc_info.value.field == field
        assert storage.list_items(collection.id) == []

    def test_unknown_collection(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            storage.create_item({"collection_id": "missing", "title": "Solar"})
        assert exc_info.value.field == "collection_id"

    def test_update_scalar_fields_keeps_tags(self, storage, jazz_items):
        misty, _ = jazz_items
        updated = storage.update_item(misty.id, {"notes": "Learn the verse", "title": "Misty (verse)"})

        assert updated.title == "Misty (verse)"
        assert updated.notes == "Learn the verse"
        assert updated.key == "Eb"
        assert updated.created_at == misty.created_at
        assert updated.updated_at >= misty.updated_at
        assert TagPair("Tempo", "Slow") in storage.get_item_tags(misty.id)

    def test_update_replaces_extra_tags(self, storage, jazz_items):
        misty, _ = jazz_items
        storage.update_item(misty.id, {}, [("Form", "AABA")])
        assert storage.get_item_tags(misty.id) == [
            TagPair("Key", "Eb"),
            TagPair("Composer", "Erroll Garner"),
            TagPair("Style", "Ballad"),
            TagPair("Form", "AABA"),
        ]

    def test_update_clears_legacy_field(self, storage, jazz_items):
        misty, _ = jazz_items
        updated = storage.update_item(misty.id, {"style": ""})
        assert updated.style is None
        assert TagPair("Style", "Ballad") not in storage.get_item_tags(misty.id)

    def test_reserved_extra_tag_kept_with_field(self, storage, collection):
        item = storage.create_item(
            {"collection_id": collection.id, "title": "Blue Bossa", "style": "Ballad"},
            [("Style", "Bossa")],
        )

        assert item.style == "Ballad"
        assert storage.get_item_tags(item.id) == [TagPair("Style", "Ballad"), TagPair("Style", "Bossa")]
        assert _titles(storage.filter_items(collection.id, filters={"Style": ["Bossa"]})) == [
            "Blue Bossa"
        ]
        assert storage.get_available_tags(collection.id) == {"Style": ["Ballad", "Bossa"]}

    def test_several_extra_tags_under_reserved_key(self, storage, collection):
        item = storage.create_item(
            {"collection_id": collection.id, "title": "Solar"},
            [("Style", "Ballad"), ("Style", "Bebop")],
        )

        assert item.style == "Ballad"
        assert storage.get_item_tags(item.id) == [TagPair("Style", "Ballad"), TagPair("Style", "Bebop")]

    def test_updates_keep_other_reserved_pairs(self, storage, collection):
        item = storage.create_item(
            {"collection_id": collection.id, "title": "Solar", "key": "C"},
            [("Key", "F")],
        )

        storage.update_item(item.id, {"notes": "Miles"})
        assert storage.get_item_tags(item.id) == [TagPair("Key", "C"), TagPair("Key", "F")]

        updated = storage.update_item(item.id, {"key": "Eb"})
        assert updated.key == "Eb"
        assert storage.get_item_tags(item.id) == [TagPair("Key", "Eb"), TagPair("Key", "F")]

        cleared = storage.update_item(item.id, {"key": ""})
        assert cleared.key == "F"
        assert storage.get_item_tags(item.id) == [TagPair("Key", "F")]

    def test_update_and_delete_unknown(self, storage):
        assert storage.update_item("missing", {"title": "x"}) is None
        assert storage.delete_item("missing") is False
        assert storage.get_item("missing") is None
        assert storage.get_item_tags("missing") == []

    def test_delete_item(self, storage, collection, jazz_items):
        misty, autumn = jazz_items
        assert storage.delete_item(misty.id) is True
        assert _titles(storage.list_items(collection.id)) == ["Autumn Leaves"]
        assert storage.get_item_tags(autumn.id)

    def test_state_returns_to_loaded(self, storage, collection):
        storage.create_item({"collection_id": collection.id, "title": "Solar"})
        assert storage.state == StorageState.LOADED


class TestFiltering:
    """Search and filters over a collection."""

    def test_scenarios(self, storage, collection, jazz_items):
        cid = collection.id
        assert _titles(storage.filter_items(cid, "misty")) == ["Misty"]
        assert _titles(storage.filter_items(cid, filters={"Key": ["Eb", "Bb"]})) == [
            "Misty",
            "Autumn Leaves",
        ]
        assert _titles(
            storage.filter_items(cid, filters={"Key": ["Eb", "Bb"], "Tempo": ["Slow"]})
        ) == ["Misty"]
        assert _titles(storage.filter_items(cid, filters={"knowledgeLevel": ["kind-of-knows"]})) == [
            "Autumn Leaves"
        ]
        assert storage.filter_items(cid, "coltrane") == []

    def test_no_criteria_equals_listing(self, storage, collection, jazz_items):
        assert storage.filter_items(collection.id, "", {}) == storage.list_items(collection.id)

    def test_and_across_keys_needs_one_item(self, storage, collection, jazz_items):
        filters = {"Style": ["Ballad"], "Key": ["Bb"]}
        assert storage.filter_items(collection.id, filters=filters) == []

    def test_search_term_is_not_trimmed(self, storage, collection, jazz_items):
        assert storage.filter_items(collection.id, " misty") == []
        assert _titles(storage.filter_items(collection.id, "autumn leaves")) == ["Autumn Leaves"]

    def test_search_covers_composer_and_notes(self, storage, collection, jazz_items):
        assert _titles(storage.filter_items(collection.id, "KOSMA")) == ["Autumn Leaves"]
        assert _titles(storage.filter_items(collection.id, "harmony")) == ["Misty"]

    def test_scoped_to_collection(self, storage, collection, jazz_items):
        other = storage.create_collection("Other")
        storage.create_item({"collection_id": other.id, "title": "Misty"})
        assert len(storage.filter_items(collection.id, "misty")) == 1
        assert storage.filter_items("missing", "misty") == []

    def test_tag_matching_is_normalized(self, storage, collection, jazz_items):
        assert _titles(storage.filter_items(collection.id, filters={" tempo": ["SLOW "]})) == [
            "Misty"
        ]


class TestVocabulary:
    """Tag upsert and vocabulary listings."""

    def test_available_tags(self, storage, collection, jazz_items):
        assert storage.get_available_tags(collection.id) == {
            "Composer": ["Erroll Garner", "Joseph Kosma"],
            "Era": ["1940s"],
            "Key": ["Bb", "Eb"],
            "Style": ["Ballad", "Jazz Standard"],
            "Tempo": ["Medium", "Slow"],
        }

    def test_available_tags_of_empty_collection(self, storage, collection):
        assert storage.get_available_tags(collection.id) == {}

    def test_upsert_tag_is_idempotent(self, storage):
        first = storage.upsert_tag("Tempo", "Slow")
        second = storage.upsert_tag(" TEMPO ", "slow")
        assert first == second
        assert second.key == "Tempo"

    def test_shared_tag_identity(self, storage, jazz_items):
        """Both items carry Era=1940s through one tag."""
        tag = storage.upsert_tag("era", "1940S")
        assert (tag.key, tag.value) == ("Era", "1940s")
        assert storage.list_tag_values("Era") == ["1940s"]

    def test_key_and_value_listings(self, storage, jazz_items):
        storage.upsert_tag("Form", "AABA")
        assert storage.list_tag_keys() == ["Composer", "Era", "Form", "Key", "Style", "Tempo"]
        assert storage.list_tag_values("tempo") == ["Medium", "Slow"]
        assert storage.list_tag_values("Unknown") == []

    def test_legacy_field_values(self, storage, jazz_items):
        misty, _ = jazz_items
        storage.upsert_tag("Composer", "Jerome Kern")
        assert storage.list_legacy_field_values("composer") == ["Erroll Garner", "Joseph Kosma"]

        storage.delete_item(misty.id)
        assert storage.list_legacy_field_values("Composer") == ["Joseph Kosma"]

    def test_unknown_legacy_field(self, storage):
        with pytest.raises(ValidationError):
            storage.list_legacy_field_values("tempo")


class TestImportById:
    """Copying items between collections."""

    def test_clones_with_tags(self, storage, collection, jazz_items):
        misty, _ = jazz_items
        target = storage.create_collection("Gig")

        result = storage.import_items_by_id(target.id, [misty.id, "missing"])
        assert result == ImportResult(count=1)

        clone = storage.list_items(target.id)[0]
        assert clone.id != misty.id
        assert clone.collection_id == target.id
        assert (clone.title, clone.key, clone.knowledge_level) == ("Misty", "Eb", "knows")
        assert storage.get_item_tags(clone.id) == storage.get_item_tags(misty.id)
        assert len(storage.list_items(collection.id)) == 2

    def test_clones_every_reserved_pair(self, storage, collection):
        source = storage.create_item(
            {"collection_id": collection.id, "title": "Solar", "key": "C"},
            [("Key", "F"), ("Tempo", "Fast")],
        )
        target = storage.create_collection("Gig")

        storage.import_items_by_id(target.id, [source.id])
        clone = storage.list_items(target.id)[0]

        assert clone.key == "C"
        assert storage.get_item_tags(clone.id) == [
            TagPair("Key", "C"),
            TagPair("Key", "F"),
            TagPair("Tempo", "Fast"),
        ]

    def test_clone_is_independent(self, storage, collection, jazz_items):
        misty, _ = jazz_items
        target = storage.create_collection("Gig")
        storage.import_items_by_id(target.id, [misty.id])
        clone = storage.list_items(target.id)[0]

        storage.update_item(clone.id, {"key": "F"})
        assert storage.get_item(misty.id).key == "Eb"

    def test_import_into_same_collection(self, storage, collection, jazz_items):
        misty, _ = jazz_items
        assert storage.import_items_by_id(collection.id, [misty.id]).count == 1
        assert _titles(storage.list_items(collection.id)) == ["Misty", "Autumn Leaves", "Misty"]

    def test_unknown_target(self, storage, jazz_items):
        misty, _ = jazz_items
        with pytest.raises(ValidationError) as exc_info:
            storage.import_items_by_id("missing", [misty.id])
        assert exc_info.value.field == "target_collection_id"


class TestBulkImport:
    """Creating items from title lines."""

    def test_duplicates_are_reported(self, storage, collection):
        storage.create_item({"collection_id": collection.id, "title": "Misty"})

        result = storage.bulk_import_by_title(
            collection.id, ["Misty", "Misty ", "AUTUMN LEAVES"]
        )
        assert result == BulkImportResult(
            imported=["AUTUMN LEAVES"], duplicates=["Misty", "Misty "], truncated=0
        )
        item = storage.list_items(collection.id)[-1]
        assert item.title == "AUTUMN LEAVES"
        assert item.knowledge_level == "does-not-know"
        assert storage.get_item_tags(item.id) == []

    def test_checkbox_lines_and_blank_lines(self, storage, collection):
        result = storage.bulk_import_by_title(collection.id, ["[  ] Solar\n\n[  ] Nardis\n   "])
        assert result.imported == ["Solar", "Nardis"]
        assert _titles(storage.list_items(collection.id)) == ["Solar", "Nardis"]

    def test_repeats_within_batch(self, storage, collection):
        result = storage.bulk_import_by_title(collection.id, "Solar\nsolar")
        assert result.imported == ["Solar"]
        assert result.duplicates == ["solar"]

    def test_line_limit(self, storage, collection):
        lines = [f"Tune {n}" for n in range(MAX_BULK_LINES + 2)]
        result = storage.bulk_import_by_title(collection.id, lines)
        assert len(result.imported) == MAX_BULK_LINES
        assert result.truncated == 2
        assert storage.list_collections()[0].item_count == MAX_BULK_LINES

    def test_unknown_target(self, storage):
        with pytest.raises(ValidationError):
            storage.bulk_import_by_title("missing", ["Solar"])

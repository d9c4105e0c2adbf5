"""
Shared pytest fixtures for the FlexList test suite.

Both storage backends are exposed through the parametrized `storage`
fixture so that behavioural tests run once per backend.
"""
import pytest
from pathlib import Path

from flexlist.core.paths import ALEMBIC_DIR


# ----- Paths -----

@pytest.fixture
def tmp_dir(tmp_path):
    """Temporary directory for test files."""
    return tmp_path


@pytest.fixture
def test_db_path(tmp_dir):
    """Temporary database path."""
    return tmp_dir / "data" / "flexlist.db"


@pytest.fixture
def test_snapshot_path(tmp_dir):
    """Temporary snapshot path."""
    return tmp_dir / "data" / "flexlist_db.json"


@pytest.fixture
def test_alembic_dir():
    """Path to the packaged Alembic scripts."""
    return Path(ALEMBIC_DIR)


# ----- Backends -----

@pytest.fixture
def durable_storage(test_db_path, test_alembic_dir):
    """
    Empty CatalogDB on a fresh SQLite file.

    Seeding is off so tests start from an empty catalog.
    """
    from flexlist.database.manager import CatalogDB

    db = CatalogDB(
        db_path=test_db_path,
        alembic_dir=test_alembic_dir,
        seed_sample_data=False,
    )
    yield db
    db.close()


@pytest.fixture
def local_storage(test_snapshot_path):
    """Empty LocalStorage on a fresh snapshot path."""
    from flexlist.storage.local import LocalStorage

    store = LocalStorage(test_snapshot_path, seed_sample_data=False)
    yield store
    store.close()


@pytest.fixture(params=["durable", "local"])
def storage(request):
    """Each backend in turn, empty."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def collection(storage):
    """A collection to hold items."""
    return storage.create_collection("Standards", "Tunes to learn")


@pytest.fixture
def jazz_items(storage, collection):
    """Misty and Autumn Leaves with legacy fields and extra tags."""
    misty = storage.create_item(
        {
            "collection_id": collection.id,
            "title": "Misty",
            "key": "Eb",
            "composer": "Erroll Garner",
            "style": "Ballad",
            "notes": "Rich harmony",
            "knowledge_level": "knows",
        },
        [("Tempo", "Slow"), ("Era", "1940s")],
    )
    autumn = storage.create_item(
        {
            "collection_id": collection.id,
            "title": "Autumn Leaves",
            "key": "Bb",
            "composer": "Joseph Kosma",
            "style": "Jazz Standard",
            "knowledge_level": "kind-of-knows",
        },
        [("Tempo", "Medium"), ("Era", "1940s")],
    )
    return misty, autumn


# ----- Database Sessions -----

@pytest.fixture
def db_session(durable_storage):
    """
    Session on the durable backend with managers attached.

    Commits on exit like any other session_scope.
    """
    with durable_storage.session_scope() as session:
        yield session


@pytest.fixture
def tag_manager(durable_storage, db_session):
    """TagManager bound to the test session."""
    return durable_storage.tags


@pytest.fixture
def collection_manager(durable_storage, db_session):
    """CollectionManager bound to the test session."""
    return durable_storage.collections


@pytest.fixture
def item_manager(durable_storage, db_session):
    """ItemManager bound to the test session."""
    return durable_storage.items

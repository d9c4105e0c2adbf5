#!/usr/bin/env python3
"""
manager.py
--------------------
Durable catalog backend for FlexList.

Provides the CatalogDB class, the SQLite/SQLAlchemy implementation of
CatalogStorage. Handles:
    - Initialization of the database engine and sessionmaker
    - Schema creation and migrations via Alembic
    - One committed transaction per public operation
    - Retry with exponential backoff on lock contention
    - Conversion of ORM objects to backend-neutral records

Core Operations:
    Collections:
        - list_collections / get_collection
        - create_collection / update_collection / delete_collection

    Items:
        - list_items / get_item / get_item_tags
        - create_item / update_item / delete_item

    Tags & Filtering:
        - upsert_tag, list_tag_keys, list_tag_values
        - list_legacy_field_values
        - filter_items, get_available_tags

    Import:
        - import_items_by_id: one transaction per cloned item
        - bulk_import_by_title: one transaction for the whole batch

Notes
==============
- Foreign keys are enforced per connection (PRAGMA foreign_keys=ON)
- pysqlite's implicit transactions are disabled so SAVEPOINTs work;
  SQLAlchemy emits BEGIN itself
- All datetime fields are UTC-aware on the way out
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

# --- Third party ---
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from flexlist.core.exceptions import DatabaseError, ValidationError
from flexlist.core.logging_manager import FlexlistLogger, safe_logger
from flexlist.core.paths import ALEMBIC_DIR
from flexlist.core.validators import DEFAULT_KNOWLEDGE_LEVEL
from flexlist.storage.base import CatalogStorage, StorageState
from flexlist.storage.fields import (
    canonical_fields,
    clean_collection_fields,
    clean_item_fields,
    require_legacy_field,
)
from flexlist.storage.filtering import (
    Filters,
    aggregate_tags,
    filter_view,
    group_pairs,
    values_for_key,
)
from flexlist.storage.importing import parse_bulk_lines, split_duplicates
from flexlist.storage.records import (
    RESERVED_KEYS,
    BulkImportResult,
    CollectionRecord,
    CollectionSummary,
    ImportResult,
    ItemRecord,
    TagPair,
    TagRecord,
)
from flexlist.storage.sample_data import seed_catalog
from flexlist.storage.tagging import ExtraTag, plan_item_tags

from .decorators import handle_db_errors, log_database_operation
from .managers import CollectionManager, ItemManager, TagManager
from .models import Base, Collection


def _is_lock_error(error: Exception) -> bool:
    message = str(error).lower()
    return "locked" in message or "busy" in message


def _collection_record(collection: Collection) -> CollectionRecord:
    return CollectionRecord(
        id=collection.id, name=collection.name, description=collection.description
    )


# ----- Durable Catalog Backend -----
class CatalogDB(CatalogStorage):
    """
    SQLite-backed catalog.

    Attributes:
        db_path (Path): Filesystem path to the SQLite database file
        alembic_dir (Path): Filesystem path to the Alembic scripts
        engine (Engine): SQLAlchemy engine instance
        SessionLocal (sessionmaker): SQLAlchemy session factory
        is_fresh (bool): True if this instance created the schema

    Usage:
        with CatalogDB("~/flexlist/data/flexlist.db") as db:
            summary = db.list_collections()
            db.filter_items(summary[0].id, "misty", {"Key": ["Eb"]})
    """

    backend_name = "durable"

    # ---- Initialization ----
    def __init__(
        self,
        db_path: Union[str, Path],
        alembic_dir: Union[str, Path] = ALEMBIC_DIR,
        log_dir: Optional[Union[str, Path]] = None,
        logger: Optional[FlexlistLogger] = None,
        seed_sample_data: bool = True,
    ) -> None:
        """
        Initialize the engine, bring the schema to head and seed if fresh.

        Args:
            db_path: Path to the SQLite file
            alembic_dir: Path to the Alembic scripts directory
            log_dir: Directory for log files (ignored if logger is given)
            logger: Existing logger to share
            seed_sample_data: Seed the sample collection into a fresh database

        Raises:
            DatabaseError: If the engine or schema cannot be set up
        """
        self.db_path = Path(db_path).expanduser().resolve()
        self.alembic_dir = Path(alembic_dir).expanduser().resolve()

        # --- Logging ---
        self._owns_logger = logger is None and log_dir is not None
        if logger is not None:
            self.logger = logger
        elif log_dir:
            self.logger = FlexlistLogger(
                Path(log_dir).expanduser().resolve(), component_name="database"
            )
        else:
            self.logger = None

        self._state = StorageState.UNINITIALIZED
        self.is_fresh = False

        # Session-scoped managers (set inside session_scope)
        self._collection_manager: Optional[CollectionManager] = None
        self._item_manager: Optional[ItemManager] = None
        self._tag_manager: Optional[TagManager] = None

        self._setup_engine()
        self._state = StorageState.LOADED

        if self.is_fresh and seed_sample_data:
            sample_id = seed_catalog(self)
            safe_logger(self.logger).log_operation(
                "sample_data_seeded", {"collection_id": sample_id}
            )

    def _setup_engine(self) -> None:
        """Initialize database engine, session factory and schema."""
        logger = safe_logger(self.logger)
        try:
            logger.log_operation(
                "database_init_start",
                {"db_path": str(self.db_path), "alembic_dir": str(self.alembic_dir)},
            )

            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.engine: Engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                pool_pre_ping=True,
            )
            self._configure_sqlite(self.engine)

            self.SessionLocal: sessionmaker = sessionmaker(
                bind=self.engine,
                autoflush=True,
                expire_on_commit=False,
            )

            self.alembic_cfg: Config = self._setup_alembic()
            self.is_fresh = self.initialize_schema()

            logger.log_operation(
                "database_init_complete", {"success": True, "fresh": self.is_fresh}
            )

        except DatabaseError:
            raise
        except Exception as e:
            logger.log_error(e, {"operation": "database_init"})
            raise DatabaseError(f"Database initialization failed: {e}") from e

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Enforce foreign keys and let SQLAlchemy own transaction boundaries."""

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(connection):
            connection.exec_driver_sql("BEGIN")

    # ---- Session Management ----
    @contextmanager
    def session_scope(self):
        """
        Provide a transactional scope around one operation.

        Initializes the entity managers for use within the session; they
        are available as db.collections, db.items and db.tags.

        Usage:
            with db.session_scope() as session:
                item = db.items.get(item_id)
        """
        session: Session = self.SessionLocal()
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        logger = safe_logger(self.logger)

        self._tag_manager = TagManager(session, self.logger)
        self._collection_manager = CollectionManager(session, self.logger)
        self._item_manager = ItemManager(session, self.logger, self._tag_manager)

        logger.log_debug("session_start", {"session_id": session_id})

        try:
            yield session
            session.commit()
            logger.log_debug("session_commit", {"session_id": session_id})
        except Exception as e:
            session.rollback()
            logger.log_error(e, {"operation": "session_rollback", "session_id": session_id})
            raise
        finally:
            self._tag_manager = None
            self._collection_manager = None
            self._item_manager = None
            session.close()
            logger.log_debug("session_close", {"session_id": session_id})

    @contextmanager
    def _mutation(self):
        """A session scope that marks the backend Mutated until it commits."""
        self._state = StorageState.MUTATED
        try:
            with self.session_scope() as session:
                yield session
        finally:
            self._state = StorageState.LOADED

    @property
    def state(self) -> StorageState:
        return self._state

    # -------------------------------------------------------------------------
    # Entity Manager Properties
    # -------------------------------------------------------------------------

    @property
    def collections(self) -> CollectionManager:
        """
        Access CollectionManager for the active session.

        Raises:
            DatabaseError: If accessed outside of session_scope
        """
        if self._collection_manager is None:
            raise DatabaseError("CollectionManager requires active session. Use within session_scope.")
        return self._collection_manager

    @property
    def items(self) -> ItemManager:
        """Access ItemManager for the active session."""
        if self._item_manager is None:
            raise DatabaseError("ItemManager requires active session. Use within session_scope.")
        return self._item_manager

    @property
    def tags(self) -> TagManager:
        """Access TagManager for the active session."""
        if self._tag_manager is None:
            raise DatabaseError("TagManager requires active session. Use within session_scope.")
        return self._tag_manager

    # ---- Alembic setup ----
    def _setup_alembic(self) -> Config:
        """Build the Alembic configuration in code (no alembic.ini needed)."""
        try:
            alembic_cfg = Config()
            alembic_cfg.set_main_option("script_location", str(self.alembic_dir))
            alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{self.db_path}")
            alembic_cfg.set_main_option(
                "file_template",
                "%%(year)d%%(month).2d%%(day).2d_%%(rev)s_%%(slug)s",
            )
            return alembic_cfg
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "setup_alembic"})
            raise DatabaseError(f"Alembic configuration failed: {e}") from e

    def _run_alembic(self, action: Callable[..., Any], *args: Any) -> None:
        """Run an Alembic command on one of this engine's connections."""
        with self.engine.begin() as connection:
            self.alembic_cfg.attributes["connection"] = connection
            try:
                action(self.alembic_cfg, *args)
            finally:
                self.alembic_cfg.attributes.pop("connection", None)

    @handle_db_errors
    @log_database_operation("initialize_schema")
    def initialize_schema(self) -> bool:
        """
        Create tables if needed and run migrations.

        Actions:
            If the database has no tables,
                creates all tables from the ORM models
                stamps the Alembic revision to head
            If not,
                runs pending migrations to update schema

        Returns:
            True if the schema was created by this call
        """
        try:
            with self.engine.connect() as conn:
                table_names = inspect(conn).get_table_names()
            is_fresh_db = len(table_names) == 0

            if is_fresh_db:
                Base.metadata.create_all(bind=self.engine)
                try:
                    self._run_alembic(command.stamp, "head")
                    safe_logger(self.logger).log_operation(
                        "fresh_database_created",
                        {"tables_created": len(Base.metadata.tables)},
                    )
                except Exception as e:
                    safe_logger(self.logger).log_error(e, {"operation": "stamp_database"})
            else:
                self.upgrade_database()
                safe_logger(self.logger).log_operation(
                    "existing_database_migrated", {"table_count": len(table_names)}
                )
            return is_fresh_db

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Could not initialize database: {e}") from e

    @handle_db_errors
    @log_database_operation("upgrade_database")
    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade the database schema to the specified Alembic revision.

        Args:
            revision: Target revision, 'head' by default
        """
        try:
            self._run_alembic(command.upgrade, revision)
        except Exception as e:
            raise DatabaseError(f"Database upgrade failed: {e}") from e

    def get_migration_history(self) -> Dict[str, Optional[str]]:
        """
        Get the current migration status of the database.

        Returns:
            Dictionary with 'current_revision' and 'status'
            ('up_to_date' or 'needs_migration'), or 'error'
        """
        try:
            with self.engine.connect() as conn:
                context = MigrationContext.configure(conn)
                current_rev = context.get_current_revision()

            return {
                "current_revision": current_rev,
                "status": "up_to_date" if current_rev else "needs_migration",
            }
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "get_migration_history"})
            return {"error": str(e)}

    # ----  Helper methods ----
    def _execute_with_retry(
        self,
        operation: Callable,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ) -> Any:
        """
        Execute a database operation with retry on lock.

        Args:
            operation: Callable that performs the whole transaction
            max_retries: Maximum number of attempts
            retry_delay: Base delay between retries (exponential backoff)

        Returns:
            Result of the operation

        Raises:
            OperationalError | DatabaseError: If all retries are exhausted
        """
        for attempt in range(max_retries):
            try:
                return operation()
            except (OperationalError, DatabaseError) as e:
                cause = e if isinstance(e, OperationalError) else e.__cause__
                if (
                    isinstance(cause, OperationalError)
                    and _is_lock_error(cause)
                    and attempt < max_retries - 1
                ):
                    wait_time = retry_delay * (2**attempt)
                    safe_logger(self.logger).log_debug(
                        f"Database locked, retrying in {wait_time}s",
                        {"attempt": attempt + 1, "max_retries": max_retries},
                    )
                    time.sleep(wait_time)
                    continue
                raise

        raise DatabaseError("Retry loop completed without success")

    def _require_collection(self, collection_id: str, field: str) -> Collection:
        collection = self.collections.get(collection_id)
        if collection is None:
            raise ValidationError(f"Unknown collection: {collection_id}", field=field)
        return collection

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("list_collections")
    def list_collections(self) -> List[CollectionSummary]:
        with self.session_scope():
            return [
                CollectionSummary(
                    id=collection.id,
                    name=collection.name,
                    description=collection.description,
                    item_count=count,
                )
                for collection, count in self.collections.list_with_counts()
            ]

    @handle_db_errors
    def get_collection(self, collection_id: str) -> Optional[CollectionRecord]:
        with self.session_scope():
            collection = self.collections.get(collection_id)
            return _collection_record(collection) if collection else None

    @handle_db_errors
    @log_database_operation("create_collection")
    def create_collection(
        self, name: str, description: Optional[str] = None
    ) -> CollectionRecord:
        fields = clean_collection_fields(
            {"name": name, "description": description}, creating=True
        )

        def _do_create():
            with self._mutation():
                return _collection_record(self.collections.create(fields))

        return self._execute_with_retry(_do_create)

    @handle_db_errors
    @log_database_operation("update_collection")
    def update_collection(
        self, collection_id: str, patch: Mapping[str, Any]
    ) -> Optional[CollectionRecord]:
        fields = clean_collection_fields(patch, creating=False)

        def _do_update():
            with self._mutation():
                collection = self.collections.get(collection_id)
                if collection is None:
                    return None
                return _collection_record(self.collections.update(collection, fields))

        return self._execute_with_retry(_do_update)

    @handle_db_errors
    @log_database_operation("delete_collection")
    def delete_collection(self, collection_id: str) -> bool:
        def _do_delete():
            with self._mutation():
                collection = self.collections.get(collection_id)
                if collection is None:
                    return False
                self.collections.delete(collection)
                return True

        return self._execute_with_retry(_do_delete)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    @handle_db_errors
    def list_items(self, collection_id: str) -> List[ItemRecord]:
        with self.session_scope():
            return [self.items.to_record(item) for item in self.items.list_for(collection_id)]

    @handle_db_errors
    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        with self.session_scope():
            item = self.items.get(item_id)
            return self.items.to_record(item) if item else None

    @handle_db_errors
    def get_item_tags(self, item_id: str) -> List[TagPair]:
        with self.session_scope():
            item = self.items.get(item_id)
            return self.items.effective_pairs(item) if item else []

    @handle_db_errors
    @log_database_operation("create_item")
    def create_item(
        self,
        fields: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> ItemRecord:
        """
        Create an item with its legacy fields and extra tags.

        Raises:
            ValidationError: Missing title, bad level or unknown collection
        """
        fields = canonical_fields(fields)
        cleaned = clean_item_fields(fields, creating=True)
        plan = plan_item_tags(fields, extra_tags)
        collection_id = fields["collection_id"]

        def _do_create():
            with self._mutation():
                self._require_collection(collection_id, "collection_id")
                item = self.items.create({**cleaned, "collection_id": collection_id}, plan)
                return self.items.to_record(item)

        return self._execute_with_retry(_do_create)

    @handle_db_errors
    @log_database_operation("update_item")
    def update_item(
        self,
        item_id: str,
        patch: Mapping[str, Any],
        extra_tags: Optional[Sequence[ExtraTag]] = None,
    ) -> Optional[ItemRecord]:
        patch = canonical_fields(patch)
        cleaned = clean_item_fields(patch, creating=False)

        def _do_update():
            with self._mutation():
                item = self.items.get(item_id)
                if item is None:
                    return None
                plan = plan_item_tags(patch, extra_tags, self.tags.pairs_for(item))
                return self.items.to_record(self.items.update(item, cleaned, plan))

        return self._execute_with_retry(_do_update)

    @handle_db_errors
    @log_database_operation("delete_item")
    def delete_item(self, item_id: str) -> bool:
        def _do_delete():
            with self._mutation():
                item = self.items.get(item_id)
                if item is None:
                    return False
                self.items.delete(item)
                return True

        return self._execute_with_retry(_do_delete)

    # -------------------------------------------------------------------------
    # Filtering & Vocabulary
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("filter_items")
    def filter_items(
        self,
        collection_id: str,
        search: Optional[str] = None,
        filters: Optional[Filters] = None,
    ) -> List[ItemRecord]:
        with self.session_scope():
            return filter_view(self.items.view(collection_id), search, filters)

    @handle_db_errors
    def get_available_tags(self, collection_id: str) -> Dict[str, List[str]]:
        with self.session_scope():
            return aggregate_tags(self.items.view(collection_id))

    @handle_db_errors
    @log_database_operation("upsert_tag")
    def upsert_tag(self, key: str, value: str) -> TagRecord:
        key = "" if key is None else str(key)
        value = "" if value is None else str(value)

        def _do_upsert():
            with self._mutation():
                tag = self.tags.upsert(key, value)
                return TagRecord(id=tag.id, key=tag.key, value=tag.value)

        return self._execute_with_retry(_do_upsert)

    @handle_db_errors
    def list_tag_keys(self) -> List[str]:
        with self.session_scope():
            return list(group_pairs(self.tags.all_pairs()))

    @handle_db_errors
    def list_tag_values(self, key: str) -> List[str]:
        with self.session_scope():
            return values_for_key(self.tags.all_pairs(), key)

    @handle_db_errors
    def list_legacy_field_values(self, field: str) -> List[str]:
        tag_key = RESERVED_KEYS[require_legacy_field(field)]
        with self.session_scope():
            pairs = [TagPair(tag_key, value) for value in self.tags.linked_values(tag_key)]
            return values_for_key(pairs, tag_key)

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def _clone_one(self, source_id: str, target_collection_id: str) -> bool:
        def _do_clone():
            with self._mutation():
                source = self.items.get(source_id)
                if source is None:
                    return False
                self.items.clone(source, target_collection_id)
                return True

        return self._execute_with_retry(_do_clone)

    @handle_db_errors
    @log_database_operation("import_items_by_id")
    def import_items_by_id(
        self, target_collection_id: str, source_item_ids: Sequence[str]
    ) -> ImportResult:
        """
        Clone items (with tags) into a collection, committing each clone.

        Missing source ids are skipped. A failure part-way leaves the
        earlier clones in place.

        Raises:
            ValidationError: If the target collection does not exist
        """
        source_item_ids = list(source_item_ids)
        with self.session_scope():
            self._require_collection(target_collection_id, "target_collection_id")

        count = sum(
            1 for source_id in source_item_ids
            if self._clone_one(source_id, target_collection_id)
        )
        safe_logger(self.logger).log_info(
            "Imported items by id",
            {"target": target_collection_id, "requested": len(source_item_ids), "count": count},
        )
        return ImportResult(count=count)

    @handle_db_errors
    @log_database_operation("bulk_import_by_title")
    def bulk_import_by_title(
        self, target_collection_id: str, raw_lines: Sequence[str]
    ) -> BulkImportResult:
        """
        Create one item per new title; report duplicates without creating them.

        Raises:
            ValidationError: If the target collection does not exist
        """
        parsed = parse_bulk_lines(raw_lines)

        def _do_import():
            with self._mutation():
                self._require_collection(target_collection_id, "target_collection_id")
                accepted, duplicates = split_duplicates(
                    parsed.lines, self.items.titles_in(target_collection_id)
                )
                created = self.items.create_many(
                    target_collection_id,
                    [line.title for line in accepted],
                    {"knowledge_level": DEFAULT_KNOWLEDGE_LEVEL},
                )
                return BulkImportResult(
                    imported=[item.title for item in created],
                    duplicates=[line.raw for line in duplicates],
                    truncated=parsed.truncated,
                )

        result = self._execute_with_retry(_do_import)
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
        """Dispose of the engine and close owned log handlers."""
        engine = getattr(self, "engine", None)
        if engine is not None:
            engine.dispose()
        if self._owns_logger and self.logger is not None:
            self.logger.close()
        self._state = StorageState.UNINITIALIZED

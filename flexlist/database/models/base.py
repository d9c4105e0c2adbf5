"""
Base Classes and Mixins
------------------------

Foundational ORM classes for the FlexList catalog database.

Classes:
    - Base: Declarative base for all SQLAlchemy models
    - TimestampMixin: created_at / updated_at columns in UTC

Helpers:
    - new_id: UUID4 string identifiers shared with the local snapshot format
    - utcnow: Timezone-aware current time
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import uuid
from datetime import datetime, timezone

# --- Third party ---
from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Base ORM class ---
class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Serves as the declarative base for SQLAlchemy models and provides
    access to the metadata object for table creation and migrations.
    """

    pass


# --- Timestamps ---
class TimestampMixin:
    """
    Mixin providing creation and modification timestamps.

    Attributes:
        created_at: When the record was created
        updated_at: When the record was last modified
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def touch(self) -> None:
        """Mark the record as modified now."""
        self.updated_at = utcnow()

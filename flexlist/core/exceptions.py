#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the FlexList catalog.

This module defines the exceptions raised across the storage backends,
the import service and the command-line interface.

Exception Hierarchy:
    Exception (built-in)
    ├── StorageError - Base for all persistence failures
    │   ├── DatabaseError - Durable (SQLAlchemy) backend failures
    │   └── SnapshotError - Local snapshot load/flush failures
    ├── ValidationError - Malformed input, carries the offending field
    └── TemporalFileError - Temporary file management errors

Unknown collection or item ids are not exceptions: storage operations
return None/False for them.

Usage:
    from flexlist.core.exceptions import StorageError, ValidationError

    try:
        storage.create_item({"collection_id": cid, "title": ""})
    except ValidationError as e:
        print(f"Invalid {e.field}: {e}")
    except StorageError as e:
        print(f"Persistence failed: {e}")
"""
from typing import Optional


class StorageError(Exception):
    """
    Base exception for persistence failures.

    Raised when a backend cannot read or write its persisted state. A
    StorageError is fatal for the call that raised it: no partial result
    is returned and the in-memory view is rolled back.

    Examples:
        >>> raise StorageError("Catalog store is unreachable")

    See Also:
        DatabaseError, SnapshotError
    """

    pass


class DatabaseError(StorageError):
    """
    Exception for durable backend failures.

    Raised when SQLAlchemy operations fail due to connection issues,
    query errors, integrity violations or migration problems.

    Examples:
        >>> raise DatabaseError("Database operation failed: disk I/O error")
        >>> raise DatabaseError("Data integrity violation: duplicate tag")
    """

    pass


class SnapshotError(StorageError):
    """
    Exception for local snapshot failures.

    Raised when the JSON snapshot cannot be parsed on load or cannot be
    written on flush:
    - Corrupted or truncated snapshot file
    - Permission issues
    - Disk full

    Examples:
        >>> raise SnapshotError("Failed to write snapshot: permission denied")
        >>> raise SnapshotError("Snapshot is not valid JSON")
    """

    pass


class ValidationError(Exception):
    """
    Exception for data validation failures.

    Raised when input data fails validation checks:
    - Missing required fields (e.g. item title)
    - Unknown knowledge level
    - Unknown legacy field name
    - Reference to a collection that does not exist

    Attributes:
        field: Name of the offending field, if known

    Examples:
        >>> raise ValidationError("Required field 'title' missing or empty", field="title")
        >>> raise ValidationError("Unknown legacy field: 'tempo'", field="field")
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class TemporalFileError(Exception):
    """
    Exception for temporary file management errors.

    Raised when staging a snapshot in a temporary file fails:
    - Unable to create temp files
    - Cleanup failures
    - Permission issues

    Examples:
        >>> raise TemporalFileError("Cannot create temp file: directory not writable")
    """

    pass

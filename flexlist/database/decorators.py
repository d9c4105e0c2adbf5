#!/usr/bin/env python3
"""
decorators.py
--------------------
Shared decorators and context managers for database operations.

- log_database_operation: timing and operation-id logging around a method
- handle_db_errors: SQLAlchemy errors re-raised as DatabaseError
- validate_metadata: required-field check on a fields mapping
- DatabaseOperation: the same logging and error translation as a context
  manager, for blocks inside a manager method
"""
from __future__ import annotations

import time
from datetime import datetime
from functools import wraps
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from flexlist.core.exceptions import DatabaseError
from flexlist.core.logging_manager import FlexlistLogger, safe_logger
from flexlist.core.validators import DataValidator


def _translate(error: SQLAlchemyError) -> DatabaseError:
    if isinstance(error, IntegrityError):
        return DatabaseError(f"Data integrity violation: {error}")
    return DatabaseError(f"Database operation failed: {error}")


def log_database_operation(operation_name: str):
    """
    Decorator to log database operations with timing and context.

    Args:
        operation_name: Name of the operation being logged

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            logger = safe_logger(getattr(self, "logger", None))
            start_time = datetime.now()
            operation_id = f"{operation_name}_{start_time.strftime('%Y%m%d_%H%M%S_%f')}"

            logger.log_debug(
                f"Starting {operation_name}",
                {
                    "operation_id": operation_id,
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                },
            )

            try:
                result = function(self, *args, **kwargs)
            except Exception as e:
                logger.log_error(
                    e,
                    {
                        "operation": operation_name,
                        "operation_id": operation_id,
                        "duration_seconds": (datetime.now() - start_time).total_seconds(),
                    },
                )
                raise

            logger.log_operation(
                f"{operation_name}_completed",
                {
                    "operation_id": operation_id,
                    "duration_seconds": (datetime.now() - start_time).total_seconds(),
                    "success": True,
                },
            )
            return result

        return wrapper

    return decorator


def validate_metadata(required_fields: List[str]):
    """
    Decorator to validate a fields mapping before processing.

    The mapping is the first positional argument after self, or the
    `fields` keyword argument.

    Args:
        required_fields: List of required field names

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            metadata = args[0] if args else kwargs.get("fields", {})
            DataValidator.validate_required_fields(metadata, required_fields)
            return function(self, *args, **kwargs)

        return wrapper

    return decorator


def handle_db_errors(function: Callable) -> Callable:
    """
    Decorator to handle common database errors.

    Args:
        function: Function to wrap

    Returns:
        Wrapped function with SQLAlchemy errors raised as DatabaseError
    """

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except SQLAlchemyError as e:
            raise _translate(e) from e

    return wrapper


class DatabaseOperation:
    """
    Context manager form of log_database_operation + handle_db_errors.

    Usage:
        with DatabaseOperation(self.logger, "link_tags"):
            ...
    """

    def __init__(
        self,
        logger: Optional[FlexlistLogger],
        operation_name: str,
        log_start: bool = False,
        **context: Any,
    ) -> None:
        self.logger = safe_logger(logger)
        self.operation_name = operation_name
        self.log_start = log_start
        self.context = context
        self._started = 0.0

    def __enter__(self) -> "DatabaseOperation":
        self._started = time.perf_counter()
        if self.log_start:
            self.logger.log_debug(f"Starting {self.operation_name}", dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = float(time.perf_counter() - self._started)

        if exc_val is None:
            self.logger.log_operation(
                f"{self.operation_name}_completed",
                {**self.context, "duration_seconds": duration, "success": True},
            )
            return False

        self.logger.log_error(
            exc_val,
            {**self.context, "operation": self.operation_name, "duration_seconds": duration},
        )
        if isinstance(exc_val, SQLAlchemyError):
            raise _translate(exc_val) from exc_val
        return False

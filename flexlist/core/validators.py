#!/usr/bin/env python3
"""
validators.py
--------------------
Data validation and normalization utilities for catalog operations.

Two kinds of normalization live here and must not be confused:

- *Cleaning* (normalize_string): trims a value for storage. The original
  casing is preserved.
- *Matching* (match_key): trim + case-fold, used only to compare values.
  Never stored or displayed.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .exceptions import ValidationError


KNOWLEDGE_LEVELS = ("does-not-know", "kind-of-knows", "knows")
DEFAULT_KNOWLEDGE_LEVEL = "does-not-know"


class DataValidator:
    """Centralized validation for catalog input."""

    @staticmethod
    def validate_required_fields(
        data: Dict[str, Any], required_fields: List[str]
    ) -> None:
        """
        Validate that required fields are present and non-blank.

        Args:
            data: Data dictionary to validate
            required_fields: List of required field names

        Raises:
            ValidationError: Naming the first missing field
        """
        if not isinstance(data, dict):
            raise ValidationError(
                f"Expected a mapping of fields, got {type(data).__name__}"
            )
        for field in required_fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(
                    f"Required field '{field}' missing or empty", field=field
                )

    @staticmethod
    def normalize_string(value: Any) -> Optional[str]:
        """
        Trim a value for storage.

        Args:
            value: Value to clean

        Returns:
            Trimmed string, or None if the value is None or blank
        """
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @staticmethod
    def match_key(value: Optional[str]) -> str:
        """
        Comparison form of a string: trimmed and case-folded.

        None compares as the empty string.
        """
        return (value or "").strip().casefold()

    @staticmethod
    def normalize_knowledge_level(value: Any) -> str:
        """
        Validate a knowledge level.

        Args:
            value: Requested level, None/blank for the default

        Returns:
            One of KNOWLEDGE_LEVELS

        Raises:
            ValidationError: If the value is not a known level
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_KNOWLEDGE_LEVEL

        candidate = DataValidator.match_key(str(value))
        for level in KNOWLEDGE_LEVELS:
            if level == candidate:
                return level

        raise ValidationError(
            f"Unknown knowledge level: '{value}' "
            f"(expected one of {', '.join(KNOWLEDGE_LEVELS)})",
            field="knowledge_level",
        )

    @staticmethod
    def normalize_int(value: Any, field: str = "value") -> Optional[int]:
        """
        Convert a value to a non-negative integer.

        Args:
            value: Value to convert
            field: Field name reported on failure

        Returns:
            Integer value or None

        Raises:
            ValidationError: If the value is not a non-negative integer
        """
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValidationError(f"Expected an integer for '{field}'", field=field)
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(
                f"Expected an integer for '{field}', got '{value}'", field=field
            )
        if number < 0:
            raise ValidationError(f"'{field}' must be non-negative", field=field)
        return number

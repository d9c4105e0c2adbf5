#!/usr/bin/env python3
"""
importing.py
--------------------
Line parsing and duplicate detection for bulk import by title.

Only one decorative prefix is recognized: the literal "[  ]" checkbox
marker produced by checklist exports. Other prefixes and punctuation are
kept as part of the title.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from flexlist.core.validators import DataValidator

CHECKBOX_PREFIX = "[  ]"
MAX_BULK_LINES = 1000


@dataclass(frozen=True)
class BulkLine:
    """One accepted input line: as supplied, and as a title."""

    raw: str
    title: str


@dataclass
class ParsedLines:
    lines: List[BulkLine] = field(default_factory=list)
    truncated: int = 0


def clean_title(line: str) -> str:
    """Trim a line and strip one leading checkbox marker."""
    title = line.strip()
    if title.startswith(CHECKBOX_PREFIX):
        title = title[len(CHECKBOX_PREFIX):].strip()
    return title


def parse_bulk_lines(raw_lines: Iterable[str], limit: int = MAX_BULK_LINES) -> ParsedLines:
    """
    Split input into titles.

    Each input string may hold several lines, split on line feeds only
    (a carriage return left at the end is trimmed away). Blank lines
    (after cleaning) are dropped; at most `limit` titles are accepted and
    the remainder is counted as truncated.

    Args:
        raw_lines: Input strings
        limit: Maximum number of titles to accept

    Returns:
        ParsedLines with accepted lines and the truncated count
    """
    if isinstance(raw_lines, str):
        raw_lines = [raw_lines]

    parsed = ParsedLines()
    for chunk in raw_lines:
        for line in str(chunk).split("\n"):
            title = clean_title(line)
            if not title:
                continue
            if len(parsed.lines) >= limit:
                parsed.truncated += 1
                continue
            parsed.lines.append(BulkLine(raw=line, title=title))
    return parsed


def split_duplicates(lines: Iterable[BulkLine], existing_titles: Iterable[str]):
    """
    Partition lines into new titles and duplicates.

    A title is a duplicate when it matches (trimmed, case-insensitive) an
    existing title or a title accepted earlier in the same batch.

    Returns:
        (accepted lines, duplicate lines)
    """
    seen: Set[str] = {DataValidator.match_key(title) for title in existing_titles}
    accepted: List[BulkLine] = []
    duplicates: List[BulkLine] = []
    for line in lines:
        identity = DataValidator.match_key(line.title)
        if identity in seen:
            duplicates.append(line)
            continue
        seen.add(identity)
        accepted.append(line)
    return accepted, duplicates

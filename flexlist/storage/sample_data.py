#!/usr/bin/env python3
"""
sample_data.py
--------------------
Deterministic sample content seeded on a backend's first load.

Both backends seed through their own public create operations, so the
seeded state goes through the same validation and tag rules as user data.
"""
from __future__ import annotations

from typing import Any, Dict, List

SAMPLE_COLLECTION: Dict[str, str] = {
    "name": "Sample",
    "description": "Sample list with jazz standards",
}

SAMPLE_ITEMS: List[Dict[str, Any]] = [
    {
        "fields": {
            "title": "Misty",
            "key": "Eb",
            "composer": "Erroll Garner",
            "style": "Ballad",
            "notes": (
                "Beautiful jazz standard, great for practicing chord voicings. "
                "Known for its rich harmony and flowing melody."
            ),
            "knowledge_level": "knows",
            "media_ref": "youtube:DkC9bCuahC8",
            "media_start_seconds": 0,
        },
        "extra_tags": [
            ("Tempo", "Slow"),
            ("Difficulty", "Intermediate"),
            ("Era", "1940s"),
            ("Form", "AABA"),
            ("Time Signature", "4/4"),
        ],
    },
    {
        "fields": {
            "title": "Autumn Leaves",
            "key": "Bb",
            "composer": "Joseph Kosma",
            "style": "Jazz Standard",
            "notes": (
                "Perfect for beginners learning jazz progressions. "
                "Features the classic ii-V-I progression throughout."
            ),
            "knowledge_level": "kind-of-knows",
            "media_ref": "youtube:r-Z8KuwI7Gc",
            "media_start_seconds": 0,
        },
        "extra_tags": [
            ("Difficulty", "Beginner"),
            ("Era", "1940s"),
            ("Form", "AABA"),
            ("Tempo", "Medium"),
            ("Time Signature", "4/4"),
        ],
    },
    {
        "fields": {
            "title": "All The Things You Are",
            "key": "Ab",
            "composer": "Jerome Kern",
            "style": "Jazz Standard",
            "notes": (
                "Sophisticated harmonic movement through multiple key centers. "
                "A masterpiece of songwriting with challenging chord changes."
            ),
            "knowledge_level": "does-not-know",
            "media_ref": "spotify:track:4IVLhmrJ00V9HOJ2Dd6Kbf",
        },
        "extra_tags": [
            ("Difficulty", "Advanced"),
            ("Era", "1930s"),
            ("Form", "AABA"),
            ("Tempo", "Medium"),
            ("Time Signature", "4/4"),
            ("Key Centers", "Multiple"),
        ],
    },
]


def seed_catalog(storage) -> str:
    """
    Create the sample collection and items through `storage`.

    Returns:
        Id of the sample collection
    """
    collection = storage.create_collection(
        SAMPLE_COLLECTION["name"], SAMPLE_COLLECTION["description"]
    )
    for sample in SAMPLE_ITEMS:
        storage.create_item(
            {**sample["fields"], "collection_id": collection.id},
            sample["extra_tags"],
        )
    return collection.id

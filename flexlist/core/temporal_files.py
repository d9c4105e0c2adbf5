#!/usr/bin/env python3
"""
temporal_files.py
--------------------
Temporary file staging for snapshot writes.

A snapshot is written to a temporary file in the destination directory
and then moved over the live file, so readers never see a half-written
document. Files created through the manager are removed on exit if they
were not moved away.

Usage:
    from flexlist.core.temporal_files import TemporalFileManager

    with TemporalFileManager(target.parent) as temp_manager:
        staged = temp_manager.create_temp_file(suffix=".json")
        staged.write_text(payload, encoding="utf-8")
        temp_manager.commit(staged, target)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

# --- Local imports ---
from .exceptions import TemporalFileError


class TemporalFileManager:
    """
    Tracks temporary files and removes leftovers on exit.

    Attributes:
        base_dir: Directory where temporary files are created
        active_files: Files still owned by the manager
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        """
        Args:
            base_dir: Directory for temporary files. Uses system temp if None.
                Pass the destination directory to keep moves atomic.
        """
        self.base_dir = Path(base_dir) if base_dir else Path(tempfile.gettempdir())
        self.active_files: List[Path] = []

    def create_temp_file(self, suffix: str = "", prefix: str = "flexlist_") -> Path:
        """
        Create an empty temporary file and track it for cleanup.

        Raises:
            TemporalFileError: If file creation fails
        """
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                suffix=suffix, prefix=prefix, dir=self.base_dir
            )
            os.close(fd)
        except OSError as e:
            raise TemporalFileError(f"Failed to create temporary file: {e}") from e

        path = Path(temp_path)
        self.active_files.append(path)
        return path

    def commit(self, temp_file: Path, destination: Path) -> Path:
        """
        Atomically replace destination with a tracked temporary file.

        Raises:
            TemporalFileError: If the file is not tracked or the move fails
        """
        if temp_file not in self.active_files:
            raise TemporalFileError(f"Not a tracked temporary file: {temp_file}")
        try:
            os.replace(temp_file, destination)
        except OSError as e:
            raise TemporalFileError(
                f"Failed to move {temp_file.name} to {destination}: {e}"
            ) from e
        self.active_files.remove(temp_file)
        return destination

    def cleanup(self) -> Dict[str, int]:
        """
        Remove all tracked temporary files.

        Returns:
            Dictionary with cleanup statistics
        """
        stats = {"files_removed": 0, "errors": 0}
        for temp_file in self.active_files[:]:
            try:
                if temp_file.exists():
                    temp_file.unlink()
                    stats["files_removed"] += 1
                self.active_files.remove(temp_file)
            except OSError:
                stats["errors"] += 1
        return stats

    def __enter__(self) -> "TemporalFileManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

"""Modification-time tracking for a single file.

Polling is the only change detection used: every check re-stats the file and
compares its mtime against the last value seen.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from qscripts.logging import get_logger

log = get_logger("watching")


class FileStatus(Enum):
    """Outcome of re-checking a file."""

    NOT_FOUND = "not_found"
    NOT_MODIFIED = "not_modified"
    MODIFIED = "modified"


def stat_mtime(path: Path) -> int | None:
    """Return the file's mtime in nanoseconds, or None if it cannot be stat'ed."""
    try:
        return path.stat().st_mtime_ns
    except FileNotFoundError:
        return None
    except OSError as e:
        log.warning("Error checking %s: %s", path, e)
        return None


class FileState:
    """Tracks a file's existence and last-known modification time.

    A stored mtime of 0 means "unknown"; the next status() of an existing
    file then reports MODIFIED. Two states are equal when their paths are.
    """

    def __init__(self, path: str | Path, mtime: int = 0) -> None:
        self.path = Path(path)
        self.mtime = mtime
        self.exists = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileState):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r}, mtime={self.mtime})"

    def refresh(self, path: str | Path | None = None) -> bool:
        """Re-stat the file (optionally re-targeting it) and store its mtime.

        Returns:
            True if the file exists.
        """
        if path is not None:
            self.path = Path(path)
        mtime = stat_mtime(self.path)
        self.exists = mtime is not None
        self.mtime = mtime or 0
        return self.exists

    def status(self, update: bool = True) -> FileStatus:
        """Compare a fresh stat against the stored mtime.

        Args:
            update: Store the new mtime (zero it when the file is gone).
        """
        current = stat_mtime(self.path)
        if current is None:
            if update:
                self.mtime = 0
                self.exists = False
            return FileStatus.NOT_FOUND

        if current == self.mtime:
            return FileStatus.NOT_MODIFIED

        if update:
            self.mtime = current
            self.exists = True
        return FileStatus.MODIFIED

    def invalidate(self) -> None:
        """Force the next status() to report MODIFIED."""
        self.mtime = 0

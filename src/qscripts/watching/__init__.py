"""File watching module for qscripts.

Provides polling-based modification tracking for the active script, its
dependencies, its index files and its trigger file.
"""

from qscripts.watching.filestate import FileState, FileStatus, stat_mtime

__all__ = [
    "FileState",
    "FileStatus",
    "stat_mtime",
]

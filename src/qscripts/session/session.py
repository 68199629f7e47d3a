"""The active script and everything resolved for it."""

from __future__ import annotations

from pathlib import Path

from qscripts.logging import get_logger
from qscripts.watching.filestate import FileState, FileStatus

log = get_logger("session")


class DependencyEntry(FileState):
    """A resolved script plus the reload command and package base of its branch."""

    def __init__(
        self,
        path: str | Path,
        mtime: int = 0,
        reload_command: str = "",
        package_base: Path | None = None,
    ) -> None:
        super().__init__(path, mtime)
        self.reload_command = reload_command
        self.package_base = package_base

    @property
    def has_reload_command(self) -> bool:
        return bool(self.reload_command)


class ActiveScriptSession:
    """The armed script: its own state, index files, dependencies and trigger.

    ``dependencies`` and ``index_files`` are rebuilt wholesale by the
    resolver; nothing here patches them incrementally.
    """

    def __init__(self, script_path: str | Path) -> None:
        self.main = DependencyEntry(Path(script_path).resolve())
        self.main.refresh()
        self.trigger: FileState | None = None
        self.keep_trigger = False
        self.index_files: list[FileState] = []
        self.dependencies: dict[Path, DependencyEntry] = {}

    def __repr__(self) -> str:
        return (
            f"ActiveScriptSession({str(self.main.path)!r}, "
            f"deps={len(self.dependencies)}, indices={len(self.index_files)})"
        )

    @property
    def path(self) -> Path:
        return self.main.path

    @property
    def trigger_based(self) -> bool:
        return self.trigger is not None

    def add_index_file(self, path: Path) -> bool:
        """Track an index file consulted during resolution (once per path)."""
        index = FileState(path)
        if index in self.index_files:
            return True
        if not index.refresh():
            return False
        self.index_files.append(index)
        return True

    def add_dependency(
        self,
        path: Path,
        reload_command: str = "",
        package_base: Path | None = None,
    ) -> DependencyEntry:
        """Insert or overwrite the entry for ``path``."""
        entry = DependencyEntry(path, reload_command=reload_command, package_base=package_base)
        entry.refresh()
        self.dependencies[path] = entry
        return entry

    def has_dependency(self, path: str | Path) -> DependencyEntry | None:
        return self.dependencies.get(Path(path))

    def set_trigger(self, path: Path, keep: bool = False) -> None:
        """Switch to trigger-file mode, remembering the trigger's current mtime."""
        trigger = FileState(path)
        trigger.refresh()
        self.trigger = trigger
        self.keep_trigger = keep

    def is_any_index_modified(self, update: bool = True) -> FileStatus:
        """First status among the index files that is not NOT_MODIFIED."""
        for index in self.index_files:
            status = index.status(update)
            if status is not FileStatus.NOT_MODIFIED:
                return status
        return FileStatus.NOT_MODIFIED

    def invalidate_all(self) -> None:
        """Make the main script and every dependency report MODIFIED once."""
        self.main.invalidate()
        for entry in self.dependencies.values():
            entry.invalidate()

    def clear_dependencies(self) -> None:
        """Forget everything the resolver produced."""
        self.dependencies.clear()
        self.index_files.clear()
        self.trigger = None
        self.keep_trigger = False

    def clear(self) -> None:
        self.clear_dependencies()
        self.main.reload_command = ""
        self.main.package_base = None

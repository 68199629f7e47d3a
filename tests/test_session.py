"""Tests for ActiveScriptSession bookkeeping."""

from __future__ import annotations

from pathlib import Path

from qscripts.session.session import ActiveScriptSession, DependencyEntry
from qscripts.watching.filestate import FileStatus
from tests.utils import touch, write_index, write_script


class TestCreation:
    def test_main_is_resolved_and_refreshed(self, workdir: Path) -> None:
        script = write_script(workdir / "main.py")

        session = ActiveScriptSession(script)

        assert session.path == script
        assert session.main.exists
        assert session.main.mtime == script.stat().st_mtime_ns
        assert not session.trigger_based

    def test_missing_script(self, workdir: Path) -> None:
        session = ActiveScriptSession(workdir / "nope.py")

        assert not session.main.exists
        assert session.main.mtime == 0


class TestDependencies:
    def test_add_overwrites(self, workdir: Path) -> None:
        session = ActiveScriptSession(write_script(workdir / "main.py"))
        dep = write_script(workdir / "dep.py")

        session.add_dependency(dep, reload_command="first")
        session.add_dependency(dep, reload_command="second")

        assert len(session.dependencies) == 1
        assert session.has_dependency(dep).reload_command == "second"

    def test_has_dependency_missing(self, workdir: Path) -> None:
        session = ActiveScriptSession(write_script(workdir / "main.py"))

        assert session.has_dependency(workdir / "other.py") is None

    def test_entry_reload_flag(self, workdir: Path) -> None:
        assert not DependencyEntry(workdir / "a.py").has_reload_command
        assert DependencyEntry(workdir / "a.py", reload_command="x").has_reload_command


class TestIndexFiles:
    def test_missing_index_not_added(self, workdir: Path) -> None:
        session = ActiveScriptSession(write_script(workdir / "main.py"))

        assert session.add_index_file(workdir / "main.py.deps.qscripts") is False
        assert session.index_files == []

    def test_same_index_tracked_once(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        index = write_index(main, "x.py")

        assert session.add_index_file(index) is True
        assert session.add_index_file(index) is True

        assert [state.path for state in session.index_files] == [index]

    def test_unchanged(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        session.add_index_file(write_index(main, "x.py"))

        assert session.is_any_index_modified() is FileStatus.NOT_MODIFIED

    def test_modified_reported_once(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        index = write_index(main, "x.py")
        session.add_index_file(index)

        touch(index)

        assert session.is_any_index_modified() is FileStatus.MODIFIED
        assert session.is_any_index_modified() is FileStatus.NOT_MODIFIED

    def test_peek_without_update(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        index = write_index(main, "x.py")
        session.add_index_file(index)

        touch(index)

        assert session.is_any_index_modified(update=False) is FileStatus.MODIFIED
        assert session.is_any_index_modified(update=False) is FileStatus.MODIFIED

    def test_deleted_index(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        index = write_index(main, "x.py")
        session.add_index_file(index)

        index.unlink()

        assert session.is_any_index_modified() is FileStatus.NOT_FOUND


class TestInvalidateAll:
    def test_everything_modified_exactly_once(self, workdir: Path) -> None:
        session = ActiveScriptSession(write_script(workdir / "main.py"))
        session.add_dependency(write_script(workdir / "a.py"))
        session.add_dependency(write_script(workdir / "b.py"))

        session.invalidate_all()

        assert session.main.status() is FileStatus.MODIFIED
        for entry in session.dependencies.values():
            assert entry.status() is FileStatus.MODIFIED

        assert session.main.status() is FileStatus.NOT_MODIFIED
        for entry in session.dependencies.values():
            assert entry.status() is FileStatus.NOT_MODIFIED


class TestClear:
    def test_clear_dependencies(self, workdir: Path) -> None:
        main = write_script(workdir / "main.py")
        session = ActiveScriptSession(main)
        session.add_dependency(write_script(workdir / "a.py"))
        session.add_index_file(write_index(main, "a.py"))
        session.set_trigger(workdir / "go.trigger", keep=True)

        session.clear_dependencies()

        assert session.dependencies == {}
        assert session.index_files == []
        assert session.trigger is None
        assert session.keep_trigger is False
        assert session.path == main

    def test_set_trigger_remembers_existing_mtime(self, workdir: Path) -> None:
        session = ActiveScriptSession(write_script(workdir / "main.py"))
        trigger = write_script(workdir / "go.trigger")

        session.set_trigger(trigger)

        assert session.trigger is not None
        assert session.trigger.status() is FileStatus.NOT_MODIFIED

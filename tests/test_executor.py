"""Tests for ScriptExecutor."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path

import pytest

from qscripts.config.schema import UNLOAD_FUNCTION_NAME, MonitorConfig
from qscripts.languages.base import EvalResult, LanguageRegistry
from qscripts.session.events import EventBus, MonitorEvent, MonitorEventKind
from qscripts.session.executor import ScriptExecutor
from qscripts.watching.filestate import FileState
from tests.utils import FakeLanguage, write_script


@pytest.fixture
def events() -> list[MonitorEvent]:
    return []


@pytest.fixture
def bus(events: list[MonitorEvent]) -> EventBus:
    bus = EventBus()
    bus.subscribe(events.append)
    return bus


@pytest.fixture
def script(workdir: Path) -> FileState:
    return FileState(write_script(workdir / "main.py", "x = 1\n"))


class TestExecute:
    def test_runs_script(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent],
        script: FileState, fake_language: FakeLanguage,
    ) -> None:
        result = ScriptExecutor(registry, events=bus).execute(script)

        assert result.ok
        assert fake_language.runs == [script.path]
        assert [e.kind for e in events] == [MonitorEventKind.EXECUTED]

    def test_timestamp_taken_first(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage
    ) -> None:
        fake_language.fail_runs = True
        assert script.mtime == 0

        ScriptExecutor(registry).execute(script)

        assert script.mtime == script.path.stat().st_mtime_ns

    def test_missing_script(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent],
        workdir: Path, fake_language: FakeLanguage,
    ) -> None:
        result = ScriptExecutor(registry, events=bus).execute(FileState(workdir / "gone.py"))

        assert not result.ok
        assert result.exception["type"] == "FileNotFoundError"
        assert fake_language.runs == []
        assert events[-1].kind is MonitorEventKind.EXECUTION_FAILED

    def test_unknown_language(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent], workdir: Path
    ) -> None:
        script = FileState(write_script(workdir / "main.xyz"))

        result = ScriptExecutor(registry, events=bus).execute(script)

        assert not result.ok
        assert result.exception["type"] == "UnknownLanguage"
        assert "Unknown script language" in events[-1].message

    def test_compile_failure(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent],
        script: FileState, fake_language: FakeLanguage,
    ) -> None:
        fake_language.fail_runs = True

        result = ScriptExecutor(registry, events=bus).execute(script)

        assert not result.ok
        assert events[-1].kind is MonitorEventKind.EXECUTION_FAILED
        assert "Failed to compile script file" in events[-1].message
        assert "compile failed" in events[-1].message


class TestPause:
    def test_monitor_paused_while_running(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        state = {"paused": False}
        seen: list[bool] = []

        @contextlib.contextmanager
        def pause() -> Iterator[None]:
            state["paused"] = True
            try:
                yield
            finally:
                state["paused"] = False

        original = fake_language.compile_and_run

        def run(path: Path) -> EvalResult:
            seen.append(state["paused"])
            return original(path)

        monkeypatch.setattr(fake_language, "compile_and_run", run)

        ScriptExecutor(registry, pause=pause).execute(script)

        assert seen == [True]
        assert state["paused"] is False

    def test_resumed_after_error(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        state = {"paused": False}

        @contextlib.contextmanager
        def pause() -> Iterator[None]:
            state["paused"] = True
            try:
                yield
            finally:
                state["paused"] = False

        def explode(path: Path) -> EvalResult:
            raise RuntimeError("boom")

        monkeypatch.setattr(fake_language, "compile_and_run", explode)

        with pytest.raises(RuntimeError):
            ScriptExecutor(registry, pause=pause).execute(script)
        assert state["paused"] is False


class TestOptions:
    def test_unload_hook_called_first(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage
    ) -> None:
        options = MonitorConfig(exec_unload_func=True)

        ScriptExecutor(registry, options).execute(script)

        assert fake_language.calls == [UNLOAD_FUNCTION_NAME]
        assert fake_language.runs == [script.path]

    def test_unload_failure_ignored(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage
    ) -> None:
        fake_language.fail_calls = True

        result = ScriptExecutor(registry, MonitorConfig(exec_unload_func=True)).execute(script)

        assert result.ok
        assert fake_language.runs == [script.path]

    def test_unload_disabled(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage
    ) -> None:
        ScriptExecutor(registry, MonitorConfig(exec_unload_func=False)).execute(script)

        assert fake_language.calls == []

    def test_custom_unload_function(
        self, registry: LanguageRegistry, script: FileState, fake_language: FakeLanguage
    ) -> None:
        options = MonitorConfig(exec_unload_func=True, unload_function="teardown")

        ScriptExecutor(registry, options).execute(script)

        assert fake_language.calls == ["teardown"]

    def test_clear_and_announce(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent], script: FileState
    ) -> None:
        options = MonitorConfig(clear_output=True, show_filename=True)

        ScriptExecutor(registry, options, bus).execute(script)

        assert [e.kind for e in events] == [
            MonitorEventKind.CLEAR_OUTPUT,
            MonitorEventKind.EXECUTING,
            MonitorEventKind.EXECUTED,
        ]
        assert str(script.path) in events[1].message

    def test_options_read_at_run_time(
        self, registry: LanguageRegistry, bus: EventBus, events: list[MonitorEvent], script: FileState
    ) -> None:
        options = MonitorConfig()
        executor = ScriptExecutor(registry, options, bus)

        options.show_filename = True
        executor.execute(script)

        assert MonitorEventKind.EXECUTING in [e.kind for e in events]


class TestEntryFunction:
    @pytest.fixture
    def language(self) -> FakeLanguage:
        return FakeLanguage(name="WithMain", entry_function="main")

    @pytest.fixture
    def entry_registry(self, language: FakeLanguage) -> LanguageRegistry:
        registry = LanguageRegistry()
        registry.register(language)
        return registry

    def test_called_after_compile(
        self, entry_registry: LanguageRegistry, language: FakeLanguage, script: FileState
    ) -> None:
        result = ScriptExecutor(entry_registry).execute(script)

        assert result.ok
        assert language.runs == [script.path]
        assert language.calls == ["main"]

    def test_entry_failure(
        self, entry_registry: LanguageRegistry, language: FakeLanguage, bus: EventBus,
        events: list[MonitorEvent], script: FileState,
    ) -> None:
        language.fail_calls = True

        result = ScriptExecutor(entry_registry, events=bus).execute(script)

        assert not result.ok
        assert "Failed to run main()" in events[-1].message

    def test_not_called_when_compile_fails(
        self, entry_registry: LanguageRegistry, language: FakeLanguage, script: FileState
    ) -> None:
        language.fail_runs = True

        ScriptExecutor(entry_registry).execute(script)

        assert language.calls == []

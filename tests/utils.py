"""Shared test utilities for qscripts tests."""

from __future__ import annotations

import os
from pathlib import Path

from qscripts.languages.base import EvalResult
from qscripts.timer import TimerCallback, TimerHandle

NS_PER_SECOND = 1_000_000_000


def touch(path: Path, seconds: int = 1) -> int:
    """Move a file's mtime forward by ``seconds`` and return the new value.

    Explicit mtimes keep tests independent of filesystem timestamp resolution.
    """
    mtime = path.stat().st_mtime_ns + seconds * NS_PER_SECOND
    os.utime(path, ns=(mtime, mtime))
    return mtime


def write_script(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_index(script: Path, *lines: str, suffix: str = ".deps.qscripts") -> Path:
    """Write the index file describing ``script``."""
    index = script.with_name(script.name + suffix)
    index.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return index


class FakeLanguage:
    """Script language that records what it is asked to do."""

    def __init__(
        self,
        name: str = "Fake",
        extensions: tuple[str, ...] = ("py",),
        entry_function: str | None = None,
    ) -> None:
        self.name = name
        self.extensions = extensions
        self.entry_function = entry_function
        self.snippets: list[str] = []
        self.runs: list[Path] = []
        self.calls: list[str] = []
        self.fail_snippets = False
        self.fail_runs = False
        self.fail_calls = False

    def evaluate_snippet(self, code: str) -> EvalResult:
        self.snippets.append(code)
        if self.fail_snippets:
            return EvalResult.failure("snippet failed")
        return EvalResult.success()

    def compile_and_run(self, path: Path) -> EvalResult:
        self.runs.append(Path(path))
        if self.fail_runs:
            return EvalResult.failure("compile failed", error_type="SyntaxError")
        return EvalResult.success()

    def call_function(self, name: str) -> EvalResult:
        self.calls.append(name)
        if self.fail_calls:
            return EvalResult.failure(f"{name} failed")
        return EvalResult.success()


class FakeTimer:
    """TimerService that only fires when the test says so."""

    def __init__(self) -> None:
        self.handles: list[TimerHandle] = []
        self._next_id = 0

    def register(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        self._next_id += 1
        handle = TimerHandle(timer_id=self._next_id, callback=callback, interval_ms=interval_ms)
        self.handles.append(handle)
        return handle

    def unregister(self, handle: TimerHandle) -> None:
        handle.active = False
        if handle in self.handles:
            self.handles.remove(handle)

    def fire(self) -> list[int]:
        """Fire every active timer once, returning the requested intervals."""
        intervals = []
        for handle in list(self.handles):
            handle.interval_ms = handle.callback()
            intervals.append(handle.interval_ms)
        return intervals

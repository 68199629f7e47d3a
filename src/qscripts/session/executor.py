"""Running the active script through its language.

The executor owns the protocol around a run: pause the monitor, take the
script's timestamp before anything else, optionally clear the output and call
the previous run's unload hook, then compile/run and call the language's
entry function.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING

from qscripts.config.schema import MonitorConfig
from qscripts.languages.base import EvalResult
from qscripts.logging import get_logger
from qscripts.session.events import EventBus, MonitorEventKind

if TYPE_CHECKING:
    from qscripts.languages.base import LanguageRegistry
    from qscripts.watching.filestate import FileState

log = get_logger("executor")

PauseFactory = Callable[[], AbstractContextManager[object]]


class ScriptExecutor:
    """Executes a script file with the monitor paused."""

    def __init__(
        self,
        languages: LanguageRegistry,
        options: MonitorConfig | None = None,
        events: EventBus | None = None,
        pause: PauseFactory | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            languages: Registry used to find the script's language
            options: Output clearing, file name display and unload hook settings
            events: Bus receiving execution events
            pause: Context manager factory that suspends the monitor
        """
        self._languages = languages
        self.options = options or MonitorConfig()
        self._events = events or EventBus()
        self._pause = pause or contextlib.nullcontext

    def execute(self, script: FileState) -> EvalResult:
        with self._pause():
            return self._execute(script)

    def _execute(self, script: FileState) -> EvalResult:
        path = script.path

        # Take the timestamp first: edits made while running are picked up
        # by the next tick, and a failed compile does not re-trigger at once.
        if not script.refresh():
            message = f"Script file '{path}' not found!"
            self._events.emit(MonitorEventKind.EXECUTION_FAILED, message, path)
            return EvalResult.failure(message, error_type="FileNotFoundError")

        language = self._languages.for_path(path)
        if language is None:
            message = f"Unknown script language detected for '{path}'!"
            log.error(message)
            self._events.emit(MonitorEventKind.EXECUTION_FAILED, message, path)
            return EvalResult.failure(message, error_type="UnknownLanguage")

        if self.options.clear_output:
            self._events.emit(MonitorEventKind.CLEAR_OUTPUT, path=path)

        if self.options.exec_unload_func:
            unload = language.call_function(self.options.unload_function)
            if not unload.ok:
                log.debug("Unload hook %s: %s", self.options.unload_function, unload.error_message)

        if self.options.show_filename:
            self._events.emit(MonitorEventKind.EXECUTING, f"Executing {path}...", path)

        result = language.compile_and_run(path)
        if not result.ok:
            return self._failed(f"Failed to compile script file '{path}'", result, script)

        if language.entry_function:
            entry = language.call_function(language.entry_function)
            if not entry.ok:
                return self._failed(
                    f"Failed to run {language.entry_function}() of file '{path}'", entry, script
                )
            if entry.output:
                result = EvalResult.success(result.output + entry.output)

        self._events.emit(MonitorEventKind.EXECUTED, f"Executed {path}", path)
        return result

    def _failed(self, headline: str, result: EvalResult, script: FileState) -> EvalResult:
        message = f"{headline}:\n{result.error_message}"
        log.error("%s", message)
        self._events.emit(MonitorEventKind.EXECUTION_FAILED, message, script.path)
        return result

"""ScriptMonitor: the host side of qscripts.

Owns the active session, the monitor on/off flag, the timer registration and
the persisted options, and wires the resolver, executor and orchestrator
together.

Example:
    monitor = ScriptMonitor(config, default_registry(config), AsyncioTimer())
    monitor.start()
    monitor.activate("tools/analyze.py")
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator
from dataclasses import replace
from pathlib import Path

from qscripts.config.schema import Config, MonitorConfig, normalize_interval
from qscripts.config.settings import MemorySettingsStore, SettingsStore
from qscripts.deps.resolver import DependencyResolver
from qscripts.languages.base import EvalResult, LanguageRegistry
from qscripts.logging import get_logger
from qscripts.session.events import EventBus, EventCallback, MonitorEventKind
from qscripts.session.executor import ScriptExecutor
from qscripts.session.orchestrator import ReloadOrchestrator, TickResult, TickStatus
from qscripts.session.session import ActiveScriptSession
from qscripts.timer import TimerHandle, TimerService
from qscripts.watching.filestate import FileState

log = get_logger("monitor")

# Settings store keys
KEY_INTERVAL = "interval"
KEY_CLEAR_OUTPUT = "clear_output"
KEY_SHOW_FILENAME = "show_filename"
KEY_UNLOAD = "exec_unload_func"
KEY_SELECTED_SCRIPT = "selected_script"


class ScriptMonitor:
    """Arms one script at a time and re-runs it when it or its dependencies change."""

    def __init__(
        self,
        config: Config,
        languages: LanguageRegistry,
        timer: TimerService,
        settings: SettingsStore | None = None,
    ) -> None:
        self._config = config
        self._languages = languages
        self._timer = timer
        self._settings: SettingsStore = settings if settings is not None else MemorySettingsStore()

        self._monitoring = False
        self._timer_handle: TimerHandle | None = None
        self._session: ActiveScriptSession | None = None

        self.events = EventBus()
        self.options: MonitorConfig = replace(config.monitor)
        self.resolver = DependencyResolver(config.resolver)
        self.executor = ScriptExecutor(languages, self.options, self.events, pause=self.paused)
        self.orchestrator = ReloadOrchestrator(
            self.resolver,
            languages,
            self.executor,
            self.events,
            interval_ms=self.options.interval_ms,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def session(self) -> ActiveScriptSession | None:
        return self._session

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def is_running(self) -> bool:
        """True while the timer is registered."""
        return self._timer_handle is not None

    def set_monitoring(self, active: bool = True) -> bool:
        """Turn the monitor on or off; returns the previous state."""
        old = self._monitoring
        self._monitoring = active
        return old

    @contextlib.contextmanager
    def paused(self) -> Iterator[None]:
        """Suspend monitoring, restoring the previous state on exit."""
        old = self.set_monitoring(False)
        try:
            yield
        finally:
            self.set_monitoring(old)

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        return self.events.subscribe(callback)

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def load_options(self) -> MonitorConfig:
        """Read options from the settings store, with config values as defaults."""
        defaults = self._config.monitor
        self.options.interval_ms = normalize_interval(
            self._settings.get_int(KEY_INTERVAL, defaults.interval_ms)
        )
        self.options.clear_output = bool(
            self._settings.get_int(KEY_CLEAR_OUTPUT, int(defaults.clear_output))
        )
        self.options.show_filename = bool(
            self._settings.get_int(KEY_SHOW_FILENAME, int(defaults.show_filename))
        )
        self.options.exec_unload_func = bool(
            self._settings.get_int(KEY_UNLOAD, int(defaults.exec_unload_func))
        )
        self.orchestrator.interval_ms = self.options.interval_ms
        return self.options

    def save_options(self) -> None:
        self.options.interval_ms = normalize_interval(self.options.interval_ms)
        self.orchestrator.interval_ms = self.options.interval_ms
        self._settings.set_int(KEY_INTERVAL, self.options.interval_ms)
        self._settings.set_int(KEY_CLEAR_OUTPUT, int(self.options.clear_output))
        self._settings.set_int(KEY_SHOW_FILENAME, int(self.options.show_filename))
        self._settings.set_int(KEY_UNLOAD, int(self.options.exec_unload_func))

    def last_selected_script(self) -> Path | None:
        value = self._settings.get_str(KEY_SELECTED_SCRIPT)
        return Path(value) if value else None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Load options and register the poll timer (monitoring stays off)."""
        if self._timer_handle is not None:
            return True
        self.load_options()
        self._monitoring = False
        self._timer_handle = self._timer.register(self.options.interval_ms, self._on_timer)
        log.info("Monitor started (interval: %dms)", self.options.interval_ms)
        return True

    def stop(self) -> None:
        if self._timer_handle is not None:
            self._timer.unregister(self._timer_handle)
            self._timer_handle = None
        self._monitoring = False
        log.info("Monitor stopped")

    def activate(self, script_path: str | Path) -> EvalResult:
        """Arm ``script_path``: resolve its dependencies, run it, start monitoring.

        Any previously active script is deactivated first. Monitoring is armed
        even when the first run fails.
        """
        if self._session is not None:
            self.deactivate()
        session = ActiveScriptSession(script_path)
        self._session = session
        self.resolver.resolve(session)
        log.info(
            "Activated %s with %d dependencies", session.path, len(session.dependencies)
        )
        self.events.emit(MonitorEventKind.ACTIVATED, f"Monitoring {session.path}", session.path)

        result = self.executor.execute(session.main)
        if result.ok:
            self._settings.set_str(KEY_SELECTED_SCRIPT, str(session.path))

        self.set_monitoring(True)
        return result

    def deactivate(self) -> None:
        """Drop the active session and stop monitoring."""
        session = self._session
        self._session = None
        self.set_monitoring(False)
        if session is not None:
            session.clear()
            log.info("Deactivated %s", session.path)
            self.events.emit(MonitorEventKind.DEACTIVATED, f"Stopped monitoring {session.path}", session.path)

    def execute_now(self, script_path: str | Path | None = None) -> EvalResult:
        """Run a script once, bypassing the modification check.

        Without ``script_path`` the active script is run.
        """
        if script_path is None:
            if self._session is None:
                return EvalResult.failure("No active script")
            return self.executor.execute(self._session.main)

        return self.executor.execute(FileState(Path(script_path).resolve()))

    def tick(self) -> TickResult:
        """Run one poll tick and apply its outcome."""
        result = self.orchestrator.tick(self._session, monitoring=self._monitoring)
        if result.status is TickStatus.SCRIPT_MISSING:
            self._session = None
            self.set_monitoring(False)
        return result

    def _on_timer(self) -> int:
        return self.tick().interval_ms

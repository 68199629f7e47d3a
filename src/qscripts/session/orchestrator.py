"""The poll tick: decide what changed and how to react.

Each tick looks at, in order:
1. the trigger file (trigger mode only) - nothing happens until it changes
2. the index files - a change rebuilds the dependency map and re-polls at once
3. the dependencies - changed ones run their reload command, if any
4. the main script - gone ends the session, changed (or a changed
   dependency) re-executes it
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from qscripts.config.schema import DEFAULT_INTERVAL_MS
from qscripts.deps.expander import ExpansionContext
from qscripts.languages.base import EvalResult
from qscripts.logging import get_logger
from qscripts.session.events import EventBus, MonitorEventKind
from qscripts.watching.filestate import FileStatus

if TYPE_CHECKING:
    from qscripts.deps.resolver import DependencyResolver
    from qscripts.languages.base import LanguageRegistry
    from qscripts.session.executor import ScriptExecutor
    from qscripts.session.session import ActiveScriptSession, DependencyEntry

log = get_logger("orchestrator")

# Re-poll delay after the dependency map was rebuilt
REBUILD_REPOLL_MS = 1


class TickStatus(Enum):
    IDLE = "idle"  # Monitoring off or nothing armed
    WAITING = "waiting"  # Trigger file unchanged
    REBUILT = "rebuilt"  # Index files changed, dependencies re-resolved
    UNCHANGED = "unchanged"
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"
    RELOAD_FAILED = "reload_failed"
    SCRIPT_MISSING = "script_missing"  # Session torn down


@dataclass
class TickResult:
    """What a tick did and how long to wait before the next one."""

    status: TickStatus
    interval_ms: int
    changed: list[Path] = field(default_factory=list)


class ReloadOrchestrator:
    """Runs one poll tick against the active session."""

    def __init__(
        self,
        resolver: DependencyResolver,
        languages: LanguageRegistry,
        executor: ScriptExecutor,
        events: EventBus | None = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self._resolver = resolver
        self._languages = languages
        self._executor = executor
        self._events = events or EventBus()
        self.interval_ms = interval_ms

    def tick(self, session: ActiveScriptSession | None, monitoring: bool = True) -> TickResult:
        """Run one tick. Never raises."""
        if not monitoring or session is None:
            return TickResult(TickStatus.IDLE, self.interval_ms)
        try:
            return self._tick(session)
        except Exception:
            log.exception("Unexpected error while monitoring %s", session.path)
            return TickResult(TickStatus.EXECUTION_FAILED, self.interval_ms)

    def _tick(self, session: ActiveScriptSession) -> TickResult:
        if session.trigger is not None:
            if session.trigger.status() is not FileStatus.MODIFIED:
                return TickResult(TickStatus.WAITING, self.interval_ms)
            self._consume_trigger(session)
            # Run the main script even if it did not change
            session.main.invalidate()

        index_status = session.is_any_index_modified()
        if index_status is FileStatus.MODIFIED:
            self._resolver.rebuild(session)
            session.invalidate_all()
            log.info(
                "Dependencies of %s changed: now tracking %d files",
                session.path,
                len(session.dependencies),
            )
            self._events.emit(
                MonitorEventKind.DEPENDENCIES_CHANGED,
                f"Re-resolved {len(session.dependencies)} dependencies",
                session.path,
            )
            return TickResult(TickStatus.REBUILT, REBUILD_REPOLL_MS)
        if index_status is FileStatus.NOT_FOUND and session.dependencies:
            log.info("Index file of %s is gone, watching the script alone", session.path)
            session.dependencies.clear()

        changed: list[Path] = []
        for entry in session.dependencies.values():
            if entry.status() is not FileStatus.MODIFIED:
                continue
            changed.append(entry.path)
            if entry.has_reload_command:
                reload = self.run_reload_command(entry)
                if not reload.ok:
                    message = f"Failed to execute reload directive for '{entry.path}':\n{reload.error_message}"
                    log.warning("%s", message)
                    self._events.emit(MonitorEventKind.RELOAD_FAILED, message, entry.path)
                    return TickResult(TickStatus.RELOAD_FAILED, self.interval_ms, changed)

        main_status = session.main.status()
        if main_status is FileStatus.NOT_FOUND:
            message = f"The active script '{session.path}' no longer exists!"
            log.info(message)
            session.clear()
            self._events.emit(MonitorEventKind.SCRIPT_MISSING, message, session.path)
            return TickResult(TickStatus.SCRIPT_MISSING, self.interval_ms, changed)

        if main_status is FileStatus.MODIFIED:
            changed.append(session.path)
        elif not changed:
            return TickResult(TickStatus.UNCHANGED, self.interval_ms)

        result = self._executor.execute(session.main)
        status = TickStatus.EXECUTED if result.ok else TickStatus.EXECUTION_FAILED
        return TickResult(status, self.interval_ms, changed)

    def run_reload_command(self, entry: DependencyEntry) -> EvalResult:
        """Evaluate a dependency's reload command in the dependency's language."""
        language = self._languages.for_path(entry.path)
        if language is None:
            return EvalResult.failure(
                f"unknown script language detected for '{entry.path}'!",
                error_type="UnknownLanguage",
            )
        ctx = ExpansionContext(
            current_file=entry.path,
            base_dir=entry.path.parent,
            package_base=entry.package_base,
        )
        command = self._resolver.expander.expand(entry.reload_command, ctx)
        log.debug("Reloading %s: %s", entry.path, command)
        return language.evaluate_snippet(command)

    def _consume_trigger(self, session: ActiveScriptSession) -> None:
        trigger = session.trigger
        if trigger is None or session.keep_trigger:
            return
        try:
            trigger.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("Cannot delete trigger file %s: %s", trigger.path, e)

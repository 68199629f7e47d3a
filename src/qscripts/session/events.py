"""Events the monitor reports to its user interface."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from qscripts.logging import get_logger

log = get_logger("events")


class MonitorEventKind(Enum):
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    EXECUTING = "executing"
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"
    RELOAD_FAILED = "reload_failed"
    SCRIPT_MISSING = "script_missing"
    DEPENDENCIES_CHANGED = "dependencies_changed"
    CLEAR_OUTPUT = "clear_output"


@dataclass
class MonitorEvent:
    """Something the user should hear about."""

    kind: MonitorEventKind
    message: str = ""
    path: Path | None = None
    timestamp: float = field(default_factory=time.time)

    @property
    def is_error(self) -> bool:
        return self.kind in (
            MonitorEventKind.EXECUTION_FAILED,
            MonitorEventKind.RELOAD_FAILED,
            MonitorEventKind.SCRIPT_MISSING,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "path": str(self.path) if self.path else None,
            "timestamp": self.timestamp,
        }


EventCallback = Callable[[MonitorEvent], None]


class EventBus:
    """Fan-out of MonitorEvents. A failing subscriber never breaks the emitter."""

    def __init__(self) -> None:
        self._callbacks: list[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, kind: MonitorEventKind, message: str = "", path: Path | None = None) -> MonitorEvent:
        event = MonitorEvent(kind=kind, message=message, path=path)
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                log.error("Error in monitor event callback: %s", e)
        return event

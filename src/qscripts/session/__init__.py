"""Session layer: the active script, the poll tick and script execution."""

from qscripts.session.events import EventBus, MonitorEvent, MonitorEventKind
from qscripts.session.executor import ScriptExecutor
from qscripts.session.orchestrator import (
    REBUILD_REPOLL_MS,
    ReloadOrchestrator,
    TickResult,
    TickStatus,
)
from qscripts.session.session import ActiveScriptSession, DependencyEntry

__all__ = [
    "ActiveScriptSession",
    "DependencyEntry",
    "EventBus",
    "MonitorEvent",
    "MonitorEventKind",
    "REBUILD_REPOLL_MS",
    "ReloadOrchestrator",
    "ScriptExecutor",
    "TickResult",
    "TickStatus",
]

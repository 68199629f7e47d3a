"""qscripts: re-run a script the moment it or any of its dependencies change."""

__version__ = "0.1.0"

from qscripts.config import Config, get_config, load_config
from qscripts.deps import DependencyResolver, ExpansionContext, TextExpander
from qscripts.languages import (
    EvalResult,
    InterpreterLanguage,
    LanguageRegistry,
    PythonLanguage,
    ScriptLanguage,
    default_registry,
)
from qscripts.monitor import ScriptMonitor
from qscripts.session import (
    ActiveScriptSession,
    DependencyEntry,
    MonitorEvent,
    MonitorEventKind,
    ReloadOrchestrator,
    ScriptExecutor,
    TickResult,
    TickStatus,
)
from qscripts.timer import AsyncioTimer, TimerService
from qscripts.watching import FileState, FileStatus

__all__ = [
    "__version__",
    # Config
    "Config",
    "get_config",
    "load_config",
    # Watching
    "FileState",
    "FileStatus",
    # Dependencies
    "DependencyResolver",
    "ExpansionContext",
    "TextExpander",
    # Session
    "ActiveScriptSession",
    "DependencyEntry",
    "ReloadOrchestrator",
    "ScriptExecutor",
    "TickResult",
    "TickStatus",
    "MonitorEvent",
    "MonitorEventKind",
    # Languages
    "EvalResult",
    "InterpreterLanguage",
    "LanguageRegistry",
    "PythonLanguage",
    "ScriptLanguage",
    "default_registry",
    # Host
    "ScriptMonitor",
    "AsyncioTimer",
    "TimerService",
]

"""Configuration schema dataclasses for qscripts.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Shortest poll interval the monitor accepts, in milliseconds
MIN_INTERVAL_MS = 300
DEFAULT_INTERVAL_MS = 500

UNLOAD_FUNCTION_NAME = "__quick_unload_script"


def normalize_interval(interval_ms: int) -> int:
    """Clamp a poll interval to the supported minimum."""
    return max(MIN_INTERVAL_MS, int(interval_ms))


@dataclass
class MonitorConfig:
    """Script monitor defaults.

    Example config.yaml:
        monitor:
          interval_ms: 800
          clear_output: true
          show_filename: false
          exec_unload_func: true
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    clear_output: bool = False  # Clear the output before each run
    show_filename: bool = False  # Announce the file being executed
    exec_unload_func: bool = False  # Call the unload hook before each run
    unload_function: str = UNLOAD_FUNCTION_NAME


@dataclass
class ResolverConfig:
    """Dependency resolution limits."""

    max_depth: int = 32  # Deepest index-file nesting followed
    max_index_reads: int = 1000  # Index files opened per resolution, revisits included


@dataclass
class LanguageConfig:
    """An external interpreter registered as a script language.

    Example config.yaml:
        languages:
          - name: Shell
            extensions: [sh]
            command: [bash]
            snippet_flag: "-c"
            timeout: 60
    """

    name: str
    extensions: list[str]
    command: list[str]
    snippet_flag: str | None = "-c"  # None disables snippet evaluation
    timeout: float | None = 60.0
    entry_function: str | None = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    languages: list[LanguageConfig] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown top-level keys

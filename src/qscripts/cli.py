"""Command-line interface for qscripts."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from qscripts import __version__
from qscripts.config import (
    Config,
    MemorySettingsStore,
    SettingsError,
    SettingsStore,
    YamlSettingsStore,
    get_state_path,
    load_config,
)
from qscripts.deps.resolver import DependencyResolver
from qscripts.languages import default_registry
from qscripts.logging import get_logger, setup_logging
from qscripts.monitor import ScriptMonitor
from qscripts.session.events import MonitorEvent, MonitorEventKind
from qscripts.session.session import ActiveScriptSession
from qscripts.timer import AsyncioTimer, TimerService

log = get_logger("cli")

console = Console()

_EVENT_STYLES = {
    MonitorEventKind.ACTIVATED: "bold green",
    MonitorEventKind.DEACTIVATED: "yellow",
    MonitorEventKind.EXECUTING: "cyan",
    MonitorEventKind.EXECUTED: "green",
    MonitorEventKind.EXECUTION_FAILED: "bold red",
    MonitorEventKind.RELOAD_FAILED: "red",
    MonitorEventKind.SCRIPT_MISSING: "bold red",
    MonitorEventKind.DEPENDENCIES_CHANGED: "magenta",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qscripts",
        description="Re-run a script whenever it or its dependencies change",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "--project",
        type=Path,
        help="Project root holding .qscripts/config.yaml",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    watch_parser = subparsers.add_parser("watch", help="Run a script and re-run it on changes")
    watch_parser.add_argument("script", type=Path, help="Script to activate")

    subparsers.add_parser("resume", help="Watch the last successfully activated script")

    run_parser = subparsers.add_parser("run", help="Run a script once")
    run_parser.add_argument("script", type=Path, help="Script to run")

    deps_parser = subparsers.add_parser("deps", help="Show the resolved dependencies of a script")
    deps_parser.add_argument("script", type=Path, help="Script whose index files to read")

    subparsers.add_parser("languages", help="List the registered script languages")

    options_parser = subparsers.add_parser("options", help="Show or change persisted options")
    options_parser.add_argument("--interval", type=int, help="Poll interval in milliseconds")
    options_parser.add_argument(
        "--clear-output",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Clear the output before each run",
    )
    options_parser.add_argument(
        "--show-filename",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Announce the file name before each run",
    )
    options_parser.add_argument(
        "--unload",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Call the unload hook of the previous run first",
    )

    return parser


def open_settings() -> SettingsStore:
    state_path = get_state_path()
    if state_path is None:
        return MemorySettingsStore()
    return YamlSettingsStore(state_path)


def print_event(event: MonitorEvent) -> None:
    if event.kind is MonitorEventKind.CLEAR_OUTPUT:
        console.clear()
        return
    style = _EVENT_STYLES.get(event.kind, "")
    console.print(f"[qscripts] {event.message}", style=style, markup=False, highlight=False)


def build_monitor(
    config: Config,
    settings: SettingsStore,
    timer: TimerService | None = None,
) -> ScriptMonitor:
    monitor = ScriptMonitor(config, default_registry(config), timer or AsyncioTimer(), settings)
    monitor.subscribe(print_event)
    return monitor


async def watch(monitor: ScriptMonitor, script: Path) -> int:
    """Monitor ``script`` until it disappears."""
    finished = asyncio.Event()

    def on_event(event: MonitorEvent) -> None:
        if event.kind is MonitorEventKind.SCRIPT_MISSING:
            finished.set()

    unsubscribe = monitor.subscribe(on_event)
    monitor.start()
    try:
        monitor.activate(script)
        await finished.wait()
    finally:
        unsubscribe()
        monitor.stop()
    return 1


def show_dependencies(config: Config, script: Path) -> int:
    session = ActiveScriptSession(script)
    if not session.main.exists:
        console.print(f"Script file not found: '{script}'", style="red", markup=False)
        return 1

    if not DependencyResolver(config.resolver).resolve(session):
        console.print(f"{session.path} has no index file", markup=False)
        return 0

    table = Table(title=str(session.path))
    table.add_column("Dependency")
    table.add_column("Reload command")
    table.add_column("Package base")
    for path, entry in session.dependencies.items():
        table.add_row(
            escape(str(path)),
            escape(entry.reload_command) if entry.reload_command else "-",
            escape(str(entry.package_base)) if entry.package_base else "-",
        )
    console.print(table)

    for index in session.index_files:
        console.print(f"index: {index.path}", markup=False)
    if session.trigger is not None:
        keep = " (kept)" if session.keep_trigger else ""
        console.print(f"trigger: {session.trigger.path}{keep}", markup=False)
    return 0


def show_languages(config: Config) -> int:
    table = Table(title="Script languages")
    table.add_column("Name")
    table.add_column("Extensions")
    table.add_column("Entry function")
    for language in default_registry(config).languages():
        table.add_row(
            language.name,
            ", ".join(f".{ext}" for ext in language.extensions),
            language.entry_function or "-",
        )
    console.print(table)
    return 0


def update_options(monitor: ScriptMonitor, parsed: argparse.Namespace) -> int:
    options = monitor.load_options()
    changed = False
    if parsed.interval is not None:
        options.interval_ms = parsed.interval
        changed = True
    for attr, value in (
        ("clear_output", parsed.clear_output),
        ("show_filename", parsed.show_filename),
        ("exec_unload_func", parsed.unload),
    ):
        if value is not None:
            setattr(options, attr, value)
            changed = True
    if changed:
        monitor.save_options()

    table = Table(title="Options")
    table.add_column("Option")
    table.add_column("Value")
    table.add_row("interval", f"{options.interval_ms} ms")
    table.add_row("clear output", str(options.clear_output))
    table.add_row("show file name", str(options.show_filename))
    table.add_row("unload hook", f"{options.exec_unload_func} ({options.unload_function})")
    last = monitor.last_selected_script()
    table.add_row("last script", str(last) if last else "-")
    console.print(table)
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    project = str(parsed.project) if parsed.project else None
    config = load_config(project_root=project)
    setup_logging(config.logging, parsed.verbose)

    try:
        settings = open_settings()
        if parsed.command == "deps":
            return show_dependencies(config, parsed.script)
        if parsed.command == "languages":
            return show_languages(config)

        monitor = build_monitor(config, settings)
        if parsed.command == "options":
            return update_options(monitor, parsed)
        if parsed.command == "run":
            monitor.load_options()
            return 0 if monitor.execute_now(parsed.script).ok else 1

        if parsed.command == "resume":
            script = monitor.last_selected_script()
            if script is None:
                console.print("No script was activated yet", style="yellow")
                return 1
        else:
            script = parsed.script
        return asyncio.run(watch(monitor, script))
    except SettingsError as e:
        console.print(str(e), style="red")
        return 1
    except KeyboardInterrupt:
        return 0

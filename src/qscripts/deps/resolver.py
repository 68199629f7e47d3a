"""Dependency resolution from ``.deps.qscripts`` / ``.proj.qscripts`` index files.

An index file sits next to the script it describes (``foo.py.deps.qscripts``)
and lists one dependency per line. Each dependency may have an index file of
its own; the whole tree is flattened into ``session.dependencies``.

Directives, honored only in the active script's own index file:
    /pkgbase <dir>                  package root for $pkgbase$ / $pkgmodname$
    /reload <command>               reload command for dependencies listed after it
    /triggerfile [/keep] <path>     run only when <path> is created or touched
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from qscripts.config.schema import ResolverConfig
from qscripts.deps.expander import ExpansionContext, TextExpander
from qscripts.logging import TRACE, get_logger

if TYPE_CHECKING:
    from qscripts.session.session import ActiveScriptSession

log = get_logger("resolver")

INDEX_SUFFIXES = (".deps.qscripts", ".proj.qscripts")
COMMENT_PREFIXES = ("//", "#", ";")

PKGBASE = "/pkgbase"
RELOAD = "/reload"
TRIGGERFILE = "/triggerfile"
KEEP = "/keep"


def find_index_file(script: Path) -> Path | None:
    """Return the index file describing ``script``, preferring ``.deps.qscripts``."""
    for suffix in INDEX_SUFFIXES:
        candidate = script.with_name(script.name + suffix)
        if candidate.is_file():
            return candidate
    return None


def directive_value(line: str, keyword: str) -> str | None:
    """Value following ``keyword`` if the line starts with that directive.

    The keyword must be followed by whitespace, ``/`` or the end of the line,
    so ``/reloader.py`` is a path and not a ``/reload`` directive.
    """
    if not line.startswith(keyword):
        return None
    rest = line[len(keyword) :]
    if not rest:
        return ""
    if rest[0] == "/":
        return rest
    if rest[0].isspace():
        return rest.strip()
    return None


def split_trigger_value(value: str) -> tuple[bool, str]:
    """Split a /triggerfile value into (keep, path)."""
    keep = directive_value(value, KEEP)
    if keep is None:
        return False, value.strip()
    return True, keep


def _read_lines(path: Path) -> list[str]:
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read().splitlines()


@dataclass
class _Frame:
    """One index file being read; the stack of frames replaces recursion."""

    lines: Iterator[str]
    ctx: ExpansionContext
    depth: int


class DependencyResolver:
    """Builds a session's dependency map from its index files."""

    def __init__(
        self,
        config: ResolverConfig | None = None,
        expander: TextExpander | None = None,
    ) -> None:
        self._config = config or ResolverConfig()
        self._expander = expander or TextExpander()
        self._reads = 0

    @property
    def expander(self) -> TextExpander:
        return self._expander

    def rebuild(self, session: ActiveScriptSession) -> bool:
        """Discard everything resolved so far and resolve from the main script."""
        session.clear_dependencies()
        return self.resolve(session)

    def resolve(self, session: ActiveScriptSession, script_path: Path | None = None) -> bool:
        """Walk the index files reachable from ``script_path``.

        Returns:
            True if the script has an index file.
        """
        script = Path(script_path) if script_path is not None else session.main.path
        self._reads = 0
        root = self._open(session, ExpansionContext(current_file=script, is_main_file=True), 0)
        if root is None:
            return False

        stack = [root]
        while stack:
            frame = stack[-1]
            line = next(frame.lines, None)
            if line is None:
                stack.pop()
                continue
            child = self._process_line(session, frame, line)
            if child is not None:
                stack.append(child)

        log.debug(
            "Resolved %s: %d dependencies, %d index files",
            script,
            len(session.dependencies),
            len(session.index_files),
        )
        return True

    def _open(
        self, session: ActiveScriptSession, ctx: ExpansionContext, depth: int
    ) -> _Frame | None:
        index_file = find_index_file(ctx.current_file)
        if index_file is None:
            return None

        if depth > self._config.max_depth:
            log.warning(
                "Dependency nesting deeper than %d at %s, skipping this branch",
                self._config.max_depth,
                index_file,
            )
            return None

        if self._reads == self._config.max_index_reads:
            log.warning(
                "Read %d index files already, not following %s or anything after it",
                self._reads,
                index_file,
            )
        self._reads += 1
        if self._reads > self._config.max_index_reads:
            return None

        try:
            lines = _read_lines(index_file)
        except OSError as e:
            log.warning("Cannot read index file %s: %s", index_file, e)
            return None

        session.add_index_file(index_file)
        frame_ctx = ExpansionContext(
            current_file=ctx.current_file,
            is_main_file=ctx.is_main_file,
            base_dir=index_file.parent,
            package_base=ctx.package_base,
            reload_command=ctx.reload_command,
        )
        return _Frame(lines=iter(lines), ctx=frame_ctx, depth=depth)

    def _process_line(
        self, session: ActiveScriptSession, frame: _Frame, raw: str
    ) -> _Frame | None:
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            return None

        ctx = frame.ctx

        value = directive_value(line, PKGBASE)
        if value is not None:
            if ctx.is_main_file:
                package_base = self._expander.expand_path(value, ctx).resolve()
                frame.ctx = replace(ctx, package_base=package_base)
            return None

        value = directive_value(line, RELOAD)
        if value is not None:
            if ctx.is_main_file:
                frame.ctx = replace(ctx, reload_command=value)
            return None

        value = directive_value(line, TRIGGERFILE)
        if value is not None:
            if ctx.is_main_file:
                self._set_trigger(session, ctx, value)
            return None

        dep_path = self._expander.expand_path(line, ctx)
        if not dep_path.is_file():
            log.log(TRACE, "Skipping missing dependency %s", dep_path)
            return None
        dep_path = dep_path.resolve()

        session.add_dependency(
            dep_path,
            reload_command=ctx.reload_command,
            package_base=ctx.package_base,
        )
        return self._open(session, ctx.nested(dep_path), frame.depth + 1)

    def _set_trigger(self, session: ActiveScriptSession, ctx: ExpansionContext, value: str) -> None:
        keep, raw_path = split_trigger_value(value)
        if not raw_path:
            log.warning("Ignoring /triggerfile without a path in the index of %s", ctx.current_file)
            return
        session.set_trigger(self._expander.expand_path(raw_path, ctx), keep=keep)

"""``$token$`` expansion for index-file lines and reload commands.

Supported tokens:
    basename        file name of the current file, extension stripped
    env:NAME        environment variable NAME (empty if unset)
    pkgbase         the active package base directory
    pkgmodname      dotted module name of the current file below pkgbase

Tokens are matched left to right: a token opens at a ``$`` and closes at the
first ``$`` that leaves at least one character between them. Unknown tokens
are replaced by their inner text.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

DELIMITER = "$"
ENV_PREFIX = "env:"


@dataclass(frozen=True)
class ExpansionContext:
    """Inputs for expanding one line.

    Attributes:
        current_file: File the line belongs to (or the dependency for reload commands)
        is_main_file: True while reading the active script's own index file
        base_dir: Directory relative paths are resolved against
        package_base: Root directory of the package, if one was declared
        reload_command: Reload command template active at this point
    """

    current_file: Path
    is_main_file: bool = False
    base_dir: Path | None = None
    package_base: Path | None = None
    reload_command: str = ""

    def nested(self, current_file: Path) -> ExpansionContext:
        """Context for a dependency's own index file."""
        return replace(self, current_file=current_file, is_main_file=False)


def module_name(path: Path, package_base: Path | None) -> str:
    """Dotted module path of ``path`` below ``package_base``, or ''."""
    if package_base is None:
        return ""
    try:
        relative = path.relative_to(package_base)
    except ValueError:
        return ""
    if not relative.parts:
        return ""
    return ".".join(relative.with_suffix("").parts)


class TextExpander:
    """Expands ``$token$`` placeholders against an ExpansionContext."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def expand(self, line: str, ctx: ExpansionContext) -> str:
        out: list[str] = []
        pos = 0
        while True:
            start = line.find(DELIMITER, pos)
            if start < 0:
                break
            end = line.find(DELIMITER, start + 2)
            if end < 0:
                break
            out.append(line[pos:start])
            out.append(self._expand_token(line[start + 1 : end], ctx))
            pos = end + 1
        out.append(line[pos:])
        return "".join(out)

    def expand_path(self, line: str, ctx: ExpansionContext) -> Path:
        """Expand a line naming a file and make it absolute against ctx.base_dir."""
        path = Path(self.expand(line, ctx)).expanduser()
        if not path.is_absolute():
            base_dir = ctx.base_dir if ctx.base_dir is not None else ctx.current_file.parent
            path = base_dir / path
        return Path(os.path.normpath(path))

    def _expand_token(self, token: str, ctx: ExpansionContext) -> str:
        if token == "basename":
            return ctx.current_file.stem
        if token == "pkgbase":
            return str(ctx.package_base) if ctx.package_base is not None else ""
        if token == "pkgmodname":
            return module_name(ctx.current_file, ctx.package_base)
        if token.startswith(ENV_PREFIX):
            return self._environ.get(token[len(ENV_PREFIX) :], "")
        return token

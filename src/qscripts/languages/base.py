"""Script language protocol, evaluation results and the extension registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from qscripts.logging import get_logger

log = get_logger("languages")


class ExecutionStatus(Enum):
    """Status of a language operation."""

    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class EvalResult:
    """Result of evaluating a snippet, running a file or calling a function.

    Attributes:
        status: OK, ERROR or TIMEOUT
        output: Captured output, when the language captures any
        exception: {"type", "message", "traceback"} for failures
    """

    status: ExecutionStatus
    output: str = ""
    exception: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status is ExecutionStatus.OK

    @property
    def error_message(self) -> str:
        """Best human-readable description of a failure ('' on success)."""
        if self.ok:
            return ""
        detail = ""
        if self.exception:
            detail = self.exception.get("traceback") or self.exception.get("message", "")
        if self.output:
            return f"{self.output.rstrip()}\n{detail}" if detail else self.output
        return detail

    @classmethod
    def success(cls, output: str = "") -> EvalResult:
        return cls(ExecutionStatus.OK, output=output)

    @classmethod
    def failure(
        cls,
        message: str,
        error_type: str = "Error",
        traceback: str = "",
        output: str = "",
        status: ExecutionStatus = ExecutionStatus.ERROR,
    ) -> EvalResult:
        return cls(
            status,
            output=output,
            exception={"type": error_type, "message": message, "traceback": traceback},
        )


@runtime_checkable
class ScriptLanguage(Protocol):
    """Capabilities the monitor needs from a scripting language.

    Implementations:
    - PythonLanguage: in-process execution in a persistent namespace
    - InterpreterLanguage: an external interpreter run as a subprocess
    """

    name: str
    extensions: tuple[str, ...]
    # Function to call after compiling a file (None: running the file is enough)
    entry_function: str | None

    def evaluate_snippet(self, code: str) -> EvalResult: ...

    def compile_and_run(self, path: Path) -> EvalResult: ...

    def call_function(self, name: str) -> EvalResult: ...


def normalize_extension(ext: str) -> str:
    return ext.lower().lstrip(".")


class LanguageRegistry:
    """Maps file extensions to script languages. Later registrations win."""

    def __init__(self) -> None:
        self._languages: list[ScriptLanguage] = []
        self._by_ext: dict[str, ScriptLanguage] = {}

    def __len__(self) -> int:
        return len(self._languages)

    def register(self, language: ScriptLanguage) -> None:
        self._languages = [lang for lang in self._languages if lang.name != language.name]
        self._languages.append(language)
        for ext in language.extensions:
            self._by_ext[normalize_extension(ext)] = language
        log.debug("Registered language %s for %s", language.name, ", ".join(language.extensions))

    def find_by_extension(self, ext: str) -> ScriptLanguage | None:
        return self._by_ext.get(normalize_extension(ext))

    def for_path(self, path: str | Path) -> ScriptLanguage | None:
        suffix = Path(path).suffix
        if not suffix:
            return None
        return self.find_by_extension(suffix)

    def languages(self) -> list[ScriptLanguage]:
        """Installed languages, in registration order."""
        return list(self._languages)

    def file_patterns(self) -> list[str]:
        """Glob patterns matching every registered extension."""
        return [f"*.{ext}" for ext in self._by_ext]

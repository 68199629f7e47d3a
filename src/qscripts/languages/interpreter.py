"""Script languages backed by an external interpreter process."""

from __future__ import annotations

import os
import subprocess
import time
from pathlib import Path

from qscripts.config.schema import LanguageConfig
from qscripts.languages.base import EvalResult, ExecutionStatus
from qscripts.logging import get_logger

log = get_logger("languages.interpreter")

OUTPUT_LIMIT = 50000


class InterpreterLanguage:
    """Runs scripts with ``command + [path]`` and snippets with ``command + [flag, code]``.

    Each run is a fresh process, so there is no state to call functions in;
    call_function always reports failure (the unload hook is best-effort).
    """

    def __init__(
        self,
        name: str,
        extensions: tuple[str, ...],
        command: list[str],
        snippet_flag: str | None = "-c",
        timeout: float | None = 60.0,
        entry_function: str | None = None,
        cwd: str | None = None,
    ) -> None:
        self.name = name
        self.extensions = extensions
        self.entry_function = entry_function
        self._command = list(command)
        self._snippet_flag = snippet_flag
        self._timeout = timeout
        self._cwd = cwd

    @classmethod
    def from_config(cls, config: LanguageConfig) -> InterpreterLanguage:
        return cls(
            name=config.name or config.command[0],
            extensions=tuple(config.extensions),
            command=config.command,
            snippet_flag=config.snippet_flag,
            timeout=config.timeout,
            entry_function=config.entry_function,
        )

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def evaluate_snippet(self, code: str) -> EvalResult:
        if not self._snippet_flag:
            return EvalResult.failure(f"{self.name} does not evaluate snippets")
        return self._run([*self._command, self._snippet_flag, code], cwd=self._cwd)

    def compile_and_run(self, path: Path) -> EvalResult:
        return self._run([*self._command, str(path)], cwd=self._cwd or str(Path(path).parent))

    def call_function(self, name: str) -> EvalResult:
        return EvalResult.failure(f"{self.name} cannot call {name!r} in a finished process")

    def _run(self, cmd: list[str], cwd: str | None) -> EvalResult:
        full_command = " ".join(cmd)
        start = time.perf_counter()
        try:
            completed = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=cwd,
                env=os.environ.copy(),
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return EvalResult.failure(
                f"Command timed out after {self._timeout}s: {full_command}",
                error_type="Timeout",
                status=ExecutionStatus.TIMEOUT,
            )
        except FileNotFoundError:
            return EvalResult.failure(f"Command not found: {cmd[0]}", error_type="FileNotFoundError")
        except PermissionError:
            return EvalResult.failure(f"Permission denied: {cmd[0]}", error_type="PermissionError")
        except OSError as e:
            return EvalResult.failure(f"OS error: {e}", error_type="OSError")

        output = completed.stdout.decode("utf-8", errors="replace")
        if len(output) > OUTPUT_LIMIT:
            output = output[:OUTPUT_LIMIT] + "\n... (output truncated)"

        log.debug(
            "%s exited with %d in %.0fms",
            full_command,
            completed.returncode,
            (time.perf_counter() - start) * 1000,
        )
        if completed.returncode != 0:
            return EvalResult.failure(
                f"exit code {completed.returncode}",
                error_type="ExitCode",
                output=output,
            )
        return EvalResult.success(output)

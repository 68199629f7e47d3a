"""In-process Python script language.

Scripts run in one persistent namespace, the way an embedded interpreter
keeps state between runs, so an unload hook defined by the previous run is
still callable before the next one.
"""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Any

from qscripts.languages.base import EvalResult

PYTHON_EXTENSIONS = ("py",)


def _failure(e: BaseException) -> EvalResult:
    return EvalResult.failure(
        str(e),
        error_type=type(e).__name__,
        traceback=traceback.format_exc(),
    )


class PythonLanguage:
    """Runs Python files and snippets in a shared ``__main__``-like namespace."""

    name = "Python"
    extensions = PYTHON_EXTENSIONS
    entry_function: str | None = None

    def __init__(self, namespace: dict[str, Any] | None = None) -> None:
        self._namespace: dict[str, Any] = namespace if namespace is not None else {}
        self._namespace.setdefault("__name__", "__main__")
        self._namespace.setdefault("__builtins__", __builtins__)

    @property
    def namespace(self) -> dict[str, Any]:
        return self._namespace

    def evaluate_snippet(self, code: str) -> EvalResult:
        try:
            compiled = compile(code, "<snippet>", "exec")
            exec(compiled, self._namespace)
        except SystemExit as e:
            return self._exit_result(e)
        except Exception as e:
            return _failure(e)
        return EvalResult.success()

    def compile_and_run(self, path: Path) -> EvalResult:
        try:
            source = Path(path).read_text(encoding="utf-8")
            compiled = compile(source, str(path), "exec")
        except (OSError, SyntaxError, ValueError) as e:
            return _failure(e)

        script_dir = str(Path(path).parent)
        added = script_dir not in sys.path
        if added:
            sys.path.insert(0, script_dir)
        self._namespace["__file__"] = str(path)
        try:
            exec(compiled, self._namespace)
        except SystemExit as e:
            return self._exit_result(e)
        except Exception as e:
            return _failure(e)
        finally:
            if added and script_dir in sys.path:
                sys.path.remove(script_dir)
        return EvalResult.success()

    def call_function(self, name: str) -> EvalResult:
        func = self._namespace.get(name)
        if not callable(func):
            return EvalResult.failure(f"function {name!r} is not defined", error_type="NameError")
        try:
            func()
        except SystemExit as e:
            return self._exit_result(e)
        except Exception as e:
            return _failure(e)
        return EvalResult.success()

    @staticmethod
    def _exit_result(e: SystemExit) -> EvalResult:
        if e.code in (None, 0):
            return EvalResult.success()
        return EvalResult.failure(f"exited with status {e.code}", error_type="SystemExit")

"""Script languages, looked up by file extension.

Provides the in-process Python language, subprocess-backed interpreters
declared in the config file, and the registry that maps extensions to them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from qscripts.languages.base import (
    EvalResult,
    ExecutionStatus,
    LanguageRegistry,
    ScriptLanguage,
)
from qscripts.languages.interpreter import InterpreterLanguage
from qscripts.languages.python import PythonLanguage

if TYPE_CHECKING:
    from qscripts.config.schema import Config

__all__ = [
    "EvalResult",
    "ExecutionStatus",
    "InterpreterLanguage",
    "LanguageRegistry",
    "PythonLanguage",
    "ScriptLanguage",
    "default_registry",
]


def default_registry(config: Config | None = None) -> LanguageRegistry:
    """Registry with Python plus every interpreter declared in ``config``."""
    registry = LanguageRegistry()
    registry.register(PythonLanguage())
    if config is not None:
        for lang_config in config.languages:
            registry.register(InterpreterLanguage.from_config(lang_config))
    return registry

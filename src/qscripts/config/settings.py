"""Persisted key/value settings.

The monitor keeps its options and the last selected script here, separate
from the hand-edited config files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import yaml

from qscripts.config.loader import load_yaml_file

_log = logging.getLogger("qscripts.config.settings")


class SettingsError(Exception):
    """Raised when the settings store cannot be written."""


class SettingsStore(Protocol):
    """Integer/string key-value store."""

    def get_int(self, key: str, default: int) -> int: ...

    def set_int(self, key: str, value: int) -> None: ...

    def get_str(self, key: str, default: str = "") -> str: ...

    def set_str(self, key: str, value: str) -> None: ...


class MemorySettingsStore:
    """In-memory store, used when nothing should touch the disk."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    def get_int(self, key: str, default: int) -> int:
        value = self._values.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def set_int(self, key: str, value: int) -> None:
        self._values[key] = int(value)

    def get_str(self, key: str, default: str = "") -> str:
        value = self._values.get(key)
        return value if isinstance(value, str) else default

    def set_str(self, key: str, value: str) -> None:
        self._values[key] = value

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)


class YamlSettingsStore(MemorySettingsStore):
    """Settings persisted to a flat YAML mapping, rewritten on every set."""

    def __init__(self, path: Path) -> None:
        super().__init__(load_yaml_file(path))
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def set_int(self, key: str, value: int) -> None:
        super().set_int(key, value)
        self._save()

    def set_str(self, key: str, value: str) -> None:
        super().set_str(key, value)
        self._save()

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self._values, f, default_flow_style=False, sort_keys=True)
        except OSError as e:
            raise SettingsError(f"Cannot write settings to {self._path}: {e}") from e
        _log.debug("Saved settings to %s", self._path)

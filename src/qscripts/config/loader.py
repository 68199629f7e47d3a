"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Cascading merge of system, user and project files
- Environment variable overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from qscripts.config.paths import get_config_paths
from qscripts.config.schema import (
    DEFAULT_INTERVAL_MS,
    UNLOAD_FUNCTION_NAME,
    Config,
    LanguageConfig,
    LoggingConfig,
    MonitorConfig,
    ResolverConfig,
    normalize_interval,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("qscripts.config")

_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge config dicts in order, later ones winning.

    Nested dicts merge key by key, lists are replaced whole and None never
    overrides an existing value.
    """
    result: dict[str, Any] = {}
    for config in configs:
        if config:
            result = _deep_merge(result, config)
    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = value
    return result


def env_overrides() -> dict[str, Any]:
    """Build a config dict from QSCRIPTS_* environment variables."""
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("QSCRIPTS_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    interval = os.environ.get("QSCRIPTS_INTERVAL")
    if interval:
        try:
            overrides.setdefault("monitor", {})["interval_ms"] = int(interval)
        except ValueError:
            _log.warning("Ignoring non-numeric QSCRIPTS_INTERVAL=%r", interval)

    return overrides


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    monitor_data = data.get("monitor") or {}
    monitor = MonitorConfig(
        interval_ms=normalize_interval(monitor_data.get("interval_ms", DEFAULT_INTERVAL_MS)),
        clear_output=bool(monitor_data.get("clear_output", False)),
        show_filename=bool(monitor_data.get("show_filename", False)),
        exec_unload_func=bool(monitor_data.get("exec_unload_func", False)),
        unload_function=monitor_data.get("unload_function") or UNLOAD_FUNCTION_NAME,
    )

    resolver_data = data.get("resolver") or {}
    resolver = ResolverConfig(
        max_depth=int(resolver_data.get("max_depth", ResolverConfig.max_depth)),
        max_index_reads=int(
            resolver_data.get("max_index_reads", ResolverConfig.max_index_reads)
        ),
    )

    languages = [
        LanguageConfig(
            name=lang.get("name", ""),
            extensions=_as_list(lang.get("extensions")),
            command=_as_list(lang.get("command")),
            snippet_flag=lang.get("snippet_flag", "-c"),
            timeout=lang.get("timeout", 60.0),
            entry_function=lang.get("entry_function"),
        )
        for lang in data.get("languages") or []
        if isinstance(lang, dict) and lang.get("command") and lang.get("extensions")
    ]

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    known_keys = {"monitor", "resolver", "languages", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        monitor=monitor,
        resolver=resolver,
        languages=languages,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.qscripts/config.yaml)
    3. User config
    4. System config

    Only the global config (no project_root) is cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    configs: list[dict[str, Any]] = []
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    config = dict_to_config(merge_configs(*configs))

    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config (used by tests)."""
    global _cached_config
    _cached_config = None

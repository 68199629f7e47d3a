"""Configuration management for qscripts.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/qscripts/ or %PROGRAMDATA%)
- User-level config (~/.config/qscripts/ or %APPDATA%)
- Project-level config ($project_root/.qscripts/)
- Environment variable overrides (highest priority)

and a small persisted settings store for monitor options.

Example usage:
    from qscripts.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.monitor.interval_ms)
"""

from qscripts.config.loader import (
    get_config,
    load_config,
    merge_configs,
    reset_config,
)
from qscripts.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_state_path,
    get_system_config_path,
    get_user_config_path,
)
from qscripts.config.schema import (
    Config,
    LanguageConfig,
    LoggingConfig,
    MonitorConfig,
    ResolverConfig,
    normalize_interval,
)
from qscripts.config.settings import (
    MemorySettingsStore,
    SettingsError,
    SettingsStore,
    YamlSettingsStore,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "merge_configs",
    # Schema types
    "MonitorConfig",
    "ResolverConfig",
    "LanguageConfig",
    "LoggingConfig",
    "normalize_interval",
    # Settings store
    "SettingsStore",
    "MemorySettingsStore",
    "YamlSettingsStore",
    "SettingsError",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
    "get_state_path",
]

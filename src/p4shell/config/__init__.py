"""Configuration management for p4shell.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/p4shell/ or %PROGRAMDATA%)
- User-level config (~/.config/p4shell/ or %APPDATA%)
- Project-level config ($project_root/.p4shell/)
- Environment variable overrides (highest priority)

Example usage:
    from p4shell.config import load_config

    config = load_config(project_root="/path/to/workspace")
    print(config.p4.executable)
    print(config.completion.cache_timeout)
"""

from p4shell.config.loader import (
    load_config,
    load_config_file,
    resolve_callable,
)
from p4shell.config.paths import (
    get_config_paths,
    get_history_path,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from p4shell.config.schema import (
    CompletionConfig,
    Config,
    DisplayConfig,
    LoggingConfig,
    P4Config,
)
from p4shell.config.secrets import (
    clear_secret_cache,
    fetch_secret,
    find_secrets_file,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "load_config_file",
    "resolve_callable",
    # Schema types
    "P4Config",
    "CompletionConfig",
    "DisplayConfig",
    "LoggingConfig",
    # Secrets
    "fetch_secret",
    "find_secrets_file",
    "clear_secret_cache",
    # Paths
    "get_config_paths",
    "get_history_path",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]

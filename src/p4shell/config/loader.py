"""Configuration file loading.

Handles:
- YAML file parsing
- Environment variable overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import importlib
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from p4shell.config.merge import merge_configs
from p4shell.config.paths import get_config_paths
from p4shell.config.schema import (
    DEFAULT_SYNCHRONOUS_COMMANDS,
    CompletionConfig,
    Config,
    DisplayConfig,
    LoggingConfig,
    P4Config,
)
from p4shell.errors import ConfigurationError

_log = logging.getLogger("p4shell.config")

_POP_UP_MODES = {"auto", "always", "never"}


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


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    P4SHELL_LOG sets the log file, P4SHELL_EXECUTABLE the p4 binary.
    The password is NOT read here; see fetch_secret().
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("P4SHELL_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    executable = os.environ.get("P4SHELL_EXECUTABLE")
    if executable:
        overrides.setdefault("p4", {})["executable"] = executable

    return overrides


def default_layer() -> dict[str, Any]:
    """Bottom layer of the cascade; editable lists start from here."""
    return {"p4": {"synchronous_commands": list(DEFAULT_SYNCHRONOUS_COMMANDS)}}


def _string_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [str(v) for v in value if isinstance(v, (str, int))]


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass."""
    p4_data = data.get("p4", {}) or {}
    timeout = p4_data.get("timeout")
    p4 = P4Config(
        executable=str(p4_data.get("executable") or "p4"),
        synchronous_commands=_string_list(
            p4_data.get("synchronous_commands"), DEFAULT_SYNCHRONOUS_COMMANDS
        ),
        password_source=p4_data.get("password_source"),
        modify_args=p4_data.get("modify_args"),
        global_options=_string_list(p4_data.get("global_options"), []),
        timeout=float(timeout) if timeout is not None else None,
    )

    completion_data = data.get("completion", {}) or {}
    completion = CompletionConfig(
        cache_timeout=float(completion_data.get("cache_timeout", 600.0)),
        max_changes=int(completion_data.get("max_changes", 200)),
    )

    display_data = data.get("display", {}) or {}
    pop_up = str(display_data.get("pop_up", "auto")).lower()
    if pop_up not in _POP_UP_MODES:
        _log.warning("Unknown display.pop_up value %r, using 'auto'", pop_up)
        pop_up = "auto"
    display = DisplayConfig(pop_up=pop_up)

    log_data = data.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    known_keys = {"p4", "completion", "display", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        p4=p4,
        completion=completion,
        display=display,
        logging=logging_config,
        extra=extra,
    )


def load_config(project_root: str | None = None) -> Config:
    """Load and merge config from all sources, reading the files afresh.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config ($project_root/.p4shell/config.yaml)
    3. User config (~/.config/p4shell/config.yaml or %APPDATA%)
    4. System config (/etc/p4shell/ or %PROGRAMDATA%)

    Args:
        project_root: Project directory for project-level config.

    Returns:
        Merged Config object.
    """
    configs: list[dict[str, Any]] = [default_layer()]

    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    return dict_to_config(merge_configs(*configs))


def load_config_file(path: Path) -> Config:
    """Load a single explicit config file (``--config``) plus env overrides."""
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    return dict_to_config(merge_configs(default_layer(), load_yaml_file(path), env_overrides()))


def resolve_callable(spec: str) -> Callable[..., Any]:
    """Import a ``module:function`` reference from config.

    Raises:
        ConfigurationError: If the module or attribute cannot be loaded.
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Expected 'module:function', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name!r}: {e}") from e
    target = getattr(module, attr, None)
    if not callable(target):
        raise ConfigurationError(f"{spec!r} is not callable")
    return target

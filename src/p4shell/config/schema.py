"""Configuration schema dataclasses for p4shell.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_SYNCHRONOUS_COMMANDS = [
    "add",
    "edit",
    "revert",
    "lock",
    "unlock",
    "logout",
    "reopen",
]


@dataclass
class P4Config:
    """How the p4 executable is invoked.

    Example config.yaml:
        p4:
          executable: /usr/local/bin/p4
          synchronous_commands: [add, edit, revert]
          password_source: "security find-generic-password -s perforce -w"
          modify_args: "mytools.p4wrap:inject_flags"
    """

    executable: str = "p4"  # Name on PATH or absolute path
    synchronous_commands: list[str] = field(
        default_factory=lambda: list(DEFAULT_SYNCHRONOUS_COMMANDS)
    )  # Commands that block until p4 exits
    password_source: str | None = None  # Shell command printing the password
    modify_args: str | None = None  # "module:function" applied to every argv
    global_options: list[str] = field(default_factory=list)  # e.g. ["-C", "utf8"]
    timeout: float | None = None  # Seconds; None waits forever


@dataclass
class CompletionConfig:
    """Completion cache configuration."""

    cache_timeout: float = 600.0  # Seconds before a cached query goes stale
    max_changes: int = 200  # Limit for pending/shelved change queries


@dataclass
class DisplayConfig:
    """Output display configuration."""

    pop_up: str = "auto"  # "auto" (more than one line), "always", or "never"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, wins over level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    p4: P4Config = field(default_factory=P4Config)
    completion: CompletionConfig = field(default_factory=CompletionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Extension point for future config sections
    extra: dict[str, Any] = field(default_factory=dict)

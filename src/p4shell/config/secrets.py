"""Password lookup for unattended logins.

``P4PASSWD`` is taken from the environment first. Failing that, the nearest
``.env.secrets`` file at or above the working directory is read, the same
way p4 itself finds its P4CONFIG file, so a workspace can carry its own
credentials without a prompt.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import dotenv_values

SECRETS_FILE = ".env.secrets"


def find_secrets_file(start: str | Path | None = None) -> Path | None:
    """Nearest ``.env.secrets`` at or above ``start`` (default: cwd)."""
    directory = Path(start or os.getcwd()).resolve()
    for candidate in (directory, *directory.parents):
        path = candidate / SECRETS_FILE
        if path.is_file():
            return path
    return None


@lru_cache(maxsize=8)
def _read(path: Path) -> dict[str, str | None]:
    return dotenv_values(path)


def fetch_secret(
    key: str,
    default: str | None = None,
    secrets_path: Path | None = None,
    *,
    start: str | Path | None = None,
) -> str | None:
    """Value of ``key`` from the environment or a secrets file.

    Args:
        key: Variable name, normally "P4PASSWD".
        default: Returned when neither source has the key.
        secrets_path: Read this file instead of searching for one.
        start: Directory the search starts from.
    """
    value = os.environ.get(key)
    if value is not None:
        return value

    path = secrets_path if secrets_path is not None else find_secrets_file(start)
    if path is None or not path.is_file():
        return default
    value = _read(path).get(key)
    return value if value is not None else default


def clear_secret_cache() -> None:
    """Forget parsed secrets files (after editing one, and in tests)."""
    _read.cache_clear()

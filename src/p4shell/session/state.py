"""Cached p4 settings (P4PORT, P4USER, P4CLIENT, ...).

Settings are read lazily from ``p4 set`` and cached per
(setting, default, config root), where the config root is the directory of
the nearest P4CONFIG file above the working directory. Workspaces with
different config files therefore never share cached values.
"""

from __future__ import annotations

import getpass
import os
import re
import socket
from collections.abc import Mapping
from pathlib import Path

from p4shell.logging import get_logger
from p4shell.process.protocol import Invoker
from p4shell.tagged import TaggedRecord, parse_tagged

log = get_logger("session.state")

SettingKey = tuple[str, str | None, str | None]

# Trailing source annotation, e.g. "P4PORT=ssl:perforce:1666 (config)"
_ANNOTATION_RE = re.compile(r"\s+\((?:set|config|enviro|environment)[^)]*\)$")

_MISSING = object()


class SessionState:
    """Process-wide cache of p4 settings, owned by the application context."""

    def __init__(
        self,
        invoker: Invoker,
        *,
        cwd: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._invoker = invoker
        self._cwd = cwd or os.getcwd()
        self._environ = environ if environ is not None else os.environ
        self._cache: dict[SettingKey, str | None] = {}
        self._config_names: dict[str, str | None] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def _config_file_name(self, cwd: str) -> str | None:
        """The P4CONFIG file name in effect (not itself keyed by root)."""
        if cwd not in self._config_names:
            self._config_names[cwd] = self._environ.get("P4CONFIG") or self._query(
                "P4CONFIG", cwd
            )
        return self._config_names[cwd]

    def find_config_root(self, cwd: str | None = None) -> str | None:
        """Directory of the nearest P4CONFIG file at or above ``cwd``."""
        cwd = cwd or self._cwd
        name = self._config_file_name(cwd)
        if not name:
            return None
        start = Path(cwd).resolve()
        for directory in (start, *start.parents):
            if (directory / name).is_file():
                return str(directory)
        return None

    def get(self, setting: str, default: str | None = None, cwd: str | None = None) -> str | None:
        """Current value of ``setting``, or ``default`` if p4 has none.

        An environment variable of the same name wins over p4's answer.
        """
        cwd = cwd or self._cwd
        key: SettingKey = (setting, default, self.find_config_root(cwd))
        if key in self._cache:
            return self._cache[key]

        value = self._environ.get(setting)
        if value is None:
            value = self._query(setting, cwd)
        if value is None:
            value = default
        self._cache[key] = value
        log.debug("Setting %s=%r (root=%s)", setting, value, key[2])
        return value

    def clear(self, setting: str | None = None, default: str | None = None) -> int:
        """Forget cached settings.

        With no ``setting`` the whole cache goes. Otherwise only the exact key
        for the current config root is removed.

        Returns:
            Number of entries removed.
        """
        if setting is None:
            removed = len(self._cache)
            self._cache.clear()
            self._config_names.clear()
            return removed
        key: SettingKey = (setting, default, self.find_config_root())
        return 1 if self._cache.pop(key, _MISSING) is not _MISSING else 0

    @property
    def port(self) -> str | None:
        return self.get("P4PORT", "perforce:1666")

    @property
    def user(self) -> str | None:
        return self.get("P4USER", getpass.getuser())

    @property
    def client(self) -> str | None:
        return self.get("P4CLIENT", socket.gethostname())

    @property
    def charset(self) -> str | None:
        return self.get("P4CHARSET")

    def identity(self, cwd: str | None = None) -> str:
        """``user@port`` in effect for ``cwd``."""
        user = self.get("P4USER", getpass.getuser(), cwd)
        port = self.get("P4PORT", "perforce:1666", cwd)
        return f"{user}@{port}"

    def dump(self) -> str:
        """Raw ``p4 set`` output, for error diagnostics."""
        return self._invoker.run_sync(["set"], cwd=self._cwd).output

    def server_info(self) -> TaggedRecord | None:
        """``p4 -ztag info`` as a record, or None if p4 failed."""
        result = self._invoker.run_sync(["-ztag", "info"], cwd=self._cwd)
        if not result.success:
            log.debug("p4 info failed: %s", result.output.strip())
            return None
        records = parse_tagged(result.output)
        return records[0] if records else None

    def _query(self, setting: str, cwd: str) -> str | None:
        result = self._invoker.run_sync(["set", "-q", setting], cwd=cwd)
        if not result.success:
            return None
        pattern = re.compile(rf"^{re.escape(setting)}=(.*)$", re.MULTILINE)
        match = pattern.search(result.output)
        if not match:
            return None
        value = _ANNOTATION_RE.sub("", match.group(1).strip())
        return value or None


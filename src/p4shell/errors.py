"""Error taxonomy for p4shell.

Recoverable conditions (an expired session, an unverified server) are
handled inside the retry engine and only escape when recovery itself is
refused. Everything else propagates to the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence


class P4ShellError(Exception):
    """Base class for all p4shell errors."""


class ConfigurationError(P4ShellError):
    """The p4 executable is unset, missing or not executable."""


class AuthenticationRequired(P4ShellError):
    """The server rejected the command because there is no valid ticket."""


class LoginCancelled(AuthenticationRequired):
    """The user cancelled the password prompt."""


class UntrustedServer(P4ShellError):
    """The server fingerprint is unknown or has changed."""

    def __init__(self, message: str, server: str | None = None, fingerprint: str | None = None):
        super().__init__(message)
        self.server = server
        self.fingerprint = fingerprint


class ServerNotTrusted(UntrustedServer):
    """Trust was declined or could not be established. Never retried."""


class ToolReportedError(P4ShellError):
    """p4 exited with a nonzero status and no recognised failure signature.

    The message is the tool's own output, verbatim.
    """

    def __init__(self, argv: Sequence[str], status: int | None, output: str):
        self.argv = tuple(argv)
        self.status = status
        self.output = output
        super().__init__(output.rstrip("\n") or f"p4 exited with status {status}")


class TaggedOutputError(P4ShellError):
    """A line of -ztag output could not be parsed."""

    def __init__(self, line_number: int, line: str):
        self.line_number = line_number
        self.line = line
        super().__init__(f"Unexpected tagged output at line {line_number}: {line!r}")

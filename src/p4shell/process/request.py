"""Invocation request built by each user-facing command."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InvocationRequest:
    """An immutable description of one p4 command.

    Consumed once by the retry engine. Retries after a login or trust
    resolution re-issue exactly this argument vector.
    """

    command: str
    arguments: tuple[str, ...] = ()
    cwd: str | None = None
    synchronous: bool = False
    auto_login: bool = True

    @property
    def argv(self) -> list[str]:
        """The p4 arguments: command name followed by its arguments."""
        return [self.command, *self.arguments]

    @property
    def process_name(self) -> str:
        return f"p4 {self.command}"

"""Invocation result dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class InvocationResult:
    """Result of one p4 invocation.

    Attributes:
        argv: The full argument vector that was executed (after transform).
        exit_code: Process exit code (0 = success), or None on timeout.
        output: Combined stdout/stderr output.
        status: "ok", "error", or "timeout".
        duration_ms: Execution duration in milliseconds.
    """

    argv: tuple[str, ...]
    exit_code: int | None
    output: str
    status: str  # "ok", "error", "timeout"
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """True if p4 completed with exit code 0."""
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.argv)

    def __repr__(self) -> str:
        if self.success:
            lines = self.output.count("\n") + 1 if self.output else 0
            return f"<InvocationResult ok, {lines} lines>"
        return f"<InvocationResult {self.status}, exit={self.exit_code}>"

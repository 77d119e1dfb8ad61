"""Invoker protocol for running the p4 executable."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Protocol

from p4shell.process.result import InvocationResult


class Invoker(Protocol):
    """Protocol for running p4.

    Implementations:
    - ProcessInvoker: real subprocesses
    - test fakes that replay canned output
    """

    def run_sync(
        self,
        arguments: Sequence[str],
        cwd: str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Run p4 and block until it exits."""
        ...

    async def run_async(
        self,
        arguments: Sequence[str],
        cwd: str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Run p4 as an asyncio subprocess."""
        ...

    def start(
        self,
        arguments: Sequence[str],
        on_exit: Callable[[InvocationResult], None],
        cwd: str | None = None,
    ) -> asyncio.Task[InvocationResult]:
        """Spawn p4 and call on_exit on the event loop when it terminates."""
        ...

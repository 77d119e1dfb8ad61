"""Non-blocking p4 command with the same recovery rules as the retry engine.

Most user commands run this way. The command is an explicit state object
driven by process-exit notifications from the invoker::

    PENDING -> RUNNING -> DONE
                  |  \\-> FAILED
                  |-> NEED_LOGIN -> RUNNING   (same argv re-issued)
                  \\-> NEED_TRUST -> RUNNING   (same argv re-issued)

Each command owns its buffer, so two commands in flight never share output.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from p4shell.logging import get_logger
from p4shell.process.protocol import Invoker
from p4shell.process.request import InvocationRequest
from p4shell.process.result import InvocationResult
from p4shell.session.buffer import OutputBuffer
from p4shell.session.disposition import (
    Disposition,
    PopUpPredicate,
    dispose,
    show_tool_error,
)
from p4shell.session.signatures import Signature, classify

if TYPE_CHECKING:
    from p4shell.display import DisplaySurface
    from p4shell.session.retry import RetryEngine
    from p4shell.session.state import SessionState

log = get_logger("session.async")


class CommandState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    NEED_LOGIN = "need_login"
    NEED_TRUST = "need_trust"
    FAILED = "failed"
    DONE = "done"


class AsyncCommand:
    """One asynchronous p4 command and its recovery state."""

    def __init__(
        self,
        request: InvocationRequest,
        invoker: Invoker,
        retry_engine: RetryEngine,
        display: DisplaySurface,
        *,
        buffer: OutputBuffer | None = None,
        session_state: SessionState | None = None,
        callback: Callable[[], None] | None = None,
        pop_up: PopUpPredicate | None = None,
        mode: str | None = None,
        after_show: Callable[[OutputBuffer], None] | None = None,
    ) -> None:
        self.request = request
        self.buffer = buffer or OutputBuffer(f"*{request.process_name}*")
        self._invoker = invoker
        self._retry = retry_engine
        self._display = display
        self._session_state = session_state
        self._callback = callback
        self._pop_up = pop_up
        self._mode = mode
        self._after_show = after_show

        self.state = CommandState.PENDING
        self.history: list[CommandState] = [CommandState.PENDING]
        self.attempts = 0
        self.result: InvocationResult | None = None
        self.disposition: Disposition | None = None
        self._future: asyncio.Future[InvocationResult] | None = None
        self._recovery: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"<AsyncCommand {self.request.process_name} {self.state.value}>"

    @property
    def done(self) -> bool:
        return self.state in (CommandState.DONE, CommandState.FAILED)

    def start(self) -> asyncio.Future[InvocationResult]:
        """Spawn p4 and return a future for the final result.

        Must be called from a running event loop.
        """
        if self._future is not None:
            return self._future
        self._future = asyncio.get_running_loop().create_future()
        self._issue()
        return self._future

    async def run(self) -> InvocationResult:
        return await self.start()

    def _set(self, state: CommandState) -> None:
        log.debug("%s: %s -> %s", self.request.process_name, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _issue(self) -> None:
        self._set(CommandState.RUNNING)
        self.attempts += 1
        self._invoker.start(self.request.argv, self._on_exit, cwd=self.request.cwd)

    def _on_exit(self, result: InvocationResult) -> None:
        assert self._future is not None
        try:
            self._handle_exit(result)
        except Exception as e:
            self._fail(e)

    def _fail(self, error: Exception) -> None:
        # Recovery refused (e.g. trust declined) or a callback failed
        assert self._future is not None
        self._set(CommandState.FAILED)
        self._display.show_error(str(error))
        if not self._future.done():
            self._future.set_exception(error)

    def _recover(self, step: Callable[[], None]) -> None:
        """Run ``step`` with the terminal handed back, then re-issue the argv."""

        async def _run() -> None:
            try:
                await self._retry.run_exclusive(step)
            except Exception as e:
                self._fail(e)
            else:
                self._issue()

        self._recovery = asyncio.get_running_loop().create_task(_run())

    def _handle_exit(self, result: InvocationResult) -> None:
        assert self._future is not None
        signature, challenge = classify(result.output)
        cwd = self.request.cwd

        if signature is Signature.NO_SESSION and self.request.auto_login:
            self._set(CommandState.NEED_LOGIN)
            self._recover(lambda: self._retry.login_flow.login(cwd=cwd))
            return

        if signature is Signature.UNTRUSTED_SERVER and challenge is not None:
            self._set(CommandState.NEED_TRUST)
            self._recover(lambda: self._retry.trust_flow.resolve(challenge, cwd=cwd))
            return

        self.result = result
        self.buffer.write(result.output)

        if result.status != "ok":
            self._set(CommandState.FAILED)
            show_tool_error(
                self.buffer, self._display, self.request.process_name, self._session_state
            )
            self._future.set_result(result)
            return

        self._set(CommandState.DONE)
        if self._callback is not None:
            self._callback()
        self.disposition = dispose(
            self.buffer,
            self._display,
            self.request.process_name,
            pop_up=self._pop_up,
            mode=self._mode,
        )
        if self._after_show is not None and not self.buffer.killed:
            self._after_show(self.buffer)
        self._future.set_result(result)

"""Generic command runner over the static command table."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from p4shell.commands.table import COMMANDS, CommandDescriptor
from p4shell.completion.cache import CompletionCache
from p4shell.display import DisplaySurface
from p4shell.logging import get_logger
from p4shell.process.protocol import Invoker
from p4shell.process.request import InvocationRequest
from p4shell.session.async_command import AsyncCommand
from p4shell.session.buffer import OutputBuffer
from p4shell.session.disposition import (
    Disposition,
    PopUpPredicate,
    dispose,
    pop_up_predicate,
    show_tool_error,
)
from p4shell.session.retry import RetryEngine
from p4shell.session.state import SessionState

log = get_logger("commands")


@dataclass
class SyncCommand:
    """A synchronous command, already finished when returned."""

    request: InvocationRequest
    buffer: OutputBuffer
    status: int | None
    disposition: Disposition | None = None

    @property
    def done(self) -> bool:
        return True

    @property
    def success(self) -> bool:
        return self.status == 0


class CommandRunner:
    """Runs p4 commands the way their descriptors say.

    Commands named in ``synchronous_commands`` block until p4 exits; all
    others are started as AsyncCommands and return immediately.
    """

    def __init__(
        self,
        invoker: Invoker,
        retry_engine: RetryEngine,
        cache: CompletionCache,
        state: SessionState,
        display: DisplaySurface,
        *,
        synchronous_commands: Sequence[str] = (),
        pop_up: str = "auto",
        cwd: str | None = None,
        commands: Mapping[str, CommandDescriptor] = COMMANDS,
    ) -> None:
        self._invoker = invoker
        self._retry = retry_engine
        self._cache = cache
        self._state = state
        self._display = display
        self._synchronous = frozenset(synchronous_commands)
        self._pop_up_mode = pop_up
        self._cwd = cwd
        self.commands = commands
        self._in_flight: set[asyncio.Future] = set()

    def descriptor(self, name: str) -> CommandDescriptor:
        return self.commands.get(name) or CommandDescriptor(name)

    def is_synchronous(self, name: str) -> bool:
        return name in self._synchronous

    def request(
        self,
        name: str,
        args: Sequence[str] | None = None,
        cwd: str | None = None,
    ) -> InvocationRequest:
        """Build the immutable request for one user command."""
        descriptor = self.descriptor(name)
        arguments = tuple(args) if args else descriptor.default_args
        return InvocationRequest(
            command=name,
            arguments=arguments,
            cwd=cwd or self._cwd,
            synchronous=self.is_synchronous(name),
            auto_login=descriptor.auto_login,
        )

    def run(
        self,
        name: str,
        args: Sequence[str] | None = None,
        cwd: str | None = None,
    ) -> SyncCommand | AsyncCommand:
        """Run a command; asynchronous ones need a running event loop."""
        descriptor = self.descriptor(name)
        request = self.request(name, args, cwd)
        log.info("Running %s", " ".join(request.argv))

        if request.synchronous:
            return self._run_sync(request, descriptor)

        command = AsyncCommand(
            request,
            self._invoker,
            self._retry,
            self._display,
            session_state=self._state,
            callback=lambda: self._on_success(descriptor),
            pop_up=self._pop_up(descriptor),
            mode=descriptor.mode,
        )
        future = command.start()
        self._in_flight.add(future)
        future.add_done_callback(self._finished)
        return command

    async def wait(self) -> None:
        """Wait for every asynchronous command still in flight."""
        # Callbacks may start further commands while we wait
        while True:
            pending = [future for future in self._in_flight if not future.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _finished(self, future: asyncio.Future) -> None:
        self._in_flight.discard(future)
        # Already shown on the display by the command itself
        if not future.cancelled() and future.exception() is not None:
            log.debug("Command failed: %s", future.exception())

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def _run_sync(self, request: InvocationRequest, descriptor: CommandDescriptor) -> SyncCommand:
        buffer = OutputBuffer(f"*{request.process_name}*")
        status = self._retry.run(
            request.argv, buffer, cwd=request.cwd, auto_login=request.auto_login
        )
        command = SyncCommand(request=request, buffer=buffer, status=status)
        if status == 0:
            self._on_success(descriptor)
            command.disposition = dispose(
                buffer,
                self._display,
                request.process_name,
                pop_up=self._pop_up(descriptor),
                mode=descriptor.mode,
            )
        else:
            show_tool_error(buffer, self._display, request.process_name, self._state)
        return command

    def _on_success(self, descriptor: CommandDescriptor) -> None:
        for category in descriptor.invalidates:
            log.debug("%s invalidates %s completions", descriptor.name, category)
            self._cache.clear(category)
        if descriptor.clears_settings:
            self._state.clear()

    def _pop_up(self, descriptor: CommandDescriptor) -> PopUpPredicate:
        return pop_up_predicate(descriptor.pop_up or self._pop_up_mode)

"""User interaction needed by the login and trust sub-flows.

Recovery can start from a process-exit callback while the interactive
prompt owns the terminal in raw mode. Such steps go through
``run_exclusive``, which suspends the prompt and runs the step off the event
loop. A prompt requested any other way while the prompt is live is treated
as cancelled rather than read from a terminal it cannot use.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar

from prompt_toolkit.application import run_in_terminal
from prompt_toolkit.application.current import get_app_or_none
from rich.console import Console
from rich.prompt import Confirm, Prompt

from p4shell.errors import LoginCancelled
from p4shell.logging import get_logger

log = get_logger("session.interaction")

T = TypeVar("T")


class UserInteraction(Protocol):
    """Questions the engine may need to ask while recovering a session."""

    def read_password(self, prompt: str) -> str:
        """Read a password without echo. Raises LoginCancelled on cancel."""
        ...

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question."""
        ...

    def message(self, text: str) -> None:
        """Show a one-line status message."""
        ...

    async def run_exclusive(self, step: Callable[[], T]) -> T:
        """Run a recovery step that may prompt, one step at a time."""
        ...


def prompt_running() -> bool:
    """True while a prompt_toolkit application owns the terminal."""
    app = get_app_or_none()
    return app is not None and app.is_running


class ConsoleInteraction:
    """Prompts on a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)
        self._lock = asyncio.Lock()
        self._exclusive = False

    def _terminal_free(self) -> bool:
        return self._exclusive or not prompt_running()

    def read_password(self, prompt: str) -> str:
        if not self._terminal_free():
            log.warning("Login needed while the prompt is active; use :login")
            raise LoginCancelled("Login needed; run :login")
        try:
            return Prompt.ask(prompt, password=True, console=self._console)
        except (KeyboardInterrupt, EOFError) as e:
            raise LoginCancelled("Login cancelled") from e

    def confirm(self, prompt: str) -> bool:
        if not self._terminal_free():
            log.warning("Trust question while the prompt is active, declining")
            return False
        try:
            return Confirm.ask(prompt, console=self._console, default=False)
        except (KeyboardInterrupt, EOFError):
            return False

    def message(self, text: str) -> None:
        self._console.print(text, highlight=False)

    async def run_exclusive(self, step: Callable[[], T]) -> T:
        """Run ``step`` in a worker thread with the terminal handed back.

        Concurrent recoveries queue on a lock, so only one asks at a time.
        """
        async with self._lock:
            self._exclusive = True
            try:
                return await run_in_terminal(step, in_executor=True)
            finally:
                self._exclusive = False


class ScriptedInteraction:
    """Replays canned answers. Used for unattended runs and tests.

    Running out of passwords counts as the user cancelling the prompt.
    """

    def __init__(
        self,
        passwords: Iterable[str] = (),
        confirmations: Iterable[bool] = (),
    ) -> None:
        self._passwords = deque(passwords)
        self._confirmations = deque(confirmations)
        self.prompts: list[str] = []
        self.messages: list[str] = []

    def read_password(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._passwords:
            raise LoginCancelled("No password available")
        return self._passwords.popleft()

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self._confirmations.popleft() if self._confirmations else False

    def message(self, text: str) -> None:
        self.messages.append(text)

    async def run_exclusive(self, step: Callable[[], T]) -> T:
        return step()

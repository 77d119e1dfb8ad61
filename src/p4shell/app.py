"""Application context that owns every p4shell service.

One P4Shell per running application. Services are plain instances handed
to each other here; nothing in the engine reaches for module-level state.

Example:
    async with P4Shell(cwd="/work/project") as shell:
        shell.run("opened")
        await shell.wait()
        print(shell.complete("pending", ""))
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import TYPE_CHECKING

from p4shell.commands.runner import CommandRunner, SyncCommand
from p4shell.completion.cache import CompletionCache
from p4shell.completion.categories import get_category
from p4shell.completion.completer import P4Completer
from p4shell.completion.fetchers import Fetcher
from p4shell.config.loader import load_config, resolve_callable
from p4shell.config.schema import Config
from p4shell.display import ConsoleDisplay, DisplaySurface
from p4shell.logging import get_logger
from p4shell.process.invoker import ProcessInvoker
from p4shell.session.interaction import ConsoleInteraction, UserInteraction
from p4shell.session.recovery import LoginFlow, TrustFlow
from p4shell.session.retry import RetryEngine
from p4shell.session.state import SessionState

if TYPE_CHECKING:
    from p4shell.process.protocol import Invoker
    from p4shell.session.async_command import AsyncCommand

log = get_logger("app")


class P4Shell:
    """Wires the invoker, retry engine, caches and command runner together."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        cwd: str | None = None,
        interaction: UserInteraction | None = None,
        display: DisplaySurface | None = None,
        invoker: Invoker | None = None,
    ) -> None:
        """Initialize the application context.

        Args:
            config: Loaded configuration; the cascade for ``cwd`` when None.
            cwd: Working directory for p4 commands (default: os.getcwd()).
            interaction: Password/trust prompts (default: rich console prompts).
            display: Output surface (default: rich console).
            invoker: Process invoker override (tests).
        """
        self.cwd = cwd or os.getcwd()
        self.config = config or load_config(project_root=self.cwd)
        p4 = self.config.p4

        if invoker is None:
            modify_args = resolve_callable(p4.modify_args) if p4.modify_args else None
            invoker = ProcessInvoker(
                p4.executable,
                modify_args=modify_args,
                global_options=p4.global_options,
                default_cwd=self.cwd,
                timeout=p4.timeout,
            )
        self.invoker = invoker
        self.interaction = interaction or ConsoleInteraction()
        self.display = display or ConsoleDisplay()

        self.state = SessionState(self.invoker, cwd=self.cwd)
        self.login_flow = LoginFlow(
            self.invoker,
            self.state,
            self.interaction,
            password_source=p4.password_source,
            cwd=self.cwd,
        )
        self.trust_flow = TrustFlow(self.invoker, self.interaction, cwd=self.cwd)
        self.retry = RetryEngine(
            self.invoker, self.login_flow, self.trust_flow, default_cwd=self.cwd
        )

        self.fetcher = Fetcher(
            self.retry,
            self.state,
            cwd=self.cwd,
            max_changes=self.config.completion.max_changes,
        )
        self.cache = CompletionCache(
            self.fetcher,
            root=lambda: self.state.find_config_root(self.fetcher.cwd),
            timeout=self.config.completion.cache_timeout,
        )
        self.runner = CommandRunner(
            self.invoker,
            self.retry,
            self.cache,
            self.state,
            self.display,
            synchronous_commands=p4.synchronous_commands,
            pop_up=self.config.display.pop_up,
            cwd=self.cwd,
        )
        self.completer = P4Completer(self.cache, self.runner.commands)

    async def __aenter__(self) -> P4Shell:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def run(self, name: str, args: Sequence[str] | None = None) -> SyncCommand | AsyncCommand:
        """Run a p4 command through the command table."""
        return self.runner.run(name, args)

    async def wait(self) -> None:
        await self.runner.wait()

    def complete(self, category: str, query: str) -> list[str]:
        """Completion candidates for ``query`` in the named category."""
        return self.cache.complete(get_category(category), query)

    def login(self) -> None:
        self.login_flow.login()

    def clear_caches(self) -> None:
        """Forget cached completions and p4 settings."""
        self.cache.clear()
        self.state.clear()

    def close(self) -> None:
        """Kill live p4 processes; never waits on them."""
        if isinstance(self.invoker, ProcessInvoker):
            if self.invoker.live_processes:
                log.debug("Killing %d live p4 processes", self.invoker.live_processes)
            self.invoker.close()

"""Interactive p4 shell."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.table import Table

from p4shell.config.paths import get_history_path
from p4shell.errors import P4ShellError
from p4shell.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from p4shell.app import P4Shell

log = get_logger("repl")

console = Console()


class InteractiveShell:
    """Prompt loop: p4 commands plus ``:`` builtins."""

    def __init__(self, shell: P4Shell, history_file: Path | None = None) -> None:
        self.shell = shell
        self._running = False

        history_file = history_file or get_history_path()
        history = InMemoryHistory()
        if history_file:
            try:
                history_file.parent.mkdir(parents=True, exist_ok=True)
                history = FileHistory(str(history_file))
            except OSError as e:
                log.warning("History disabled: %s", e)
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
            completer=shell.completer,
            complete_while_typing=False,
        )

        self._builtins = {
            ":help": self._cmd_help,
            ":clear-cache": self._cmd_clear_cache,
            ":clear-settings": self._cmd_clear_settings,
            ":session": self._cmd_session,
            ":login": self._cmd_login,
            ":wait": self._cmd_wait,
            ":quit": self._cmd_quit,
        }

    async def run(self) -> None:
        """Run until :quit or end of input."""
        self._running = True

        console.print("[bold]p4shell[/bold] - Tab completes, [bold]:help[/bold] for builtins.\n")

        with patch_stdout():
            while self._running:
                try:
                    line = await self.session.prompt_async("p4> ")
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
                await self.handle(line)

        self._running = False

    async def handle(self, line: str) -> None:
        """Handle one input line."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return
        if not parts:
            return

        if parts[0].startswith(":"):
            handler = self._builtins.get(parts[0].lower())
            if handler:
                await handler(parts[1:])
            else:
                console.print(f"[red]Unknown builtin: {parts[0]}[/red]")
                console.print("Type [bold]:help[/bold] for available builtins.")
            return

        # A leading "p4" is optional
        if parts[0] == "p4" and len(parts) > 1:
            parts = parts[1:]
        try:
            self.shell.run(parts[0], parts[1:])
        except P4ShellError as e:
            console.print(f"[red]{e}[/red]")

    def stop(self) -> None:
        self._running = False

    async def _cmd_help(self, args: list[str]) -> None:
        """Show available builtins."""
        table = Table(title="Builtins")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        builtins = [
            (":help", "Show this help message"),
            (":clear-cache [category]", "Forget cached completions"),
            (":clear-settings", "Forget cached p4 settings"),
            (":session", "Show server and client information"),
            (":login", "Log in to the current server"),
            (":wait", "Wait for running commands to finish"),
            (":quit", "Exit"),
        ]
        for cmd, desc in builtins:
            table.add_row(cmd, desc)

        console.print(table)

    async def _cmd_clear_cache(self, args: list[str]) -> None:
        if args:
            for name in args:
                self.shell.cache.clear(name)
            console.print(f"[green]Cleared {', '.join(args)} completions[/green]")
        else:
            self.shell.cache.clear()
            console.print("[green]Cleared all completions[/green]")

    async def _cmd_clear_settings(self, args: list[str]) -> None:
        count = self.shell.state.clear()
        console.print(f"[green]Forgot {count} cached setting(s)[/green]")

    async def _cmd_session(self, args: list[str]) -> None:
        """Show `p4 info` as a table."""
        try:
            info = self.shell.state.server_info()
        except P4ShellError as e:
            console.print(f"[red]{e}[/red]")
            return
        if info is None:
            console.print("[dim]No server information[/dim]")
            return

        table = Table(title="Session")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in info.items():
            table.add_row(key, value)
        console.print(table)

    async def _cmd_login(self, args: list[str]) -> None:
        try:
            self.shell.login()
        except P4ShellError as e:
            console.print(f"[red]{e}[/red]")
            return
        console.print("[green]Logged in[/green]")

    async def _cmd_wait(self, args: list[str]) -> None:
        await self.shell.wait()

    async def _cmd_quit(self, args: list[str]) -> None:
        self.stop()

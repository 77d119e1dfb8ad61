"""Display surfaces that receive p4 output.

The engine only needs three things from a display: show a buffer in a
window, show a one-line message in the echo area, and show an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from rich.console import Console
from rich.rule import Rule
from rich.syntax import Syntax

from p4shell.session.buffer import OutputBuffer

# Display modes that map onto a pygments lexer
_SYNTAX_MODES = {"diff": "diff", "describe": "diff", "annotate": "text", "print": "text"}


class DisplaySurface(Protocol):
    """What the engine hands finished output to."""

    def show_buffer(self, buffer: OutputBuffer, mode: str | None = None) -> None:
        """Display a whole buffer (the pop-up window)."""
        ...

    def echo(self, text: str) -> None:
        """Show a one-line message."""
        ...

    def show_error(self, text: str) -> None:
        """Show an error message verbatim."""
        ...


class ConsoleDisplay:
    """Render output on a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_buffer(self, buffer: OutputBuffer, mode: str | None = None) -> None:
        self.console.print(Rule(buffer.name, style="dim"))
        lexer = _SYNTAX_MODES.get(mode or "")
        if lexer and lexer != "text":
            self.console.print(Syntax(buffer.text.rstrip("\n"), lexer, word_wrap=True))
        else:
            self.console.print(buffer.text.rstrip("\n"), markup=False, highlight=False)

    def echo(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False)

    def show_error(self, text: str) -> None:
        self.console.print(text.rstrip("\n"), style="red", markup=False, highlight=False)


@dataclass
class RecordingDisplay:
    """Keeps everything it is asked to show. Used in tests and for scripting."""

    shown: list[tuple[str, str, str | None]] = field(default_factory=list)
    echoed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def show_buffer(self, buffer: OutputBuffer, mode: str | None = None) -> None:
        self.shown.append((buffer.name, buffer.text, mode))

    def echo(self, text: str) -> None:
        self.echoed.append(text)

    def show_error(self, text: str) -> None:
        self.errors.append(text)

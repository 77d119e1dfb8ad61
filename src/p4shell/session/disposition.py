"""What to do with a command's output once it has finished."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from p4shell.logging import get_logger
from p4shell.session.buffer import OutputBuffer

if TYPE_CHECKING:
    from p4shell.display import DisplaySurface
    from p4shell.session.state import SessionState

log = get_logger("session.disposition")

PopUpPredicate = Callable[[OutputBuffer], bool]


class Disposition(Enum):
    POP_UP = "pop_up"  # show in a window
    EMPTY = "empty"  # status message, buffer discarded
    ECHO = "echo"  # single line in the echo area, buffer discarded
    KEEP = "keep"  # buffer kept and displayed


def default_pop_up(buffer: OutputBuffer) -> bool:
    """Pop up anything longer than one line."""
    return buffer.line_count() > 1


def pop_up_predicate(mode: str) -> PopUpPredicate:
    """Predicate for the ``display.pop_up`` config setting."""
    if mode == "always":
        return lambda buffer: not buffer.is_empty()
    if mode == "never":
        return lambda buffer: False
    return default_pop_up


def decide(buffer: OutputBuffer, pop_up: PopUpPredicate | None = None) -> Disposition:
    predicate = pop_up or default_pop_up
    if predicate(buffer):
        return Disposition.POP_UP
    if buffer.is_empty():
        return Disposition.EMPTY
    if buffer.line_count() == 1:
        return Disposition.ECHO
    return Disposition.KEEP


def dispose(
    buffer: OutputBuffer,
    display: DisplaySurface,
    process_name: str,
    *,
    pop_up: PopUpPredicate | None = None,
    mode: str | None = None,
) -> Disposition:
    """Hand a successful command's output to the display."""
    disposition = decide(buffer, pop_up)
    log.debug("%s: %s", process_name, disposition.value)

    if disposition is Disposition.EMPTY:
        display.echo(f"{process_name} finished")
        buffer.kill()
    elif disposition is Disposition.ECHO:
        display.echo(buffer.first_line())
        buffer.kill()
    else:
        display.show_buffer(buffer, mode)
    return disposition


def show_tool_error(
    buffer: OutputBuffer,
    display: DisplaySurface,
    process_name: str,
    state: SessionState | None = None,
) -> str:
    """Show p4's error text verbatim.

    An empty buffer gets a generic message plus the active ``p4 set``
    settings, which usually explain why p4 thinks there is no session.

    Returns:
        The text that was shown.
    """
    if buffer.is_empty():
        text = f"{process_name} exited abnormally with no output."
        if state is not None:
            settings = state.dump().rstrip("\n")
            text += "\nCurrent p4 settings:\n" + (settings or "(none)")
    else:
        text = buffer.text
    display.show_error(text)
    return text

"""Output buffer that captures p4 output for one logical command."""

from __future__ import annotations


class OutputBuffer:
    """Append-only text sink with region truncation.

    The retry engine writes each attempt into a fresh region starting at the
    current end and truncates that region when the attempt is discarded, so
    earlier content is never touched.
    """

    def __init__(self, name: str = "*P4*") -> None:
        self.name = name
        self._text = ""
        self.killed = False

    def __len__(self) -> int:
        return len(self._text)

    def __repr__(self) -> str:
        return f"<OutputBuffer {self.name} {len(self._text)} chars>"

    @property
    def text(self) -> str:
        return self._text

    def write(self, text: str) -> None:
        self._text += text

    def region(self, start: int) -> str:
        """Text from ``start`` to the end."""
        return self._text[start:]

    def truncate(self, start: int) -> None:
        """Delete everything from ``start`` to the end."""
        self._text = self._text[:start]

    def clear(self) -> None:
        self._text = ""

    def kill(self) -> None:
        """Discard the buffer (the display layer will not show it)."""
        self._text = ""
        self.killed = True

    def is_empty(self) -> bool:
        return not self._text

    def lines(self) -> list[str]:
        return self._text.splitlines()

    def line_count(self) -> int:
        return len(self.lines())

    def first_line(self) -> str:
        lines = self.lines()
        return lines[0] if lines else ""

"""Tests for output buffers and the disposition policy."""

from __future__ import annotations

from p4shell.session.buffer import OutputBuffer
from p4shell.session.disposition import (
    Disposition,
    decide,
    dispose,
    pop_up_predicate,
    show_tool_error,
)


def buffer_with(text: str) -> OutputBuffer:
    buffer = OutputBuffer("*p4 test*")
    buffer.write(text)
    return buffer


class TestOutputBuffer:
    def test_region_and_truncate(self):
        buffer = buffer_with("first\n")
        start = len(buffer)
        buffer.write("attempt\n")
        assert buffer.region(start) == "attempt\n"
        buffer.truncate(start)
        assert buffer.text == "first\n"

    def test_lines(self):
        buffer = buffer_with("a\nb\n")
        assert buffer.line_count() == 2
        assert buffer.first_line() == "a"
        assert OutputBuffer().first_line() == ""

    def test_kill(self):
        buffer = buffer_with("x\n")
        buffer.kill()
        assert buffer.killed
        assert buffer.is_empty()


class TestDecide:
    def test_default_policy(self):
        assert decide(buffer_with("")) is Disposition.EMPTY
        assert decide(buffer_with("one\n")) is Disposition.ECHO
        assert decide(buffer_with("one\ntwo\n")) is Disposition.POP_UP

    def test_never_pop_up_keeps_long_output(self):
        never = pop_up_predicate("never")
        assert decide(buffer_with("one\ntwo\n"), never) is Disposition.KEEP
        assert decide(buffer_with("one\n"), never) is Disposition.ECHO

    def test_always_pop_up(self):
        always = pop_up_predicate("always")
        assert decide(buffer_with("one\n"), always) is Disposition.POP_UP
        assert decide(buffer_with(""), always) is Disposition.EMPTY


class TestDispose:
    def test_empty_reports_finished(self, display):
        buffer = buffer_with("")
        assert dispose(buffer, display, "p4 revert") is Disposition.EMPTY
        assert display.echoed == ["p4 revert finished"]
        assert buffer.killed

    def test_echo(self, display):
        buffer = buffer_with("//depot/a.c#1 - reverted\n")
        dispose(buffer, display, "p4 revert")
        assert display.echoed == ["//depot/a.c#1 - reverted"]
        assert display.shown == []

    def test_pop_up_passes_mode(self, display):
        buffer = buffer_with("--- a\n+++ b\n")
        dispose(buffer, display, "p4 diff", mode="diff")
        assert display.shown == [("*p4 test*", "--- a\n+++ b\n", "diff")]
        assert not buffer.killed


class TestShowToolError:
    def test_verbatim(self, display):
        text = show_tool_error(buffer_with("oops\n"), display, "p4 sync")
        assert text == "oops\n"
        assert display.errors == ["oops\n"]

    def test_empty_without_state(self, display):
        show_tool_error(buffer_with(""), display, "p4 sync")
        assert display.errors == ["p4 sync exited abnormally with no output."]

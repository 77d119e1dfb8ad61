"""Shared test doubles for p4shell tests."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from p4shell.process.result import InvocationResult
from p4shell.session.interaction import ScriptedInteraction
from p4shell.session.recovery import LoginFlow, TrustFlow
from p4shell.session.retry import RetryEngine
from p4shell.session.state import SessionState

SESSION_EXPIRED = "Your session has expired, please login again.\n"

PASSWORD_UNSET = "Perforce password (P4PASSWD) invalid or unset.\n"

UNTRUSTED = (
    "The authenticity of '10.0.0.5:1666' can't be established,\n"
    "this may be your first attempt to connect to this P4PORT.\n"
    "The fingerprint for the key sent to your client is\n"
    "AB:CD:EF:01:23\n"
    "To allow connection use the 'p4 trust' command.\n"
)

FINGERPRINT_CHANGED = (
    "******* WARNING P4PORT IDENTIFICATION HAS CHANGED! *******\n"
    "It is possible that someone is intercepting your connection\n"
    "to the Perforce P4PORT '10.0.0.5:1666'\n"
    "If this is not a scenario you expected, contact your administrator.\n"
    "The fingerprint for the mismatched key sent to your client is\n"
    "12:34:56:78\n"
    "To allow connection use the 'p4 trust -i 12:34:56:78' command.\n"
)

class PerRootLogin:
    """FakeInvoker handler for two client roots with separate tickets.

    Roots in ``logged_in`` have a valid ticket; ``p4 login`` run in a root
    adds it. ``opened`` fails with an expired session anywhere else.
    """

    def __init__(self, *logged_in: str, limit: int = 50):
        self.logged_in = set(logged_in)
        self.limit = limit
        self.calls = 0

    def __call__(self, args, cwd, input):
        self.calls += 1
        if self.calls > self.limit:
            raise AssertionError(f"p4 called more than {self.limit} times")
        if args == ("login", "-s"):
            if cwd in self.logged_in:
                return 0, "User bob ticket expires in 12 hours.\n"
            return 1, SESSION_EXPIRED
        if args == ("login",):
            self.logged_in.add(cwd)
            return 0, "User bob logged in.\n"
        if args[:1] == ("opened",):
            if cwd in self.logged_in:
                return 0, "//depot/a.c#3 - edit default change (text)\n"
            return 1, SESSION_EXPIRED
        return None


# Handler for FakeInvoker: (args, cwd, input) -> (exit_code, output) or None
Handler = Callable[[tuple[str, ...], str | None, str | None], tuple[int, str] | None]


@dataclass
class Call:
    args: tuple[str, ...]
    cwd: str | None = None
    input: str | None = None


class FakeInvoker:
    """Invoker double that replays canned p4 output.

    Responses are registered per argument prefix; the longest registered
    prefix wins. Each prefix holds a queue and its last response is sticky.
    ``p4 set -q NAME`` answers from ``settings`` unless a response is
    registered. Anything else succeeds with no output.
    """

    def __init__(self, settings: dict[str, str] | None = None, handler: Handler | None = None):
        self.settings = dict(settings or {})
        self.calls: list[Call] = []
        self._handler = handler
        self._responses: dict[tuple[str, ...], list[tuple[int, str]]] = {}

    def on(self, *prefix: str, output: str = "", exit_code: int = 0) -> FakeInvoker:
        self._responses.setdefault(tuple(prefix), []).append((exit_code, output))
        return self

    def commands(self) -> list[tuple[str, ...]]:
        """Argument tuples of every call except settings queries."""
        return [call.args for call in self.calls if call.args[:1] != ("set",)]

    def _respond(self, args: tuple[str, ...], cwd: str | None, input: str | None) -> tuple[int, str]:
        if self._handler is not None:
            handled = self._handler(args, cwd, input)
            if handled is not None:
                return handled
        for length in range(len(args), 0, -1):
            queue = self._responses.get(args[:length])
            if queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        if args[:2] == ("set", "-q") and len(args) > 2:
            value = self.settings.get(args[2])
            return (0, f"{args[2]}={value}\n") if value is not None else (0, "")
        return 0, ""

    def _result(self, arguments: Sequence[str], cwd: str | None, input: str | None) -> InvocationResult:
        args = tuple(arguments)
        self.calls.append(Call(args, cwd, input))
        exit_code, output = self._respond(args, cwd, input)
        return InvocationResult(
            argv=("p4", *args),
            exit_code=exit_code,
            output=output,
            status="ok" if exit_code == 0 else "error",
        )

    def run_sync(self, arguments, cwd=None, input=None, timeout=None) -> InvocationResult:
        return self._result(arguments, cwd, input)

    async def run_async(self, arguments, cwd=None, input=None, timeout=None) -> InvocationResult:
        return self._result(arguments, cwd, input)

    def start(self, arguments, on_exit, cwd=None) -> asyncio.Task[InvocationResult]:
        result = self._result(arguments, cwd, None)

        async def _notify() -> InvocationResult:
            await asyncio.sleep(0)
            on_exit(result)
            return result

        return asyncio.get_running_loop().create_task(_notify())


def make_engine(
    invoker: FakeInvoker,
    interaction: ScriptedInteraction | None = None,
    *,
    password_source: str | None = None,
    secrets_path: Path | None = None,
) -> RetryEngine:
    """RetryEngine over a fake invoker with scripted prompts."""
    interaction = interaction or ScriptedInteraction()
    state = SessionState(invoker, cwd="/ws", environ={})
    login = LoginFlow(
        invoker,
        state,
        interaction,
        password_source=password_source,
        cwd="/ws",
        secrets_path=secrets_path,
    )
    trust = TrustFlow(invoker, interaction, cwd="/ws")
    return RetryEngine(invoker, login, trust, default_cwd="/ws")


def write_fake_p4(path: Path, body: str) -> Path:
    """Write an executable Python script standing in for the p4 binary."""
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(0o755)
    return path

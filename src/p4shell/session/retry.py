"""Synchronous retry engine.

Wraps one p4 invocation so that an expired session or an untrusted server
is resolved on the fly and the same command re-issued. Callers see either
the final attempt's status and output, or a real error.

States::

    START --ok / unrecognised output--> DONE
    START --password invalid / session expired--> NEED_LOGIN --> START
    START --server authenticity unverified--> NEED_TRUST --> START

Declining trust (or a failing ``p4 trust``) raises ServerNotTrusted and ends
the loop. A password that keeps being wrong keeps the login flow prompting;
there is no attempt limit here.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum

from p4shell.errors import ToolReportedError
from p4shell.logging import get_logger
from p4shell.process.protocol import Invoker
from p4shell.session.buffer import OutputBuffer
from p4shell.session.recovery import LoginFlow, TrustFlow
from p4shell.session.signatures import NO_MATCHES_RE, Signature, classify

log = get_logger("session.retry")

# One invocation writing its output into the buffer; returns the exit status
InvocationThunk = Callable[[OutputBuffer], int | None]


class RetryState(Enum):
    START = "start"
    NEED_LOGIN = "need_login"
    NEED_TRUST = "need_trust"
    DONE = "done"


class RetryEngine:
    """Runs invocations with transparent login and trust recovery."""

    def __init__(
        self,
        invoker: Invoker,
        login_flow: LoginFlow,
        trust_flow: TrustFlow,
        *,
        default_cwd: str | None = None,
    ) -> None:
        self._invoker = invoker
        self.login_flow = login_flow
        self.trust_flow = trust_flow
        self._default_cwd = default_cwd
        self.last_trace: list[RetryState] = []

    def run_with_retry(
        self,
        thunk: InvocationThunk,
        buffer: OutputBuffer,
        *,
        auto_login: bool = True,
        cwd: str | None = None,
    ) -> int | None:
        """Call ``thunk`` until its output carries no recoverable signature.

        Each attempt writes into a fresh region at the end of ``buffer``; a
        discarded attempt's region is truncated away, so only the final
        attempt's output remains.

        Args:
            thunk: Performs one invocation, writing output to the buffer.
            buffer: Capture buffer for the logical command.
            auto_login: If False, a login-needed signature is returned as-is.
            cwd: Directory the thunk runs p4 in; login and trust use it too.

        Returns:
            Exit status of the final attempt.
        """
        trace: list[RetryState] = []
        self.last_trace = trace

        while True:
            trace.append(RetryState.START)
            start = len(buffer)
            status = thunk(buffer)
            signature, challenge = classify(buffer.region(start))

            if signature is Signature.NO_SESSION and auto_login:
                trace.append(RetryState.NEED_LOGIN)
                log.debug("Session needs login, retrying after login")
                buffer.truncate(start)
                self.login_flow.login(cwd=cwd)
                continue

            if signature is Signature.UNTRUSTED_SERVER and challenge is not None:
                trace.append(RetryState.NEED_TRUST)
                log.debug("Server %s not trusted yet", challenge.server)
                buffer.truncate(start)
                self.trust_flow.resolve(challenge, cwd=cwd)
                continue

            trace.append(RetryState.DONE)
            return status

    async def run_exclusive(self, step: Callable[[], None]) -> None:
        """Run a login or trust step from async code without blocking the loop."""
        await self.login_flow.interaction.run_exclusive(step)

    def run(
        self,
        arguments: Sequence[str],
        buffer: OutputBuffer,
        *,
        cwd: str | None = None,
        auto_login: bool = True,
    ) -> int | None:
        """Run ``p4 <arguments>`` synchronously with retry into ``buffer``."""
        arguments = list(arguments)
        cwd = cwd or self._default_cwd

        def invoke(target: OutputBuffer) -> int | None:
            result = self._invoker.run_sync(arguments, cwd=cwd)
            target.write(result.output)
            return result.exit_code

        return self.run_with_retry(invoke, buffer, auto_login=auto_login, cwd=cwd)

    def capture(self, arguments: Sequence[str], *, cwd: str | None = None) -> tuple[int | None, str]:
        """Run with retry into a scratch buffer; return (status, output)."""
        buffer = OutputBuffer("*P4 scratch*")
        status = self.run(arguments, buffer, cwd=cwd)
        return status, buffer.text

    def output(
        self,
        arguments: Sequence[str],
        *,
        cwd: str | None = None,
        allow_no_matches: bool = False,
    ) -> str:
        """Output of a successful command.

        Args:
            arguments: p4 arguments.
            cwd: Working directory.
            allow_no_matches: Treat "no such file(s)" style failures as empty output.

        Raises:
            ToolReportedError: On a nonzero exit status.
        """
        status, text = self.capture(arguments, cwd=cwd)
        if status == 0:
            return text
        if allow_no_matches and NO_MATCHES_RE.search(text):
            return ""
        raise ToolReportedError(["p4", *arguments], status, text)

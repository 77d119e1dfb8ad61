"""Login and trust sub-flows used by the retry engine.

Both flows call the invoker directly. They never go through the retry
engine, so a failing login cannot recurse back into itself.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from p4shell.config.secrets import fetch_secret
from p4shell.errors import ServerNotTrusted, ToolReportedError
from p4shell.logging import get_logger
from p4shell.process.protocol import Invoker
from p4shell.session.interaction import UserInteraction
from p4shell.session.signatures import (
    ENTER_PASSWORD_RE,
    PASSWORD_INVALID_RE,
    TrustChallenge,
)
from p4shell.session.state import SessionState

log = get_logger("session.recovery")


class LoginFlow:
    """Obtain a p4 ticket.

    Password sources, in order: an explicit argument, the configured
    ``password_source`` command, P4PASSWD from the environment or
    ``.env.secrets``, and finally the interactive prompt. Only the first
    attempt uses the non-interactive sources. An invalid password re-prompts
    with no attempt limit; the loop ends on success or when the user cancels
    the prompt (LoginCancelled).
    """

    def __init__(
        self,
        invoker: Invoker,
        state: SessionState,
        interaction: UserInteraction,
        *,
        password_source: str | None = None,
        cwd: str | None = None,
        secrets_path: Path | None = None,
    ) -> None:
        self._invoker = invoker
        self._state = state
        self._interaction = interaction
        self._password_source = password_source
        self._cwd = cwd
        self._secrets_path = secrets_path
        self.attempts = 0

    @property
    def interaction(self) -> UserInteraction:
        return self._interaction

    def is_logged_in(self, cwd: str | None = None) -> bool:
        """``p4 login -s``: True when the current ticket is valid."""
        return self._invoker.run_sync(["login", "-s"], cwd=cwd or self._cwd).success

    def login(self, password: str | None = None, *, cwd: str | None = None) -> None:
        """Log in unless a valid ticket already exists.

        ``cwd`` is the directory of the command that needs the login; its
        P4CONFIG decides which server and user the ticket is for.

        Raises:
            LoginCancelled: The user cancelled the password prompt.
            ToolReportedError: p4 login failed for a reason other than a bad password.
        """
        cwd = cwd or self._cwd
        if password is None and self.is_logged_in(cwd):
            log.debug("Ticket still valid, no login needed")
            return

        first_iteration = True
        while True:
            if password is None and first_iteration:
                password = self._scripted_password(cwd)
            if password is None:
                password = self._interaction.read_password(self._prompt(first_iteration, cwd))

            self.attempts += 1
            result = self._invoker.run_sync(["login"], cwd=cwd, input=password + "\n")
            output = ENTER_PASSWORD_RE.sub("", result.output).strip()

            if PASSWORD_INVALID_RE.match(output):
                log.info("Password invalid for %s", self._state.identity(cwd))
                password = None
                first_iteration = False
                continue

            if not result.success:
                raise ToolReportedError(result.argv, result.exit_code, output)

            log.info("Logged in as %s", self._state.identity(cwd))
            self._interaction.message(output or "Logged in.")
            return

    def _prompt(self, first_iteration: bool, cwd: str | None) -> str:
        target = self._state.identity(cwd)
        if first_iteration:
            return f"Enter password for {target}: "
        return f"Password invalid. Enter password for {target}: "

    def _scripted_password(self, cwd: str | None) -> str | None:
        if self._password_source:
            completed = subprocess.run(
                self._password_source,
                shell=True,
                capture_output=True,
                text=True,
                check=False,
            )
            if completed.returncode == 0 and completed.stdout.strip():
                return completed.stdout.strip()
            log.warning(
                "password_source exited %s: %s",
                completed.returncode,
                completed.stderr.strip(),
            )
        return fetch_secret("P4PASSWD", secrets_path=self._secrets_path, start=cwd)


class TrustFlow:
    """Accept a server fingerprint with the user's consent."""

    def __init__(
        self,
        invoker: Invoker,
        interaction: UserInteraction,
        *,
        cwd: str | None = None,
    ) -> None:
        self._invoker = invoker
        self._interaction = interaction
        self._cwd = cwd

    def resolve(self, challenge: TrustChallenge, *, cwd: str | None = None) -> None:
        """Ask the user, then run ``p4 trust``.

        Raises:
            ServerNotTrusted: The user declined, or p4 trust failed.
        """
        server = challenge.server or "the server"
        if challenge.changed:
            question = (
                f"WARNING: the identification of {server} has changed.\n"
                f"The fingerprint for the mismatched key is\n{challenge.fingerprint}\n"
                "Trust the new key?"
            )
        else:
            question = (
                f"The authenticity of {server} can't be established.\n"
                f"The fingerprint for the key is\n{challenge.fingerprint}\n"
                "Trust this server?"
            )

        if not self._interaction.confirm(question):
            raise ServerNotTrusted(
                "Server not trusted", server=challenge.server, fingerprint=challenge.fingerprint
            )

        args = ["trust", "-f", "-y"] if challenge.changed else ["trust", "-y"]
        result = self._invoker.run_sync(args, cwd=cwd or self._cwd)
        if not result.success:
            raise ServerNotTrusted(
                result.output.strip() or "Server not trusted",
                server=challenge.server,
                fingerprint=challenge.fingerprint,
            )
        log.info("Trusted %s (%s)", server, challenge.fingerprint)

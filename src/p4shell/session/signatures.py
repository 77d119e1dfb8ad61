"""Output signatures that the retry engine recognises.

Only two conditions are special: the session needs a login, or the server's
identity has not been trusted yet. Both are detected by looking at the start
of the captured output, whatever the exit status was.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

NO_SESSION_RE = re.compile(
    r"(?:error: )?"
    r"(?:Perforce password \(P4PASSWD\) invalid or unset"
    r"|Your session has expired, please login again)"
)

UNTRUSTED_SERVER_RE = re.compile(
    r"(?:error: )?"
    r"(?:The authenticity of '(?P<server>[^']*)' can't be established"
    r"|\**\s*WARNING P4PORT IDENTIFICATION HAS CHANGED!\s*\**)"
    r".*\n"
    r"(?:.*\n)*?"
    r"The fingerprint for the (?P<mismatched>mismatched )?key sent to your "
    r"(?:client|P4) (?:workspace )?is\n"
    r"(?P<fingerprint>.*)\n"
    r"To allow connection use the 'p4 trust[^']*' command"
)

_PORT_RE = re.compile(r"P4PORT '(?P<server>[^']*)'")

PASSWORD_INVALID_RE = re.compile(r"Password invalid")

# Prompt echoed by `p4 login` before it reads stdin
ENTER_PASSWORD_RE = re.compile(r"^Enter password: ?\n?", re.MULTILINE)

# Messages p4 prints (with a nonzero status) when a query simply matched nothing
NO_MATCHES_RE = re.compile(
    r"(?:- no such file\(s\)\.|- file\(s\) not in client view\.|no such file)"
)


class Signature(Enum):
    """What the start of a command's output says about the session."""

    NONE = "none"
    NO_SESSION = "no_session"
    UNTRUSTED_SERVER = "untrusted_server"


@dataclass(frozen=True)
class TrustChallenge:
    """The server identity p4 asked us to confirm."""

    server: str | None
    fingerprint: str
    changed: bool  # True when a previously trusted key no longer matches


def classify(output: str) -> tuple[Signature, TrustChallenge | None]:
    """Classify captured output.

    Returns:
        The signature and, for an untrusted server, the trust challenge.
    """
    if NO_SESSION_RE.match(output):
        return Signature.NO_SESSION, None

    match = UNTRUSTED_SERVER_RE.match(output)
    if match:
        server = match.group("server")
        if server is None:
            port = _PORT_RE.search(match.group(0))
            server = port.group("server") if port else None
        return Signature.UNTRUSTED_SERVER, TrustChallenge(
            server=server,
            fingerprint=match.group("fingerprint").strip(),
            changed=match.group("mismatched") is not None,
        )

    return Signature.NONE, None

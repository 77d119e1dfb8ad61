"""Session recovery and command execution on top of the process invoker.

- SessionState: cached p4 settings per config root
- LoginFlow / TrustFlow: interactive recovery sub-flows
- RetryEngine: synchronous invocations with transparent recovery
- AsyncCommand: the same recovery for non-blocking commands
- dispose / show_tool_error: output disposition policy
"""

from p4shell.session.async_command import AsyncCommand, CommandState
from p4shell.session.buffer import OutputBuffer
from p4shell.session.disposition import (
    Disposition,
    decide,
    default_pop_up,
    dispose,
    pop_up_predicate,
    show_tool_error,
)
from p4shell.session.interaction import (
    ConsoleInteraction,
    ScriptedInteraction,
    UserInteraction,
)
from p4shell.session.recovery import LoginFlow, TrustFlow
from p4shell.session.retry import RetryEngine, RetryState
from p4shell.session.signatures import Signature, TrustChallenge, classify
from p4shell.session.state import SessionState

__all__ = [
    "AsyncCommand",
    "CommandState",
    "ConsoleInteraction",
    "Disposition",
    "LoginFlow",
    "OutputBuffer",
    "RetryEngine",
    "RetryState",
    "ScriptedInteraction",
    "SessionState",
    "Signature",
    "TrustChallenge",
    "TrustFlow",
    "UserInteraction",
    "classify",
    "decide",
    "default_pop_up",
    "dispose",
    "pop_up_predicate",
    "show_tool_error",
]

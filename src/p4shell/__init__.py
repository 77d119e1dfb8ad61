"""p4shell: Perforce commands with session recovery and cached completion."""

__version__ = "0.1.0"

# Public API
from p4shell.app import P4Shell
from p4shell.commands import COMMANDS, CommandDescriptor, CommandRunner
from p4shell.completion import CATEGORIES, CompletionCache, CompletionCategory
from p4shell.config import Config, load_config
from p4shell.errors import (
    AuthenticationRequired,
    ConfigurationError,
    LoginCancelled,
    P4ShellError,
    ServerNotTrusted,
    ToolReportedError,
    UntrustedServer,
)
from p4shell.process import InvocationRequest, InvocationResult, ProcessInvoker
from p4shell.session import AsyncCommand, OutputBuffer, RetryEngine, SessionState

__all__ = [
    # Main entry point
    "P4Shell",
    # Process
    "InvocationRequest",
    "InvocationResult",
    "ProcessInvoker",
    # Session
    "AsyncCommand",
    "OutputBuffer",
    "RetryEngine",
    "SessionState",
    # Completion
    "CATEGORIES",
    "CompletionCache",
    "CompletionCategory",
    # Commands
    "COMMANDS",
    "CommandDescriptor",
    "CommandRunner",
    # Config
    "Config",
    "load_config",
    # Errors
    "AuthenticationRequired",
    "ConfigurationError",
    "LoginCancelled",
    "P4ShellError",
    "ServerNotTrusted",
    "ToolReportedError",
    "UntrustedServer",
]

"""p4 command table and the generic runner."""

from p4shell.commands.runner import CommandRunner, SyncCommand
from p4shell.commands.table import COMMANDS, CommandDescriptor, get_command

__all__ = [
    "COMMANDS",
    "CommandDescriptor",
    "CommandRunner",
    "SyncCommand",
    "get_command",
]

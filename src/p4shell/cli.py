"""Command-line interface for p4shell."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from p4shell import __version__
from p4shell.config.schema import Config
from p4shell.errors import P4ShellError

if TYPE_CHECKING:
    from p4shell.app import P4Shell


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="p4shell",
        description="Perforce shell with login recovery and cached completion",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: system, user and project cascade)",
    )
    parser.add_argument(
        "--cwd",
        help="Directory to run p4 in (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="mode", help="Operating mode")

    # Run one command
    run_parser = subparsers.add_parser(
        "run",
        help="Run one p4 command with login and trust recovery",
    )
    run_parser.add_argument("command", help="p4 command name (e.g. opened)")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for p4")

    # Completion query
    complete_parser = subparsers.add_parser(
        "complete",
        help="Print completion candidates for a category",
    )
    complete_parser.add_argument("category", help="Category name (e.g. pending, branch)")
    complete_parser.add_argument("query", nargs="?", default="", help="Prefix to complete")
    complete_parser.add_argument(
        "--annotate",
        action="store_true",
        help="Print annotations next to candidates",
    )

    subparsers.add_parser("login", help="Log in to the current server")
    subparsers.add_parser("shell", help="Interactive shell (default)")

    return parser


def _load(parsed: argparse.Namespace) -> Config:
    from p4shell.config.loader import load_config, load_config_file

    if parsed.config:
        config = load_config_file(parsed.config)
    else:
        config = load_config(project_root=parsed.cwd or os.getcwd())
    if parsed.verbose is not None:
        config.logging.verbose = parsed.verbose
    return config


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    from p4shell.logging import setup_logging

    try:
        config = _load(parsed)
        setup_logging(config.logging)
        return asyncio.run(_dispatch(parsed, config))
    except P4ShellError as e:
        print(f"p4shell: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


async def _dispatch(parsed: argparse.Namespace, config: Config) -> int:
    from p4shell.app import P4Shell

    async with P4Shell(config, cwd=parsed.cwd) as shell:
        if parsed.mode == "run":
            return await _run_command(shell, parsed.command, parsed.args)
        if parsed.mode == "complete":
            try:
                candidates = shell.complete(parsed.category, parsed.query)
            except KeyError as e:
                print(f"p4shell: {e.args[0]}", file=sys.stderr)
                return 2
            for candidate in candidates:
                annotation = shell.cache.annotation(candidate) if parsed.annotate else None
                print(f"{candidate}\t{annotation}" if annotation else candidate)
            return 0
        if parsed.mode == "login":
            shell.login()
            return 0

        from p4shell.repl import InteractiveShell

        await InteractiveShell(shell).run()
        await shell.wait()
        return 0


async def _run_command(shell: P4Shell, name: str, args: Sequence[str]) -> int:
    from p4shell.session.async_command import AsyncCommand

    command = shell.run(name, list(args))
    if isinstance(command, AsyncCommand):
        result = await command.run()
        return result.exit_code if result.exit_code is not None else 1
    return 0 if command.success else (command.status or 1)

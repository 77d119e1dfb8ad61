"""CLI entry point for p4shell."""

import sys


def main() -> int:
    """Main entry point for p4shell CLI."""
    from p4shell.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())

"""Subprocess-based p4 invoker.

Runs the p4 executable either synchronously (blocking the caller until it
exits) or as an asyncio subprocess. Every invocation gets the ambient
environment with P4COLORS and P4DIFF forced empty, so callers never have to
parse colour escapes or the output of a user's external diff tool.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence

from p4shell.errors import ConfigurationError
from p4shell.logging import TRACE, get_logger
from p4shell.process.result import InvocationResult

log = get_logger("process")

# Variables forced empty in every child environment
SUPPRESSED_VARIABLES = ("P4COLORS", "P4DIFF")

ArgsTransform = Callable[[list[str]], Sequence[str]]


def build_environment(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a copy of ``base`` (default: os.environ) with overrides cleared."""
    env = dict(os.environ if base is None else base)
    for name in SUPPRESSED_VARIABLES:
        env[name] = ""
    return env


class ProcessInvoker:
    """Run the p4 command-line client.

    All arguments pass through ``modify_args`` exactly once, in
    :meth:`build_argv`, whichever execution path is used.
    """

    def __init__(
        self,
        executable: str | None = "p4",
        *,
        modify_args: ArgsTransform | None = None,
        global_options: Sequence[str] = (),
        default_cwd: str = ".",
        timeout: float | None = None,
        environ: Mapping[str, str] | None = None,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the invoker.

        Args:
            executable: p4 binary name (looked up on PATH) or path.
            modify_args: Global transform applied to every argument list.
            global_options: Options placed before every command (e.g. -C utf8).
            default_cwd: Working directory when a call does not give one.
            timeout: Default timeout in seconds; None waits forever.
            environ: Base environment; os.environ when None.
            encoding: Output decoding.
        """
        self._executable = executable
        self._modify_args = modify_args
        self._global_options = list(global_options)
        self._default_cwd = default_cwd
        self._timeout = timeout
        self._environ = environ
        self._encoding = encoding
        self._resolved: str | None = None

        # Live asyncio subprocesses; never waited on at shutdown
        self._live: set[asyncio.subprocess.Process] = set()
        # Tasks from start(), held until they finish
        self._tasks: set[asyncio.Task[InvocationResult]] = set()

    @property
    def executable_path(self) -> str:
        """Absolute path of the p4 executable.

        Raises:
            ConfigurationError: If the executable is unset, missing or not executable.
        """
        if self._resolved is not None:
            return self._resolved
        if not self._executable:
            raise ConfigurationError("The p4 executable is not set")
        path = shutil.which(self._executable)
        if path is None:
            raise ConfigurationError(
                f"The p4 executable {self._executable!r} was not found or is not executable"
            )
        self._resolved = path
        return path

    @property
    def default_cwd(self) -> str:
        return self._default_cwd

    def build_argv(self, arguments: Sequence[str]) -> list[str]:
        """Executable path plus the transformed arguments."""
        args = [*self._global_options, *arguments]
        if self._modify_args is not None:
            args = [str(a) for a in self._modify_args(args)]
        return [self.executable_path, *args]

    def environment(self) -> dict[str, str]:
        return build_environment(self._environ)

    def run_sync(
        self,
        arguments: Sequence[str],
        cwd: str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Run p4 and block until it exits.

        A nonzero exit is not an error here; the status is returned for the
        caller to interpret.

        Args:
            arguments: p4 arguments (command first).
            cwd: Working directory. Uses default_cwd if None.
            input: Text written to p4's stdin (e.g. a password).
            timeout: Seconds to wait; falls back to the invoker default.

        Returns:
            InvocationResult with merged stdout/stderr.
        """
        argv = self.build_argv(arguments)
        working_dir = cwd or self._default_cwd
        timeout = timeout if timeout is not None else self._timeout
        log.log(TRACE, "run_sync: %s (cwd=%s)", argv, working_dir)

        start_time = time.perf_counter()
        try:
            completed = subprocess.run(
                argv,
                input=input.encode(self._encoding) if input is not None else None,
                stdin=None if input is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=working_dir,
                env=self.environment(),
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            partial = (e.output or b"").decode(self._encoding, errors="replace")
            return InvocationResult(
                argv=tuple(argv),
                exit_code=None,
                output=partial + f"Command timed out after {timeout}s\n",
                status="timeout",
                duration_ms=duration_ms,
            )
        except (OSError, ValueError) as e:
            return self._spawn_failure(argv, e, start_time)

        duration_ms = (time.perf_counter() - start_time) * 1000
        output = completed.stdout.decode(self._encoding, errors="replace")
        log.log(TRACE, "run_sync: %s exited %s", argv[1:2], completed.returncode)
        return InvocationResult(
            argv=tuple(argv),
            exit_code=completed.returncode,
            output=output,
            status="ok" if completed.returncode == 0 else "error",
            duration_ms=duration_ms,
        )

    async def run_async(
        self,
        arguments: Sequence[str],
        cwd: str | None = None,
        input: str | None = None,
        timeout: float | None = None,
    ) -> InvocationResult:
        """Run p4 as an asyncio subprocess and return when it terminates."""
        argv = self.build_argv(arguments)
        working_dir = cwd or self._default_cwd
        timeout = timeout if timeout is not None else self._timeout
        log.log(TRACE, "run_async: %s (cwd=%s)", argv, working_dir)

        start_time = time.perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=working_dir,
                env=self.environment(),
            )
        except (OSError, ValueError) as e:
            return self._spawn_failure(argv, e, start_time)

        self._live.add(process)
        try:
            data = input.encode(self._encoding) if input is not None else None
            try:
                if timeout is not None:
                    stdout_data, _ = await asyncio.wait_for(
                        process.communicate(data), timeout=timeout
                    )
                else:
                    stdout_data, _ = await process.communicate(data)
            except asyncio.TimeoutError:
                duration_ms = (time.perf_counter() - start_time) * 1000
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
                return InvocationResult(
                    argv=tuple(argv),
                    exit_code=None,
                    output=f"Command timed out after {timeout}s\n",
                    status="timeout",
                    duration_ms=duration_ms,
                )
        finally:
            self._live.discard(process)

        duration_ms = (time.perf_counter() - start_time) * 1000
        exit_code = process.returncode
        log.log(TRACE, "run_async: %s exited %s", argv[1:2], exit_code)
        return InvocationResult(
            argv=tuple(argv),
            exit_code=exit_code,
            output=stdout_data.decode(self._encoding, errors="replace"),
            status="ok" if exit_code == 0 else "error",
            duration_ms=duration_ms,
        )

    def start(
        self,
        arguments: Sequence[str],
        on_exit: Callable[[InvocationResult], None],
        cwd: str | None = None,
    ) -> asyncio.Task[InvocationResult]:
        """Spawn p4 and return immediately.

        ``on_exit`` runs on the event loop once the process terminates.
        Must be called from a running event loop.
        """
        # Resolve now so a bad executable fails before anything is scheduled
        self.executable_path

        async def _run_and_notify() -> InvocationResult:
            try:
                result = await self.run_async(arguments, cwd=cwd)
            except Exception as e:
                # on_exit must run or the caller waits forever
                log.warning("p4 %s failed: %s", " ".join(arguments[:1]), e)
                result = InvocationResult(
                    argv=tuple(arguments),
                    exit_code=None,
                    output=f"{e}\n",
                    status="error",
                )
            on_exit(result)
            return result

        task = asyncio.get_running_loop().create_task(_run_and_notify())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def live_processes(self) -> int:
        return len(self._live)

    def close(self) -> None:
        """Kill live subprocesses without waiting on them."""
        for process in list(self._live):
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
        self._live.clear()

    def _spawn_failure(
        self, argv: list[str], error: OSError | ValueError, start_time: float
    ) -> InvocationResult:
        duration_ms = (time.perf_counter() - start_time) * 1000
        if isinstance(error, PermissionError):
            exit_code = 126
        elif isinstance(error, FileNotFoundError):
            exit_code = 127
        else:
            exit_code = 1
        log.warning("Could not start %s: %s", argv[0], error)
        return InvocationResult(
            argv=tuple(argv),
            exit_code=exit_code,
            output=f"Could not run {argv[0]}: {error}\n",
            status="error",
            duration_ms=duration_ms,
        )

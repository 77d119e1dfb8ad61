"""Tests for the p4 process invoker."""

from __future__ import annotations

import asyncio
import json
import os
import sys

import pytest

from p4shell.errors import ConfigurationError
from p4shell.process import InvocationRequest, InvocationResult, ProcessInvoker, build_environment
from tests.utils import write_fake_p4

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake p4 is a shebang script")

FAKE_P4 = """\
import json, os, sys, time
args = sys.argv[1:]
if args[:1] == ["fail"]:
    print("fail: something broke")
    sys.exit(3)
if args[:1] == ["sleep"]:
    time.sleep(float(args[1]))
json.dump({
    "args": args,
    "P4COLORS": os.environ.get("P4COLORS"),
    "P4DIFF": os.environ.get("P4DIFF"),
    "cwd": os.getcwd(),
    "stdin": sys.stdin.read(),
}, sys.stdout)
"""


@pytest.fixture
def fake_p4(tmp_path):
    return write_fake_p4(tmp_path / "p4", FAKE_P4)


@pytest.fixture
def environ():
    return {"PATH": os.environ.get("PATH", ""), "P4COLORS": "red", "P4DIFF": "meld"}


class TestInvocationResult:
    """Tests for InvocationResult dataclass."""

    def test_success_property(self):
        result = InvocationResult(argv=("p4", "info"), exit_code=0, output="x\n", status="ok")
        assert result.success is True

    def test_failure_property(self):
        result = InvocationResult(argv=("p4", "info"), exit_code=1, output="", status="error")
        assert result.success is False

    def test_repr_error(self):
        result = InvocationResult(argv=("p4", "info"), exit_code=1, output="", status="error")
        assert "error" in repr(result)
        assert "exit=1" in repr(result)

    def test_command_line(self):
        result = InvocationResult(argv=("p4", "opened", "-c", "12"), exit_code=0, output="", status="ok")
        assert result.command_line == "p4 opened -c 12"


class TestInvocationRequest:
    def test_argv_and_process_name(self):
        request = InvocationRequest("opened", ("-c", "12"))
        assert request.argv == ["opened", "-c", "12"]
        assert request.process_name == "p4 opened"

    def test_is_immutable(self):
        request = InvocationRequest("opened")
        with pytest.raises(AttributeError):
            request.command = "edit"  # type: ignore[misc]


class TestBuildEnvironment:
    def test_suppressed_variables_are_empty(self):
        env = build_environment({"P4COLORS": "on", "P4DIFF": "vimdiff", "P4PORT": "x:1"})
        assert env["P4COLORS"] == ""
        assert env["P4DIFF"] == ""
        assert env["P4PORT"] == "x:1"

    def test_suppressed_variables_added_when_absent(self):
        env = build_environment({})
        assert env == {"P4COLORS": "", "P4DIFF": ""}


class TestExecutable:
    def test_missing_executable(self, tmp_path):
        invoker = ProcessInvoker(str(tmp_path / "no-such-p4"))
        with pytest.raises(ConfigurationError):
            invoker.build_argv(["info"])

    def test_unset_executable(self):
        invoker = ProcessInvoker(None)
        with pytest.raises(ConfigurationError):
            invoker.run_sync(["info"])

    def test_not_executable(self, tmp_path):
        script = tmp_path / "p4"
        script.write_text("#!/bin/sh\n")
        invoker = ProcessInvoker(str(script))
        with pytest.raises(ConfigurationError):
            invoker.executable_path

    def test_resolves_on_path(self, fake_p4, monkeypatch):
        monkeypatch.setenv("PATH", str(fake_p4.parent))
        invoker = ProcessInvoker("p4")
        assert invoker.executable_path == str(fake_p4)


class TestRunSync:
    """Tests for blocking invocations."""

    def test_arguments_and_environment(self, fake_p4, environ, tmp_path):
        invoker = ProcessInvoker(str(fake_p4), default_cwd=str(tmp_path), environ=environ)
        result = invoker.run_sync(["opened", "-c", "12"])
        assert result.success
        assert result.status == "ok"
        data = json.loads(result.output)
        assert data["args"] == ["opened", "-c", "12"]
        assert data["P4COLORS"] == ""
        assert data["P4DIFF"] == ""
        assert os.path.samefile(data["cwd"], tmp_path)
        assert data["stdin"] == ""

    def test_transform_applied_once(self, fake_p4, environ):
        calls = []

        def add_user(args):
            calls.append(list(args))
            return ["-u", "alice", *args]

        invoker = ProcessInvoker(str(fake_p4), modify_args=add_user, environ=environ)
        result = invoker.run_sync(["info"])
        assert json.loads(result.output)["args"] == ["-u", "alice", "info"]
        assert calls == [["info"]]
        assert result.argv == (str(fake_p4), "-u", "alice", "info")

    def test_global_options_precede_arguments(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), global_options=["-C", "utf8"], environ=environ)
        result = invoker.run_sync(["info"])
        assert json.loads(result.output)["args"] == ["-C", "utf8", "info"]

    def test_input_reaches_stdin(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = invoker.run_sync(["login"], input="secret\n")
        assert json.loads(result.output)["stdin"] == "secret\n"

    def test_nonzero_exit(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = invoker.run_sync(["fail"])
        assert not result.success
        assert result.status == "error"
        assert result.exit_code == 3
        assert "something broke" in result.output

    def test_embedded_null_byte(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = invoker.run_sync(["files", "a\0b"])
        assert result.status == "error"
        assert result.exit_code == 1
        assert "null byte" in result.output

    def test_timeout(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = invoker.run_sync(["sleep", "10"], timeout=0.2)
        assert result.status == "timeout"
        assert result.exit_code is None
        assert "timed out" in result.output


class TestRunAsync:
    """Tests for asyncio invocations."""

    @pytest.mark.asyncio
    async def test_transform_applied_once(self, fake_p4, environ):
        calls = []

        def add_user(args):
            calls.append(list(args))
            return ["-u", "alice", *args]

        invoker = ProcessInvoker(str(fake_p4), modify_args=add_user, environ=environ)
        result = await invoker.run_async(["changes", "-m", "5"])
        data = json.loads(result.output)
        assert data["args"] == ["-u", "alice", "changes", "-m", "5"]
        assert data["P4COLORS"] == ""
        assert data["P4DIFF"] == ""
        assert calls == [["changes", "-m", "5"]]

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = await invoker.run_async(["fail"])
        assert result.exit_code == 3
        assert result.status == "error"

    @pytest.mark.asyncio
    async def test_timeout(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        result = await invoker.run_async(["sleep", "10"], timeout=0.2)
        assert result.status == "timeout"
        assert result.exit_code is None
        assert invoker.live_processes == 0

    @pytest.mark.asyncio
    async def test_start_calls_on_exit(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        seen: list[InvocationResult] = []
        task = invoker.start(["info"], seen.append)
        result = await task
        assert seen == [result]
        assert json.loads(result.output)["args"] == ["info"]

    @pytest.mark.asyncio
    async def test_start_reports_invalid_argument(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        seen: list[InvocationResult] = []
        await asyncio.wait_for(invoker.start(["files", "a\0b"], seen.append), timeout=5)
        assert len(seen) == 1
        assert seen[0].status == "error"
        assert "null byte" in seen[0].output

    @pytest.mark.asyncio
    async def test_start_reports_unexpected_failure(self, fake_p4, environ):
        class BrokenInvoker(ProcessInvoker):
            async def run_async(self, arguments, cwd=None, input=None, timeout=None):
                raise RuntimeError("pipe closed")

        invoker = BrokenInvoker(str(fake_p4), environ=environ)
        seen: list[InvocationResult] = []
        await asyncio.wait_for(invoker.start(["opened"], seen.append), timeout=5)
        assert [(r.status, r.exit_code, r.output) for r in seen] == [("error", None, "pipe closed\n")]

    @pytest.mark.asyncio
    async def test_start_with_missing_executable_fails_immediately(self, tmp_path):
        invoker = ProcessInvoker(str(tmp_path / "missing"))
        with pytest.raises(ConfigurationError):
            invoker.start(["info"], lambda result: None)

    @pytest.mark.asyncio
    async def test_close_kills_live_processes(self, fake_p4, environ):
        invoker = ProcessInvoker(str(fake_p4), environ=environ)
        task = invoker.start(["sleep", "30"], lambda result: None)
        for _ in range(200):
            if invoker.live_processes:
                break
            await asyncio.sleep(0.01)
        assert invoker.live_processes == 1

        invoker.close()
        assert invoker.live_processes == 0
        result = await asyncio.wait_for(task, timeout=5)
        assert not result.success

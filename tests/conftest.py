"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from p4shell.config import clear_secret_cache
from p4shell.display import RecordingDisplay
from p4shell.logging import reset_logging
from p4shell.session.interaction import ScriptedInteraction
from tests.utils import FakeInvoker

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep the developer's p4 and p4shell environment out of tests."""
    for name in (
        "P4PASSWD",
        "P4CONFIG",
        "P4USER",
        "P4PORT",
        "P4CLIENT",
        "P4CHARSET",
        "P4SHELL_LOG",
        "P4SHELL_EXECUTABLE",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_secret_cache()
    yield
    clear_secret_cache()
    reset_logging()


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker(settings={"P4USER": "bob", "P4PORT": "ssl:perforce:1666", "P4CLIENT": "bob-ws"})


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def interaction() -> ScriptedInteraction:
    return ScriptedInteraction()

"""Shared pytest fixtures for bore tunnel tests."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from bore_tunnel.config import SupervisorSettings, TunnelConfig
from bore_tunnel.supervisor import TunnelSupervisor


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process driven by the test.

    Must be created inside a running event loop.
    """

    def __init__(self, pid: int = 12345, exit_on_terminate: bool = True):
        self.pid = pid
        self.returncode: int | None = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.exit_on_terminate = exit_on_terminate
        self.signals: list[str] = []
        self._exited = asyncio.Event()

    def emit(self, text: str, stream: str = "stdout") -> None:
        getattr(self, stream).feed_data(text.encode())

    def emit_soon(self, text: str, stream: str = "stdout") -> None:
        asyncio.get_running_loop().call_soon(self.emit, text, stream)

    def exit(self, returncode: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = returncode
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    def terminate(self) -> None:
        self.signals.append("terminate")
        if self.exit_on_terminate:
            asyncio.get_running_loop().call_soon(self.exit, -15)

    def kill(self) -> None:
        self.signals.append("kill")
        asyncio.get_running_loop().call_soon(self.exit, -9)

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode


@pytest.fixture
def make_process():
    """Factory for FakeProcess; call it from inside an async test."""
    return FakeProcess


@pytest.fixture
def tunnel_config():
    return TunnelConfig(local_port=4020, server_host="bore.pub", secret="s")


@pytest.fixture
def fast_settings():
    """Settings with short timeouts so timeout paths run quickly."""
    return SupervisorSettings(startup_timeout=0.2, stop_timeout=0.1, verify_timeout=0.5)


@pytest.fixture
def make_supervisor(fast_settings):
    """Build a supervisor whose binary lookup is stubbed out."""

    def _make(config, binary="/usr/bin/bore", settings=None, **kwargs):
        supervisor = TunnelSupervisor(config, settings=settings or fast_settings, **kwargs)
        supervisor._locate_binary = AsyncMock(return_value=binary)  # type: ignore[method-assign]
        return supervisor

    return _make


@pytest.fixture
def mock_spawn():
    """Patch asyncio.create_subprocess_exec; set return_value to a FakeProcess."""
    with patch("asyncio.create_subprocess_exec", new_callable=AsyncMock) as mock_create:
        yield mock_create

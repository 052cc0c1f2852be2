"""High-level API for bore tunnels.

This module provides simple functions for the common case of exposing one
local port for the lifetime of a block of code.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from .common.logging import get_logger
from .config import DEFAULT_SERVER_HOST, SupervisorSettings, TunnelConfig
from .models import TunnelInfo
from .supervisor import ExitCallback, TunnelSupervisor

logger = get_logger(__name__)


async def open_tunnel(
    local_port: int,
    server_host: str = DEFAULT_SERVER_HOST,
    *,
    secret: str | None = None,
    settings: SupervisorSettings | None = None,
    on_exit: ExitCallback | None = None,
) -> TunnelSupervisor:
    """Start a tunnel and return its running supervisor.

    The caller owns the returned supervisor and must ``await supervisor.stop()``.

    Example:
        >>> supervisor = await open_tunnel(3000)
        >>> print(f"Your app is live at: {supervisor.public_url}")
        Your app is live at: https://bore.pub:54321
    """
    config = TunnelConfig(local_port=local_port, server_host=server_host, secret=secret)
    supervisor = TunnelSupervisor(config, settings=settings, on_exit=on_exit)
    await supervisor.start()
    return supervisor


@asynccontextmanager
async def managed_tunnel(
    local_port: int,
    server_host: str = DEFAULT_SERVER_HOST,
    *,
    secret: str | None = None,
    settings: SupervisorSettings | None = None,
    on_exit: ExitCallback | None = None,
) -> AsyncIterator[TunnelInfo]:
    """Expose ``local_port`` for the duration of the ``async with`` block.

    Example:
        >>> async with managed_tunnel(3000) as tunnel:
        ...     print(tunnel.public_url)
    """
    supervisor = await open_tunnel(
        local_port, server_host, secret=secret, settings=settings, on_exit=on_exit
    )
    assert supervisor.tunnel_info is not None
    try:
        yield supervisor.tunnel_info
    finally:
        logger.debug("Closing managed tunnel", local_port=local_port)
        await supervisor.stop()

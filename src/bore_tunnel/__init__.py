"""bore tunnel - expose a local port through a supervised bore process."""

from .api import managed_tunnel, open_tunnel
from .binary import BinaryResolver, locate_binary, resolve_target, verify_binary
from .common.exceptions import (
    AbnormalExitError,
    BinaryNotFoundError,
    BoreTunnelError,
    ProcessError,
    SpawnError,
    StartupTimeoutError,
    SupervisorBusyError,
    UnsupportedPlatformError,
)
from .common.logging import get_logger, setup_logging
from .config import SupervisorSettings, TunnelConfig
from .models import SupervisorState, TunnelInfo
from .output import OutputScanner, parse_listening_notice
from .supervisor import TunnelSupervisor

# Setup logging on package initialization
setup_logging(level="INFO")

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "open_tunnel",
    "managed_tunnel",
    # Supervision
    "TunnelSupervisor",
    "TunnelConfig",
    "SupervisorSettings",
    "SupervisorState",
    "TunnelInfo",
    # Binary discovery
    "BinaryResolver",
    "resolve_target",
    "verify_binary",
    "locate_binary",
    # Output parsing
    "OutputScanner",
    "parse_listening_notice",
    # Exceptions
    "BoreTunnelError",
    "BinaryNotFoundError",
    "UnsupportedPlatformError",
    "ProcessError",
    "SpawnError",
    "StartupTimeoutError",
    "AbnormalExitError",
    "SupervisorBusyError",
    # Logging
    "get_logger",
    "setup_logging",
]

"""Common utilities and shared functionality."""

from .exceptions import (
    AbnormalExitError,
    BinaryNotFoundError,
    BoreTunnelError,
    ProcessError,
    SpawnError,
    StartupTimeoutError,
    SupervisorBusyError,
    UnsupportedPlatformError,
)
from .logging import get_logger, setup_logging
from .utils import (
    mask_sensitive_data,
    redact_command,
    sanitize_log_data,
    validate_non_empty_string,
)

__all__ = [
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
    # Utils
    "validate_non_empty_string",
    "mask_sensitive_data",
    "sanitize_log_data",
    "redact_command",
]

"""Custom exceptions for bore tunnel supervision."""


class BoreTunnelError(Exception):
    """Base exception for all bore tunnel errors."""
    pass


class BinaryNotFoundError(BoreTunnelError):
    """Raised when no usable bore binary could be found or verified."""
    pass


class UnsupportedPlatformError(BinaryNotFoundError):
    """Raised when the host platform/architecture has no bore build."""

    def __init__(self, system: str, machine: str):
        self.system = system
        self.machine = machine
        super().__init__(f"Unsupported platform/arch: {system}/{machine}")


class ProcessError(BoreTunnelError):
    """Raised when bore process operations fail."""
    pass


class SpawnError(ProcessError):
    """Raised when the bore process could not be launched."""
    pass


class StartupTimeoutError(ProcessError):
    """Raised when bore does not report a public endpoint in time."""
    pass


class AbnormalExitError(ProcessError):
    """Raised when bore exits before the tunnel became ready."""

    def __init__(self, returncode: int | None):
        self.returncode = returncode
        super().__init__(f"Bore process exited with code {returncode} before the tunnel was ready")


class SupervisorBusyError(BoreTunnelError):
    """Raised when start() is called while a start or stop is in progress."""
    pass

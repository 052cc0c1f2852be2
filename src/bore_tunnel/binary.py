"""Locating and verifying the bore executable."""

import asyncio
import platform
from pathlib import Path

from .common.exceptions import BinaryNotFoundError, UnsupportedPlatformError
from .common.logging import get_logger
from .config import SupervisorSettings

logger = get_logger(__name__)

# platform.machine() spellings for the architectures bore ships
ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

PLATFORM_TARGETS: dict[tuple[str, str], str] = {
    ("linux", "x64"): "linux-x64",
    ("darwin", "x64"): "darwin-x64",
    ("darwin", "arm64"): "darwin-arm64",
}


def get_system_info() -> tuple[str, str]:
    """Return the host ``(system, machine)`` pair, lower-cased."""
    return platform.system().lower(), platform.machine().lower()


def resolve_target(system: str, machine: str) -> str:
    """Map a platform/architecture pair to a bore build target.

    Raises:
        UnsupportedPlatformError: If bore has no build for the pair
    """
    arch = ARCH_ALIASES.get(machine.lower(), machine.lower())
    target = PLATFORM_TARGETS.get((system.lower(), arch))
    if target is None:
        raise UnsupportedPlatformError(system, machine)
    return target


class BinaryResolver:
    """Finds the bore executable to run on this host."""

    def __init__(
        self,
        settings: SupervisorSettings | None = None,
        system: str | None = None,
        machine: str | None = None,
    ):
        self.settings = settings or SupervisorSettings()
        if system is None or machine is None:
            host_system, host_machine = get_system_info()
            system = system or host_system
            machine = machine or host_machine
        self.system = system
        self.machine = machine

    def bundled_path(self, target: str) -> Path:
        """Conventional location of a bundled binary for ``target``."""
        return (
            self.settings.resolved_install_root()
            / "binaries"
            / f"{self.settings.binary_prefix}-{target}"
            / self.settings.executable_name
        )

    def resolve(self) -> str:
        """Return a path to the bundled binary, or the bare command name.

        A bare name is left to PATH resolution at spawn time and may still
        fail there.

        Raises:
            UnsupportedPlatformError: If the platform has no bore build
        """
        if self.settings.binary_path:
            return self.settings.binary_path

        try:
            target = resolve_target(self.system, self.machine)
        except UnsupportedPlatformError:
            logger.warning(
                "Unsupported platform/arch", system=self.system, machine=self.machine
            )
            raise

        binary_path = self.bundled_path(target)
        if binary_path.is_file():
            logger.debug("Found bundled bore binary", binary_path=str(binary_path))
            return str(binary_path)

        logger.debug(
            "Bundled bore binary not found, falling back to PATH",
            expected_path=str(binary_path),
        )
        return self.settings.executable_name


async def verify_binary(binary: str, timeout: float = 2.0) -> bool:
    """Check that ``binary --version`` exits cleanly within ``timeout``.

    A check that hangs is killed and reaped before returning.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            binary,
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.debug("Bore self-check could not start", binary=binary, error=str(e))
        return False

    try:
        returncode = await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("Bore self-check timed out", binary=binary, timeout=timeout)
        return False
    finally:
        # Hung or abandoned check
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await asyncio.shield(process.wait())

    if returncode != 0:
        logger.debug("Bore self-check failed", binary=binary, returncode=returncode)
        return False

    logger.debug("Bore binary verified", binary=binary)
    return True


async def locate_binary(resolver: BinaryResolver, timeout: float = 2.0) -> str:
    """Resolve and verify the bore binary.

    Raises:
        UnsupportedPlatformError: If the platform has no bore build
        BinaryNotFoundError: If the resolved binary does not run
    """
    binary = resolver.resolve()
    if not await verify_binary(binary, timeout=timeout):
        raise BinaryNotFoundError(
            f"bore binary not found (tried {binary!r}). Please install bore "
            "or place it under binaries/"
        )
    return binary

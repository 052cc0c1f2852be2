"""Supervision of a single bore tunnel process.

The supervisor runs entirely on the asyncio event loop: reading output,
noticing the process exit and firing timeouts are all events handled on
the loop, so state is never touched from another thread and no locks are
needed. Callers suspend only while awaiting :meth:`TunnelSupervisor.start`
or :meth:`TunnelSupervisor.stop`.

State machine::

    IDLE --start()--> STARTING --notice--> RUNNING --stop()--> STOPPING --> IDLE
                         |  timeout / spawn error / exit           ^
                         +-----------------------------------------+--> IDLE
"""

import asyncio
from collections.abc import Callable
from types import TracebackType
from typing import Any

from .binary import BinaryResolver, locate_binary
from .common.exceptions import (
    AbnormalExitError,
    ProcessError,
    SpawnError,
    StartupTimeoutError,
    SupervisorBusyError,
)
from .common.logging import get_logger
from .common.utils import redact_command
from .config import SupervisorSettings, TunnelConfig
from .models import SupervisorState, TunnelInfo
from .output import Endpoint, OutputScanner

logger = get_logger(__name__)

ExitCallback = Callable[[int | None], None]

# How long to let output readers drain after the process has exited
READER_DRAIN_TIMEOUT = 1.0


class TunnelSupervisor:
    """Starts, watches and stops one ``bore local`` process."""

    def __init__(
        self,
        config: TunnelConfig,
        settings: SupervisorSettings | None = None,
        on_exit: ExitCallback | None = None,
        resolver: BinaryResolver | None = None,
    ):
        """Initialize the supervisor.

        Args:
            config: Local port and bore server to tunnel through
            settings: Timeouts and binary discovery settings
            on_exit: Called with the return code whenever bore exits
                without having been asked to stop
            resolver: Binary resolver, defaults to one built from settings
        """
        self.config = config
        self.settings = settings or SupervisorSettings()
        self._resolver = resolver or BinaryResolver(self.settings)
        self._on_exit = on_exit

        self._state = SupervisorState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._tunnel_info: TunnelInfo | None = None
        self._ready: asyncio.Future[TunnelInfo] | None = None
        self._exited: asyncio.Event | None = None
        self._tasks: list[asyncio.Task[Any]] = []

        logger.debug("TunnelSupervisor initialized", **self.config.to_log_dict())

    # ------------------------------------------------------------------
    # Accessors

    @property
    def state(self) -> SupervisorState:
        return self._state

    def is_running(self) -> bool:
        """Check if the tunnel is up and has a public endpoint."""
        return self._state is SupervisorState.RUNNING

    @property
    def tunnel_info(self) -> TunnelInfo | None:
        return self._tunnel_info

    @property
    def public_url(self) -> str | None:
        return self._tunnel_info.public_url if self._tunnel_info else None

    @property
    def public_port(self) -> int | None:
        return self._tunnel_info.public_port if self._tunnel_info else None

    @property
    def pid(self) -> int | None:
        """Get process ID of the bore child, if any."""
        return self._process.pid if self._process else None

    def status(self) -> dict[str, Any]:
        """Get a snapshot of the supervisor state, safe to log or serve."""
        return {
            "state": self._state.value,
            "running": self.is_running(),
            "pid": self.pid,
            "public_url": self.public_url,
            "public_port": self.public_port,
            "config": self.config.to_log_dict(),
        }

    # ------------------------------------------------------------------
    # Lifecycle

    async def _locate_binary(self) -> str:
        return await locate_binary(self._resolver, timeout=self.settings.verify_timeout)

    async def start(self) -> TunnelInfo:
        """Start bore and wait for the public endpoint.

        Returns:
            The public endpoint bore reported

        Raises:
            BinaryNotFoundError: If no runnable bore binary was found
            SpawnError: If the bore process could not be launched
            StartupTimeoutError: If bore did not report an endpoint in time
            AbnormalExitError: If bore exited before reporting an endpoint
            SupervisorBusyError: If a start or stop is already in progress
        """
        if self._state is SupervisorState.RUNNING and self._tunnel_info is not None:
            logger.warning(
                "Bore tunnel is already running", public_url=self._tunnel_info.public_url
            )
            return self._tunnel_info

        if self._state is not SupervisorState.IDLE:
            raise SupervisorBusyError(
                f"Cannot start bore tunnel while it is {self._state.value}"
            )

        # Claim STARTING before the first await so a concurrent start() is refused
        self._state = SupervisorState.STARTING
        try:
            binary = await self._locate_binary()
        except BaseException:
            self._state = SupervisorState.IDLE
            raise

        args = self.config.to_command_args()
        logger.info(
            "Starting bore tunnel",
            local_port=self.config.local_port,
            server_host=self.config.server_host,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self._state = SupervisorState.IDLE
            logger.error("Failed to start bore process", binary=binary, error=str(e))
            raise SpawnError(f"Failed to start bore: {e}") from e
        except BaseException:
            self._state = SupervisorState.IDLE
            raise

        logger.debug(
            "Bore process spawned",
            pid=process.pid,
            command=redact_command([binary, *args]),
        )

        ready = self._attach(process)
        timeout = self.settings.startup_timeout
        try:
            return await asyncio.wait_for(asyncio.shield(ready), timeout=timeout)
        except asyncio.TimeoutError:
            ready.cancel()
            logger.error("Bore startup timed out", timeout=timeout, pid=process.pid)
            if process is self._process:
                await self._shutdown(process)
            raise StartupTimeoutError(
                f"Bore startup timeout - tunnel failed to start within {timeout:g} seconds"
            ) from None
        except asyncio.CancelledError:
            ready.cancel()
            if process is self._process and self._state is not SupervisorState.STOPPING:
                await asyncio.shield(self._shutdown(process))
            raise

    async def stop(self) -> None:
        """Stop bore, escalating to a kill after the grace window.

        A no-op when no bore process is running.
        """
        process = self._process
        if process is None:
            return

        if self._state is SupervisorState.STOPPING:
            assert self._exited is not None
            await self._exited.wait()
            return

        logger.info("Stopping bore tunnel", pid=process.pid)
        await self._shutdown(process)

    async def _shutdown(self, process: asyncio.subprocess.Process) -> None:
        """Terminate ``process`` and wait until it has exited."""
        exited = self._exited
        assert exited is not None

        self._state = SupervisorState.STOPPING
        self._tunnel_info = None
        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(
                ProcessError("Bore tunnel was stopped before it became ready")
            )

        self._signal(process.terminate)
        try:
            await asyncio.wait_for(exited.wait(), timeout=self.settings.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Bore process did not exit gracefully, forcing kill", pid=process.pid
            )
            self._signal(process.kill)
            await exited.wait()

    @staticmethod
    def _signal(send: Callable[[], None]) -> None:
        try:
            send()
        except ProcessLookupError:
            # Already gone, the exit watcher settles the state
            pass

    # ------------------------------------------------------------------
    # Process events

    def _attach(self, process: asyncio.subprocess.Process) -> "asyncio.Future[TunnelInfo]":
        """Take ownership of ``process`` and start consuming its events."""
        loop = asyncio.get_running_loop()
        self._process = process
        self._ready = loop.create_future()
        self._exited = asyncio.Event()

        readers = [
            asyncio.create_task(self._consume(process, process.stdout, "stdout")),
            asyncio.create_task(self._consume(process, process.stderr, "stderr")),
        ]
        self._tasks = [*readers, asyncio.create_task(self._watch(process, readers))]
        return self._ready

    async def _consume(
        self,
        process: asyncio.subprocess.Process,
        stream: asyncio.StreamReader | None,
        name: str,
    ) -> None:
        if stream is None:
            return

        scanner = OutputScanner(name)
        while True:
            chunk = await stream.read(self.settings.read_chunk_size)
            if not chunk:
                break
            self._handle_output(process, name, *scanner.feed(chunk))
        self._handle_output(process, name, *scanner.flush())

    def _handle_output(
        self,
        process: asyncio.subprocess.Process,
        stream_name: str,
        lines: list[str],
        endpoint: Endpoint | None,
    ) -> None:
        for line in lines:
            logger.debug("Bore output", stream=stream_name, line=line)

        if endpoint is None or process is not self._process:
            return
        # Only the first notice counts
        if self._state is not SupervisorState.STARTING:
            return
        if self._ready is None or self._ready.done():
            return

        self._tunnel_info = TunnelInfo.from_endpoint(endpoint.host, endpoint.port)
        self._state = SupervisorState.RUNNING
        logger.info(
            "Bore tunnel started",
            public_url=self._tunnel_info.public_url,
            local_port=self.config.local_port,
        )
        self._ready.set_result(self._tunnel_info)

    async def _watch(
        self,
        process: asyncio.subprocess.Process,
        readers: list["asyncio.Task[None]"],
    ) -> None:
        returncode = await process.wait()
        await asyncio.wait(readers, timeout=READER_DRAIN_TIMEOUT)
        self._handle_exit(process, returncode)

    def _handle_exit(
        self, process: asyncio.subprocess.Process, returncode: int | None
    ) -> None:
        if process is not self._process:
            return

        requested = self._state is SupervisorState.STOPPING
        self._process = None
        self._tunnel_info = None
        self._state = SupervisorState.IDLE
        self._tasks = []

        if self._ready is not None and not self._ready.done():
            self._ready.set_exception(AbnormalExitError(returncode))
        if self._exited is not None:
            self._exited.set()

        if requested:
            logger.info("Bore tunnel stopped", returncode=returncode)
            return

        if returncode is not None and returncode != 0:
            logger.error("Bore process exited with code", returncode=returncode)
        else:
            logger.warning("Bore process exited", returncode=returncode)
        self._notify_exit(returncode)

    def _notify_exit(self, returncode: int | None) -> None:
        if self._on_exit is None:
            return
        try:
            self._on_exit(returncode)
        except Exception as e:
            logger.error("Exit callback failed", error=str(e))

    # ------------------------------------------------------------------
    # Context manager

    async def __aenter__(self) -> "TunnelSupervisor":
        """Async context entry - start the tunnel."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context exit - stop the tunnel."""
        await self.stop()

from __future__ import annotations

import asyncio
import signal
from typing import Optional

from src.entities.model import ModelDescriptor
from src.entities.server import ReadinessState
from src.frameworks_drivers.readiness_matcher import get_readiness_matcher
from src.frameworks_drivers.server_process import ServerProcess
from src.shared.errors import ProcessStartupError
from src.shared.logger import Logger
from src.shared.protocols import NotifierProtocol, ReadinessMatcherProtocol

logger = Logger.get(__name__)


class ProcessSupervisor:
    """
    Owns the single llama-server subprocess: spawning it, reading its output
    streams for readiness and fatal lines, and terminating it.

    The supervisor is the only writer of the readiness state. Concurrent calls
    to start() share one in-flight spawn.
    """

    READER_DRAIN_TIMEOUT = 0.5

    def __init__(
        self,
        matcher: Optional[ReadinessMatcherProtocol] = None,
        notifier: Optional[NotifierProtocol] = None,
        startup_grace: float = 2.0,
        stop_timeout: float = 2.0,
    ):
        self.matcher = matcher or get_readiness_matcher("llama.cpp")
        self.notifier = notifier
        self.startup_grace = startup_grace
        self.stop_timeout = stop_timeout
        self.last_error: Optional[str] = None
        self._server: Optional[ServerProcess] = None
        self._state = ReadinessState.NOT_LOADED
        self._start_task: Optional[asyncio.Task] = None
        self._settled = asyncio.Event()
        # Bumped by every start and stop; the older call must not write state.
        self._generation = 0

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def server(self) -> Optional[ServerProcess]:
        return self._server

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_alive

    @property
    def failed(self) -> bool:
        """True when a fatal line or an exit was seen before readiness."""
        return self.last_error is not None and self._state != ReadinessState.READY

    def recent_output(self, limit: int = 50) -> str:
        return self._server.recent_output(limit) if self._server else ""

    async def start(self, descriptor: ModelDescriptor) -> None:
        """
        Spawn the server unless one is already live or being started.

        Returns once the server is ready or the startup grace period has passed
        without an exit or a fatal line; the state is then READY or LOADING.

        Raises:
            ProcessStartupError: The binary could not be spawned, or the process
                exited or reported a fatal error during the grace period.
        """
        if self._start_task is None:
            if self.is_running:
                logger.debug("Server already running")
                return
            self._start_task = asyncio.create_task(self._start(descriptor))
            self._start_task.add_done_callback(self._clear_start_task)
        else:
            logger.debug("Server start already in progress, waiting for it")
        await asyncio.shield(self._start_task)

    def _clear_start_task(self, task: asyncio.Task) -> None:
        if self._start_task is task:
            self._start_task = None

    @staticmethod
    def _prepare_cmd_params(descriptor: ModelDescriptor) -> list[str]:
        return [
            descriptor.binary_path,
            "-m",
            descriptor.model_path,
            "--port",
            str(descriptor.port),
            "--ctx-size",
            str(descriptor.ctx_size),
            "--n-gpu-layers",
            str(descriptor.gpu_layers),
            "--parallel",
            str(descriptor.parallel),
        ]

    async def _start(self, descriptor: ModelDescriptor) -> None:
        cmd = self._prepare_cmd_params(descriptor)
        logger.info(f"Starting llama-server: {' '.join(cmd)}")
        self._generation += 1
        generation = self._generation
        self.last_error = None
        self._settled = asyncio.Event()
        self._state = ReadinessState.LOADING
        self._notify("Loading AI model...")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            if generation == self._generation:
                self._state = ReadinessState.NOT_LOADED
            logger.error(f"Failed to spawn llama-server: {e}")
            self._notify("Failed to start llama server - check the binary path")
            raise ProcessStartupError(f"Failed to spawn {descriptor.binary_path}: {e}", str(e)) from e

        if generation != self._generation:
            logger.info(f"Stop requested while spawning, terminating llama-server (pid {process.pid})")
            await self._terminate_process(process, signal.SIGTERM, self.stop_timeout)
            raise ProcessStartupError("Server was stopped during startup")

        server = ServerProcess(process=process)
        self._server = server
        server.tasks = [
            asyncio.create_task(self._read_stream(server, process.stdout, server.stdout_lines)),
            asyncio.create_task(self._read_stream(server, process.stderr, server.stderr_lines)),
            asyncio.create_task(self._watch_exit(server)),
        ]
        logger.info(f"Started llama-server with pid {server.pid} on port {descriptor.port}")

        try:
            await asyncio.wait_for(self._settled.wait(), timeout=self.startup_grace)
        except asyncio.TimeoutError:
            logger.info(f"llama-server still loading after {self.startup_grace}s grace period")
            return

        if self._state == ReadinessState.READY:
            return
        if self.last_error is None:
            raise ProcessStartupError("Server was stopped during startup")

        await self._drain_readers(server)
        diagnostic = server.recent_output() or (self.last_error or "")
        message = self.last_error or f"Server process exited during startup with code {server.exit_code}"
        await self.stop()
        self._notify("Failed to start llama server")
        raise ProcessStartupError(f"Server startup error: {message}", diagnostic)

    async def _read_stream(self, server: ServerProcess, stream: Optional[asyncio.StreamReader], buffer) -> None:
        if stream is None:
            return
        while True:
            raw = await stream.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            buffer.append(line)
            # Detached servers keep draining their pipes but no longer drive state.
            if server.listening and server is self._server:
                self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        if self.matcher.is_ready_line(line):
            logger.debug(f"[llama-server] {line}")
            if self._state == ReadinessState.LOADING:
                self._state = ReadinessState.READY
                logger.info("llama-server is ready")
                self._notify("Llama AI server started")
                self._settled.set()
            return

        if self.matcher.is_fatal_line(line):
            logger.error(f"[llama-server] {line}")
            if self._state == ReadinessState.LOADING and self.last_error is None:
                self.last_error = line
                self._settled.set()
            return

        logger.debug(f"[llama-server] {line}")

    async def _watch_exit(self, server: ServerProcess) -> None:
        code = await server.process.wait()
        if not server.listening or server is not self._server:
            return
        server.listening = False
        logger.warning(f"llama-server exited unexpectedly with code {code}")
        if self.last_error is None and self._state != ReadinessState.READY:
            self.last_error = f"Server process exited with code {code}"
        self._server = None
        self._state = ReadinessState.NOT_LOADED
        self._settled.set()

    async def _drain_readers(self, server: ServerProcess) -> None:
        readers = [task for task in server.tasks[:2] if not task.done()]
        if readers:
            await asyncio.wait(readers, timeout=self.READER_DRAIN_TIMEOUT)

    @staticmethod
    async def _terminate_process(process: asyncio.subprocess.Process, sig: int, timeout: float) -> None:
        """Signal a subprocess and wait for it, killing it if the timeout expires."""
        try:
            process.send_signal(sig)
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"llama-server (pid {process.pid}) did not exit after {timeout}s, killing it")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def stop(
        self,
        sig: int = signal.SIGTERM,
        timeout: Optional[float] = None,
        final_state: ReadinessState = ReadinessState.NOT_LOADED,
    ) -> None:
        """
        Stop the server. A no-op when nothing is running. Listeners are
        detached before signaling and the state is `final_state` afterwards,
        unless a newer start() began while this stop was waiting.

        A spawn still in flight is waited for and its process terminated.
        """
        self._generation += 1
        generation = self._generation

        start_task = self._start_task
        if (
            self._server is None
            and start_task is not None
            and not start_task.done()
            and start_task is not asyncio.current_task()
        ):
            logger.info("Stop requested during startup, waiting for the spawn to finish")
            await asyncio.wait([start_task])

        server = self._server
        if server is None:
            if generation == self._generation:
                self._state = final_state
            return

        server.listening = False
        self._server = None
        self._settled.set()
        try:
            if server.is_alive:
                logger.info(f"Stopping llama-server (pid {server.pid})")
                stop_timeout = timeout if timeout is not None else self.stop_timeout
                await self._terminate_process(server.process, sig, stop_timeout)
        finally:
            for task in server.tasks:
                if task is not asyncio.current_task():
                    task.cancel()
            if generation == self._generation:
                self._state = final_state

    def _notify(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(message)

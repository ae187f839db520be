import asyncio
import contextlib
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from autocdn.core.asyncio_utils import cancel_task, create_logged_task
from autocdn.core.commands import Channel, CommandMessage, EngineEvent
from autocdn.core.errors import BackendFailure
from autocdn.core.logging_utils import get_module_logger


class EngineState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    CRASHED = "crashed"


EventCallback = Callable[[Channel, object], None]

# Longest stdout/stderr line accepted from the engine; longer lines are dropped
STREAM_LIMIT = 1024 * 1024


class EngineProcess:
    """Runs the external speed-test engine for one probe and relays its events.

    The engine speaks newline-delimited JSON: events on stdout, commands on
    stdin. Plain stdout lines are relayed as log events.
    """

    def __init__(
        self,
        command: Sequence[str],
        on_event: EventCallback,
        *,
        cwd: Optional[Path] = None,
        stop_grace_seconds: float = 5.0,
        stream_limit: int = STREAM_LIMIT,
    ):
        self.command = list(command)
        self.on_event = on_event
        self.cwd = Path(cwd) if cwd is not None else None
        self.stop_grace_seconds = stop_grace_seconds
        self.stream_limit = stream_limit

        self.logger = get_module_logger("EngineProcess")

        self.process: Optional[asyncio.subprocess.Process] = None
        self.state = EngineState.STOPPED
        self.returncode: Optional[int] = None

        self.stdout_task: Optional[asyncio.Task] = None
        self.stderr_task: Optional[asyncio.Task] = None
        self.stdin_task: Optional[asyncio.Task] = None

        self.command_queue: asyncio.Queue = asyncio.Queue()
        self.shutdown_event = asyncio.Event()
        self._stop_requested = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def run(self, args: Sequence[str]) -> int:
        """Launch the engine with ``args`` and wait for it to exit.

        Returns the engine's exit code. Raises :class:`BackendFailure` if the
        engine cannot be launched at all.
        """
        if self.process is not None:
            raise BackendFailure("engine already running")

        cmd = self.command + list(args)
        self.logger.info("Starting engine: %s", " ".join(cmd))
        self.state = EngineState.STARTING

        try:
            self.process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd) if self.cwd else None,
                env=os.environ.copy(),
                limit=self.stream_limit,
            )
        except OSError as e:
            self.logger.error("Failed to start engine: %s", e, exc_info=True)
            self.state = EngineState.CRASHED
            raise BackendFailure(f"failed to start engine: {e}") from e

        self.state = EngineState.RUNNING
        self.logger.info("Engine started with PID: %d", self.process.pid)

        self.stdout_task = create_logged_task(self._stdout_reader(), logger=self.logger, context="EngineProcess.stdout")
        self.stderr_task = create_logged_task(self._stderr_reader(), logger=self.logger, context="EngineProcess.stderr")
        self.stdin_task = create_logged_task(self._stdin_writer(), logger=self.logger, context="EngineProcess.stdin")

        if self._stop_requested:
            # stop arrived while the process was being spawned
            await self._begin_stop(self.process)

        try:
            returncode = await self.process.wait()
            # drain whatever the engine printed before exiting
            await asyncio.gather(self.stdout_task, self.stderr_task, return_exceptions=True)
        except asyncio.CancelledError:
            self.logger.warning("Engine run cancelled, killing PID %d", self.process.pid)
            with contextlib.suppress(ProcessLookupError):
                self.process.kill()
            await cancel_task(self.stdout_task)
            await cancel_task(self.stderr_task)
            raise
        finally:
            self.shutdown_event.set()
            await cancel_task(self.stdin_task)
            self.returncode = self.process.returncode
            self.process = None

        if returncode == 0 or self._stop_requested:
            self.state = EngineState.STOPPED
            self.logger.info("Engine exited with code %d", returncode)
        else:
            self.state = EngineState.CRASHED
            self.logger.error("Engine crashed with exit code: %d", returncode)
        return returncode

    async def _stdout_reader(self) -> None:
        if not self.process or not self.process.stdout:
            return

        while True:
            try:
                line = await self.process.stdout.readline()
            except ValueError as e:
                self.logger.warning("Dropped oversized engine stdout line: %s", e)
                continue
            if not line:
                break

            line_str = line.decode(errors="replace").strip()
            if not line_str:
                continue

            event = EngineEvent(line_str)
            if event.is_valid():
                self._dispatch(event.channel, event.payload())
            else:
                self._dispatch(Channel.LOG, line_str)

    async def _stderr_reader(self) -> None:
        if not self.process or not self.process.stderr:
            return

        while True:
            try:
                line = await self.process.stderr.readline()
            except ValueError as e:
                self.logger.warning("Dropped oversized engine stderr line: %s", e)
                continue
            if not line:
                break

            line_str = line.decode(errors="replace").strip()
            if line_str:
                self.logger.warning("Engine stderr: %s", line_str)

    async def _stdin_writer(self) -> None:
        if not self.process or not self.process.stdin:
            return

        while not self.shutdown_event.is_set():
            command = await self.command_queue.get()
            try:
                self.process.stdin.write(command.encode())
                await self.process.stdin.drain()
                self.logger.debug("Sent command: %s", command.strip())
            except (BrokenPipeError, ConnectionResetError) as e:
                self.logger.debug("Engine stdin closed: %s", e)
                break

    def _dispatch(self, channel: Channel, payload: object) -> None:
        try:
            self.on_event(channel, payload)
        except Exception as e:
            self.logger.error("Event relay failed for %s: %s", channel.value, e, exc_info=True)

    async def send_command(self, command: str) -> None:
        if not self.is_running():
            self.logger.warning("Cannot send command - engine not running")
            return

        await self.command_queue.put(command)

    async def request_stop(self) -> None:
        """Ask the engine to stop; terminate, then kill, if it does not comply."""
        if self._stop_requested:
            self.logger.debug("Stop already requested")
            return
        self._stop_requested = True

        process = self.process
        if process is None or process.returncode is not None:
            # run() picks the request up once the process exists
            return
        await self._begin_stop(process)

    async def _begin_stop(self, process: asyncio.subprocess.Process) -> None:
        self.logger.info("Stopping engine (PID %d)", process.pid)
        self.state = EngineState.STOPPING
        await self.send_command(CommandMessage.stop())
        create_logged_task(self._enforce_stop(process), logger=self.logger, context="EngineProcess.enforce_stop")

    async def _enforce_stop(self, process: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_grace_seconds)
            self.logger.info("Engine stopped gracefully")
            return
        except asyncio.TimeoutError:
            self.logger.warning("Engine did not exit gracefully, terminating...")

        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except asyncio.TimeoutError:
            self.logger.error("Engine did not terminate, killing...")
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()


__all__ = ["EngineProcess", "EngineState"]

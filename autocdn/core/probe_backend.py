"""
Probe Backend - the command boundary implementation.

Owns the configuration repository, the event bus and, while a probe runs,
the engine process. Every command is a coroutine; events are emitted on
the bus as the run progresses.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from autocdn.core.commands import Channel, RunMode
from autocdn.core.config_models import ConfigurationRecord, TestType
from autocdn.core.config_repository import YamlConfigRepository
from autocdn.core.engine_process import EngineProcess
from autocdn.core.errors import BackendFailure, ControlError
from autocdn.core.event_bus import EventBus
from autocdn.core.logging_utils import get_module_logger


class ProbeBackend:

    def __init__(
        self,
        repository: YamlConfigRepository,
        engine_command: Sequence[str],
        *,
        bus: Optional[EventBus] = None,
        stop_grace_seconds: float = 5.0,
    ):
        self.repository = repository
        self.engine_command = list(engine_command)
        self.bus = bus or EventBus()
        self.stop_grace_seconds = stop_grace_seconds
        self.logger = get_module_logger("ProbeBackend")

        self.engine: Optional[EngineProcess] = None
        self.cancel_event = asyncio.Event()
        self._run_lock = asyncio.Lock()

    @property
    def events(self) -> EventBus:
        return self.bus

    @property
    def config_dir(self) -> Path:
        return self.repository.config_dir

    # =========================================================================
    # Configuration commands
    # =========================================================================

    async def list_configs(self) -> List[str]:
        return await self.repository.list_names()

    async def load_config(self, name: str) -> ConfigurationRecord:
        return await self.repository.load(name)

    async def save_config(self, name: str, record: ConfigurationRecord) -> None:
        self.bus.log(f"Saving config [{name}]...")
        await self.repository.save(name, record)

    async def create_config(self, name: str) -> None:
        await self.repository.create(name)

    async def delete_config(self, name: str) -> None:
        self.bus.log(f"Deleting config [{name}]...")
        await self.repository.delete(name)

    # =========================================================================
    # Probe commands
    # =========================================================================

    def is_probe_running(self) -> bool:
        return self._run_lock.locked()

    async def start_probe(self, name: str, mode: RunMode) -> None:
        """Run one probe to completion.

        Settles normally when the run finishes, is stopped, or ends with a
        condition already reported on the ``error`` channel. Raises
        :class:`BackendFailure` when the run terminates abnormally.
        """
        mode = RunMode.parse(mode)
        if self._run_lock.locked():
            raise BackendFailure("a probe is already running")

        async with self._run_lock:
            try:
                await self._start_probe(name, mode)
            finally:
                # a stop issued before this run began applies to this run only
                self.cancel_event.clear()

    async def _start_probe(self, name: str, mode: RunMode) -> None:
        try:
            config = await self.repository.load(name)
        except ControlError as e:
            raise BackendFailure(f"load config failed: {e}") from e

        speed_test = config.speed_test

        self.bus.log(
            f"Delay filter: {speed_test.min_delay} ~ {speed_test.max_delay} ms, "
            f"max loss: {speed_test.max_loss_rate:.2f}"
        )

        test_type = speed_test.test_type
        ip_file = speed_test.candidate_file()
        self.bus.log(f"Mode: {test_type.value}, File: {ip_file}")

        ip_path = Path(ip_file)
        if not ip_path.is_absolute():
            ip_path = self.config_dir / ip_path
        if not await asyncio.to_thread(ip_path.is_file):
            self.bus.error(f"IP file not found: {ip_file}")
            return

        if self.cancel_event.is_set():
            self.logger.info("Probe cancelled before the engine started")
            return

        # the tests still run without domains; only the DNS update is skipped
        missing_domains = mode is RunMode.AUTO and not config.domains_for(test_type)
        engine_mode = RunMode.MANUAL if missing_domains else mode

        self.bus.status(f"Starting probe ({test_type.value})...")
        completed = await self._run_engine(name, engine_mode, test_type, ip_path)

        if completed and missing_domains:
            family = "IPv6" if test_type is TestType.IPV6 else "IPv4"
            self.bus.error(f"{family} mode but no {family} domains configured!")

    async def _run_engine(self, name: str, mode: RunMode, test_type: TestType, ip_path: Path) -> bool:
        engine = EngineProcess(
            self.engine_command,
            self._relay_event,
            cwd=self.config_dir,
            stop_grace_seconds=self.stop_grace_seconds,
        )
        self.engine = engine
        args = [
            "--config", str(self.config_dir / name),
            "--mode", mode.value,
            "--test-type", test_type.value,
            "--ip-file", str(ip_path),
        ]
        try:
            returncode = await engine.run(args)
        finally:
            self.engine = None

        if engine.stop_requested or self.cancel_event.is_set():
            self.logger.info("Probe stopped on request (exit code %d)", returncode)
            return False
        if returncode != 0:
            raise BackendFailure(f"engine exited with code {returncode}")
        self.logger.info("Probe finished for %s", name)
        return True

    def _relay_event(self, channel: Channel, payload: object) -> None:
        self.bus.emit(channel, payload)

    async def stop_probe(self) -> None:
        self.cancel_event.set()
        self.bus.status("Stopping task...")
        self.bus.log("[CONTROL] stop requested")
        engine = self.engine
        if engine is not None:
            await engine.request_stop()

    async def shutdown(self) -> None:
        """Cancel any running probe before the application exits."""
        if self.is_probe_running():
            self.logger.info("Shutdown requested while a probe is running")
            await self.stop_probe()


__all__ = ["ProbeBackend"]

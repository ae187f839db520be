"""
Task Controller - starts and stops the probe and owns the run lifecycle.

Lifecycle::

    IDLE -> STARTING -> RUNNING -> TERMINAL -> (start) STARTING ...

Only settlement of the backend's start command ends a run. ``stop()`` is a
request: the backend is expected to settle the start command soon after,
but the controller never assumes it happened.
"""

import asyncio
from typing import Any, Callable, List, Optional, Union

from autocdn.core.asyncio_utils import create_logged_task
from autocdn.core.commands import Channel, CommandBoundary, RunMode
from autocdn.core.event_multiplexer import EventStreamMultiplexer
from autocdn.core.labels import Labels
from autocdn.core.logging_utils import get_module_logger
from autocdn.core.task_state import ACTIVE_PHASES, RunPhase, RunSettlement, TaskRun

RunObserver = Callable[[TaskRun], Any]


class TaskController:

    def __init__(self, backend: CommandBoundary, multiplexer: EventStreamMultiplexer):
        self.backend = backend
        self.multiplexer = multiplexer
        self.logger = get_module_logger("TaskController")

        self._phase = RunPhase.IDLE
        self._config_name = ""
        self._mode: Optional[RunMode] = None
        self._error: Optional[str] = None

        self._settlement: Optional[RunSettlement] = None
        self._run_task: Optional[asyncio.Task] = None
        self._stop_sent = False
        self._closed = False

        self._observers: List[RunObserver] = []
        self._unsubscribe_projection = multiplexer.subscribe(self._on_projection_changed)
        multiplexer.attach()

    @property
    def labels(self) -> Labels:
        return self.multiplexer.labels

    # =========================================================================
    # State queries
    # =========================================================================

    @property
    def phase(self) -> RunPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._phase in ACTIVE_PHASES

    def snapshot(self) -> TaskRun:
        mux = self.multiplexer
        return TaskRun(
            phase=self._phase,
            running=self.running,
            status_text=mux.status_text,
            progress_percent=mux.progress_percent,
            log_lines=mux.log_lines,
            log_sequence=mux.log_sequence,
            config_name=self._config_name,
            mode=self._mode.value if self._mode else None,
            error=self._error,
        )

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: RunObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        if not self._observers:
            return
        run = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(run)
            except Exception:
                self.logger.error("Run observer failed", exc_info=True)

    def _on_projection_changed(self, channel: Optional[Channel]) -> None:
        if channel is not None and self._phase is RunPhase.STARTING:
            self._phase = RunPhase.RUNNING
            self.logger.debug("First %s event received, run is running", channel.value)
        self._notify()

    # =========================================================================
    # Commands
    # =========================================================================

    async def start(self, config_name: str, mode: Union[RunMode, str]) -> bool:
        """Issue the start command. Returns False when the request is ignored."""
        if self._closed:
            self.logger.warning("Start ignored - controller closed")
            return False
        if not config_name:
            self.logger.debug("Start ignored - no configuration selected")
            return False
        if self.running:
            self.logger.info("Start ignored - a run is already in progress")
            return False

        run_mode = RunMode.parse(mode)
        self._phase = RunPhase.STARTING
        self._config_name = config_name
        self._mode = run_mode
        self._error = None
        self._stop_sent = False
        settlement = RunSettlement()
        self._settlement = settlement

        self.logger.info("Starting probe with %s (%s mode)", config_name, run_mode.value)
        self.multiplexer.reset(self.labels.initializing)

        self._run_task = create_logged_task(
            self._run(config_name, run_mode, settlement),
            logger=self.logger,
            context="TaskController.run",
        )
        return True

    async def _run(self, config_name: str, mode: RunMode, settlement: RunSettlement) -> None:
        try:
            await self.backend.start_probe(config_name, mode)
        except asyncio.CancelledError:
            settlement.settle(asyncio.CancelledError("run cancelled"))
            self._finish(settlement)
            raise
        except Exception as e:
            self.logger.error("Probe settled with failure: %s", e)
            settlement.settle(e)
        else:
            settlement.settle(None)
        self._finish(settlement)

    def _finish(self, settlement: RunSettlement) -> None:
        if settlement is not self._settlement or self._phase is RunPhase.TERMINAL:
            return

        error = settlement.error
        self._phase = RunPhase.TERMINAL
        self._error = str(error) if error is not None else None
        self.logger.info("Run finished%s", f" with error: {error}" if error is not None else "")
        # notifies observers through the projection callback
        self.multiplexer.finish(self.labels.finished, fatal=self._error)

    async def stop(self) -> bool:
        """Request cancellation of the current run. Returns True if a stop was sent."""
        if not self.running:
            self.logger.debug("Stop ignored - no run in progress")
            return False
        if self._stop_sent:
            self.logger.debug("Stop already requested for this run")
            return False

        self._stop_sent = True
        try:
            await self.backend.stop_probe()
        except Exception as e:
            self._stop_sent = False
            self.logger.error("Stop request failed: %s", e, exc_info=True)
            return False
        self.logger.info("Stop requested")
        return True

    async def wait_until_settled(self, timeout: Optional[float] = None) -> TaskRun:
        """Wait for the current run to settle and return the terminal snapshot."""
        settlement = self._settlement
        if settlement is not None:
            await asyncio.wait_for(settlement.wait(), timeout=timeout)
            # _finish runs right after settle() inside the run task
            if self._run_task is not None and not self._run_task.done():
                await asyncio.wait_for(asyncio.shield(self._run_task), timeout=timeout)
        return self.snapshot()

    # =========================================================================
    # Teardown
    # =========================================================================

    async def close(self) -> None:
        """Request a stop if needed and release the event subscriptions."""
        if self._closed:
            return
        self._closed = True
        if self.running:
            await self.stop()
        self._unsubscribe_projection()
        self.multiplexer.close()
        self.logger.debug("Controller closed")

    async def __aenter__(self) -> "TaskController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["RunObserver", "TaskController"]

"""Run lifecycle model: the TaskRun value and the settle-once cell."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

LOG_CAPACITY = 100


class RunPhase(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    TERMINAL = "terminal"


# Phases during which a start command is outstanding
ACTIVE_PHASES = {
    RunPhase.STARTING,
    RunPhase.RUNNING,
}


@dataclass(frozen=True)
class TaskRun:
    """Snapshot of one run as presented to consumers."""

    phase: RunPhase = RunPhase.IDLE
    running: bool = False
    status_text: str = ""
    progress_percent: float = 0.0
    log_lines: tuple[str, ...] = ()
    log_sequence: int = 0
    config_name: str = ""
    mode: Optional[str] = None
    error: Optional[str] = None

    def new_lines_since(self, sequence: int) -> tuple[str, ...]:
        """Log lines appended after ``sequence`` that are still retained."""
        count = self.log_sequence - sequence
        if count <= 0:
            return ()
        return self.log_lines[-count:]


class RunSettlement:
    """Settles exactly once per run; later attempts are ignored.

    Natural completion, a backend failure and a cancellation all race to
    settle the same cell and the first writer wins.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, error: Optional[BaseException] = None) -> bool:
        if self._future.done():
            return False
        self._future.set_result(error)
        return True

    @property
    def error(self) -> Optional[BaseException]:
        if not self._future.done():
            return None
        return self._future.result()

    async def wait(self) -> Optional[BaseException]:
        return await asyncio.shield(self._future)


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


__all__ = [
    "ACTIVE_PHASES",
    "LOG_CAPACITY",
    "RunPhase",
    "RunSettlement",
    "TaskRun",
    "clamp_percent",
]

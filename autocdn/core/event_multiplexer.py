"""
Event Stream Multiplexer - folds the four backend channels into one projection.

The projection is what a dashboard shows: the latest status line, the
progress percentage and a bounded log of the most recent messages. The
multiplexer stays subscribed for its whole lifetime, not just while a run
is active, so messages arriving after a stop request still land.
"""

from collections import deque
from typing import Any, Callable, Deque, List, Optional

from autocdn.core.commands import Channel, EventSource, ProgressUpdate, Subscription
from autocdn.core.labels import ENGLISH, Labels
from autocdn.core.logging_utils import get_module_logger
from autocdn.core.task_state import LOG_CAPACITY, clamp_percent

# Observer callbacks receive the channel that changed the projection,
# or None for changes made by the owner (reset, fatal entries).
ProjectionObserver = Callable[[Optional[Channel]], None]


class EventStreamMultiplexer:

    def __init__(
        self,
        events: EventSource,
        *,
        labels: Labels = ENGLISH,
        capacity: int = LOG_CAPACITY,
    ):
        self.events = events
        self.labels = labels
        self.logger = get_module_logger("EventStreamMultiplexer")

        self.status_text: str = labels.ready
        self.progress_percent: float = 0.0
        self._log_lines: Deque[str] = deque(maxlen=capacity)
        self._log_sequence = 0
        self._last_progress_msg: Optional[str] = None

        self._subscriptions: List[Subscription] = []
        self._closed = False
        self._observers: List[ProjectionObserver] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def attached(self) -> bool:
        return bool(self._subscriptions)

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self) -> None:
        """Subscribe to all four channels. Calling it again is a no-op."""
        if self._closed:
            raise RuntimeError("multiplexer already closed")
        if self._subscriptions:
            return

        self._subscriptions = [
            self.events.subscribe(Channel.LOG, self._on_log),
            self.events.subscribe(Channel.STATUS, self._on_status),
            self.events.subscribe(Channel.PROGRESS, self._on_progress),
            self.events.subscribe(Channel.ERROR, self._on_error),
        ]
        self.logger.debug("Attached to %d channels", len(self._subscriptions))

    def close(self) -> None:
        """Release every subscription exactly once."""
        if self._closed:
            return
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.release()
        self._observers.clear()
        self.logger.debug("Released %d channel subscriptions", len(subscriptions))

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: ProjectionObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, channel: Optional[Channel]) -> None:
        for observer in list(self._observers):
            try:
                observer(channel)
            except Exception:
                self.logger.error("Projection observer failed", exc_info=True)

    # =========================================================================
    # Projection
    # =========================================================================

    @property
    def log_lines(self) -> tuple[str, ...]:
        return tuple(self._log_lines)

    @property
    def log_sequence(self) -> int:
        return self._log_sequence

    def _append(self, entry: str) -> None:
        self._log_lines.append(entry)
        self._log_sequence += 1

    def reset(self, status_text: str) -> None:
        """Start a fresh projection for a new run."""
        self._log_lines.clear()
        self.progress_percent = 0.0
        self.status_text = status_text
        self._last_progress_msg = None
        self._notify(None)

    def finish(self, status_text: str, *, fatal: Optional[str] = None) -> None:
        """Apply the terminal projection of a settled run."""
        if fatal is not None:
            self._append(f"{self.labels.fatal_tag} {fatal}")
        self.progress_percent = 100.0
        self.status_text = status_text
        self._notify(None)

    # =========================================================================
    # Channel handlers
    # =========================================================================

    def _on_log(self, message: Any) -> None:
        self._append(f"{self.labels.log_tag} {message}")
        self._notify(Channel.LOG)

    def _on_status(self, message: Any) -> None:
        text = str(message)
        self.status_text = text
        self._append(f"{self.labels.status_tag} {text}")
        self._notify(Channel.STATUS)

    def _on_progress(self, payload: Any) -> None:
        update = ProgressUpdate.from_payload(payload)
        if update is None:
            self.logger.warning("Ignoring malformed progress payload: %r", payload)
            return

        if update.total > 0:
            self.progress_percent = clamp_percent(update.current / update.total * 100)

        # a progress line without msg repeats the run's last progress message
        if update.msg is not None:
            self._last_progress_msg = update.msg
        if self._last_progress_msg is not None:
            self.status_text = self._last_progress_msg
        else:
            self.status_text = self.labels.in_progress
        self._notify(Channel.PROGRESS)

    def _on_error(self, message: Any) -> None:
        self._append(f"{self.labels.error_tag} {message}")
        self._notify(Channel.ERROR)


__all__ = ["EventStreamMultiplexer", "ProjectionObserver"]

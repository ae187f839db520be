"""
Event Bus - fire-and-forget delivery of backend events on named channels.

Every subscription owns its own queue and a single consumer task, so the
messages of one channel reach a handler in the order they were emitted.
Nothing is promised about ordering across channels.
"""

import asyncio
import inspect
from typing import Any, Dict, List, Optional

from autocdn.core.asyncio_utils import create_logged_task
from autocdn.core.commands import Channel, EventHandler
from autocdn.core.logging_utils import get_module_logger


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class BusSubscription:
    """Handle for one handler attached to one channel.

    ``release()`` detaches the handler from the bus and stops its consumer.
    Releasing more than once is a no-op.
    """

    def __init__(self, bus: "EventBus", channel: Channel, handler: EventHandler):
        self.bus = bus
        self.channel = channel
        self.handler = handler
        self.logger = bus.logger
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, payload: Any) -> None:
        if not self._active:
            return
        self._queue.put_nowait(payload)
        if self._consumer is None:
            self._consumer = create_logged_task(
                self._consume(),
                logger=self.logger,
                context=f"EventBus.{self.channel.value}",
            )

    async def _consume(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                if not self._active:
                    continue
                result = self.handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(
                    "Handler %s failed on %s event: %s",
                    _handler_name(self.handler),
                    self.channel.value,
                    e,
                    exc_info=True,
                )
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every delivered message has been handled."""
        if self._consumer is None:
            return
        await self._queue.join()

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        self.bus._detach(self)
        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
        self._consumer = None
        # drop anything still queued so join() never waits on a dead consumer
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self.logger.debug("Released %s subscription %s", self.channel.value, _handler_name(self.handler))


class EventBus:
    """Channels the backend publishes on and the control plane listens to."""

    def __init__(self):
        self.logger = get_module_logger("EventBus")
        self._subscriptions: Dict[Channel, List[BusSubscription]] = {channel: [] for channel in Channel}

    def subscribe(self, channel: Channel, handler: EventHandler) -> BusSubscription:
        subscription = BusSubscription(self, channel, handler)
        self._subscriptions[channel].append(subscription)
        self.logger.debug("Subscribed %s to %s", _handler_name(handler), channel.value)
        return subscription

    def _detach(self, subscription: BusSubscription) -> None:
        subscribers = self._subscriptions[subscription.channel]
        if subscription in subscribers:
            subscribers.remove(subscription)

    def emit(self, channel: Channel, payload: Any) -> None:
        for subscription in list(self._subscriptions[channel]):
            subscription.deliver(payload)

    def subscriber_count(self, channel: Optional[Channel] = None) -> int:
        if channel is not None:
            return len(self._subscriptions[channel])
        return sum(len(subs) for subs in self._subscriptions.values())

    async def flush(self) -> None:
        """Wait until every queued message on every channel has been handled."""
        for subscribers in list(self._subscriptions.values()):
            for subscription in list(subscribers):
                await subscription.join()

    # ------------------------------------------------------------------
    # Convenience emitters used by the backend

    def log(self, message: str) -> None:
        self.emit(Channel.LOG, message)

    def status(self, message: str) -> None:
        self.emit(Channel.STATUS, message)

    def error(self, message: str) -> None:
        self.emit(Channel.ERROR, message)

    def progress(self, payload: Any) -> None:
        self.emit(Channel.PROGRESS, payload)


__all__ = ["BusSubscription", "EventBus"]

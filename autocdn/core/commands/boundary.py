"""Request/response and event interfaces between the control plane and the backend."""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, List, Protocol, Union

from ..config_models import ConfigurationRecord


class RunMode(Enum):
    AUTO = "auto"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: Union["RunMode", str]) -> "RunMode":
        if isinstance(value, RunMode):
            return value
        return cls(str(value).strip().lower())


class Channel(Enum):
    LOG = "log"
    STATUS = "status"
    PROGRESS = "progress"
    ERROR = "error"


EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class Subscription(Protocol):
    @property
    def active(self) -> bool: ...

    def release(self) -> None: ...


class EventSource(Protocol):
    def subscribe(self, channel: Channel, handler: EventHandler) -> Subscription: ...


class CommandBoundary(Protocol):
    async def list_configs(self) -> List[str]: ...

    async def load_config(self, name: str) -> ConfigurationRecord: ...

    async def save_config(self, name: str, record: ConfigurationRecord) -> None: ...

    async def create_config(self, name: str) -> None: ...

    async def delete_config(self, name: str) -> None: ...

    async def start_probe(self, name: str, mode: RunMode) -> None: ...

    async def stop_probe(self) -> None: ...


__all__ = [
    "Channel",
    "CommandBoundary",
    "EventHandler",
    "EventSource",
    "RunMode",
    "Subscription",
]

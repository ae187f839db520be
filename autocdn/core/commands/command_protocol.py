import datetime
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from autocdn.core.logging_utils import get_module_logger

from .boundary import Channel

logger = get_module_logger("CommandProtocol")


@dataclass(frozen=True)
class ProgressUpdate:
    current: int
    total: int
    msg: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["ProgressUpdate"]:
        if isinstance(payload, ProgressUpdate):
            return payload
        if not isinstance(payload, dict):
            return None
        try:
            current = int(payload.get("current", 0))
            total = int(payload.get("total", 0))
        except (TypeError, ValueError):
            return None
        msg = payload.get("msg")
        return cls(current=current, total=total, msg=str(msg) if msg is not None else None)


class CommandMessage:
    """Commands written to the engine's stdin, one JSON object per line."""

    @staticmethod
    def create(command: str, **kwargs) -> str:
        message = {
            "command": command,
            "timestamp": datetime.datetime.now().isoformat(),
        }
        message.update(kwargs)
        return json.dumps(message) + "\n"

    @staticmethod
    def stop() -> str:
        return CommandMessage.create("stop")


class EngineEvent:
    """One event line read from the engine's stdout."""

    def __init__(self, raw_line: str):
        self.raw = raw_line
        self.channel: Optional[Channel] = None
        self.data: Dict[str, Any] = {}
        self._parse()

    def _parse(self) -> None:
        text = self.raw.strip()
        if not text.startswith("{"):
            return
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return
        if not isinstance(data, dict):
            return
        try:
            self.channel = Channel(str(data.get("event", "")).lower())
        except ValueError:
            logger.debug("Ignoring unknown engine event: %s", text[:100])
            return
        self.data = data

    def is_valid(self) -> bool:
        return self.channel is not None

    def payload(self) -> Any:
        """Payload as published on the event bus for this channel."""
        if self.channel is Channel.PROGRESS:
            return ProgressUpdate.from_payload(self.data)
        return str(self.data.get("message", ""))

    def __repr__(self) -> str:
        return f"EngineEvent(channel={self.channel}, data={self.data})"


__all__ = ["CommandMessage", "EngineEvent", "ProgressUpdate"]

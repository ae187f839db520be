from .boundary import Channel, CommandBoundary, EventHandler, EventSource, RunMode, Subscription
from .command_protocol import CommandMessage, EngineEvent, ProgressUpdate

__all__ = [
    'Channel',
    'CommandBoundary',
    'CommandMessage',
    'EngineEvent',
    'EventHandler',
    'EventSource',
    'ProgressUpdate',
    'RunMode',
    'Subscription',
]

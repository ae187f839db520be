from .commands import Channel, CommandBoundary, EventSource, RunMode
from .config_models import (
    CloudflareSettings,
    ConfigurationRecord,
    SpeedTestSettings,
    TestType,
    apply_load_defaults,
    normalize_config_name,
)
from .config_repository import YamlConfigRepository
from .config_store import ConfigCatalog, ConfigEditor, ConfigStore
from .errors import BackendFailure, ControlError, NameConflictError, NotFoundError, ValidationFailure
from .event_bus import EventBus
from .event_multiplexer import EventStreamMultiplexer
from .probe_backend import ProbeBackend
from .task_controller import TaskController
from .task_state import LOG_CAPACITY, RunPhase, TaskRun

__all__ = [
    'BackendFailure',
    'Channel',
    'CloudflareSettings',
    'CommandBoundary',
    'ConfigCatalog',
    'ConfigEditor',
    'ConfigStore',
    'ConfigurationRecord',
    'ControlError',
    'EventBus',
    'EventSource',
    'EventStreamMultiplexer',
    'LOG_CAPACITY',
    'NameConflictError',
    'NotFoundError',
    'ProbeBackend',
    'RunMode',
    'RunPhase',
    'SpeedTestSettings',
    'TaskController',
    'TaskRun',
    'TestType',
    'ValidationFailure',
    'YamlConfigRepository',
    'apply_load_defaults',
    'normalize_config_name',
]

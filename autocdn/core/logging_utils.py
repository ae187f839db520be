"""Component-tagged loggers for the AutoCDN control plane.

Every record is prefixed with ``[Component]`` so interleaved output from
the controller, the event bus and the engine supervisor stays readable::

    logger = get_module_logger("TaskController")
    logger.info("Starting probe with %s", name)   # "[TaskController] Starting probe with ..."
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional, Tuple, Union

LOGGER_NAMESPACE = "autocdn"
DEFAULT_COMPONENT = "Core"


def _qualified_name(name: Optional[str]) -> str:
    if not name:
        return LOGGER_NAMESPACE
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _component_for(name: str) -> str:
    if name.startswith(LOGGER_NAMESPACE):
        name = name[len(LOGGER_NAMESPACE):].lstrip(".")
    # module paths such as autocdn.app.main are tagged by their last part
    return name.rsplit(".", 1)[-1] or DEFAULT_COMPONENT


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that tags each message with its component."""

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        super().__init__(logger, {})
        self.component = component or _component_for(logger.name)

    @property
    def name(self) -> str:
        return self.logger.name

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        text = str(msg)
        tag = f"[{self.component}]"
        if not text.startswith(tag):
            text = f"{tag} {text}"
        return text, kwargs


LoggerLike = Union[StructuredLogger, logging.Logger, None]


def ensure_structured_logger(logger: LoggerLike, *, fallback_name: Optional[str] = None) -> StructuredLogger:
    """Wrap a plain logger, or create a module logger when none is given."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Return a component logger under the ``autocdn`` namespace."""
    return StructuredLogger(logging.getLogger(_qualified_name(name)))


__all__ = [
    "LOGGER_NAMESPACE",
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]

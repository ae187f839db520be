"""Error taxonomy shared by the command boundary and its callers."""

from __future__ import annotations


class ControlError(Exception):
    """Base class for every failure surfaced through the command boundary."""


class NotFoundError(ControlError, LookupError):
    """A named configuration does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"configuration not found: {name}")
        self.name = name


class NameConflictError(ControlError):
    """A configuration with the requested name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"configuration already exists: {name}")
        self.name = name


class ValidationFailure(ControlError, ValueError):
    """Input could not be turned into a valid value."""


class BackendFailure(ControlError, RuntimeError):
    """A command settled abnormally on the backend side."""


__all__ = [
    "BackendFailure",
    "ControlError",
    "NameConflictError",
    "NotFoundError",
    "ValidationFailure",
]

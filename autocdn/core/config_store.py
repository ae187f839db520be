"""
Config Store - client side of the named configuration records.

``ConfigStore`` wraps the command boundary and applies load-time
defaulting. ``ConfigEditor`` and ``ConfigCatalog`` are the editing and
selection contexts on top of it; they never raise store errors, they
surface them as a transient ``status_text``.
"""

from typing import Any, Callable, List, Optional

from autocdn.core.commands import CommandBoundary
from autocdn.core.config_models import (
    ConfigurationRecord,
    apply_load_defaults,
    normalize_config_name,
    split_lines,
)
from autocdn.core.errors import ControlError, ValidationFailure
from autocdn.core.labels import ENGLISH, Labels
from autocdn.core.logging_utils import get_module_logger


class ConfigStore:

    def __init__(self, boundary: CommandBoundary):
        self.boundary = boundary
        self.logger = get_module_logger("ConfigStore")

    async def list(self) -> List[str]:
        names = await self.boundary.list_configs()
        return list(names or [])

    async def load(self, name: str) -> ConfigurationRecord:
        """Fetch ``name`` and return it with load-time defaults applied."""
        record = await self.boundary.load_config(name)
        return apply_load_defaults(record)

    async def save(self, name: str, record: ConfigurationRecord) -> None:
        """Persist exactly ``record``; zeros entered by the user are kept."""
        await self.boundary.save_config(name, record)

    async def create(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationFailure("configuration name must not be empty")
        await self.boundary.create_config(name)

    async def delete(self, name: str) -> None:
        await self.boundary.delete_config(name)


class ConfigEditor:
    """Editing context that exclusively owns the active record value."""

    def __init__(self, store: ConfigStore, *, labels: Labels = ENGLISH):
        self.store = store
        self.labels = labels
        self.logger = get_module_logger("ConfigEditor")

        self.name: str = ""
        self.record: ConfigurationRecord = ConfigurationRecord()
        self.status_text: str = ""
        self.loading = False
        self.dirty = False

    async def open(self, name: str) -> bool:
        self.name = name
        return await self.reload()

    async def reload(self) -> bool:
        if not self.name:
            return False

        self.loading = True
        self.status_text = self.labels.loading
        try:
            self.record = await self.store.load(self.name)
            self.dirty = False
            self.status_text = ""
            return True
        except ControlError as e:
            self.logger.error("Failed to load %s: %s", self.name, e)
            self.status_text = f"{self.labels.error_prefix}: {e}"
            return False
        finally:
            self.loading = False

    def edit(self, section: str, field: str, value: Any) -> ConfigurationRecord:
        """Replace one field, producing a new record value."""
        self.record = self.record.with_field(section, field, value)
        self.dirty = True
        return self.record

    def set_lines(self, section: str, field: str, text: str) -> ConfigurationRecord:
        """Replace a list field from newline-separated text."""
        return self.edit(section, field, split_lines(text))

    async def save(self) -> bool:
        if not self.name:
            return False

        self.loading = True
        self.status_text = self.labels.saving
        try:
            await self.store.save(self.name, self.record)
            self.dirty = False
            self.status_text = self.labels.saved
            return True
        except ControlError as e:
            self.logger.error("Failed to save %s: %s", self.name, e)
            self.status_text = f"{self.labels.save_failed_prefix}: {e}"
            return False
        finally:
            self.loading = False


class ConfigCatalog:
    """Selection context: which configurations exist and which one is active."""

    def __init__(
        self,
        store: ConfigStore,
        *,
        labels: Labels = ENGLISH,
        on_active_changed: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.labels = labels
        self.on_active_changed = on_active_changed
        self.logger = get_module_logger("ConfigCatalog")

        self.names: List[str] = []
        self.active: str = ""
        self.status_text: str = ""

    def set_active(self, name: str) -> None:
        if name == self.active:
            return
        self.active = name
        if self.on_active_changed is not None:
            self.on_active_changed(name)

    async def refresh(self) -> List[str]:
        try:
            self.names = await self.store.list()
        except ControlError as e:
            self.logger.error("Failed to list configs: %s", e)
            self.status_text = f"{self.labels.error_prefix}: {e}"
            return self.names

        if self.names and not self.active:
            self.set_active(self.names[0])
        return self.names

    async def create(self, raw_name: str) -> Optional[str]:
        name = normalize_config_name(raw_name)
        if not name:
            return None

        try:
            await self.store.create(name)
        except ControlError as e:
            self.logger.error("Failed to create %s: %s", name, e)
            self.status_text = f"{self.labels.create_failed_prefix}: {e}"
            return None

        await self.refresh()
        self.set_active(name)
        self.status_text = ""
        return name

    async def delete(self, name: str) -> bool:
        try:
            await self.store.delete(name)
        except ControlError as e:
            self.logger.error("Failed to delete %s: %s", name, e)
            self.status_text = f"{self.labels.delete_failed_prefix}: {e}"
            return False

        await self.refresh()
        if self.active == name:
            self.set_active("")
        return True


__all__ = ["ConfigCatalog", "ConfigEditor", "ConfigStore"]

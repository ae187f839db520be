"""YAML files on disk holding named configuration records."""

import asyncio
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import yaml

from .config_models import CONFIG_EXTENSIONS, ConfigurationRecord, new_default_record
from .errors import BackendFailure, NameConflictError, NotFoundError, ValidationFailure
from .logging_utils import get_module_logger


logger = get_module_logger("ConfigRepository")


class YamlConfigRepository:
    """Stores each configuration as ``<config_dir>/<name>`` in YAML."""

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir)
        self.logger = get_module_logger("ConfigRepository")
        self.lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Internal helpers

    def _path_for(self, name: str) -> Path:
        name = (name or "").strip()
        if not name:
            raise ValidationFailure("configuration name must not be empty")
        candidate = Path(name)
        if candidate.name != name or name in (".", ".."):
            raise ValidationFailure(f"configuration name must be a plain file name: {name}")
        return self.config_dir / name

    def _list_sync(self) -> List[str]:
        if not self.config_dir.is_dir():
            return []
        names = [
            entry.name
            for entry in self.config_dir.iterdir()
            if entry.is_file() and entry.name.endswith(CONFIG_EXTENSIONS)
        ]
        return sorted(names)

    @staticmethod
    def _dump(record: ConfigurationRecord) -> str:
        return yaml.safe_dump(record.to_dict(), sort_keys=False, allow_unicode=True)

    async def _write(self, path: Path, record: ConfigurationRecord) -> None:
        text = self._dump(record)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(text)
        except OSError as e:
            self.logger.error("Failed to write config %s: %s", path, e, exc_info=True)
            raise BackendFailure(f"failed to write {path.name}: {e}") from e

    # ------------------------------------------------------------------
    # Public API

    async def list_names(self) -> List[str]:
        return await asyncio.to_thread(self._list_sync)

    async def exists(self, name: str) -> bool:
        return await asyncio.to_thread(self._path_for(name).is_file)

    async def read_raw(self, name: str) -> Dict[str, Any]:
        path = self._path_for(name)
        if not await self.exists(name):
            raise NotFoundError(name)

        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                text = await f.read()
        except FileNotFoundError as e:
            raise NotFoundError(name) from e
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", path, e)
            raise BackendFailure(f"failed to read {name}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationFailure(f"{name} is not valid YAML: {e}") from e
        return data or {}

    async def load(self, name: str) -> ConfigurationRecord:
        """Decode a stored record as-is; defaulting is the caller's concern."""
        return ConfigurationRecord.from_dict(await self.read_raw(name))

    async def save(self, name: str, record: ConfigurationRecord) -> None:
        path = self._path_for(name)
        async with self.lock:
            await self._write(path, record)
        self.logger.debug("Saved config %s", path)

    async def create(self, name: str) -> None:
        path = self._path_for(name)
        async with self.lock:
            if await self.exists(name):
                raise NameConflictError(name)
            await self._write(path, new_default_record())
        self.logger.info("Created config %s", path)

    async def delete(self, name: str) -> None:
        path = self._path_for(name)
        async with self.lock:
            try:
                await asyncio.to_thread(path.unlink)
            except FileNotFoundError as e:
                raise NotFoundError(name) from e
            except OSError as e:
                self.logger.error("Failed to delete config %s: %s", path, e)
                raise BackendFailure(f"failed to delete {name}: {e}") from e
        self.logger.info("Deleted config %s", path)


__all__ = ["YamlConfigRepository"]

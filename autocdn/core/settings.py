"""Application settings stored as a plain ``key = value`` text file."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from .logging_utils import get_module_logger
from .paths import DEFAULT_CONFIG_DIR, SETTINGS_PATH


logger = get_module_logger("Settings")

DEFAULT_ENGINE_COMMAND = "cfst-engine"
DEFAULT_STOP_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class AppSettings:
    """Resolved application settings with their defaults applied."""

    config_dir: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR)
    engine_command: tuple[str, ...] = (DEFAULT_ENGINE_COMMAND,)
    log_level: str = "info"
    log_file: Optional[Path] = None
    locale: str = "en"
    stop_grace_seconds: float = DEFAULT_STOP_GRACE_SECONDS


class SettingsManager:

    def __init__(self):
        self.logger = get_module_logger("SettingsManager")

    # ------------------------------------------------------------------
    # Internal helpers

    def _parse_settings_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        settings: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            settings[key] = value

        return settings

    def read_settings(self, settings_path: Path) -> Dict[str, str]:
        """Read settings before the event loop starts; a missing file yields no settings."""
        if not settings_path.exists():
            return {}

        try:
            with open(settings_path, 'r', encoding='utf-8') as f:
                return self._parse_settings_lines(f)
        except OSError as e:
            logger.error("Failed to read settings %s: %s", settings_path, e)
            return {}

    def get_bool(self, settings: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in settings:
            return default

        value = settings[key].lower()
        return value in ('true', '1', 'yes', 'on')

    def get_int(self, settings: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in settings:
            return default

        try:
            return int(settings[key])
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, settings[key], default)
            return default

    def get_float(self, settings: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in settings:
            return default

        try:
            return float(settings[key])
        except ValueError:
            logger.warning("Invalid float value for %s: %s, using default %f", key, settings[key], default)
            return default

    def get_str(self, settings: Dict[str, str], key: str, default: str = "") -> str:
        return settings.get(key, default)

    def resolve(self, settings: Dict[str, str]) -> AppSettings:
        """Build :class:`AppSettings` from parsed ``key = value`` pairs."""
        config_dir = Path(self.get_str(settings, 'config_dir', str(DEFAULT_CONFIG_DIR))).expanduser()
        engine_command = tuple(self.get_str(settings, 'engine_command', DEFAULT_ENGINE_COMMAND).split())
        log_file_value = self.get_str(settings, 'log_file')
        grace = self.get_float(settings, 'stop_grace_seconds', DEFAULT_STOP_GRACE_SECONDS)
        if grace <= 0:
            logger.warning("stop_grace_seconds must be positive, using default %.1f", DEFAULT_STOP_GRACE_SECONDS)
            grace = DEFAULT_STOP_GRACE_SECONDS

        return AppSettings(
            config_dir=config_dir,
            engine_command=engine_command or (DEFAULT_ENGINE_COMMAND,),
            log_level=self.get_str(settings, 'log_level', 'info').lower(),
            log_file=Path(log_file_value).expanduser() if log_file_value else None,
            locale=self.get_str(settings, 'locale', 'en'),
            stop_grace_seconds=grace,
        )

    def load(self, settings_path: Path = SETTINGS_PATH) -> AppSettings:
        return self.resolve(self.read_settings(settings_path))


_settings_manager = SettingsManager()


def get_settings_manager() -> SettingsManager:
    return _settings_manager


__all__ = ["AppSettings", "SettingsManager", "get_settings_manager"]

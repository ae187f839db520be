"""Unit tests for SettingsManager and labels."""

from pathlib import Path

import pytest

from autocdn.core.labels import CHINESE, ENGLISH, available_locales, get_labels
from autocdn.core.settings import AppSettings, SettingsManager


@pytest.fixture
def manager():
    return SettingsManager()


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "autocdn.conf"
    path.write_text(
        "# AutoCDN settings\n"
        "config_dir = /srv/autocdn  # trailing comment\n"
        "engine_command = \"cfst-engine --json\"\n"
        "log_level = DEBUG\n"
        "locale = zh\n"
        "stop_grace_seconds = 2.5\n"
        "malformed line\n",
        encoding="utf-8",
    )
    return path


class TestParsing:

    def test_parse_lines(self, manager):
        parsed = manager._parse_settings_lines([
            "# comment",
            "",
            "a = 1",
            "b='quoted'",
            "c = value # note",
            "no equals sign",
        ])

        assert parsed == {"a": "1", "b": "quoted", "c": "value"}

    def test_missing_file(self, manager, tmp_path):
        assert manager.read_settings(tmp_path / "absent.conf") == {}

    def test_typed_getters(self, manager):
        settings = {"flag": "Yes", "count": "7", "ratio": "0.5", "bad": "x"}

        assert manager.get_bool(settings, "flag") is True
        assert manager.get_bool(settings, "absent", True) is True
        assert manager.get_int(settings, "count") == 7
        assert manager.get_int(settings, "bad", 3) == 3
        assert manager.get_float(settings, "ratio") == 0.5
        assert manager.get_float(settings, "bad", 1.5) == 1.5


class TestResolve:

    def test_defaults(self, manager):
        settings = manager.resolve({})

        assert settings == AppSettings()
        assert settings.engine_command == ("cfst-engine",)
        assert settings.log_file is None

    def test_load_file(self, manager, settings_file):
        settings = manager.load(settings_file)

        assert settings.config_dir == Path("/srv/autocdn")
        assert settings.engine_command == ("cfst-engine", "--json")
        assert settings.log_level == "debug"
        assert settings.locale == "zh"
        assert settings.stop_grace_seconds == 2.5

    def test_non_positive_grace_falls_back(self, manager):
        assert manager.resolve({"stop_grace_seconds": "0"}).stop_grace_seconds == 5.0

    def test_blank_engine_command_falls_back(self, manager):
        assert manager.resolve({"engine_command": ""}).engine_command == ("cfst-engine",)


class TestLabels:

    @pytest.mark.parametrize("locale,expected", [
        ("en", ENGLISH),
        ("zh", CHINESE),
        ("zh_CN", CHINESE),
        ("zh-TW", CHINESE),
        ("fr", ENGLISH),
        ("", ENGLISH),
    ])
    def test_get_labels(self, locale, expected):
        assert get_labels(locale) is expected

    def test_available_locales(self):
        assert available_locales() == ["en", "zh"]

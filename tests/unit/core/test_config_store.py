"""Unit tests for ConfigStore, ConfigEditor and ConfigCatalog."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from autocdn.core.config_models import ConfigurationRecord
from autocdn.core.config_store import ConfigCatalog, ConfigEditor, ConfigStore
from autocdn.core.errors import BackendFailure, NameConflictError, NotFoundError, ValidationFailure
from autocdn.core.labels import CHINESE


class MockBoundary:
    """Mock command boundary with configurable configuration commands."""

    def __init__(self, names=None, record=None):
        self.list_configs = AsyncMock(return_value=list(names or []))
        self.load_config = AsyncMock(return_value=record or ConfigurationRecord.from_dict({}))
        self.save_config = AsyncMock()
        self.create_config = AsyncMock()
        self.delete_config = AsyncMock()
        self.start_probe = AsyncMock()
        self.stop_probe = AsyncMock()


@pytest.fixture
def boundary(sample_record):
    return MockBoundary(names=["a.yaml", "b.yaml"], record=sample_record)


@pytest.fixture
def store(boundary):
    return ConfigStore(boundary)


class TestConfigStore:

    @pytest.mark.asyncio
    async def test_list(self, store):
        assert await store.list() == ["a.yaml", "b.yaml"]

    @pytest.mark.asyncio
    async def test_list_none_is_empty(self, store, boundary):
        boundary.list_configs.return_value = None
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_load_applies_defaults(self, store, boundary):
        record = await store.load("a.yaml")

        boundary.load_config.assert_awaited_once_with("a.yaml")
        assert record.speed_test.routines == 200
        assert record.speed_test.ping_times == 6
        assert record.speed_test.min_delay == 0

    @pytest.mark.asyncio
    async def test_save_passes_record_unchanged(self, store, boundary, sample_record):
        await store.save("a.yaml", sample_record)

        boundary.save_config.assert_awaited_once_with("a.yaml", sample_record)
        saved = boundary.save_config.await_args.args[1]
        assert saved.speed_test.routines == 0

    @pytest.mark.asyncio
    async def test_create_empty_name(self, store, boundary):
        with pytest.raises(ValidationFailure):
            await store.create("  ")
        boundary.create_config.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_conflict_propagates(self, store, boundary):
        boundary.create_config.side_effect = NameConflictError("a.yaml")

        with pytest.raises(NameConflictError):
            await store.create("a.yaml")

    @pytest.mark.asyncio
    async def test_delete(self, store, boundary):
        await store.delete("a.yaml")
        boundary.delete_config.assert_awaited_once_with("a.yaml")


class TestConfigEditor:

    @pytest.mark.asyncio
    async def test_open_loads_record(self, store):
        editor = ConfigEditor(store)

        assert await editor.open("a.yaml") is True
        assert editor.record.speed_test.routines == 200
        assert editor.status_text == ""
        assert editor.loading is False
        assert editor.dirty is False

    @pytest.mark.asyncio
    async def test_reload_without_name(self, store, boundary):
        editor = ConfigEditor(store)

        assert await editor.reload() is False
        boundary.load_config.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_failure_sets_status(self, store, boundary):
        boundary.load_config.side_effect = NotFoundError("a.yaml")
        editor = ConfigEditor(store)

        assert await editor.open("a.yaml") is False
        assert editor.status_text.startswith("Error: ")
        assert "a.yaml" in editor.status_text
        assert editor.loading is False

    @pytest.mark.asyncio
    async def test_edit_marks_dirty(self, store):
        editor = ConfigEditor(store)
        await editor.open("a.yaml")
        before = editor.record

        editor.edit("speed_test", "routines", 0)

        assert editor.dirty is True
        assert editor.record.speed_test.routines == 0
        assert before.speed_test.routines == 200

    @pytest.mark.asyncio
    async def test_save_keeps_user_zero(self, store, boundary):
        editor = ConfigEditor(store)
        await editor.open("a.yaml")
        editor.edit("speed_test", "min_speed", "0")
        editor.set_lines("cloudflare", "domains", "x.example.com\ny.example.com")

        assert await editor.save() is True

        saved = boundary.save_config.await_args.args[1]
        assert saved.speed_test.min_speed == 0.0
        assert saved.cloudflare.domains == ("x.example.com", "y.example.com")
        assert editor.status_text == "saved!"
        assert editor.dirty is False

    @pytest.mark.asyncio
    async def test_save_failure_sets_status(self, store, boundary):
        boundary.save_config.side_effect = BackendFailure("disk full")
        editor = ConfigEditor(store)
        await editor.open("a.yaml")

        assert await editor.save() is False
        assert editor.status_text == "Save failed: disk full"
        assert editor.loading is False

    @pytest.mark.asyncio
    async def test_localized_status(self, store, boundary):
        boundary.save_config.side_effect = BackendFailure("disk full")
        editor = ConfigEditor(store, labels=CHINESE)
        await editor.open("a.yaml")

        await editor.save()

        assert editor.status_text == "保存失败: disk full"


class TestConfigCatalog:

    @pytest.mark.asyncio
    async def test_refresh_selects_first(self, store):
        on_active = MagicMock()
        catalog = ConfigCatalog(store, on_active_changed=on_active)

        assert await catalog.refresh() == ["a.yaml", "b.yaml"]
        assert catalog.active == "a.yaml"
        on_active.assert_called_once_with("a.yaml")

    @pytest.mark.asyncio
    async def test_refresh_keeps_selection(self, store):
        catalog = ConfigCatalog(store)
        catalog.set_active("b.yaml")

        await catalog.refresh()

        assert catalog.active == "b.yaml"

    @pytest.mark.asyncio
    async def test_refresh_failure(self, store, boundary):
        boundary.list_configs.side_effect = BackendFailure("offline")
        catalog = ConfigCatalog(store)

        assert await catalog.refresh() == []
        assert catalog.status_text == "Error: offline"

    @pytest.mark.asyncio
    async def test_create_normalizes_and_selects(self, store, boundary):
        catalog = ConfigCatalog(store)

        assert await catalog.create("  office ") == "office.yaml"
        boundary.create_config.assert_awaited_once_with("office.yaml")
        assert catalog.active == "office.yaml"

    @pytest.mark.asyncio
    async def test_create_blank_name_is_ignored(self, store, boundary):
        catalog = ConfigCatalog(store)

        assert await catalog.create("   ") is None
        boundary.create_config.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_conflict(self, store, boundary):
        boundary.create_config.side_effect = NameConflictError("a.yaml")
        catalog = ConfigCatalog(store)

        assert await catalog.create("a") is None
        assert catalog.status_text.startswith("Create failed: ")

    @pytest.mark.asyncio
    async def test_delete_active_clears_selection(self, store, boundary):
        catalog = ConfigCatalog(store)
        await catalog.refresh()
        boundary.list_configs.return_value = ["b.yaml"]

        assert await catalog.delete("a.yaml") is True
        assert catalog.names == ["b.yaml"]
        assert catalog.active == ""

    @pytest.mark.asyncio
    async def test_delete_failure(self, store, boundary):
        boundary.delete_config.side_effect = NotFoundError("gone.yaml")
        catalog = ConfigCatalog(store)

        assert await catalog.delete("gone.yaml") is False
        assert catalog.status_text.startswith("Delete failed: ")

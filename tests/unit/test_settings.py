"""
Unit tests for the settings manager.
"""

import json
from pathlib import Path

from services.settings_manager import (
    AppSettings, EditorSettings, StorageSettings, get_settings,
    reset_settings_manager
)


class TestAppSettings:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.storage.backend == "local"
        assert settings.editor.zoom_step == 0.1
        assert settings.editor.starter_funnel is True
        assert settings.recent_funnels == []

    def test_dict_round_trip(self):
        settings = AppSettings(
            storage=StorageSettings(backend="supabase", owner_id="alice"),
            editor=EditorSettings(grid_size=40),
        )
        restored = AppSettings.from_dict(settings.to_dict())
        assert restored.storage.backend == "supabase"
        assert restored.storage.owner_id == "alice"
        assert restored.editor.grid_size == 40

    def test_unknown_keys_ignored(self):
        restored = AppSettings.from_dict({
            "storage": {"backend": "local", "legacy_option": 1},
            "plugins": {"enabled": True},
        })
        assert restored.storage.backend == "local"


class TestStorageSettings:

    def test_explicit_local_dir(self, temp_dir):
        assert StorageSettings(local_dir=str(temp_dir)).get_local_dir() == temp_dir

    def test_default_local_dir(self):
        assert StorageSettings().get_local_dir().name == "funnels"

    def test_owner_id(self):
        assert StorageSettings(owner_id="alice").get_owner_id() == "alice"
        assert StorageSettings().get_owner_id()


class TestSettingsManager:

    def test_save_and_reload(self, settings_manager):
        settings_manager.editor.grid_size = 32
        settings_manager.set_storage_backend("supabase")

        data = json.loads(Path(settings_manager.settings_path).read_text(encoding="utf-8"))
        assert data["storage"]["backend"] == "supabase"
        assert data["editor"]["grid_size"] == 32

        settings_manager.reset()
        assert settings_manager.storage.backend == "local"

    def test_corrupt_file_keeps_defaults(self, temp_dir):
        path = temp_dir / "broken.json"
        path.write_text("{", encoding="utf-8")
        from services.settings_manager import SettingsManager
        manager = SettingsManager(config_override=str(path))
        assert manager.storage.backend == "local"

    def test_recent_funnels(self, settings_manager):
        settings_manager.add_recent_funnel("f1", "One")
        settings_manager.add_recent_funnel("f2", "Two")
        settings_manager.add_recent_funnel("f1", "One again")
        assert settings_manager.get_recent_funnels() == [
            {"id": "f1", "name": "One again"},
            {"id": "f2", "name": "Two"},
        ]

        settings_manager.remove_recent_funnel("f2")
        assert [r["id"] for r in settings_manager.get_recent_funnels()] == ["f1"]

    def test_recent_funnels_capped(self, settings_manager):
        settings_manager.editor.recent_funnels_max = 3
        for i in range(5):
            settings_manager.add_recent_funnel(f"f{i}", f"Funnel {i}")
        assert [r["id"] for r in settings_manager.get_recent_funnels()] == ["f4", "f3", "f2"]

    def test_window_geometry(self, settings_manager):
        assert settings_manager.get_window_geometry() == (None, None)
        settings_manager.save_window_geometry(b"\x01\x02", b"state")
        assert settings_manager.get_window_geometry() == (b"\x01\x02", b"state")


def test_global_instance(temp_dir):
    reset_settings_manager()
    try:
        first = get_settings(str(temp_dir / "settings.json"))
        assert get_settings() is first
    finally:
        reset_settings_manager()

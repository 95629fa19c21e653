"""
Settings Manager.

Handles application settings with JSON file storage.
"""

import getpass
import json
import logging
import os
from dataclasses import dataclass, field, asdict
from typing import Optional
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class StorageSettings:
    """
    Where saved funnels live.

    backend is "local" (JSON files under local_dir) or "supabase".
    Empty supabase_url / supabase_key fall back to the SUPABASE_URL and
    SUPABASE_KEY environment variables.
    """
    backend: str = "local"
    local_dir: str = ""
    supabase_url: str = ""
    supabase_key: str = ""
    owner_id: str = ""

    def get_local_dir(self) -> Path:
        """Directory of the local funnel store."""
        if self.local_dir:
            return Path(self.local_dir).expanduser()
        return self._get_default_local_dir()

    def _get_default_local_dir(self) -> Path:
        """Get platform-specific default funnels directory."""
        import platform
        system = platform.system()

        if system == "Windows":
            docs = Path(os.environ.get("USERPROFILE", "~")) / "Documents"
            return docs.expanduser() / "FunnelBuilder" / "funnels"
        elif system == "Darwin":  # macOS
            return Path.home() / "Documents" / "FunnelBuilder" / "funnels"
        else:  # Linux and others
            return Path.home() / "funnelbuilder" / "funnels"

    def get_owner_id(self) -> str:
        """Owner the funnels are scoped to; the OS user if unset."""
        if self.owner_id:
            return self.owner_id
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "default"


@dataclass
class EditorSettings:
    """Canvas and editing preferences."""
    show_grid: bool = True
    grid_size: int = 20
    zoom_step: float = 0.1
    starter_funnel: bool = True
    recent_funnels_max: int = 10


@dataclass
class AppSettings:
    """Complete application settings."""
    storage: StorageSettings = field(default_factory=StorageSettings)
    editor: EditorSettings = field(default_factory=EditorSettings)
    recent_funnels: list = field(default_factory=list)
    window_geometry: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "storage": asdict(self.storage),
            "editor": asdict(self.editor),
            "recent_funnels": self.recent_funnels,
            "window_geometry": self.window_geometry,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create from dictionary. Unknown keys in a section are ignored."""
        settings = cls()

        if "storage" in data:
            settings.storage = _section(StorageSettings, data["storage"])
        if "editor" in data:
            settings.editor = _section(EditorSettings, data["editor"])
        if "recent_funnels" in data:
            settings.recent_funnels = data["recent_funnels"]
        if "window_geometry" in data:
            settings.window_geometry = data["window_geometry"]

        return settings


def _section(cls, data: dict):
    known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
    return cls(**known)


class SettingsManager:
    """
    Manages application settings with JSON file storage.

    Settings file location:
    - Windows: %APPDATA%/FunnelBuilder/settings.json
    - Linux: ~/.config/FunnelBuilder/settings.json
    - macOS: ~/Library/Application Support/FunnelBuilder/settings.json
    """

    APP_NAME = "FunnelBuilder"
    SETTINGS_FILE = "settings.json"

    def __init__(self, config_override: Optional[str] = None):
        """
        Initialize settings manager.

        Args:
            config_override: Optional path to override config file location.
                            Useful for testing.
        """
        self._settings = AppSettings()
        self._config_override = config_override
        self._settings_path = self._get_settings_path()
        self._ensure_settings_dir()
        self.load()

    @property
    def settings(self) -> AppSettings:
        """Get current settings."""
        return self._settings

    @property
    def settings_path(self) -> str:
        """Get the settings file path."""
        return str(self._settings_path)

    @property
    def storage(self) -> StorageSettings:
        return self._settings.storage

    @property
    def editor(self) -> EditorSettings:
        return self._settings.editor

    def set_storage_backend(self, backend: str):
        self._settings.storage.backend = backend
        self.save()

    def _get_settings_path(self) -> Path:
        """Get platform-specific settings directory."""
        if self._config_override:
            return Path(self._config_override)

        import platform
        system = platform.system()

        if system == "Windows":
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
            config_dir = Path(base) / self.APP_NAME
        elif system == "Darwin":  # macOS
            config_dir = Path.home() / "Library" / "Application Support" / self.APP_NAME
        else:  # Linux and others
            xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            config_dir = Path(xdg_config) / self.APP_NAME

        return config_dir / self.SETTINGS_FILE

    def _ensure_settings_dir(self):
        """Create settings directory if it doesn't exist."""
        self._settings_path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> bool:
        """Load settings from file."""
        if not self._settings_path.exists():
            return False

        try:
            with open(self._settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._settings = AppSettings.from_dict(data)
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading settings: {e}")
            return False

    def save(self) -> bool:
        """Save settings to file."""
        try:
            self._ensure_settings_dir()
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings.to_dict(), f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return False

    def reset(self):
        """Reset settings to defaults."""
        self._settings = AppSettings()
        self.save()

    def add_recent_funnel(self, funnel_id: str, name: str):
        """Add a funnel to the recent list."""
        recent = [r for r in self._settings.recent_funnels if r.get("id") != funnel_id]
        recent.insert(0, {"id": funnel_id, "name": name})
        self._settings.recent_funnels = recent[:self._settings.editor.recent_funnels_max]
        self.save()

    def remove_recent_funnel(self, funnel_id: str):
        self._settings.recent_funnels = [
            r for r in self._settings.recent_funnels if r.get("id") != funnel_id
        ]
        self.save()

    def get_recent_funnels(self) -> list:
        return list(self._settings.recent_funnels)

    def save_window_geometry(self, geometry: bytes, state: bytes):
        """Save window geometry and state."""
        import base64
        self._settings.window_geometry = {
            "geometry": base64.b64encode(geometry).decode("ascii"),
            "state": base64.b64encode(state).decode("ascii"),
        }
        self.save()

    def get_window_geometry(self) -> tuple:
        """Get saved window geometry and state."""
        import base64
        import binascii
        geo = self._settings.window_geometry
        if not geo:
            return None, None

        try:
            geometry = base64.b64decode(geo.get("geometry", ""))
            state = base64.b64decode(geo.get("state", ""))
            return geometry, state
        except (binascii.Error, ValueError):
            return None, None


# Global settings instance
_settings_manager: Optional[SettingsManager] = None


def get_settings(config_override: Optional[str] = None) -> SettingsManager:
    """
    Get the global settings manager instance.

    Args:
        config_override: Optional path to override config location.
                        Only used on first call to initialize.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager(config_override)
    return _settings_manager


def reset_settings_manager():
    """Reset the global settings manager (useful for testing)."""
    global _settings_manager
    _settings_manager = None

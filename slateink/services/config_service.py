"""
Configuration service for SlateInk.

This module handles loading, saving, and managing engine settings.
Configuration is stored as JSON in ~/.config/slateink/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from slateink.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "slateink"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "theme": "light",
    # Smallest width/height (document units) a box shape may be resized to
    "min_annotation_size": 5,
    # Idle window that folds arrow-key repeats into one undo step
    "nudge_group_ms": 350,
    # Screen pixels a duplicate is offset from its source
    "duplicate_offset_px": 12,
    "nudge_step_px": 1,
    "nudge_large_step_px": 10,
    # Pointer slop for picking annotations and handles (screen pixels)
    "hit_tolerance_px": 6,
    "handle_radius_px": 5,
    "simplify_tolerance": 1.5,
    "toolbar": {
        "padding": 8,
        "handle_padding": 12,
        "default_width": 120,
        "default_height": 36,
    },
    # Per-tool overrides, keyed by annotation type value, e.g.
    # {"rectangle": {"color": "#ff0000", "strokeWidth": 3}}
    "tools": {},
}


class ConfigService:
    """
    Service for managing engine configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/slateink/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = self._deep_copy_defaults()

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            # Loaded values override defaults
            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Save back to ensure any new default keys are persisted
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = self._deep_copy_defaults()
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_copy_defaults(self) -> Dict[str, Any]:
        """Create a deep copy of default config."""
        return copy.deepcopy(DEFAULT_CONFIG)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Note:
            Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Theme Settings ───────────────────────────────────────────────────

    @property
    def theme(self) -> str:
        """Get the current theme setting."""
        return self.get("theme", "light")

    @property
    def dark_theme(self) -> bool:
        return str(self.theme).lower() == "dark"

    # ─── Toolbar Settings ─────────────────────────────────────────────────

    @property
    def toolbar(self) -> Dict[str, Any]:
        """Get the floating toolbar settings."""
        toolbar = self.get("toolbar", DEFAULT_CONFIG["toolbar"])
        if not isinstance(toolbar, dict):
            return dict(DEFAULT_CONFIG["toolbar"])
        return toolbar

    # ─── Tool Settings ────────────────────────────────────────────────────

    @property
    def tools(self) -> Dict[str, Any]:
        """Get the raw per-tool overrides."""
        tools = self.get("tools", {})
        return tools if isinstance(tools, dict) else {}

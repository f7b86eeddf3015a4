"""Configuration loader for server settings."""
import json
import os
from typing import Dict, Any


class ConfigLoader:
    """Loads and provides access to server configuration."""

    _instance = None
    _config_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config")

    def __new__(cls):
        """Singleton pattern to ensure only one config loader."""
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
            cls._instance._load_all_configs()
        return cls._instance

    def _load_all_configs(self):
        """Load all configuration files."""
        self.server_settings = self._load_json("server_settings.json")

    def _load_json(self, filename: str) -> Dict[str, Any]:
        """Load a JSON configuration file."""
        filepath = os.path.join(self._config_dir, filename)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            print(f"Warning: Config file {filename} not found. Using defaults.")
            return {}
        except json.JSONDecodeError as e:
            print(f"Warning: Error parsing {filename}: {e}. Using defaults.")
            return {}
        if not isinstance(data, dict):
            print(f"Warning: {filename} must contain a JSON object. Using defaults.")
            return {}
        return data

    def get(self, *keys, default=None):
        """Get a nested configuration value."""
        value = self.server_settings
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.server_settings.get(name, {})
        return section if isinstance(section, dict) else {}

    def get_server(self) -> Dict[str, Any]:
        """Get connection gateway settings."""
        return self._section("server")

    def get_rooms(self) -> Dict[str, Any]:
        """Get room coordinator settings."""
        return self._section("rooms")


# Global config instance
config = ConfigLoader()

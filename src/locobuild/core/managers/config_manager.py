# src/locobuild/core/managers/config_manager.py
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from locobuild.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def merge_mappings(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merges ``override`` into a copy of ``base``; nested dicts merge, other values replace."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_mappings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


class ConfigManager:
    """
    Manages the application's configuration.

    Settings are layered: the packaged settings.json, then the user's
    ~/.locobuild/settings.json when present, then an explicit config file
    (the --config flag). In-memory modifications last until reset().
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None, use_user_config: bool = True):
        self.config_path = Path(config_path) if config_path else None
        self.use_user_config = use_user_config
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def _layers(self) -> List[Path]:
        layers = [PathUtils.get_default_settings_file()]
        if self.use_user_config:
            layers.append(PathUtils.get_user_config_dir() / "settings.json")
        if self.config_path:
            layers.append(self.config_path)
        return layers

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'watch.interval'.
        """
        keys = key_path.split('.')
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration.
        e.g., 'debug.level', 'INFO'
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        # Cast to the type of the value being replaced
        original_value = d.get(keys[-1])
        if original_value is None and isinstance(value, str):
            # No type to follow: numbers, booleans, null and JSON lists/objects are parsed
            try:
                value = json.loads(value)
            except ValueError:
                pass
        if original_value is not None and not isinstance(original_value, (dict, list)):
            try:
                if isinstance(original_value, bool) and isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                else:
                    value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as string.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.debug("Configuration updated: %s = %s", key_path, value)
        return True

    def reset(self) -> None:
        """
        Reloads the configuration from its files.

        Raises:
            FileNotFoundError: If an explicit config file doesn't exist.
            ValueError: If a config file isn't valid JSON.
        """
        config: Dict[str, Any] = {}
        for path in self._layers():
            if not path.exists():
                if path == self.config_path:
                    raise FileNotFoundError(f"Configuration file not found: {path}")
                logger.debug("No settings at %s, skipping.", path)
                continue
            config = merge_mappings(config, _read_json(path))
            logger.debug("Loaded settings from %s", path)
        self._config = config

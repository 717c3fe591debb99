"""
Configuration management for the CHIP-8 emulator.

This module provides tools for loading, validating, and managing configuration
settings. JSON and YAML files are deep-merged over built-in defaults and
validated before they take effect.
"""

import os
import json
import logging
import copy
from typing import Dict, Any, Optional, List
import yaml

from ..constants import DEFAULT_CYCLES_PER_FRAME, DEFAULT_RNG_SEED, MAX_HISTORY_SIZE
from ..system_configs import SYSTEM_CONFIGS

logger = logging.getLogger("Chip8Emulator.ConfigManager")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
HISTORY_FORMATS = ["json", "csv", "pickle"]

class ConfigManager:
    """
    Configuration management for the emulator.

    This class handles loading, validating, and providing access to
    configuration settings, using dotted key paths such as ``logging.level``.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to configuration file (None for default values)
        """
        self.defaults = {
            "system": "chip8",
            "cycles_per_frame": DEFAULT_CYCLES_PER_FRAME,
            "seed": DEFAULT_RNG_SEED,
            "logging": {
                "level": "INFO",
                "file": None,
                "console": True
            },
            "recording": {
                "enabled": False,
                "max_history": MAX_HISTORY_SIZE,
                "compression_ratio": 10,
                "format": "json"
            },
            "output": {
                "dump_display": False,
                "plot": False,
                "directory": "./output"
            }
        }

        self.config = copy.deepcopy(self.defaults)

        # Set of keys that have been modified from defaults
        self.modified_keys = set()

        if config_path:
            self.load_config(config_path)

        logger.debug("ConfigManager initialized")

    def load_config(self, config_path: str) -> bool:
        """
        Load configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            True if configuration loaded successfully, False otherwise
        """
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found: {config_path}")
            return False

        _, ext = os.path.splitext(config_path)
        ext = ext.lower()

        try:
            if ext == '.json':
                with open(config_path, 'r') as f:
                    user_config = json.load(f)
            elif ext in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
            else:
                logger.error(f"Unsupported configuration format: {ext}")
                return False
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading configuration: {e}")
            return False

        if not self.load_from_dict(user_config):
            return False

        logger.info(f"Configuration loaded from {config_path}")
        return True

    def load_from_dict(self, config_dict: Dict[str, Any]) -> bool:
        """
        Load configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            True if loaded successfully, False otherwise
        """
        validation_errors = self.validate_config(config_dict)
        if validation_errors:
            for error in validation_errors:
                logger.error(f"Configuration validation error: {error}")
            return False

        self._merge_config(config_dict, self.config)
        return True

    def _merge_config(self, user_config: Dict[str, Any], target: Dict[str, Any], path: str = "") -> None:
        """
        Merge user configuration into ``target``, tracking modified keys.

        Args:
            user_config: User configuration dictionary
            target: Dictionary being updated
            path: Current key path for tracking (internal use)
        """
        for key, value in user_config.items():
            current_path = f"{path}.{key}" if path else key

            if isinstance(value, dict) and isinstance(target.get(key), dict):
                self._merge_config(value, target[key], current_path)
            else:
                target[key] = value
                self.modified_keys.add(current_path)

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate configuration against schema.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not isinstance(config, dict):
            return [f"Configuration must be a mapping, got {type(config).__name__}"]

        if "system" in config and config["system"] not in SYSTEM_CONFIGS:
            valid_systems = ", ".join(SYSTEM_CONFIGS.keys())
            errors.append(f"Invalid system type: {config['system']}. Valid options: {valid_systems}")

        if "cycles_per_frame" in config:
            value = config["cycles_per_frame"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(f"Invalid cycles_per_frame: {value}. Must be a positive integer")

        if "seed" in config:
            value = config["seed"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(f"Invalid seed: {value}. Must be a non-negative integer")

        for section in ("logging", "recording", "output"):
            if section in config and not isinstance(config[section], dict):
                errors.append(f"Invalid {section}: {config[section]!r}. Must be a mapping")

        if isinstance(config.get("logging"), dict):
            log_config = config["logging"]

            if "level" in log_config and log_config["level"] not in LOG_LEVELS:
                errors.append(f"Invalid logging.level: {log_config['level']}. "
                              f"Valid options: {', '.join(LOG_LEVELS)}")

            if "console" in log_config and not isinstance(log_config["console"], bool):
                errors.append(f"Invalid logging.console: {log_config['console']}. Must be a boolean")

        if isinstance(config.get("recording"), dict):
            rec_config = config["recording"]

            if "enabled" in rec_config and not isinstance(rec_config["enabled"], bool):
                errors.append(f"Invalid recording.enabled: {rec_config['enabled']}. Must be a boolean")

            for key in ["max_history", "compression_ratio"]:
                if key in rec_config:
                    value = rec_config[key]
                    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                        errors.append(f"Invalid recording.{key}: {value}. Must be a positive integer")

            if "format" in rec_config and rec_config["format"] not in HISTORY_FORMATS:
                errors.append(f"Invalid recording.format: {rec_config['format']}. "
                              f"Valid options: {', '.join(HISTORY_FORMATS)}")

        if isinstance(config.get("output"), dict):
            out_config = config["output"]
            for key in ["dump_display", "plot"]:
                if key in out_config and not isinstance(out_config[key], bool):
                    errors.append(f"Invalid output.{key}: {out_config[key]}. Must be a boolean")
            if "directory" in out_config and not isinstance(out_config["directory"], str):
                errors.append(f"Invalid output.directory: {out_config['directory']}. Must be a path string")

        return errors

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key path.

        Args:
            key: Configuration key path (e.g., 'logging.level')
            default: Default value if key not found

        Returns:
            Configuration value or default if not found
        """
        value = self.config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value by key path.

        Args:
            key: Configuration key path (e.g., 'recording.enabled')
            value: Value to set
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        self.modified_keys.add(key)

        logger.debug(f"Configuration updated: {key} = {value}")

    def reset(self, key: Optional[str] = None) -> None:
        """
        Reset configuration to defaults.

        Args:
            key: Key path to reset (None for all)
        """
        if key is None:
            self.config = copy.deepcopy(self.defaults)
            self.modified_keys.clear()
            return

        keys = key.split('.')
        default_value = self.defaults
        for k in keys:
            if not isinstance(default_value, dict) or k not in default_value:
                return
            default_value = default_value[k]

        self.set(key, copy.deepcopy(default_value))
        self.modified_keys.discard(key)

    def save_config(self, config_path: str, format: str = 'json') -> bool:
        """
        Save current configuration to file.

        Args:
            config_path: Path to output file
            format: Output format ('json' or 'yaml')

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            directory = os.path.dirname(config_path)
            if directory and not os.path.exists(directory):
                os.makedirs(directory)

            if format.lower() == 'json':
                with open(config_path, 'w') as f:
                    json.dump(self.config, f, indent=2)
            elif format.lower() in ['yaml', 'yml']:
                with open(config_path, 'w') as f:
                    yaml.safe_dump(self.config, f, default_flow_style=False)
            else:
                logger.error(f"Unsupported configuration format: {format}")
                return False

            logger.info(f"Configuration saved to {config_path}")
            return True

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    def get_system_config(self) -> Dict[str, Any]:
        """
        Get the machine configuration with user overrides applied.

        Returns:
            System configuration dictionary
        """
        system_config = copy.deepcopy(SYSTEM_CONFIGS.get(self.get("system", "chip8"), {}))
        system_config["cycles_per_frame"] = self.get("cycles_per_frame", DEFAULT_CYCLES_PER_FRAME)
        system_config["seed"] = self.get("seed", DEFAULT_RNG_SEED)
        return system_config

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config)

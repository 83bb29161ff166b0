"""
Configuration management module for the coordinate toolkit.
Provides centralized access to solver and formatting parameters.
"""

import yaml
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


class Config:
    """
    Singleton configuration manager.

    Loads and provides access to configuration parameters from YAML file.
    Supports nested configuration access via dot notation.

    Example:
        >>> config = Config()
        >>> config.get('geodesy.vincenty_max_iterations', default=200)
        200
    """

    _instance = None
    _config_data = None

    def __new__(cls, config_path: str = "config.yaml"):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._load_config(config_path)
        return cls._instance

    def _load_config(self, config_path: str) -> None:
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            logger.warning(f"Config file {config_path} not found. Using defaults.")
            self._config_data = self._get_default_config()
            return

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing config file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading config file: {e}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping, got {type(loaded).__name__}"
            )

        self._config_data = self._merge(self._get_default_config(), loaded)
        logger.info(f"Configuration loaded from {config_path}")

    @staticmethod
    def _merge(defaults: dict, overrides: dict) -> dict:
        """Overlay loaded values on the defaults, section by section."""
        merged = dict(defaults)
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = Config._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Dot-separated path to config value (e.g., 'formats.mgrs_precision')
            default: Default value if path not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('formats.mgrs_precision', 5)
            5
        """
        if self._config_data is None:
            return default

        keys = path.split('.')
        value = self._config_data

        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value

    def get_section(self, section: str) -> dict:
        """
        Get entire configuration section.

        Args:
            section: Top-level section name

        Returns:
            Dictionary with section configuration
        """
        if self._config_data is None:
            return {}

        return self._config_data.get(section, {})

    def _get_default_config(self) -> dict:
        """Return default configuration if file not found."""
        return {
            'geodesy': {
                'vincenty_max_iterations': 200,
                'vincenty_tolerance': 1e-12,
                'distance_model': 'WGS84',
                'translate_model': 'SPHERE'
            },
            'formats': {
                'mgrs_precision': 5,
                'dmm_minute_decimals': 3,
                'dms_second_decimals': 0
            },
            'logging': {
                'level': 'INFO',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'json': False
            }
        }

    def reload(self, config_path: str = "config.yaml") -> None:
        """Reload configuration from file."""
        self._load_config(config_path)

    def validate(self) -> bool:
        """
        Validate configuration for required fields and valid values.

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        required_fields = [
            'geodesy.vincenty_max_iterations',
            'geodesy.vincenty_tolerance',
            'formats.mgrs_precision'
        ]

        for field in required_fields:
            if self.get(field) is None:
                raise ConfigurationError(f"Required field '{field}' is missing")

        # Validate solver limits
        max_iterations = self.get('geodesy.vincenty_max_iterations')
        tolerance = self.get('geodesy.vincenty_tolerance')

        if not isinstance(max_iterations, int) or max_iterations < 1:
            raise ConfigurationError(f"Invalid Vincenty iteration cap: {max_iterations}")

        if not isinstance(tolerance, (int, float)) or not (0 < tolerance < 1e-3):
            raise ConfigurationError(f"Invalid Vincenty tolerance: {tolerance}")

        for field in ('geodesy.distance_model', 'geodesy.translate_model'):
            model = self.get(field, 'WGS84')
            if str(model).upper() not in ('SPHERE', 'WGS84'):
                raise ConfigurationError(f"Invalid Earth model for '{field}': {model}")

        # Validate display precision
        precision = self.get('formats.mgrs_precision')
        if not isinstance(precision, int) or not (1 <= precision <= 5):
            raise ConfigurationError(f"Invalid MGRS precision: {precision}")

        for field in ('formats.dmm_minute_decimals', 'formats.dms_second_decimals'):
            decimals = self.get(field, 0)
            if not isinstance(decimals, int) or not (0 <= decimals <= 9):
                raise ConfigurationError(f"Invalid decimals for '{field}': {decimals}")

        return True


# Convenience function for direct access
_config_instance = None


def get_config() -> Config:
    """Get global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance

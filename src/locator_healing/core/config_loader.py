"""Configuration loading and validation utilities for self-healing."""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .errors import ConfigurationError
from .models.healing_models import SelfHealingConfig
from .config import settings

logger = logging.getLogger(__name__)


def validate_healing_config(config: SelfHealingConfig) -> None:
    """Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        ConfigurationError: If validation fails
    """
    errors = []

    if not isinstance(config.auto_accept_threshold, int) or isinstance(config.auto_accept_threshold, bool):
        errors.append("auto_accept_threshold must be an integer")
    elif config.auto_accept_threshold < 0 or config.auto_accept_threshold > 100:
        errors.append("auto_accept_threshold must be between 0 and 100")

    if config.fingerprint_retention_days < 1 or config.fingerprint_retention_days > 365:
        errors.append("fingerprint_retention_days must be between 1 and 365")

    if config.locate_timeout <= 0:
        errors.append("locate_timeout must be positive")

    if config.distance_tolerance <= 0:
        errors.append("distance_tolerance must be positive")

    if errors:
        raise ConfigurationError(
            "Configuration validation failed: " + "; ".join(errors))


class SelfHealingConfigLoader:
    """Loads and validates self-healing configuration."""

    DEFAULT_CONFIG = {
        "self_healing": {
            "enabled": True,
            "auto_accept_threshold": 80,
            "fingerprint_retention_days": 90,
            "strategies": {
                "enable_deep_think": True,
                "locate_timeout": 30.0
            },
            "scoring": {
                "distance_tolerance": 200.0
            }
        }
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize config loader with optional custom path."""
        self.config_path = Path(
            config_path or settings.SELF_HEALING_CONFIG_PATH)
        self._config_cache: Optional[SelfHealingConfig] = None
        self._config_file_mtime: Optional[float] = None

    def load_config(self, force_reload: bool = False) -> SelfHealingConfig:
        """Load and validate self-healing configuration.

        Args:
            force_reload: Force reload even if cached config exists

        Returns:
            SelfHealingConfig: Validated configuration object

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not force_reload and self._config_cache and self._is_config_current():
            return self._config_cache

        try:
            config_data = self._load_config_file()
            healing_config = self._parse_healing_config(config_data)
            validate_healing_config(healing_config)

            self._config_cache = healing_config
            if self.config_path.exists():
                self._config_file_mtime = self.config_path.stat().st_mtime

            logger.info(
                f"Loaded self-healing configuration from {self.config_path}")
            return healing_config

        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to load self-healing configuration: {e}")
            raise ConfigurationError(
                f"Configuration loading failed: {e}") from e

    def save_config(self, config: SelfHealingConfig) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save

        Raises:
            ConfigurationError: If saving fails
        """
        validate_healing_config(config)

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            config_data = {
                "self_healing": self._config_to_dict(config)
            }

            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)

            self._config_cache = config
            self._config_file_mtime = self.config_path.stat().st_mtime

            logger.info(
                f"Saved self-healing configuration to {self.config_path}")

        except Exception as e:
            logger.error(f"Failed to save self-healing configuration: {e}")
            raise ConfigurationError(
                f"Configuration saving failed: {e}") from e

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from file or return defaults."""
        if not self.config_path.exists():
            logger.info(
                f"Config file {self.config_path} not found, using defaults")
            return self._deep_merge(self.DEFAULT_CONFIG, {})

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping at the top level")

        return self._deep_merge(self.DEFAULT_CONFIG, config_data)

    def _parse_healing_config(self, config_data: Dict[str, Any]) -> SelfHealingConfig:
        """Parse configuration data into SelfHealingConfig object."""
        healing_section = config_data.get("self_healing", {})

        strategies = healing_section.get("strategies", {})
        scoring = healing_section.get("scoring", {})

        try:
            return SelfHealingConfig(
                enabled=bool(healing_section.get("enabled", True)),
                enable_deep_think=bool(strategies.get("enable_deep_think", True)),
                auto_accept_threshold=healing_section.get("auto_accept_threshold", 80),
                fingerprint_retention_days=int(
                    healing_section.get("fingerprint_retention_days", 90)),
                locate_timeout=float(strategies.get("locate_timeout", 30.0)),
                distance_tolerance=float(scoring.get("distance_tolerance", 200.0))
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}")

    def _config_to_dict(self, config: SelfHealingConfig) -> Dict[str, Any]:
        """Convert SelfHealingConfig to nested dictionary structure."""
        return {
            "enabled": config.enabled,
            "auto_accept_threshold": config.auto_accept_threshold,
            "fingerprint_retention_days": config.fingerprint_retention_days,
            "strategies": {
                "enable_deep_think": config.enable_deep_think,
                "locate_timeout": config.locate_timeout
            },
            "scoring": {
                "distance_tolerance": config.distance_tolerance
            }
        }

    def _is_config_current(self) -> bool:
        """Check if cached config is still current."""
        if not self.config_path.exists():
            return self._config_file_mtime is None

        current_mtime = self.config_path.stat().st_mtime
        return self._config_file_mtime == current_mtime

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = {
            key: self._deep_merge(value, {}) if isinstance(value, dict) else value
            for key, value in base.items()
        }

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


# Global config loader instance
config_loader = SelfHealingConfigLoader()


def get_healing_config(force_reload: bool = False) -> SelfHealingConfig:
    """Get the current self-healing configuration.

    Args:
        force_reload: Force reload from file

    Returns:
        SelfHealingConfig: Current configuration
    """
    config = config_loader.load_config(force_reload)

    # Global enable/disable setting wins over the file
    if not settings.SELF_HEALING_ENABLED:
        config = SelfHealingConfig.from_dict({**config.to_dict(), "enabled": False})

    return config


def save_healing_config(config: SelfHealingConfig) -> None:
    """Save self-healing configuration.

    Args:
        config: Configuration to save
    """
    config_loader.save_config(config)


def create_default_config_file() -> None:
    """Create a default configuration file if it doesn't exist."""
    if not config_loader.config_path.exists():
        config_loader.save_config(SelfHealingConfig())
        logger.info(
            f"Created default self-healing config at {config_loader.config_path}")

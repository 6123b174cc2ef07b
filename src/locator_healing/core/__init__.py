"""
Core module for the locator self-healing engine.

This module contains:
- config.py: Process settings
- config_loader.py: Self-healing YAML configuration
- errors.py: Exception types
- logging_config.py: Logging configuration
- models: Data models
"""

__all__ = ["config", "config_loader", "errors", "logging_config", "models"]

"""Configuration management."""

from camcalib.config.config_manager import ConfigManager

__all__ = ["ConfigManager"]

"""Configuration module for profitrack."""

from profitrack.config.logging import configure_logging
from profitrack.config.settings import ProfitrackSettings, get_settings

__all__ = ["ProfitrackSettings", "get_settings", "configure_logging"]

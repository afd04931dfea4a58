"""
Runtime settings for domfinder.

Values come from environment variables and are read once, when the settings
object is created.
"""

import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_HTML_PARSER = 'lxml'
DEFAULT_MAX_WORKERS = 4
DEFAULT_LOG_LEVEL = 'WARNING'

# Global settings instance
_settings: Optional['Settings'] = None


class Settings:
    """Environment-driven settings."""

    def __init__(self):
        self.html_parser = os.getenv('DOMFINDER_HTML_PARSER', DEFAULT_HTML_PARSER).strip() or DEFAULT_HTML_PARSER
        self.max_workers = self._parse_positive_int('DOMFINDER_MAX_WORKERS', DEFAULT_MAX_WORKERS)
        self.log_level = os.getenv('DOMFINDER_LOG_LEVEL', DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL

        logger.debug(
            f"Settings: html_parser={self.html_parser}, "
            f"max_workers={self.max_workers}, log_level={self.log_level}"
        )

    def _parse_positive_int(self, name: str, default: int) -> int:
        """Read a positive integer variable, falling back to `default`."""
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"Invalid {name}={raw!r}, using {default}")
            return default
        if value < 1:
            logger.warning(f"{name} must be >= 1, got {value}, using {default}")
            return default
        return value


def get_settings() -> Settings:
    """Get or create the global settings"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None

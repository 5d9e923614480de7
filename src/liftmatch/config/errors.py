"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid or cannot be loaded."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required environment variables are absent or blank."""

"""Configuration module for basemeter.

Provides centralized configuration management with type-safe enums.

Usage:
    from basemeter.core.config import settings, Environment

    # Access settings
    if settings.TRIAL_LIMIT > 0:
        ...

    # Use enums for type safety
    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from basemeter.core.config.enums import Environment
from basemeter.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()

"""Configuration module for the prepcoach backend.

Provides centralized configuration management with type-safe enums.

Usage:
    from prepcoach.core.config import settings, Environment

    # Build the container once at startup and pass settings by reference
    container = create_container(settings)

    if settings.ENVIRONMENT == Environment.PRD:
        ...

Domain code never imports ``settings`` directly; the container factory
hands each component the values it needs.
"""

from prepcoach.core.config.enums import Environment
from prepcoach.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()

"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from groupchat_service.core.settings import get_outbox_settings

    settings = get_outbox_settings()  # First call: loads and validates
    settings = get_outbox_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_outbox_settings.cache_clear()

    Or pass explicit instances to the components instead of relying on loaders:
    OutboxPublisher(..., batch_size=10)
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .consumer import ConsumerSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_outbox_settings() -> OutboxSettings:
    """Get cached outbox publisher settings."""
    return OutboxSettings()


@lru_cache(maxsize=1)
def get_consumer_settings() -> ConsumerSettings:
    """Get cached consumer settings."""
    return ConsumerSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


def clear_all_caches() -> None:
    """Drop every cached settings instance (tests and reloads)."""
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_outbox_settings.cache_clear()
    get_consumer_settings.cache_clear()
    get_logging_settings.cache_clear()

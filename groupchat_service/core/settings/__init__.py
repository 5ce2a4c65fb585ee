"""Modular Pydantic Settings v2 configuration.

One settings class per concern (app, database, broker, outbox, consumer,
logging), each with its own environment prefix, frozen after validation
and exposed through LRU-cached loaders:

    from groupchat_service.core.settings import get_rabbit_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .consumer import ConsumerSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_consumer_settings,
    get_db_settings,
    get_logging_settings,
    get_outbox_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "ConsumerSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "OutboxSettings",
    "RabbitSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_consumer_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_outbox_settings",
    "get_rabbit_settings",
]

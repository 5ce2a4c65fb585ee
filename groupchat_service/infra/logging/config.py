"""Logging configuration setup.

Uses:
- dictConfig for the whole configuration
- a QueueHandler on the root logger with a QueueListener feeding the real
  handlers, so background loops never block on log I/O
- JSONL format for machine parsing, or plain text for local runs
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from groupchat_service.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

_LOGGING_INITIALIZED = False

# Chatty third-party loggers kept at ``library_level``
_LIBRARY_LOGGERS = ("aio_pika", "aiormq", "sqlalchemy.engine", "sqlalchemy.pool")


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from groupchat_service.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "groups-service",
    library_level: str = "WARNING",
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Enable JSONL structured logging.
        console_enabled: Enable stderr logging.
        file_path: Path to a rotating log file. None disables file logging.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        service_name: Static ``service`` field of JSON records.
        library_level: Level for aio-pika/aiormq/SQLAlchemy loggers.

    Example:
        configure_logging(log_level="DEBUG", json_logs=False)
    """
    _stop_listener()

    formatter = "json" if json_logs else "text"
    handlers: dict[str, Any] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        }
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": str(path),
            "maxBytes": file_max_bytes,
            "backupCount": file_backup_count,
            "encoding": "utf-8",
        }
    if not handlers:
        handlers["null"] = {"class": "logging.NullHandler"}

    sinks = list(handlers)
    handlers["queue"] = {
        "class": "logging.handlers.QueueHandler",
        "handlers": sinks,
        "respect_handler_level": True,
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "groupchat_service.infra.logging.formatters.JSONFormatter",
                    "static": {"service": service_name},
                },
                "text": {
                    "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                },
            },
            "handlers": handlers,
            "loggers": {
                name: {"level": library_level.upper()} for name in _LIBRARY_LOGGERS
            },
            "root": {"level": log_level.upper(), "handlers": ["queue"]},
        }
    )
    logging.captureWarnings(True)

    queue_handler = logging.getHandlerByName("queue")
    listener = getattr(queue_handler, "listener", None)
    if listener is not None:
        listener.start()
        atexit.register(_stop_listener)

    logger.debug(
        "Logging configured",
        extra={"log_level": log_level, "json_logs": json_logs, "handlers": sinks},
    )


def _stop_listener() -> None:
    """Flush and stop the queue listener of the current configuration."""
    queue_handler = logging.getHandlerByName("queue")
    listener = getattr(queue_handler, "listener", None)
    if listener is not None and getattr(listener, "_thread", None) is not None:
        listener.stop()


__all__ = ["configure_logging", "setup_logging"]

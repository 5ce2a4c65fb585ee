"""Structured logging setup.

Modules log through the standard library:

    logger = logging.getLogger(__name__)
    logger.info("Outbox batch processed", extra={"published": 10})
"""

from groupchat_service.infra.logging.config import configure_logging, setup_logging
from groupchat_service.infra.logging.formatters import JSONFormatter

__all__ = ["JSONFormatter", "configure_logging", "setup_logging"]

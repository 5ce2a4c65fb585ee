"""Database foundation: declarative base and column mixins."""

from groupchat_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    CreatedAtMixin,
    UUIDPKMixin,
    utcnow,
)

__all__ = ["NAMING_CONVENTION", "Base", "CreatedAtMixin", "UUIDPKMixin", "utcnow"]

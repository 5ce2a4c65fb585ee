"""Exception hierarchy for the event delivery pipeline and its collaborators."""

from __future__ import annotations

from typing import Any


class GroupChatError(Exception):
    """Base exception for the service.

    All custom exceptions inherit from this class so callers can catch
    service failures without catching unrelated errors.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier, stable across releases.
        extra: Additional context (event id, event type, ...) that is
            forwarded to structured logs.

    Example:
        raise GroupChatError(
            "Outbox write failed",
            extra={"event_id": "0b6f...", "event_type": "GroupCreatedEvent"},
        )
    """

    type: str = "groupchat-error"

    def __init__(self, detail: str, *, extra: dict[str, Any] | None = None) -> None:
        """Initialize the exception.

        Args:
            detail: Human-readable error message.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.extra = extra or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        """Return a log-friendly representation of the error."""
        return {"type": self.type, "detail": self.detail, **self.extra}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(detail={self.detail!r}, extra={self.extra!r})"


# ──────────────────────────────────────────────────────────────
# Producer side
# ──────────────────────────────────────────────────────────────


class OutboxWriteError(GroupChatError):
    """Outbox records could not be appended.

    Raised inside the business unit of work. The enclosing operation is
    rolled back so the aggregate change and its events never diverge.
    """

    type = "outbox-write-failed"


class InvalidStatusTransition(GroupChatError):
    """An outbox record was asked to leave a terminal status."""

    type = "invalid-status-transition"


# ──────────────────────────────────────────────────────────────
# Broker
# ──────────────────────────────────────────────────────────────


class BrokerConnectionError(GroupChatError):
    """The broker connection could not be established."""

    type = "broker-connection-failed"


class PublishError(GroupChatError):
    """A publish was rejected, timed out or never confirmed by the broker."""

    type = "publish-failed"


# ──────────────────────────────────────────────────────────────
# Consumer side
# ──────────────────────────────────────────────────────────────


class PoisonMessageError(GroupChatError):
    """An inbound message can never be processed, whatever the retries."""

    type = "poison-message"


# ──────────────────────────────────────────────────────────────
# Business rules
# ──────────────────────────────────────────────────────────────


class DomainRuleError(GroupChatError):
    """A business operation violated an aggregate rule."""

    type = "domain-rule-violation"


class NotFoundError(GroupChatError):
    """Requested aggregate does not exist."""

    type = "not-found"

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(
            f"{resource} '{identifier}' not found",
            extra={"resource": resource, "identifier": str(identifier)},
        )
        self.resource = resource
        self.identifier = identifier


__all__ = [
    "BrokerConnectionError",
    "DomainRuleError",
    "GroupChatError",
    "InvalidStatusTransition",
    "NotFoundError",
    "OutboxWriteError",
    "PoisonMessageError",
    "PublishError",
]

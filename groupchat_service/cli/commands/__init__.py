"""CLI command modules."""

from groupchat_service.cli.commands import broker, ledger, outbox, workers

__all__ = [
    "broker",
    "ledger",
    "outbox",
    "workers",
]

"""Broker connectivity commands."""

import json
import sys

import click

from groupchat_service.cli.utils import coro, error, header, key_values, success
from groupchat_service.core.settings import get_rabbit_settings
from groupchat_service.infra.messaging.connection import BrokerConnectionManager


@click.group(name="broker")
def broker() -> None:
    """RabbitMQ commands."""


@broker.command()
@click.option("--json", "as_json", is_flag=True, help="Print the health report as JSON")
@coro
async def check(as_json: bool) -> None:
    """Open a connection to RabbitMQ and report its health."""
    settings = get_rabbit_settings()
    manager = BrokerConnectionManager(settings)
    try:
        report = await manager.health()
    finally:
        await manager.close()

    if as_json:
        click.echo(json.dumps(report))
    else:
        header("RabbitMQ")
        key_values([("url", settings.safe_url), *report.items()])

    if not report["configured"]:
        error("RabbitMQ is disabled or not configured")
        sys.exit(1)
    if not report["healthy"]:
        error(f"RabbitMQ unreachable: {report.get('error')}")
        sys.exit(1)
    success("RabbitMQ reachable")

"""Main CLI entry point for groupchat-service management commands."""

import click

from groupchat_service.cli.commands import broker, ledger, outbox, workers
from groupchat_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(package_name="groupchat-service", prog_name="groupchat")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Groupchat Service CLI - operate the event delivery pipeline.

    \b
    Command Groups:
      outbox     Inspect, replay and purge outbox records
      ledger     Maintain the processed-event ledger
      workers    Run the outbox publisher and event consumer
      broker     RabbitMQ connectivity

    \b
    Quick Start:
      groupchat broker check          # Check RabbitMQ
      groupchat workers run           # Run the pipeline
      groupchat outbox status         # Records per status
      groupchat outbox replay --all   # Replay Failed records
    """
    ctx.ensure_object(dict)


cli.add_command(outbox.outbox)
cli.add_command(ledger.ledger)
cli.add_command(workers.workers)
cli.add_command(broker.broker)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()

"""Run the background event pipeline."""

import asyncio
import sys

import click

from groupchat_service.cli.utils import coro, error, info
from groupchat_service.core.exceptions import GroupChatError
from groupchat_service.infra.database import init_database
from groupchat_service.workers.runner import build_pipeline, install_signal_handlers


@click.group(name="workers")
def workers() -> None:
    """Background worker commands."""


@workers.command()
@click.option("--no-publisher", is_flag=True, help="Do not run the outbox publisher")
@click.option("--no-consumer", is_flag=True, help="Do not run the event consumer")
@coro
async def run(no_publisher: bool, no_consumer: bool) -> None:
    """Run the outbox publisher and event consumer until SIGINT/SIGTERM.

    Examples:
        \b
        # Both tasks
        groupchat workers run

        # Producer-side instance only
        groupchat workers run --no-consumer
    """
    await init_database()

    pipeline = build_pipeline(
        run_publisher=False if no_publisher else None,
        run_consumer=False if no_consumer else None,
    )
    stop_event = asyncio.Event()
    install_signal_handlers(asyncio.get_running_loop(), stop_event)

    info(
        "Starting event pipeline "
        f"(publisher={'on' if pipeline.publisher else 'off'}, "
        f"consumer={'on' if pipeline.consumer else 'off'})",
    )
    try:
        await pipeline.run(stop_event)
    except GroupChatError as exc:
        error(f"Event pipeline stopped: {exc.detail}")
        sys.exit(1)
    info("Event pipeline stopped")

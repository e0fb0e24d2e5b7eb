"""Command-line interface for storehook."""

import asyncio
import json
from typing import Optional

import click
import nest_asyncio
import structlog

from storehook.config import get_settings
from storehook.database.connection import create_tables, drop_tables, get_db_manager
from storehook.events import EventKind
from storehook.integrations.platform import PlatformClient
from storehook.utils.errors import FetchError
from storehook.validation.signature import SignatureVerifier

logger = structlog.get_logger(__name__)

SUBSCRIBABLE_EVENTS = [kind.value for kind in EventKind if kind is not EventKind.UNKNOWN]


def run_async(coro):
    """Run async function with proper event loop handling.

    Uses nest_asyncio when a loop is already running (e.g. in a notebook),
    avoiding thread-based workarounds.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No loop running, use standard asyncio.run
        return asyncio.run(coro)

    nest_asyncio.apply(loop)
    return loop.run_until_complete(coro)


@click.group()
def cli():
    """storehook CLI."""


@cli.group()
def db():
    """Database management commands."""


@db.command(name="create-tables")
def create_tables_cmd():
    """Create all database tables."""
    try:
        run_async(create_tables())
        click.echo("Database tables created successfully")
    except Exception as e:
        click.echo(f"Failed to create tables: {e}", err=True)
        raise click.ClickException(str(e))


@db.command(name="drop-tables")
@click.confirmation_option(prompt="Are you sure you want to drop all tables?")
def drop_tables_cmd():
    """Drop all database tables."""
    try:
        run_async(drop_tables())
        click.echo("Database tables dropped successfully")
    except Exception as e:
        click.echo(f"Failed to drop tables: {e}", err=True)
        raise click.ClickException(str(e))


@db.command()
def check():
    """Test database connection."""

    async def _ping() -> bool:
        db_manager = get_db_manager()
        try:
            return await db_manager.ping()
        finally:
            await db_manager.close()

    if not run_async(_ping()):
        raise click.ClickException(
            "Cannot connect to database. Check your configuration."
        )
    click.echo("Database connection successful!")


@cli.group()
def webhooks():
    """Webhook setup and debugging commands."""


@webhooks.command()
@click.option(
    "--event",
    "-e",
    "events",
    multiple=True,
    type=click.Choice(SUBSCRIBABLE_EVENTS),
    help="Event to subscribe to (repeatable; default: all handled events)",
)
@click.option("--url", default=None, help="Delivery URL (default: PLATFORM_WEBHOOK_URL)")
@click.option("--name", default=None, help="Subscription name")
@click.option("--version", "version", type=int, default=None, help="Payload version")
def register(events: tuple, url: Optional[str], name: Optional[str], version: Optional[int]):
    """Register webhook subscriptions with the platform."""
    settings = get_settings()
    url = url or settings.platform.webhook_url
    if not url:
        raise click.ClickException("No delivery URL; pass --url or set PLATFORM_WEBHOOK_URL")

    version = version or settings.platform.webhook_version
    events = events or tuple(SUBSCRIBABLE_EVENTS)

    async def _register() -> list:
        async with PlatformClient() as client:
            return [
                await client.register_webhook(event, url, name=name, version=version)
                for event in events
            ]

    try:
        subscriptions = run_async(_register())
    except FetchError as e:
        logger.error(
            "Webhook registration failed",
            error_type=type(e).__name__,
            status_code=e.status_code,
            events=list(events),
        )
        click.echo(f"Registration failed: {e.message}", err=True)
        raise click.ClickException(str(e))

    for event, subscription in zip(events, subscriptions):
        click.echo(f"{event}: subscribed (id={subscription.get('id')})")


@webhooks.command()
@click.argument("payload", type=click.File("rb"))
@click.option("--secret", default=None, help="Shared secret (default: PLATFORM_WEBHOOK_SECRET)")
@click.option("--prefix/--no-prefix", default=False, help="Prefix the digest with 'sha256='")
def sign(payload, secret: Optional[str], prefix: bool):
    """Print the signature header value for a payload file."""
    secret = secret or get_settings().platform.webhook_secret
    if not secret:
        raise click.ClickException("No secret; pass --secret or set PLATFORM_WEBHOOK_SECRET")

    body = payload.read()
    digest = SignatureVerifier().sign(body, secret)
    click.echo(f"sha256={digest}" if prefix else digest)


@webhooks.command()
@click.argument("payload", type=click.File("rb"))
def inspect(payload):
    """Classify a payload file and print the resulting event."""
    from storehook.events import EventClassifier
    from storehook.utils.exceptions import ParseError

    classifier = EventClassifier(default_currency=get_settings().platform.default_currency)
    try:
        event = classifier.classify(payload.read())
    except ParseError as e:
        raise click.ClickException(f"{e.code}: {e.message}")

    click.echo(json.dumps(event.model_dump(mode="json"), indent=2))


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
def serve(host: Optional[str], port: Optional[int]):
    """Start the storehook server."""
    from storehook.main import main

    main(host=host, port=port)


if __name__ == "__main__":
    cli()

"""Command-line interface for dash-sync."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from datetime import date as Date
from typing import Any, TypeVar

import click

from .checkin import events_active_on, is_checked, toggle_checkin
from .config import Backend, SyncConfig
from .dashboard import Dashboard
from .exceptions import DashSyncError
from .models import CheckinData

F = TypeVar("F", bound=Callable[..., Any])


def store_options(func: F) -> F:
    """Options selecting the store target, shared by every data command."""
    options = [
        click.option(
            "--backend",
            type=click.Choice([b.value for b in Backend]),
            envvar="DASH_SYNC_BACKEND",
            help="Object store backend (default: github)",
        ),
        click.option("--owner", envvar="DASH_SYNC_OWNER", help="Repository owner (github)"),
        click.option("--repo", envvar="DASH_SYNC_REPO", help="Repository name (github)"),
        click.option("--branch", envvar="DASH_SYNC_BRANCH", help="Branch to read and write"),
        click.option(
            "--table-name", envvar="DASH_SYNC_TABLE_NAME", help="DynamoDB table name (dynamodb)"
        ),
        click.option("--region", envvar="DASH_SYNC_REGION", help="AWS region (dynamodb)"),
        click.option(
            "--endpoint-url",
            envvar="DASH_SYNC_ENDPOINT_URL",
            help="API root or AWS endpoint (e.g., http://localhost:4566 for LocalStack)",
        ),
        click.option(
            "--cache-dir",
            envvar="DASH_SYNC_CACHE_DIR",
            type=click.Path(file_okay=False),
            help="Directory of the local cache",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _config(**kwargs: Any) -> SyncConfig:
    try:
        return SyncConfig.from_env(**kwargs)
    except DashSyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(2)


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except DashSyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)


def _notify(level: str, message: str) -> None:
    click.echo(f"{'✓' if level == 'success' else '✗'} {message}", err=level != "success")


@click.group()
@click.version_option(package_name="dash-sync")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity")
def cli(verbose: int) -> None:
    """dash-sync dashboard data synchronization CLI."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--table-name", default=None, envvar="DASH_SYNC_TABLE_NAME", help="DynamoDB table")
@click.option("--region", envvar="DASH_SYNC_REGION", help="AWS region (default: boto3 defaults)")
@click.option("--endpoint-url", envvar="DASH_SYNC_ENDPOINT_URL", help="AWS endpoint URL")
@click.option("--branch", envvar="DASH_SYNC_BRANCH", help="Branch to create (default: main)")
def deploy(
    table_name: str | None, region: str | None, endpoint_url: str | None, branch: str | None
) -> None:
    """Create the DynamoDB table and the initial branch."""
    config = _config(
        backend=Backend.DYNAMODB.value,
        table_name=table_name,
        region=region,
        endpoint_url=endpoint_url,
        branch=branch,
    )

    async def _deploy() -> str:
        from .stores.dynamodb import DynamoDBObjectStore

        async with DynamoDBObjectStore(
            config.table_name, config.branch, config.region, config.endpoint_url
        ) as store:
            await store.create_table()
            return await store.create_branch()

    click.echo(f"Deploying table: {config.table_name}")
    click.echo(f"  Region: {config.region or 'default'}")
    click.echo(f"  Branch: {config.branch}")
    head = _run(_deploy())
    click.echo(f"✓ Branch {config.branch} at {head}")


# ---------------------------------------------------------------------------
# Thoughts
# ---------------------------------------------------------------------------


@cli.group()
def thoughts() -> None:
    """Read and write the thoughts collection."""
    pass


@thoughts.command("list")
@store_options
@click.option("--limit", type=click.IntRange(min=1), default=20, help="Maximum thoughts shown")
def thoughts_list(limit: int, **kwargs: Any) -> None:
    """List recent thoughts, newest first."""
    config = _config(**kwargs)

    async def _list() -> list[Any]:
        async with Dashboard(config) as dash:
            return await dash.thoughts_reader.read()

    items = _run(_list())
    if not items:
        click.echo("No thoughts found.")
        return
    for t in items[:limit]:
        click.echo(f"{t.date} {t.time}  {t.text}")


@thoughts.command("add")
@store_options
@click.argument("text")
def thoughts_add(text: str, **kwargs: Any) -> None:
    """Add a thought and commit its month shard."""
    config = _config(**kwargs)

    async def _add() -> Any:
        async with Dashboard(config, notify=_notify) as dash:
            await dash.thoughts.load()
            return await dash.thoughts.submit(text)

    state = _run(_add())
    if state.error:
        click.echo(f"Kept a local copy: {state.error}", err=True)
        sys.exit(1)


@thoughts.command("index")
@store_options
def thoughts_index(**kwargs: Any) -> None:
    """Show one line per month with thoughts."""
    config = _config(**kwargs)

    async def _index() -> list[Any]:
        async with Dashboard(config) as dash:
            return await dash.thoughts_reader.index()

    for summary in _run(_index()):
        click.echo(f"{summary.shard_key}  {summary.count:>4}  latest {summary.latest_date}")


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------


@cli.group()
def checkin() -> None:
    """Read and write the habit tracker data."""
    pass


@checkin.command("show")
@store_options
@click.option("--date", "on_date", default=None, help="Date to show (default: today)")
def checkin_show(on_date: str | None, **kwargs: Any) -> None:
    """Show events active on a date and whether they are checked in."""
    config = _config(**kwargs)
    on_date = on_date or Date.today().isoformat()

    async def _load() -> CheckinData | None:
        async with Dashboard(config) as dash:
            return await dash.checkins.load()

    data = _run(_load())
    if data is None:
        click.echo("No checkin data yet.")
        return
    try:
        active = events_active_on(data, on_date)
    except DashSyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(2)
    click.echo(f"{on_date}: {len(active)} active event(s)")
    for event in active:
        mark = "x" if is_checked(data, on_date, event.id) else " "
        click.echo(f"  [{mark}] {event.name} ({event.id})")


@checkin.command("toggle")
@store_options
@click.argument("on_date", metavar="DATE")
@click.argument("event_id")
def checkin_toggle(on_date: str, event_id: str, **kwargs: Any) -> None:
    """Toggle the check-in of EVENT_ID on DATE and save immediately."""
    config = _config(**kwargs)

    async def _toggle() -> bool:
        async with Dashboard(config, notify=_notify) as dash:
            data = await dash.checkins.load() or CheckinData()
            updated = toggle_checkin(data, on_date, event_id)
            await dash.checkins.save(updated)
            return is_checked(updated, on_date, event_id)

    checked = _run(_toggle())
    click.echo(f"{event_id} on {on_date}: {'checked' if checked else 'unchecked'}")


@checkin.command("migrate")
@store_options
def checkin_migrate(**kwargs: Any) -> None:
    """Move locally cached data into the remote store (runs once)."""
    config = _config(**kwargs)

    async def _migrate() -> dict[str, Any]:
        async with Dashboard(config) as dash:
            return await dash.startup()

    results = _run(_migrate())
    retry = False
    for name, result in results.items():
        suffix = f": {result.error}" if result.error else ""
        click.echo(f"{name}: {result.status.value}{suffix}")
        retry = retry or result.should_retry
    if retry:
        sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

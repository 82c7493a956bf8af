import asyncio
import json

import typer

from carelink_client.client import CareLinkClient
from carelink_client.config import settings
from carelink_client.domain.errors import CareLinkError

app = typer.Typer(help="CareLink data client")


async def _fetch(username: str, password: str, verbose: bool, max_retry_duration: float) -> object:
    async with CareLinkClient(username, password, verbose=verbose, max_retry_duration=max_retry_duration) as client:
        return await client.fetch_data()


@app.command()
def fetch(
    username: str = typer.Option(settings.carelink_username, "--username", "-u"),
    password: str = typer.Option(settings.carelink_password, "--password", "-p", hide_input=True),
    verbose: bool = typer.Option(settings.verbose, "--verbose", "-v"),
    max_retry_duration: float = typer.Option(settings.max_retry_duration, "--max-retry-duration"),
) -> None:
    """Download the last 24 hours of data and print it as JSON."""
    if not username or not password:
        typer.echo("username and password are required (options or CARELINK_USERNAME/CARELINK_PASSWORD)", err=True)
        raise typer.Exit(code=2)
    try:
        data = asyncio.run(_fetch(username, password, verbose, max_retry_duration))
    except CareLinkError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(data, indent=2))


@app.command()
def version() -> None:
    typer.echo("carelink-client 0.1.0")

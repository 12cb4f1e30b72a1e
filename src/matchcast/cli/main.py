"""matchcast CLI: run the server and poke at a running instance.

Usage:
    matchcast serve                      # Run the API + /ws with uvicorn
    matchcast token observer-1           # Mint a JWT for a WebSocket client
    matchcast matches                    # List recent matches
    matchcast commentary 42              # Latest commentary for a match
    matchcast stats                      # Live connections and topics
"""

from __future__ import annotations

import asyncio
import json
import os

import click
import httpx

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("MATCHCAST_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=_api_url(), timeout=10.0)


async def _get(path: str, params: dict | None = None):
    async with _client() as client:
        resp = await client.get(path, params=params)
        resp.raise_for_status()
        return resp.json()


def _fetch(path: str, params: dict | None = None):
    try:
        return asyncio.run(_get(path, params))
    except httpx.HTTPStatusError as e:
        raise click.ClickException(f"{e.response.status_code}: {e.response.text}")
    except httpx.HTTPError as e:
        raise click.ClickException(f"cannot reach {_api_url()}: {e}")


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


@click.group()
@click.version_option(version="0.1.0", prog_name="matchcast")
def main():
    """matchcast: live matches, commentary, and WebSocket push."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: MATCHCAST_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: MATCHCAST_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the HTTP API and the /ws endpoint."""
    import uvicorn

    from matchcast.config import settings

    uvicorn.run(
        "matchcast.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        ws_ping_interval=settings.ws_ping_interval_seconds,
        ws_ping_timeout=settings.ws_ping_timeout_seconds,
    )


@main.command()
@click.argument("subject")
@click.option("--minutes", default=None, type=int, help="Lifetime in minutes")
def token(subject: str, minutes: int | None):
    """Mint a JWT that passes the /ws handshake (?token=...)."""
    from matchcast.auth.jwt import create_access_token

    click.echo(create_access_token(subject, expires_minutes=minutes))


@main.command()
@click.option("--limit", default=20, type=click.IntRange(1, 100))
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def matches(limit: int, as_json: bool):
    """List recent matches."""
    rows = _fetch("/api/v1/matches", {"limit": limit})
    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    _print_table(
        [
            {**r, "score": f"{r['homeScore']}-{r['awayScore']}"}
            for r in rows
        ],
        [
            ("ID", "id", 6),
            ("SPORT", "sport", 12),
            ("HOME", "homeTeam", 20),
            ("AWAY", "awayTeam", 20),
            ("SCORE", "score", 7),
            ("STATUS", "status", 10),
        ],
    )


@main.command()
@click.argument("match_id", type=int)
@click.option("--limit", default=10, type=click.IntRange(1, 100))
def commentary(match_id: int, limit: int):
    """Show the latest commentary for a match."""
    rows = _fetch(f"/api/v1/matches/{match_id}/commentary", {"limit": limit})
    if not rows:
        click.echo("No commentary yet.")
        return
    for r in reversed(rows):
        click.echo(f"{r['minute']:>3}'  {r['message']}")


@main.command()
def stats():
    """Live WebSocket connections and topic subscriber counts."""
    data = _fetch("/api/v1/realtime/stats")
    click.secho(f"Connections: {data['connections']}", bold=True)
    for state, count in sorted(data["by_state"].items()):
        click.echo(f"  {state:<10} {count}")
    topics = data["topics"]
    if not topics:
        click.echo("No active topics.")
        return
    _print_table(
        [{"topic": t, "subscribers": n} for t, n in sorted(topics.items())],
        [("TOPIC", "topic", 20), ("SUBSCRIBERS", "subscribers", 11)],
    )

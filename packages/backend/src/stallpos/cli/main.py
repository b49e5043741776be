"""StallPOS CLI — peek at the live backend from a terminal.

Usage:
    stallpos serve                                # Run the API + WebSocket server
    stallpos token --role admin --user-id u1      # Mint a development JWT
    stallpos stats                                # Connected dashboards and rooms
    stallpos orders --status pending              # List orders
    stallpos set-status 0412-1830-042 ready       # Move an order along
    stallpos announce "Card machine is down"      # System message to every dashboard
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("STALLPOS_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the StallPOS backend."""
    headers = {}
    token = os.environ.get("STALLPOS_API_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


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


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "preparing": "blue",
        "ready": "cyan",
        "delivered": "green",
        "cancelled": "red",
    }
    return colors.get(status, "white")


def _fail(response: httpx.Response) -> None:
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    click.secho(f"Error {response.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="stallpos")
def main():
    """StallPOS — food stall orders with live kitchen and counter dashboards."""


# ---------------------------------------------------------------------------
# stallpos serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: STALLPOS_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: STALLPOS_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API and the /ws endpoint."""
    import uvicorn

    from stallpos.config import settings

    uvicorn.run(
        "stallpos.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# stallpos token
# ---------------------------------------------------------------------------


@main.command()
@click.option("--role", "-r", type=click.Choice(["admin", "counter", "delivery"]), required=True)
@click.option("--user-id", "-u", default="dev-user", help="Token subject")
@click.option("--minutes", "-m", type=int, default=None, help="Lifetime in minutes")
def token(role: str, user_id: str, minutes: Optional[int]):
    """Mint a JWT signed with STALLPOS_JWT_SECRET (for local testing)."""
    from stallpos.auth.jwt import create_access_token

    click.echo(create_access_token(user_id, role, expires_minutes=minutes))


# ---------------------------------------------------------------------------
# stallpos stats
# ---------------------------------------------------------------------------


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def stats(as_json: bool):
    """Show connected dashboards and room occupancy."""
    _run(_stats_impl(as_json))


async def _stats_impl(as_json: bool):
    async with _client() as c:
        r = await c.get("/api/v1/realtime/stats")
        if r.is_error:
            _fail(r)
        data = r.json()

    if as_json:
        click.echo(_pretty_json(data))
        return

    click.secho("Realtime", bold=True)
    click.echo(f"  Clients: {data['totalClients']}")
    click.echo(f"  Rooms:   {data['totalRooms']}")
    for room, count in sorted(data["roomStats"].items()):
        click.echo(f"    {room:20s} {count}")


# ---------------------------------------------------------------------------
# stallpos orders
# ---------------------------------------------------------------------------


@main.command()
@click.option("--status", "-s", "status_filter", help="Filter by status")
@click.option("--limit", "-l", default=50, help="Max results")
def orders(status_filter: Optional[str], limit: int):
    """List recent orders, newest first."""
    _run(_orders_impl(status_filter, limit))


async def _orders_impl(status_filter: Optional[str], limit: int):
    async with _client() as c:
        params: dict = {"limit": limit}
        if status_filter:
            params["status"] = status_filter
        r = await c.get("/api/v1/orders", params=params)
        if r.is_error:
            _fail(r)
        rows = r.json()

    if not rows:
        click.echo("No orders found.")
        return

    click.secho(f"Orders ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [
        ("Order", "custom_order_id", 16),
        ("Status", "status", 10),
        ("Customer", "customer_name", 24),
        ("Items", "items_count", 5),
        ("Total", "total_amount", 10),
    ])


# ---------------------------------------------------------------------------
# stallpos set-status
# ---------------------------------------------------------------------------


@main.command("set-status")
@click.argument("order_id")
@click.argument(
    "new_status",
    type=click.Choice(["preparing", "ready", "delivered", "cancelled"]),
)
def set_status(order_id: str, new_status: str):
    """Transition ORDER_ID to NEW_STATUS."""
    _run(_set_status_impl(order_id, new_status))


async def _set_status_impl(order_id: str, new_status: str):
    async with _client() as c:
        r = await c.patch(f"/api/v1/orders/{order_id}/status", json={"status": new_status})
        if r.is_error:
            _fail(r)
        order = r.json()

    status_str = click.style(order["status"], fg=_status_color(order["status"]))
    click.echo(f"Order {order['custom_order_id']} → {status_str}")


# ---------------------------------------------------------------------------
# stallpos announce
# ---------------------------------------------------------------------------


@main.command()
@click.argument("message")
@click.option(
    "--type", "-t", "level",
    type=click.Choice(["info", "warning", "error", "success"]),
    default="info",
)
def announce(message: str, level: str):
    """Broadcast MESSAGE to every connected dashboard."""
    _run(_announce_impl(message, level))


async def _announce_impl(message: str, level: str):
    async with _client() as c:
        r = await c.post(
            "/api/v1/realtime/system-message",
            json={"message": message, "type": level},
        )
        if r.is_error:
            _fail(r)
        result = r.json()

    click.secho(f"Sent to {result['recipients']} client(s)", fg="green")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()

"""lexdesk CLI — inbox, favorites and broadcasts from the terminal.

Usage:
    lexdesk notifications --unread             # Your notifications
    lexdesk unread                             # Unread notification/message counts
    lexdesk read 42                            # Mark notification #42 read
    lexdesk read-all --messages                # Mark every message read
    lexdesk messages                           # Your messages
    lexdesk favorites                          # Favorite folders
    lexdesk toggle-favorite 10                 # Star / unstar folder 10
    lexdesk bulk-favorite 10 11 12             # Flip several folders at once
    lexdesk broadcast folder:5 folder:updated '{"status": "closed"}'

Talks to the HTTP API at LEXDESK_API_URL with the access token in
LEXDESK_TOKEN (from POST /api/v1/auth/login).
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

DEFAULT_API_URL = "http://localhost:3333"


def _api_url() -> str:
    return os.environ.get("LEXDESK_API_URL", DEFAULT_API_URL).rstrip("/")


def _token() -> str:
    token = os.environ.get("LEXDESK_TOKEN")
    if not token:
        click.secho("Error: set LEXDESK_TOKEN to an access token", fg="red", err=True)
        sys.exit(1)
    return token


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the lexdesk backend."""
    return httpx.AsyncClient(
        base_url=f"{_api_url()}/api/v1",
        headers={"Authorization": f"Bearer {_token()}"},
        timeout=30.0,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (CliRunner
    inside async tests).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _check(r: httpx.Response) -> httpx.Response:
    """Exit with the API's `detail` on any error status."""
    if r.is_error:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return r


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) if row.get(k) is not None else "-")[:w].ljust(w)
                         for _, k, w in columns)
        click.echo(line)


def _with_read_flag(rows: list[dict]) -> list[dict]:
    return [{**row, "read": "" if row.get("read_at") is None else "yes"} for row in rows]


def _print_page_footer(meta: dict):
    click.echo(
        f"\npage {meta['current_page']}/{meta['last_page']}  ({meta['total']} total)"
    )


def _inbox(messages: bool) -> str:
    return "messages" if messages else "notifications"


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="lexdesk")
def main():
    """lexdesk — notifications, messages and folder favorites."""


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


@main.command()
@click.option("--page", "-p", default=1, show_default=True)
@click.option("--limit", "-n", default=10, show_default=True)
@click.option("--type", "type_", help="Only this notification type")
@click.option("--unread", is_flag=True, help="Only unread notifications")
def notifications(page: int, limit: int, type_: Optional[str], unread: bool):
    """List your notifications, newest first."""
    _run(_notifications_impl(page, limit, type_, unread))


async def _notifications_impl(page: int, limit: int, type_: Optional[str], unread: bool):
    params: dict = {"page": page, "limit": limit, "unread_only": unread}
    if type_:
        params["type"] = type_
    async with _client() as c:
        body = _check(await c.get("/notifications", params=params)).json()

    if not body["data"]:
        click.echo("No notifications.")
        return
    _print_table(_with_read_flag(body["data"]), [
        ("ID", "id", 6),
        ("TYPE", "type", 9),
        ("TITLE", "title", 40),
        ("READ", "read", 4),
        ("CREATED", "created_at", 19),
    ])
    _print_page_footer(body["meta"])


@main.command()
@click.option("--page", "-p", default=1, show_default=True)
@click.option("--limit", "-n", default=10, show_default=True)
@click.option("--priority", type=click.Choice(["low", "normal", "high"]))
@click.option("--unread", is_flag=True, help="Only unread messages")
def messages(page: int, limit: int, priority: Optional[str], unread: bool):
    """List your messages, newest first."""
    _run(_messages_impl(page, limit, priority, unread))


async def _messages_impl(page: int, limit: int, priority: Optional[str], unread: bool):
    params: dict = {"page": page, "limit": limit, "unread_only": unread}
    if priority:
        params["priority"] = priority
    async with _client() as c:
        body = _check(await c.get("/messages", params=params)).json()

    if not body["data"]:
        click.echo("No messages.")
        return
    rows = [
        {**m, "from": (m.get("sender") or {}).get("full_name", "System")}
        for m in _with_read_flag(body["data"])
    ]
    _print_table(rows, [
        ("ID", "id", 6),
        ("FROM", "from", 20),
        ("SUBJECT", "subject", 36),
        ("PRIORITY", "priority", 8),
        ("READ", "read", 4),
    ])
    _print_page_footer(body["meta"])


@main.command()
def unread():
    """Show unread notification and message counts."""
    _run(_unread_impl())


async def _unread_impl():
    async with _client() as c:
        n = _check(await c.get("/notifications/unread-count")).json()["count"]
        m = _check(await c.get("/messages/unread-count")).json()["count"]
    click.echo(f"notifications: {click.style(str(n), fg='yellow' if n else 'green')}")
    click.echo(f"messages:      {click.style(str(m), fg='yellow' if m else 'green')}")


@main.command()
@click.argument("item_id", type=int)
@click.option("--message", "-m", "is_message", is_flag=True, help="ITEM_ID is a message")
def read(item_id: int, is_message: bool):
    """Mark one notification (or message) as read."""
    _run(_read_impl(item_id, is_message))


async def _read_impl(item_id: int, is_message: bool):
    inbox = _inbox(is_message)
    async with _client() as c:
        _check(await c.put(f"/{inbox}/{item_id}/read"))
    click.secho(f"Marked {inbox[:-1]} #{item_id} as read", fg="green")


@main.command(name="read-all")
@click.option("--messages", "-m", "is_message", is_flag=True, help="Messages instead of notifications")
def read_all(is_message: bool):
    """Mark every notification (or message) as read."""
    _run(_read_all_impl(is_message))


async def _read_all_impl(is_message: bool):
    async with _client() as c:
        body = _check(await c.put(f"/{_inbox(is_message)}/read-all")).json()
    click.secho(body["message"], fg="green")


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


@main.command()
def favorites():
    """List your favorite folders, most recently starred first."""
    _run(_favorites_impl())


async def _favorites_impl():
    async with _client() as c:
        folders = _check(await c.get("/folders/favorites")).json()
    if not folders:
        click.echo("No favorite folders.")
        return
    _print_table(folders, [
        ("ID", "id", 6),
        ("CODE", "code", 12),
        ("TITLE", "title", 40),
        ("CLIENT", "client_name", 24),
        ("STATUS", "status", 10),
    ])


@main.command(name="toggle-favorite")
@click.argument("folder_id", type=int)
def toggle_favorite(folder_id: int):
    """Star FOLDER_ID if it isn't, unstar it if it is."""
    _run(_toggle_favorite_impl(folder_id))


async def _toggle_favorite_impl(folder_id: int):
    async with _client() as c:
        body = _check(await c.post(f"/folders/{folder_id}/favorite/toggle")).json()
    color = "green" if body["isFavorite"] else "yellow"
    click.secho(f"Folder {folder_id}: {body['action']}", fg=color)


@main.command(name="bulk-favorite")
@click.argument("folder_ids", type=int, nargs=-1, required=True)
def bulk_favorite(folder_ids: tuple[int, ...]):
    """Flip the favorite state of every FOLDER_ID in one transaction."""
    _run(_bulk_favorite_impl(list(folder_ids)))


async def _bulk_favorite_impl(folder_ids: list[int]):
    async with _client() as c:
        body = _check(await c.post("/folders/favorites/bulk", json={"folderIds": folder_ids})).json()
    click.echo(f"added:   {', '.join(map(str, body['added'])) or '-'}")
    click.echo(f"removed: {', '.join(map(str, body['removed'])) or '-'}")


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


@main.command()
@click.argument("channel")
@click.argument("event")
@click.argument("payload", required=False, default="null")
def broadcast(channel: str, event: str, payload: str):
    """Push EVENT to every socket in CHANNEL, on every instance.

    PAYLOAD is a JSON document (default: null).
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        click.secho(f"Error: PAYLOAD is not valid JSON ({e})", fg="red", err=True)
        sys.exit(1)
    _run(_broadcast_impl(channel, event, data))


async def _broadcast_impl(channel: str, event: str, data):
    async with _client() as c:
        body = _check(await c.post("/realtime/broadcast", json={
            "channel": channel,
            "event": event,
            "payload": data,
        })).json()
    click.secho(
        f"{body['event']} → {body['channel']} "
        f"({body['delivered_locally']} local socket(s), relayed to other instances)",
        fg="green",
    )


if __name__ == "__main__":
    main()

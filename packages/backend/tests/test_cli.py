"""CLI tests — click commands against a canned HTTP backend.

httpx.MockTransport answers every request, so these check which
endpoint each command calls and how it prints the result.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from lexdesk.cli import main as cli


@pytest.fixture
def api(monkeypatch):
    """Route CLI traffic to a handler; returns the list of requests seen."""
    seen: list[httpx.Request] = []
    responses: dict[tuple[str, str], tuple[int, object]] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = responses.get((request.method, request.url.path), (404, {"detail": "Not Found"}))
        return httpx.Response(status, json=body)

    def client():
        return httpx.AsyncClient(
            base_url="http://lexdesk.test/api/v1",
            headers={"Authorization": "Bearer test-token"},
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(cli, "_client", client)
    return seen, responses


def test_unread(api):
    seen, responses = api
    responses[("GET", "/api/v1/notifications/unread-count")] = (200, {"count": 3})
    responses[("GET", "/api/v1/messages/unread-count")] = (200, {"count": 0})

    result = CliRunner().invoke(cli.main, ["unread"])
    assert result.exit_code == 0, result.output
    assert "notifications: 3" in result.output
    assert "messages:      0" in result.output


def test_read_one_message(api):
    seen, responses = api
    responses[("PUT", "/api/v1/messages/42/read")] = (200, {"id": 42})

    result = CliRunner().invoke(cli.main, ["read", "42", "--message"])
    assert result.exit_code == 0, result.output
    assert "Marked message #42 as read" in result.output


def test_read_missing_notification_exits_nonzero(api):
    result = CliRunner().invoke(cli.main, ["read", "999"])
    assert result.exit_code == 1
    assert "Error 404" in result.output


def test_bulk_favorite_sends_camel_case_ids(api):
    seen, responses = api
    responses[("POST", "/api/v1/folders/favorites/bulk")] = (200, {"added": [12], "removed": [10]})

    result = CliRunner().invoke(cli.main, ["bulk-favorite", "10", "12"])
    assert result.exit_code == 0, result.output
    assert json.loads(seen[-1].content) == {"folderIds": [10, 12]}
    assert "added:   12" in result.output
    assert "removed: 10" in result.output


def test_toggle_favorite(api):
    seen, responses = api
    responses[("POST", "/api/v1/folders/10/favorite/toggle")] = (
        200, {"action": "added", "isFavorite": True}
    )

    result = CliRunner().invoke(cli.main, ["toggle-favorite", "10"])
    assert result.exit_code == 0, result.output
    assert "Folder 10: added" in result.output


def test_notifications_table(api):
    seen, responses = api
    responses[("GET", "/api/v1/notifications")] = (200, {
        "meta": {"total": 1, "per_page": 10, "current_page": 1, "last_page": 1, "first_page": 1},
        "data": [{
            "id": 5, "type": "hearing", "title": "Hearing moved", "read_at": None,
            "created_at": "2026-10-19T09:00:00",
        }],
    })

    result = CliRunner().invoke(cli.main, ["notifications", "--unread"])
    assert result.exit_code == 0, result.output
    assert "Hearing moved" in result.output
    assert seen[-1].url.params["unread_only"] == "true"


def test_broadcast_rejects_bad_json(api):
    result = CliRunner().invoke(cli.main, ["broadcast", "folder:5", "folder:updated", "{nope"])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_broadcast(api):
    seen, responses = api
    responses[("POST", "/api/v1/realtime/broadcast")] = (
        202, {"channel": "folder:5", "event": "folder:updated", "delivered_locally": 2}
    )

    result = CliRunner().invoke(cli.main, ["broadcast", "folder:5", "folder:updated", '{"id": 5}'])
    assert result.exit_code == 0, result.output
    assert json.loads(seen[-1].content)["payload"] == {"id": 5}
    assert "2 local socket(s)" in result.output

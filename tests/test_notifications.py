"""
test_notifications.py — GET /notifications and LINE delivery dispatch.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from green_epidemic.services.line_client import LINE_PUSH_URL, LineClient, dispatch_pending


async def _notify(fake_db, user_id, title="Health Alert Near Home", minutes_ago=0, **fields):
    doc = {
        "user_id": user_id,
        "report_id": None,
        "channel": "LINE",
        "title": title,
        "message": "A DENGUE case has been reported within 120 meters of your home location.",
        "data": {"distance": 120.4},
        "sent": False,
        "sent_at": None,
        "error": None,
        "created_at": datetime.now(tz=timezone.utc) - timedelta(minutes=minutes_ago),
        **fields,
    }
    await fake_db["notifications"].insert_one(doc)
    return doc


class TestListNotifications:
    async def test_only_callers_notifications_newest_first(self, api_client, fake_db, make_user):
        user, headers = await make_user()
        uid = str(user["_id"])
        await _notify(fake_db, uid, title="older", minutes_ago=10)
        await _notify(fake_db, uid, title="newer", minutes_ago=1)
        await _notify(fake_db, "someone-else", title="not mine")

        body = (await api_client.get("/notifications", headers=headers)).json()
        assert [n["title"] for n in body] == ["newer", "older"]

    async def test_unsent_only(self, api_client, fake_db, make_user):
        user, headers = await make_user()
        uid = str(user["_id"])
        await _notify(fake_db, uid, title="pending")
        await _notify(fake_db, uid, title="delivered", sent=True, sent_at=datetime.now(tz=timezone.utc))

        body = (await api_client.get("/notifications", params={"unsent_only": True}, headers=headers)).json()
        assert [n["title"] for n in body] == ["pending"]

    async def test_requires_auth(self, api_client):
        assert (await api_client.get("/notifications")).status_code == 401


class TestDispatchPending:
    async def test_each_notification_updated_once_with_outcome(self, fake_db, make_user):
        linked, _ = await make_user(line_user_id="U-linked")
        unlinked, _ = await make_user()
        await _notify(fake_db, str(linked["_id"]))
        await _notify(fake_db, str(unlinked["_id"]))
        client = LineClient()
        client.push = AsyncMock(return_value=None)

        result = await dispatch_pending(fake_db, client)

        assert (result.attempted, result.sent, result.failed) == (2, 1, 1)
        by_user = {d["user_id"]: d for d in fake_db["notifications"].docs}
        ok = by_user[str(linked["_id"])]
        failed = by_user[str(unlinked["_id"])]
        assert ok["sent"] is True and ok["sent_at"] is not None and ok["error"] is None
        assert failed["sent"] is False and failed["sent_at"] is None
        assert failed["error"] == "User has no linked LINE account"
        client.push.assert_awaited_once()

    async def test_failed_notifications_are_not_retried(self, fake_db, make_user):
        user, _ = await make_user(line_user_id="U1")
        await _notify(fake_db, str(user["_id"]))
        client = LineClient()
        client.push = AsyncMock(return_value="LINE API error 500")

        first = await dispatch_pending(fake_db, client)
        second = await dispatch_pending(fake_db, client)

        assert (first.attempted, first.failed) == (1, 1)
        assert second.attempted == 0
        assert fake_db["notifications"].docs[0]["error"] == "LINE API error 500"

    async def test_admin_endpoint_uses_simulated_delivery(self, api_client, fake_db, make_user):
        _, headers = await make_user(role="ADMIN")
        user, _ = await make_user(line_user_id="U1")
        await _notify(fake_db, str(user["_id"]))

        response = await api_client.post("/admin/notifications/dispatch", headers=headers)

        assert response.json() == {"attempted": 1, "sent": 1, "failed": 0}
        assert fake_db["notifications"].docs[0]["sent"] is True


class TestLineClient:
    async def test_simulated_without_token(self):
        client = LineClient()
        client.enabled = False
        assert await client.push("U1", "title", "message") is None

    async def test_http_error_is_returned_not_raised(self, monkeypatch):
        def handler(request):
            assert str(request.url) == LINE_PUSH_URL
            assert request.headers["Authorization"] == "Bearer test-token"
            return httpx.Response(401, text="invalid token")

        _patch_transport(monkeypatch, handler)
        client = LineClient()
        client.enabled, client.access_token = True, "test-token"

        assert await client.push("U1", "title", "message") == "LINE API error 401"

    async def test_success(self, monkeypatch):
        captured = {}

        def handler(request):
            captured["body"] = request.read()
            return httpx.Response(200, json={})

        _patch_transport(monkeypatch, handler)
        client = LineClient()
        client.enabled, client.access_token = True, "test-token"

        assert await client.push("U1", "Health Alert Near Home", "details") is None
        assert b'"to":"U1"' in captured["body"].replace(b" ", b"")


def _patch_transport(monkeypatch, handler):
    """Route every httpx.AsyncClient created by the LINE client through *handler*."""
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr("green_epidemic.services.line_client.httpx.AsyncClient", factory)


@pytest.fixture(autouse=True)
def _no_real_line_token(monkeypatch):
    from green_epidemic.core.config import settings

    monkeypatch.setattr(settings, "line_channel_access_token", "")

import uuid
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from config import get_settings
from services import scheduler as scheduler_module
from services.container import build_services
from conftest import ADMIN_HEADERS


async def _send(client, sender, receiver):
    return await client.post("/friends/requests", json={"sender": sender, "receiver": receiver})


class TestFriendRequestRoutes:

    @pytest.mark.asyncio
    async def test_send_returns_201_with_request_id(self, client):
        resp = await _send(client, "alice", "bob")
        assert resp.status_code == 201
        uuid.UUID(resp.json()["requestId"])

    @pytest.mark.asyncio
    async def test_send_error_kinds(self, client):
        resp = await _send(client, "alice", "ALICE")
        assert resp.status_code == 400
        assert resp.json()["error"] == "SelfRequest"

        resp = await _send(client, "alice", "mallory")
        assert resp.status_code == 404
        assert resp.json()["error"] == "UserNotFound"

        assert (await _send(client, "alice", "bob")).status_code == 201
        resp = await _send(client, "bob", "alice")
        assert resp.status_code == 409
        assert resp.json()["error"] == "RequestAlreadyPending"

    @pytest.mark.asyncio
    async def test_blank_username_is_422(self, client):
        resp = await _send(client, "alice", "   ")
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_accept_flow(self, client):
        request_id = (await _send(client, "alice", "bob")).json()["requestId"]

        resp = await client.post(f"/friends/requests/{request_id}/accept", json={"actingUser": "alice"})
        assert resp.status_code == 403
        assert resp.json()["error"] == "NotAuthorized"

        resp = await client.post(f"/friends/requests/{request_id}/accept", json={"actingUser": "bob"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["requestId"] == request_id
        assert body["status"] == "accepted"
        assert body["resolvedAt"] is not None

        resp = await client.post(f"/friends/requests/{request_id}/accept", json={"acting_user": "bob"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "RequestNotFound"

        assert (await client.get("/friends/alice")).json() == ["bob"]
        assert (await client.get("/friends/bob")).json() == ["alice"]

        resp = await _send(client, "bob", "alice")
        assert resp.status_code == 409
        assert resp.json()["error"] == "AlreadyFriends"

    @pytest.mark.asyncio
    async def test_decline_then_resend(self, client):
        request_id = (await _send(client, "alice", "bob")).json()["requestId"]
        resp = await client.post(f"/friends/requests/{request_id}/decline", json={"actingUser": "bob"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "declined"

        resp = await client.post(f"/friends/requests/{request_id}/decline", json={"actingUser": "bob"})
        assert resp.status_code == 404

        assert (await _send(client, "bob", "alice")).status_code == 201
        assert (await client.get("/friends/alice")).json() == []

    @pytest.mark.asyncio
    async def test_unknown_request_id(self, client):
        missing = uuid.uuid4()
        resp = await client.post(f"/friends/requests/{missing}/accept", json={"actingUser": "bob"})
        assert resp.status_code == 404
        resp = await client.get(f"/friends/requests/{missing}", params={"actingUser": "bob"})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_get_request(self, client):
        request_id = (await _send(client, "carol", "dave")).json()["requestId"]
        for party in ("carol", "dave"):
            resp = await client.get(f"/friends/requests/{request_id}", params={"actingUser": party})
            body = resp.json()
            assert body["sender"] == "carol"
            assert body["receiver"] == "dave"
            assert body["status"] == "pending"
            assert body["resolvedAt"] is None

    @pytest.mark.asyncio
    async def test_get_request_hidden_from_others(self, client):
        request_id = (await _send(client, "alice", "bob")).json()["requestId"]
        await client.post(f"/friends/requests/{request_id}/decline", json={"actingUser": "bob"})

        assert (await client.get(f"/friends/requests/{request_id}")).status_code == 422
        resp = await client.get(f"/friends/requests/{request_id}", params={"actingUser": "carol"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "RequestNotFound"


class TestListRoutes:

    @pytest.mark.asyncio
    async def test_pending_incoming_oldest_first(self, client):
        ids = []
        for sender in ("carol", "alice", "bob"):
            ids.append((await _send(client, sender, "dave")).json()["requestId"])

        resp = await client.get("/friends/dave/pending")
        assert resp.status_code == 200
        assert [r["requestId"] for r in resp.json()] == ids
        assert [r["sender"] for r in resp.json()] == ["carol", "alice", "bob"]

        outgoing = (await client.get("/friends/carol/pending/outgoing")).json()
        assert [r["requestId"] for r in outgoing] == ids[:1]

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, client):
        for path in ("/friends/mallory", "/friends/mallory/pending", "/friends/mallory/pending/outgoing"):
            resp = await client.get(path)
            assert resp.status_code == 404
            assert resp.json()["error"] == "UserNotFound"

    @pytest.mark.asyncio
    async def test_user_named_requests_can_list_pending(self, client, services):
        await services.directory.register("requests")
        resp = await client.get("/friends/requests/pending")
        assert resp.status_code == 200
        assert resp.json() == []


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_search(self, client):
        resp = await client.get("/users/search", params={"q": "A", "excluding": "alice"})
        assert resp.status_code == 200
        assert resp.json() == ["carol", "dave"]
        assert (await client.get("/users/search", params={"q": ""})).json() == []

    @pytest.mark.asyncio
    async def test_exists(self, client):
        assert (await client.get("/users/Alice/exists")).json() == {"username": "alice", "exists": True}
        assert (await client.get("/users/mallory/exists")).json()["exists"] is False


class TestAdminRoutes:

    @pytest.mark.asyncio
    async def test_wrong_key_rejected(self, client):
        resp = await client.get("/admin/users", headers={"X-Admin-Key": "nope"})
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_sync_and_deactivate_identity(self, client):
        resp = await client.put("/admin/users/Erin", headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"username": "erin", "active": True}
        assert (await _send(client, "erin", "alice")).status_code == 201

        resp = await client.delete("/admin/users/erin", headers=ADMIN_HEADERS)
        assert resp.json() == {"username": "erin", "active": False}
        assert (await client.get("/friends/erin")).status_code == 404

        assert (await client.delete("/admin/users/mallory", headers=ADMIN_HEADERS)).status_code == 404

        names = [u["username"] for u in (await client.get("/admin/users", headers=ADMIN_HEADERS)).json()]
        assert names == ["alice", "bob", "carol", "dave", "erin"]

    @pytest.mark.asyncio
    async def test_prune(self, client):
        request_id = (await _send(client, "alice", "bob")).json()["requestId"]
        await client.post(f"/friends/requests/{request_id}/decline", json={"actingUser": "bob"})
        resp = await client.post("/admin/maintenance/prune", headers=ADMIN_HEADERS)
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 0}

    @pytest.mark.asyncio
    async def test_scheduler_toggle(self, client, monkeypatch):
        start = MagicMock()
        monkeypatch.setattr(scheduler_module, "scheduler", MagicMock(running=False))
        monkeypatch.setattr(scheduler_module, "start_scheduler", start)
        monkeypatch.setattr(scheduler_module, "_scheduler_enabled", False)

        resp = await client.get("/admin/scheduler", headers=ADMIN_HEADERS)
        assert resp.json() == {"enabled": False}
        resp = await client.post("/admin/scheduler/enable", headers=ADMIN_HEADERS)
        assert resp.json() == {"enabled": True}
        start.assert_called_once()
        resp = await client.post("/admin/scheduler/disable", headers=ADMIN_HEADERS)
        assert resp.json() == {"enabled": False}
        assert (await client.get("/admin/scheduler", headers=ADMIN_HEADERS)).json() == {"enabled": False}


class TestStoreUnavailable:

    @pytest_asyncio.fixture
    async def broken_client(self, tmp_path):
        from main import app
        from api.deps import get_services

        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'friends.db'}")
        broken = build_services(async_sessionmaker(engine), get_settings())
        app.dependency_overrides[get_services] = lambda: broken
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
            yield c
        app.dependency_overrides.clear()
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_unreachable_store_is_503_with_retry_after(self, broken_client):
        resp = await broken_client.get("/friends/alice")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Unavailable"
        assert resp.headers["Retry-After"] == "1"

    @pytest.mark.asyncio
    async def test_manual_prune_reports_outage(self, broken_client):
        resp = await broken_client.post("/admin/maintenance/prune", headers=ADMIN_HEADERS)
        assert resp.status_code == 503
        assert resp.json()["error"] == "Unavailable"

"""Unit tests for the status, messages and chat routes."""

from collections import deque
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from rocketfeed.app import app, consume_stream, shutdown_event, startup_event
from rocketfeed.domain.models import ChatSession, Message, MessageAuthor, PostMessageResult
from rocketfeed.engine import MessagePoller
from rocketfeed.errors import AuthError, UpstreamError

SESSION = ChatSession(user_id="u1", auth_token="tok")


def _msg(mid, text="hi"):
    return Message(
        id=mid,
        text=text,
        timestamp=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
        updated_at=None,
        author=MessageAuthor(id="u2", username="alice"),
        room_id="c1",
    )


@pytest.fixture
def transport():
    return ASGITransport(app=app)


@pytest.fixture
def disconnected():
    app.state.client = None
    app.state.session = None
    app.state.poller = None
    app.state.stream = None
    app.state.recent_messages = deque(maxlen=100)
    yield app.state


@pytest.fixture
def connected(disconnected):
    client = MagicMock()
    client.post_message = AsyncMock()
    client.set_status = AsyncMock()
    app.state.client = client
    app.state.session = SESSION
    yield client
    app.state.client = None
    app.state.session = None
    app.state.poller = None


class TestStatusRoute:
    @pytest.mark.asyncio
    async def test_status_disconnected(self, transport, disconnected):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["connected"] is False
        assert data["streaming"] is False
        assert data["cycles"] == 0

    @pytest.mark.asyncio
    async def test_status_with_poller(self, transport, connected):
        poller = MessagePoller(AsyncMock(), SESSION, dedup_capacity=10)
        poller.dedup.record("m1")
        poller.cycle_count = 3
        poller.emitted_count = 1
        app.state.poller = poller
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/status")
        data = resp.json()
        assert data["connected"] is True
        assert data["userId"] == "u1"
        assert data["cycles"] == 3
        assert data["emitted"] == 1
        assert data["dedupSize"] == 1
        assert data["dedupCapacity"] == 10
        assert data["cursor"]
        assert data["streaming"] is False


class TestMessagesRoute:
    @pytest.mark.asyncio
    async def test_recent_messages(self, transport, disconnected):
        for i in range(5):
            app.state.recent_messages.append(_msg(f"m{i}"))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/messages", params={"limit": 2})
        assert resp.status_code == 200
        assert [m["id"] for m in resp.json()["messages"]] == ["m3", "m4"]

    @pytest.mark.asyncio
    async def test_limit_validated(self, transport, disconnected):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/messages", params={"limit": 0})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_consume_stream_keeps_recent(self):
        async def fake_stream():
            for i in range(3):
                yield _msg(f"m{i}")

        recent = deque(maxlen=2)
        await consume_stream(fake_stream(), recent)
        assert [m.id for m in recent] == ["m1", "m2"]


class TestChatRoutes:
    @pytest.mark.asyncio
    async def test_post_unconnected(self, transport, disconnected):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/post", json={"channel": "#general", "text": "hi"})
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_post_success(self, transport, connected):
        connected.post_message.return_value = PostMessageResult(
            success=True, message_id="p1", room_id="c1", text="hi"
        )
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/post", json={"channel": "#general", "text": "hi", "alias": "bot"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["message_id"] == "p1"
        connected.post_message.assert_awaited_once_with(SESSION, "#general", "hi", alias="bot")

    @pytest.mark.asyncio
    async def test_post_failure_reported(self, transport, connected):
        connected.post_message.return_value = PostMessageResult(success=False, text="hi", error="room not found")
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/post", json={"channel": "#nope", "text": "hi"})
        assert resp.status_code == 200
        assert resp.json()["error"] == "room not found"

    @pytest.mark.asyncio
    async def test_status_success(self, transport, connected):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/status", json={"message": "lunch", "status": "away"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "status": "away"}
        connected.set_status.assert_awaited_once_with(SESSION, "lunch", "away")

    @pytest.mark.asyncio
    async def test_status_invalid(self, transport, connected):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/status", json={"status": "sleeping"})
        assert resp.status_code == 422
        connected.set_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status_upstream_error(self, transport, connected):
        connected.set_status.side_effect = UpstreamError("invalid", status=400)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post("/chat/status", json={"status": "busy"})
        assert resp.status_code == 502


class TestLifecycle:
    @pytest.fixture
    def rocket_env(self, monkeypatch):
        monkeypatch.setenv("ROCKETCHAT_URL", "https://chat.example.com")
        monkeypatch.setenv("ROCKETCHAT_USERNAME", "bot")
        monkeypatch.setenv("ROCKETCHAT_PASSWORD", "secret")
        monkeypatch.setenv("ROCKETCHAT_POLL_INTERVAL", "0.01")
        monkeypatch.delenv("ROCKETCHAT_SELF_USER_ID", raising=False)
        return monkeypatch

    @pytest.fixture
    def fake_client(self, rocket_env):
        client = MagicMock()
        client.login = AsyncMock(return_value=SESSION)
        client.logout = AsyncMock()
        client.get_rooms = AsyncMock(return_value=[])
        client.list_direct_messages = AsyncMock(return_value=[])
        rocket_env.setattr("rocketfeed.app.RocketChatClient", MagicMock(return_value=client))
        return client

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, disconnected, fake_client):
        await startup_event()
        try:
            assert app.state.session == SESSION
            assert isinstance(app.state.poller, MessagePoller)
            assert app.state.stream is not None
            fake_client.login.assert_awaited_once_with("bot", "secret")
        finally:
            await shutdown_event()
        assert app.state.stream.closed is True
        assert app.state.consumer_task.done()
        fake_client.logout.assert_awaited_once_with(SESSION)
        assert app.state.session is None
        app.state.poller = None
        app.state.stream = None
        app.state.client = None
        app.state.consumer_task = None

    @pytest.mark.asyncio
    async def test_login_failure_leaves_stream_stopped(self, disconnected, fake_client):
        fake_client.login.side_effect = AuthError("Error status: 401, Message: Unauthorized")
        await startup_event()
        assert app.state.poller is None
        assert app.state.stream is None
        assert app.state.session is None

    @pytest.mark.asyncio
    async def test_unconfigured_skips_login(self, disconnected, monkeypatch):
        monkeypatch.setenv("ROCKETCHAT_URL", "")
        factory = MagicMock()
        monkeypatch.setattr("rocketfeed.app.RocketChatClient", factory)
        await startup_event()
        factory.assert_not_called()
        assert app.state.poller is None

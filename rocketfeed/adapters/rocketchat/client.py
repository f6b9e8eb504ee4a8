"""Rocket.Chat REST API v1 client using aiohttp."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import aiohttp

from rocketfeed.config import DEFAULT_REQUEST_TIMEOUT
from rocketfeed.domain.models import (
    ChannelSummary,
    ChatSession,
    DMSummary,
    Message,
    PostMessageResult,
)
from rocketfeed.errors import AuthError, ChatError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

T = TypeVar("T")


class RocketChatClient:
    """Async Rocket.Chat client.

    Holds no authentication state: ``login`` returns a ChatSession that is
    passed to every authenticated call, so one client can serve several
    sessions.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{API_PREFIX}/{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        chat_session: Optional[ChatSession] = None,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """Send one request and return (status, decoded JSON body)."""
        headers = {"Content-Type": "application/json"}
        if chat_session is not None:
            headers.update(chat_session.headers())

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as http:
                send = http.get if method == "GET" else http.post
                async with send(
                    self._url(endpoint), headers=headers, params=params, json=payload
                ) as resp:
                    status = resp.status
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError as e:
                        raise TransportError(
                            f"Undecodable response from {endpoint} (HTTP {status})"
                        ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Request to {endpoint} failed: {e!r}") from e

        if not isinstance(data, dict):
            raise TransportError(f"Unexpected response body from {endpoint}: {data!r}")
        return status, data

    @staticmethod
    def _raise_for_error(endpoint: str, status: int, data: Dict[str, Any]):
        if 400 <= status < 500:
            raise UpstreamError(
                str(data.get("error") or data.get("message") or f"{endpoint} rejected"),
                status=status,
                error_type=str(data.get("errorType", "")),
            )
        if status >= 400:
            raise UpstreamError(f"{endpoint} failed", status=status)
        if data.get("success") is False:
            raise UpstreamError(f"fail to {endpoint}")

    async def _get(
        self,
        chat_session: ChatSession,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        status, data = await self._request("GET", endpoint, chat_session, params=params)
        self._raise_for_error(endpoint, status, data)
        return data

    async def _post(
        self,
        chat_session: ChatSession,
        endpoint: str,
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        status, data = await self._request("POST", endpoint, chat_session, payload=payload)
        self._raise_for_error(endpoint, status, data)
        return data

    @staticmethod
    def _parse_items(endpoint: str, items: Any, build: Callable[[Any], T]) -> List[T]:
        """Build one model per entry; malformed entries become TransportError."""
        try:
            return [build(item) for item in items or []]
        except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed entry in {endpoint} response: {e!r}") from e

    @classmethod
    def _parse_messages(cls, endpoint: str, data: Dict[str, Any]) -> List[Message]:
        return cls._parse_items(endpoint, data.get("messages"), Message.from_api)

    # ── Session ─────────────────────────────────────────────

    async def login(self, username: str, password: str) -> ChatSession:
        """Authenticate and return the session used by every other call."""
        try:
            status, data = await self._request(
                "POST", "login", payload={"username": username, "password": password}
            )
        except TransportError as e:
            raise AuthError(f"Login failed: {e}") from e

        if status != 200:
            raise AuthError(
                f"Error status: {data.get('error', status)}, Message: {data.get('message', '')}"
            )
        try:
            session = ChatSession(
                user_id=str(data["data"]["userId"]),
                auth_token=str(data["data"]["authToken"]),
            )
        except (KeyError, TypeError) as e:
            raise AuthError(f"Malformed login response: {data!r}") from e

        logger.info("Logged in as %s", session.user_id)
        return session

    async def logout(self, chat_session: ChatSession):
        status, data = await self._request("POST", "logout", chat_session)
        if data.get("status") == "error" or status >= 400:
            raise UpstreamError("fail to logout", status=status)
        logger.info("Logged out %s", chat_session.user_id)

    # ── Conversations ───────────────────────────────────────

    async def list_channels(self, chat_session: ChatSession) -> List[ChannelSummary]:
        data = await self._get(chat_session, "channels.list")
        return self._parse_items(
            "channels.list",
            data.get("channels"),
            lambda c: ChannelSummary(
                id=str(c["_id"]),
                name=c.get("name", ""),
                message_count=int(c.get("msgs", 0)),
            ),
        )

    async def get_rooms(self, chat_session: ChatSession) -> List[ChannelSummary]:
        data = await self._get(chat_session, "rooms.get")
        return self._parse_items(
            "rooms.get",
            data.get("update"),
            lambda r: ChannelSummary(
                id=str(r["_id"]),
                name=r.get("name", ""),
                default=bool(r.get("default", False)),
            ),
        )

    async def list_direct_messages(self, chat_session: ChatSession) -> List[DMSummary]:
        data = await self._get(chat_session, "im.list")
        return self._parse_items(
            "im.list",
            data.get("ims"),
            lambda im: DMSummary(id=str(im["_id"]), message_count=int(im.get("msgs", 0))),
        )

    # ── History ─────────────────────────────────────────────

    async def _history(
        self,
        endpoint: str,
        chat_session: ChatSession,
        room_id: str,
        latest: Optional[str],
        oldest: Optional[str],
        unreads: bool,
    ) -> List[Message]:
        params = {"roomId": room_id}
        if latest:
            params["latest"] = latest
        if oldest:
            params["oldest"] = oldest
        params["unreads"] = "true" if unreads else "false"
        data = await self._get(chat_session, endpoint, params=params)
        return self._parse_messages(endpoint, data)

    async def channel_history(
        self,
        chat_session: ChatSession,
        room_id: str,
        latest: Optional[str] = None,
        oldest: Optional[str] = None,
        unreads: bool = True,
    ) -> List[Message]:
        return await self._history("channels.history", chat_session, room_id, latest, oldest, unreads)

    async def im_history(
        self,
        chat_session: ChatSession,
        room_id: str,
        latest: Optional[str] = None,
        oldest: Optional[str] = None,
        unreads: bool = True,
    ) -> List[Message]:
        return await self._history("im.history", chat_session, room_id, latest, oldest, unreads)

    async def im_messages(self, chat_session: ChatSession, username: str) -> List[Message]:
        """Direct-message history with a user, looked up by username."""
        data = await self._get(chat_session, "im.messages", params={"username": username})
        return self._parse_messages("im.messages", data)

    # ── Outbound ────────────────────────────────────────────

    async def post_message(
        self, chat_session: ChatSession, channel: str, text: str, **extra: str
    ) -> PostMessageResult:
        """Post to a channel (``#name``), user (``@name``) or room id."""
        payload = {"channel": channel, "text": text, **extra}
        try:
            data = await self._post(chat_session, "chat.postMessage", payload)
        except ChatError as e:
            return PostMessageResult(success=False, text=text, error=str(e))

        message = data.get("message") or {}
        return PostMessageResult(
            success=True,
            message_id=message.get("_id"),
            room_id=message.get("rid"),
            text=message.get("msg", text),
        )

    async def set_status(self, chat_session: ChatSession, message: str, status: str):
        """Set presence (online, away, busy, offline) and status text."""
        await self._post(chat_session, "users.setStatus", {"message": message, "status": status})

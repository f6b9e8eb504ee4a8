"""Outbound ports — interfaces for the chat service adapter."""

from typing import List, Optional, Protocol, runtime_checkable

from rocketfeed.domain.models import (
    ChannelSummary,
    ChatSession,
    DMSummary,
    Message,
    PostMessageResult,
)


@runtime_checkable
class RoomListingPort(Protocol):
    """Lists the conversations visible to a session."""

    async def get_rooms(self, session: ChatSession) -> List[ChannelSummary]: ...

    async def list_direct_messages(self, session: ChatSession) -> List[DMSummary]: ...


@runtime_checkable
class HistoryPort(Protocol):
    """Fetches a time window of one conversation's history."""

    async def channel_history(
        self,
        session: ChatSession,
        room_id: str,
        latest: Optional[str] = None,
        oldest: Optional[str] = None,
        unreads: bool = True,
    ) -> List[Message]: ...

    async def im_history(
        self,
        session: ChatSession,
        room_id: str,
        latest: Optional[str] = None,
        oldest: Optional[str] = None,
        unreads: bool = True,
    ) -> List[Message]: ...


@runtime_checkable
class MessagingPort(Protocol):
    """Outbound messaging and presence."""

    async def post_message(
        self, session: ChatSession, channel: str, text: str, **extra: str
    ) -> PostMessageResult: ...

    async def set_status(self, session: ChatSession, message: str, status: str) -> None: ...

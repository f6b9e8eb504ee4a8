"""Conversation directory — which rooms to poll this cycle."""

import logging

from rocketfeed.domain.models import ChatSession, ConversationSet
from rocketfeed.errors import ChatError, DirectoryError
from rocketfeed.ports.outbound import RoomListingPort

logger = logging.getLogger(__name__)


class ConversationDirectory:
    """Resolves the full channel and DM lists on every call (no caching)."""

    def __init__(self, rooms: RoomListingPort, session: ChatSession):
        self._rooms = rooms
        self._session = session

    async def resolve(self) -> ConversationSet:
        try:
            rooms = await self._rooms.get_rooms(self._session)
        except ChatError as e:
            raise DirectoryError("Failed to list rooms", cause=e) from e
        try:
            ims = await self._rooms.list_direct_messages(self._session)
        except ChatError as e:
            raise DirectoryError("Failed to list direct messages", cause=e) from e

        direct_messages = [im.id for im in ims]
        dm_ids = set(direct_messages)
        # rooms.get also returns DM rooms; keep them only on the DM side
        channels = [room.id for room in rooms if room.id not in dm_ids]

        current = ConversationSet(channels=channels, direct_messages=direct_messages)
        logger.debug(
            "Current rooms: %d channel(s), %d direct message(s)",
            len(current.channels),
            len(current.direct_messages),
        )
        return current

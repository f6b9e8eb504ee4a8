"""History fetcher — one conversation's messages inside a time window."""

from datetime import datetime
from typing import List, Optional

from rocketfeed.domain.models import ChatSession, ConversationKind, Message, format_timestamp
from rocketfeed.ports.outbound import HistoryPort


class HistoryFetcher:
    """Picks the history endpoint for the conversation kind and formats the bounds."""

    def __init__(self, history: HistoryPort, session: ChatSession):
        self._history = history
        self._session = session

    async def fetch(
        self,
        conversation_id: str,
        *,
        kind: ConversationKind,
        oldest: datetime,
        latest: Optional[datetime] = None,
        include_unread: bool = True,
    ) -> List[Message]:
        """Return messages newer than ``oldest`` (and older than ``latest`` if given).

        Raises UpstreamError or TransportError from the underlying client.
        """
        latest_str = format_timestamp(latest) if latest is not None else None
        oldest_str = format_timestamp(oldest)

        if kind is ConversationKind.DIRECT:
            return await self._history.im_history(
                self._session, conversation_id, latest_str, oldest_str, include_unread
            )
        return await self._history.channel_history(
            self._session, conversation_id, latest_str, oldest_str, include_unread
        )

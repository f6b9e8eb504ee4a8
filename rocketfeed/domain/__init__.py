"""Domain layer — pure Python, no framework dependencies."""

from rocketfeed.domain.dedup import DedupWindow
from rocketfeed.domain.directory import ConversationDirectory
from rocketfeed.domain.history import HistoryFetcher
from rocketfeed.domain.models import (
    ChannelSummary,
    ChatSession,
    ConversationKind,
    ConversationSet,
    DMSummary,
    Message,
    MessageAuthor,
    PostMessageResult,
    format_timestamp,
    parse_timestamp,
)

__all__ = [
    "ChannelSummary",
    "ChatSession",
    "ConversationDirectory",
    "ConversationKind",
    "ConversationSet",
    "DMSummary",
    "DedupWindow",
    "HistoryFetcher",
    "Message",
    "MessageAuthor",
    "PostMessageResult",
    "format_timestamp",
    "parse_timestamp",
]

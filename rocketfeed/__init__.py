"""rocketfeed — deduplicated incoming message stream for Rocket.Chat."""

from rocketfeed.config import __version__, AppConfig, PollerConfig, RocketChatConfig
from rocketfeed.errors import AuthError, ChatError, DirectoryError, TransportError, UpstreamError
from rocketfeed.domain.dedup import DedupWindow
from rocketfeed.domain.models import ChatSession, Message, MessageAuthor
from rocketfeed.adapters.rocketchat.client import RocketChatClient
from rocketfeed.engine import IncomingStream, MessagePoller

__all__ = [
    "__version__",
    "AppConfig",
    "PollerConfig",
    "RocketChatConfig",
    "AuthError",
    "ChatError",
    "DirectoryError",
    "TransportError",
    "UpstreamError",
    "DedupWindow",
    "ChatSession",
    "Message",
    "MessageAuthor",
    "RocketChatClient",
    "IncomingStream",
    "MessagePoller",
]

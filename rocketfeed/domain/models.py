"""Domain models — messages, conversations, and the session value."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a Rocket.Chat timestamp into an aware UTC datetime.

    REST responses carry ISO strings ("2016-12-09T12:50:51.555Z"); some
    payloads use the Mongo form ``{"$date": <epoch ms>}``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, dict) and "$date" in value:
        value = value["$date"]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"Unsupported timestamp: {value!r}")


def format_timestamp(value: datetime) -> str:
    """RFC3339 UTC with second precision, the format the history endpoints accept."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ConversationKind(str, Enum):
    CHANNEL = "channel"
    DIRECT = "direct"


@dataclass(frozen=True)
class ChatSession:
    """Authenticated identity returned by login; passed to every API call."""

    user_id: str
    auth_token: str

    def headers(self) -> Dict[str, str]:
        return {
            "X-Auth-Token": self.auth_token,
            "X-User-Id": self.user_id,
        }


@dataclass(frozen=True)
class MessageAuthor:
    id: str
    username: str = ""


@dataclass(frozen=True)
class Message:
    """A single chat message as fetched from a history endpoint."""

    id: str
    text: str
    timestamp: Optional[datetime]
    updated_at: Optional[datetime]
    author: MessageAuthor
    room_id: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Message":
        """Build from a REST payload; raises KeyError/TypeError/ValueError when malformed."""
        if not isinstance(data, dict):
            raise TypeError(f"Message payload is not an object: {data!r}")
        user = data.get("u") or {}
        if not isinstance(user, dict):
            raise TypeError(f"Message author is not an object: {user!r}")
        return cls(
            id=str(data["_id"]),
            text=data.get("msg", ""),
            timestamp=parse_timestamp(data.get("ts")),
            updated_at=parse_timestamp(data.get("_updatedAt")),
            author=MessageAuthor(
                id=str(user.get("_id", "")),
                username=user.get("username", ""),
            ),
            room_id=str(data.get("rid", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "author_id": self.author.id,
            "author_username": self.author.username,
            "room_id": self.room_id,
        }


@dataclass(frozen=True)
class ChannelSummary:
    id: str
    name: str = ""
    message_count: int = 0
    default: bool = False


@dataclass(frozen=True)
class DMSummary:
    id: str
    message_count: int = 0


@dataclass
class ConversationSet:
    """Conversation ids to poll in one cycle; rebuilt from scratch every cycle."""

    channels: List[str] = field(default_factory=list)
    direct_messages: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.channels) + len(self.direct_messages)


@dataclass
class PostMessageResult:
    """Result of chat.postMessage; failures are reported, not raised."""

    success: bool
    message_id: Optional[str] = None
    room_id: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None

"""Configuration loaded from environment variables."""

__version__ = "0.1.0"

import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_DEDUP_CAPACITY = 50
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_PORT = 3000

SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default
    if value <= 0:
        _stderr_print(f"Non-positive {name}={raw!r}, falling back to {default}")
        return default
    return value


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default
    if value < minimum:
        _stderr_print(f"{name}={value} is below {minimum}, falling back to {default}")
        return default
    return value


def _env_log_level() -> str:
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if level not in SUPPORTED_LOG_LEVELS:
        _stderr_print(f"Unsupported LOG_LEVEL={level!r}, falling back to 'INFO'")
        return "INFO"
    return level


@dataclass
class RocketChatConfig:
    url: str = ""
    username: str = ""
    password: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.username and self.password)


@dataclass
class PollerConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    dedup_capacity: int = DEFAULT_DEDUP_CAPACITY
    # Falls back to the logged-in session's user id when empty.
    self_user_id: Optional[str] = None


@dataclass
class AppConfig:
    """Typed configuration for the poller service."""

    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    rocketchat: RocketChatConfig = field(default_factory=RocketChatConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        return cls(
            port=_env_int("PORT", DEFAULT_PORT),
            log_level=_env_log_level(),
            rocketchat=RocketChatConfig(
                url=os.getenv("ROCKETCHAT_URL", "").strip().rstrip("/"),
                username=os.getenv("ROCKETCHAT_USERNAME", ""),
                password=os.getenv("ROCKETCHAT_PASSWORD", ""),
                request_timeout=_env_float("ROCKETCHAT_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            ),
            poller=PollerConfig(
                poll_interval=_env_float("ROCKETCHAT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
                dedup_capacity=_env_int("ROCKETCHAT_DEDUP_CAPACITY", DEFAULT_DEDUP_CAPACITY, minimum=2),
                self_user_id=os.getenv("ROCKETCHAT_SELF_USER_ID", "").strip() or None,
            ),
        )

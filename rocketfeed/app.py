"""FastAPI application, routes, models, and startup."""

import asyncio
import logging
from collections import deque
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Query, Request
from pydantic import BaseModel

from rocketfeed.adapters.rocketchat.client import RocketChatClient
from rocketfeed.adapters.web.chat_routes import chat_router
from rocketfeed.config import AppConfig
from rocketfeed.engine import IncomingStream, MessagePoller
from rocketfeed.errors import AuthError, ChatError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
RECENT_MESSAGES_LIMIT = 100

app = FastAPI(title="Rocket.Chat Incoming Feed")
app.include_router(chat_router)

app.state.client = None
app.state.session = None
app.state.poller = None
app.state.stream = None
app.state.consumer_task = None
app.state.recent_messages = deque(maxlen=RECENT_MESSAGES_LIMIT)


def configure_logging(level: str = "INFO"):
    """Attach one stream handler to the root logger (idempotent)."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(getattr(h, "_rocketfeed", False) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._rocketfeed = True
        root_logger.addHandler(handler)


# Response models
class StatusResponse(BaseModel):
    connected: bool
    userId: Optional[str] = None
    streaming: bool = False
    cycles: int = 0
    lastCycleStarted: Optional[str] = None
    cursor: Optional[str] = None
    emitted: int = 0
    dedupSize: int = 0
    dedupCapacity: int = 0


class MessagesResponse(BaseModel):
    messages: List[Dict[str, Any]]


@app.get("/status", response_model=StatusResponse)
async def status(request: Request):
    """Polling loop status endpoint"""
    state = request.app.state
    poller: Optional[MessagePoller] = state.poller
    stream: Optional[IncomingStream] = state.stream
    if poller is None:
        return StatusResponse(
            connected=state.session is not None,
            userId=state.session.user_id if state.session else None,
        )
    return StatusResponse(
        connected=True,
        userId=poller.session.user_id,
        streaming=stream is not None and not stream.closed,
        cycles=poller.cycle_count,
        lastCycleStarted=(
            poller.last_cycle_started.isoformat() if poller.last_cycle_started else None
        ),
        cursor=poller.cursor.isoformat(),
        emitted=poller.emitted_count,
        dedupSize=len(poller.dedup),
        dedupCapacity=poller.dedup.capacity,
    )


@app.get("/messages", response_model=MessagesResponse)
async def messages(request: Request, limit: int = Query(20, ge=1, le=RECENT_MESSAGES_LIMIT)):
    """Most recently delivered messages, newest last"""
    recent = list(request.app.state.recent_messages)[-limit:]
    return MessagesResponse(messages=[m.to_dict() for m in recent])


# ============================================
# Background consumer
# ============================================
async def consume_stream(stream: IncomingStream, recent: deque):
    """Log each delivered message and keep the latest ones for /messages"""
    async for message in stream:
        recent.append(message)
        logger.info(
            "[%s] %s: %s",
            message.room_id,
            message.author.username or message.author.id,
            message.text,
        )


@app.on_event("startup")
async def startup_event():
    """Log in and start the incoming message stream"""
    config = AppConfig.from_env()
    configure_logging(config.log_level)
    logger.info("Rocket.Chat feed starting")

    if not config.rocketchat.is_configured:
        logger.warning(
            "Rocket.Chat not configured (set ROCKETCHAT_URL, ROCKETCHAT_USERNAME "
            "and ROCKETCHAT_PASSWORD in .env)"
        )
        return

    client = RocketChatClient(config.rocketchat.url, timeout=config.rocketchat.request_timeout)
    try:
        session = await client.login(config.rocketchat.username, config.rocketchat.password)
    except AuthError as e:
        logger.error("Login failed, incoming stream not started: %s", e)
        return

    poller = MessagePoller(
        client,
        session,
        dedup_capacity=config.poller.dedup_capacity,
        self_user_id=config.poller.self_user_id,
    )
    stream = poller.start_incoming_stream(config.poller.poll_interval)

    app.state.client = client
    app.state.session = session
    app.state.poller = poller
    app.state.stream = stream
    app.state.consumer_task = asyncio.create_task(
        consume_stream(stream, app.state.recent_messages)
    )
    logger.info("Ready!")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the stream and log out"""
    if app.state.stream is not None:
        await app.state.stream.aclose()
    task = app.state.consumer_task
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    if app.state.client is not None and app.state.session is not None:
        try:
            await app.state.client.logout(app.state.session)
        except ChatError as e:
            logger.warning("Logout failed: %s", e)
    app.state.session = None


def main():
    config = AppConfig.from_env()
    configure_logging(config.log_level)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()

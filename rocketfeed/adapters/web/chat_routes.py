"""Outbound chat API routes (post message / set status)."""

from typing import Optional, Tuple

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from rocketfeed.domain.models import ChatSession
from rocketfeed.errors import ChatError
from rocketfeed.ports.outbound import MessagingPort

chat_router = APIRouter(prefix="/chat", tags=["Chat"])

SUPPORTED_STATUSES = ("online", "away", "busy", "offline")


class ChatPostRequest(BaseModel):
    channel: str
    text: str
    alias: Optional[str] = None
    emoji: Optional[str] = None


class ChatPostResponse(BaseModel):
    success: bool
    message_id: Optional[str] = None
    room_id: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None


class ChatStatusRequest(BaseModel):
    message: str = ""
    status: str = "online"


class ChatStatusResponse(BaseModel):
    success: bool
    status: str


def _connection(request: Request) -> Tuple[MessagingPort, ChatSession]:
    client = getattr(request.app.state, "client", None)
    session = getattr(request.app.state, "session", None)
    if client is None or session is None:
        raise HTTPException(status_code=503, detail="Rocket.Chat not connected")
    return client, session


@chat_router.post("/post", response_model=ChatPostResponse)
async def chat_post(req: ChatPostRequest, request: Request):
    client, session = _connection(request)
    extra = {k: v for k, v in (("alias", req.alias), ("emoji", req.emoji)) if v}
    result = await client.post_message(session, req.channel, req.text, **extra)
    return ChatPostResponse(**result.__dict__)


@chat_router.post("/status", response_model=ChatStatusResponse)
async def chat_status(req: ChatStatusRequest, request: Request):
    if req.status not in SUPPORTED_STATUSES:
        raise HTTPException(status_code=422, detail=f"Unsupported status: {req.status}")
    client, session = _connection(request)
    try:
        await client.set_status(session, req.message, req.status)
    except ChatError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ChatStatusResponse(success=True, status=req.status)

"""
Direct messaging endpoints:
  POST /conversations                   — get or create the conversation for a pair
  GET  /conversations?user_id=          — a user's conversations, most recent first
  POST /conversations/messages          — send a message (opens the conversation if needed)
  GET  /conversations/{id}/messages     — message history, oldest first
  POST /conversations/{id}/read         — mark everything addressed to the user as read
"""
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.database import get_session_factory
from clipfeed.errors import ClipfeedError
from clipfeed.routers.http_errors import to_http
from clipfeed.schemas import (
    ConversationIdResponse,
    ConversationRequest,
    ConversationSummaryResponse,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
)
from clipfeed.services.conversation_store import SqlConversationStore
from clipfeed.services.conversations import ConversationIdentity
from clipfeed.services.messaging import MessagingService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_identity(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ConversationIdentity:
    return ConversationIdentity(SqlConversationStore(sessions))


def get_messaging(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    identity: ConversationIdentity = Depends(get_identity),
) -> MessagingService:
    return MessagingService(sessions, identity)


@router.post("/", response_model=ConversationIdResponse)
async def open_conversation(
    body: ConversationRequest,
    identity: ConversationIdentity = Depends(get_identity),
):
    try:
        conversation_id = await identity.resolve(body.user_id, body.other_user_id)
    except ClipfeedError as exc:
        raise to_http(exc) from exc
    return ConversationIdResponse(conversation_id=conversation_id)


@router.get("/", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    user_id: str = Query(..., min_length=1),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return await messaging.list_conversations(user_id)
    except ClipfeedError as exc:
        raise to_http(exc) from exc


@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return await messaging.send_message(body.sender_id, body.receiver_id, body.content)
    except ClipfeedError as exc:
        raise to_http(exc) from exc


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        return await messaging.list_messages(conversation_id, user_id, limit, offset)
    except ClipfeedError as exc:
        raise to_http(exc) from exc


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    messaging: MessagingService = Depends(get_messaging),
):
    try:
        changed = await messaging.mark_read(conversation_id, user_id)
    except ClipfeedError as exc:
        raise to_http(exc) from exc
    return MarkReadResponse(conversation_id=conversation_id, marked_read=changed)

"""
Direct messaging on top of ConversationIdentity.

Sending a message keeps the conversation's preview and unread counters
current in the same transaction as the insert:

  last_message_at        ← message.created_at
  last_message_text      ← first 100 chars of the content
  <receiver>_unread_count += 1

Reading a conversation resets the reader's counter to zero.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.errors import InvalidArgument, NotFound, StorageError
from clipfeed.models import Conversation, Message
from clipfeed.services.conversations import ConversationIdentity
from clipfeed.telemetry import MESSAGES_SENT_TOTAL

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
PREVIEW_LENGTH = 100


@dataclass
class ConversationSummary:
    conversation_id: str
    other_user_id: str
    last_message_at: Optional[datetime]
    last_message_text: Optional[str]
    unread_count: int
    created_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _summarise(conv: Conversation, user_id: str) -> ConversationSummary:
    is_one = conv.user_one_id == user_id
    return ConversationSummary(
        conversation_id=conv.conversation_id,
        other_user_id=conv.user_two_id if is_one else conv.user_one_id,
        last_message_at=conv.last_message_at,
        last_message_text=conv.last_message_text,
        unread_count=conv.user_one_unread_count if is_one else conv.user_two_unread_count,
        created_at=conv.created_at,
    )


async def _participant_conversation(
    session: AsyncSession, conversation_id: str, user_id: str
) -> Conversation:
    conv = await session.get(Conversation, conversation_id)
    # Non-participants get the same answer as a missing conversation
    if not conv or user_id not in (conv.user_one_id, conv.user_two_id):
        raise NotFound("Conversation not found")
    return conv


class MessagingService:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        identity: ConversationIdentity,
    ) -> None:
        self._sessions = sessions
        self._identity = identity

    async def send_message(self, sender_id: str, receiver_id: str, content: str) -> Message:
        text = (content or "").strip()
        if not text:
            raise InvalidArgument("Message content cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidArgument(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

        conversation_id = await self._identity.resolve(sender_id, receiver_id)

        try:
            async with self._sessions() as session:
                async with session.begin():
                    conv = await _participant_conversation(session, conversation_id, sender_id)
                    message = Message(
                        conversation_id=conversation_id,
                        sender_id=sender_id,
                        receiver_id=receiver_id,
                        content=text,
                        is_read=False,
                        created_at=_utcnow(),
                    )
                    session.add(message)

                    conv.last_message_at = message.created_at
                    conv.last_message_text = text[:PREVIEW_LENGTH]
                    if receiver_id == conv.user_one_id:
                        conv.user_one_unread_count += 1
                    else:
                        conv.user_two_unread_count += 1
        except SQLAlchemyError as exc:
            raise StorageError(f"Message insert failed: {exc}") from exc

        MESSAGES_SENT_TOTAL.inc()
        logger.info("Message %s sent in conversation %s", message.message_id, conversation_id)
        return message

    async def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        """Most recently active first; conversations without messages last."""
        stmt = (
            select(Conversation)
            .where(or_(Conversation.user_one_id == user_id, Conversation.user_two_id == user_id))
            .order_by(
                Conversation.last_message_at.is_(None),
                Conversation.last_message_at.desc(),
                Conversation.created_at.desc(),
            )
        )
        try:
            async with self._sessions() as session:
                rows = await session.execute(stmt)
                return [_summarise(c, user_id) for c in rows.scalars().all()]
        except SQLAlchemyError as exc:
            raise StorageError(f"Conversation listing failed: {exc}") from exc

    async def list_messages(
        self,
        conversation_id: str,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        try:
            async with self._sessions() as session:
                await _participant_conversation(session, conversation_id, user_id)
                rows = await session.execute(
                    select(Message)
                    .where(Message.conversation_id == conversation_id)
                    .order_by(Message.created_at.asc())
                    .offset(offset)
                    .limit(limit)
                )
                return list(rows.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError(f"Message listing failed: {exc}") from exc

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        """Mark every message addressed to ``user_id`` as read; returns how many changed."""
        try:
            async with self._sessions() as session:
                async with session.begin():
                    conv = await _participant_conversation(session, conversation_id, user_id)
                    result = await session.execute(
                        update(Message)
                        .where(
                            Message.conversation_id == conversation_id,
                            Message.receiver_id == user_id,
                            Message.is_read == False,  # noqa: E712
                        )
                        .values(is_read=True, read_at=_utcnow())
                    )
                    if conv.user_one_id == user_id:
                        conv.user_one_unread_count = 0
                    else:
                        conv.user_two_unread_count = 0
        except SQLAlchemyError as exc:
            raise StorageError(f"Marking messages read failed: {exc}") from exc

        logger.debug("Marked %d messages read in %s for %s", result.rowcount, conversation_id, user_id)
        return result.rowcount

"""
SQL-backed ConversationStore.

Each call runs in its own short transaction so that a unique-constraint
failure in ``create`` rolls back cleanly and the follow-up ``find`` sees the
row committed by the winning caller.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.errors import ConversationConflict, StorageError
from clipfeed.models import Conversation
from clipfeed.services.conversations import ConversationKey

logger = logging.getLogger(__name__)


class SqlConversationStore:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def find(self, key: ConversationKey) -> Optional[str]:
        # Equality on the sorted pair hits uq_conversation_pair directly
        stmt = select(Conversation.conversation_id).where(
            Conversation.user_one_id == key.low,
            Conversation.user_two_id == key.high,
        )
        try:
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError(f"Conversation lookup failed: {exc}") from exc

    async def create(self, key: ConversationKey) -> str:
        conversation = Conversation(user_one_id=key.low, user_two_id=key.high)
        try:
            async with self._sessions() as session:
                async with session.begin():
                    session.add(conversation)
        except IntegrityError as exc:
            logger.debug("Unique conflict creating %s/%s: %s", key.low, key.high, exc)
            raise ConversationConflict(f"{key.low}/{key.high}") from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Conversation insert failed: {exc}") from exc
        return conversation.conversation_id

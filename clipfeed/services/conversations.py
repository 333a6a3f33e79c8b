"""
Direct-conversation identity.

Two users share exactly one conversation. Its identity is the sorted pair of
user ids (``ConversationKey``), and the store's unique constraint on that
pair is the only thing that stops two concurrent first messages from opening
two conversations.

Resolution runs as a small state machine:

    lookup ──found──────────────────────────────────▶ id
       │
    not found
       ▼
    ATTEMPTING_CREATE ──created─────────────────────▶ id
       │
    ConversationConflict (another caller won the race)
       ▼
    RECOVERING_FROM_CONFLICT ──found────────────────▶ id
       │
    not found ──────────────────────────────────────▶ StorageError

There is at most one recovery lookup per call; contention beyond that is
reported, not retried.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from opentelemetry import trace

from clipfeed.errors import ConversationConflict, InvalidArgument, StorageError
from clipfeed.telemetry import CONVERSATION_RESOLUTIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class ConversationKey:
    """Order-independent identity of a two-user conversation (low < high)."""
    low: str
    high: str

    @classmethod
    def of(cls, user_a: str, user_b: str) -> "ConversationKey":
        if not user_a or not user_b:
            raise InvalidArgument("Both user ids are required")
        if user_a == user_b:
            raise InvalidArgument("Cannot open a conversation with yourself")
        low, high = sorted((user_a, user_b))
        return cls(low=low, high=high)

    def other(self, user_id: str) -> str:
        """The participant that isn't ``user_id``."""
        if user_id == self.low:
            return self.high
        if user_id == self.high:
            return self.low
        raise InvalidArgument(f"User {user_id} is not part of this conversation")


class ConversationStore(Protocol):
    """
    Persistence needed by ConversationIdentity.

    ``create`` must raise ConversationConflict when the pair already exists
    and StorageError for any other failure.
    """

    async def find(self, key: ConversationKey) -> Optional[str]: ...

    async def create(self, key: ConversationKey) -> str: ...


class _State(enum.Enum):
    ATTEMPTING_CREATE = "attempting_create"
    RECOVERING_FROM_CONFLICT = "recovering_from_conflict"


class ConversationIdentity:
    def __init__(self, store: ConversationStore) -> None:
        self._store = store

    async def resolve(self, user_a: str, user_b: str) -> str:
        """Return the conversation id for this pair, creating it on first contact."""
        key = ConversationKey.of(user_a, user_b)

        with tracer.start_as_current_span("resolve_conversation") as span:
            span.set_attribute("conversation.user_low", key.low)
            span.set_attribute("conversation.user_high", key.high)

            existing = await self._store.find(key)
            if existing is not None:
                CONVERSATION_RESOLUTIONS_TOTAL.labels(outcome="found").inc()
                span.set_attribute("conversation.outcome", "found")
                return existing

            state = _State.ATTEMPTING_CREATE
            try:
                conversation_id = await self._store.create(key)
            except ConversationConflict:
                state = _State.RECOVERING_FROM_CONFLICT
                logger.info(
                    "Conversation %s/%s created concurrently; re-reading",
                    key.low, key.high,
                )

            if state is _State.ATTEMPTING_CREATE:
                CONVERSATION_RESOLUTIONS_TOTAL.labels(outcome="created").inc()
                span.set_attribute("conversation.outcome", "created")
                logger.info(
                    "Created conversation %s for %s/%s",
                    conversation_id, key.low, key.high,
                )
                return conversation_id

            recovered = await self._store.find(key)
            if recovered is None:
                raise StorageError(
                    f"Conversation for {key.low}/{key.high} conflicted on create "
                    "but is missing on re-read"
                )
            CONVERSATION_RESOLUTIONS_TOTAL.labels(outcome="recovered").inc()
            span.set_attribute("conversation.outcome", "recovered")
            return recovered

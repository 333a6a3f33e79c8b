import asyncio

import pytest

from clipfeed.errors import ConversationConflict, InvalidArgument, StorageError
from clipfeed.services.conversations import ConversationIdentity, ConversationKey


class AlwaysConflictingStore:
    """Reports a conflict on create but never finds the row."""

    def __init__(self) -> None:
        self.find_calls = 0
        self.create_calls = 0

    async def find(self, key):
        self.find_calls += 1
        return None

    async def create(self, key):
        self.create_calls += 1
        raise ConversationConflict("phantom")


class BrokenStore:
    def __init__(self) -> None:
        self.create_calls = 0

    async def find(self, key):
        return None

    async def create(self, key):
        self.create_calls += 1
        raise StorageError("disk full")


# ── ConversationKey ─────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "a,b",
    [
        ("userA", "userB"),
        ("b7c1-9f", "0a11-3e"),
        ("Zed", "alice"),
        ("user-10", "user-9"),
    ],
)
def test_key_is_order_independent(a, b):
    assert ConversationKey.of(a, b) == ConversationKey.of(b, a)
    key = ConversationKey.of(a, b)
    assert key.low < key.high


def test_key_rejects_self_pair_and_blank_ids():
    with pytest.raises(InvalidArgument):
        ConversationKey.of("same", "same")
    with pytest.raises(InvalidArgument):
        ConversationKey.of("", "someone")


def test_key_other_participant():
    key = ConversationKey.of("userB", "userA")
    assert key.other("userA") == "userB"
    assert key.other("userB") == "userA"
    with pytest.raises(InvalidArgument):
        key.other("userC")


# ── ConversationIdentity ────────────────────────────────────────────────────

async def test_reversed_argument_order_reuses_conversation(memory_store):
    identity = ConversationIdentity(memory_store)

    first = await identity.resolve("userB", "userA")
    second = await identity.resolve("userA", "userB")

    assert first == second
    assert len(memory_store.rows) == 1
    assert memory_store.create_calls == 1


async def test_self_conversation_rejected_before_touching_store(memory_store):
    identity = ConversationIdentity(memory_store)
    with pytest.raises(InvalidArgument):
        await identity.resolve("userA", "userA")
    assert memory_store.find_calls == 0


async def test_concurrent_first_contact_creates_one_conversation(memory_store):
    identity = ConversationIdentity(memory_store)
    pairs = [("alice", "bob"), ("bob", "alice")] * 5

    ids = await asyncio.gather(*[identity.resolve(a, b) for a, b in pairs])

    assert len(set(ids)) == 1
    assert len(memory_store.rows) == 1
    # Every loser of the race recovered through a conflict
    assert memory_store.conflicts == len(pairs) - 1


async def test_distinct_pairs_get_distinct_conversations(memory_store):
    identity = ConversationIdentity(memory_store)
    ab, ac, bc = await asyncio.gather(
        identity.resolve("a", "b"),
        identity.resolve("a", "c"),
        identity.resolve("c", "b"),
    )
    assert len({ab, ac, bc}) == 3


async def test_unrecoverable_conflict_is_a_storage_error_after_one_reread():
    store = AlwaysConflictingStore()
    identity = ConversationIdentity(store)

    with pytest.raises(StorageError):
        await identity.resolve("a", "b")

    assert store.create_calls == 1
    assert store.find_calls == 2


async def test_storage_errors_propagate_without_retry():
    store = BrokenStore()
    identity = ConversationIdentity(store)

    with pytest.raises(StorageError):
        await identity.resolve("a", "b")
    assert store.create_calls == 1

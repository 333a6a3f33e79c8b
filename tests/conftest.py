import asyncio
import os
import uuid
from typing import Optional

# Must run before anything imports clipfeed.config
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("OTEL_ENABLED", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from clipfeed.database import AsyncSessionLocal, engine, init_db  # noqa: E402
from clipfeed.errors import ConversationConflict  # noqa: E402
from clipfeed.models import Profile, Video  # noqa: E402
from clipfeed.services.conversations import ConversationKey  # noqa: E402


class InMemoryConversationStore:
    """
    ConversationStore with a yield point before every read and write, so
    concurrent resolve() calls interleave the way requests do against a database.
    """

    def __init__(self) -> None:
        self.rows: dict[ConversationKey, str] = {}
        self.find_calls = 0
        self.create_calls = 0
        self.conflicts = 0

    async def find(self, key: ConversationKey) -> Optional[str]:
        self.find_calls += 1
        await asyncio.sleep(0)
        return self.rows.get(key)

    async def create(self, key: ConversationKey) -> str:
        self.create_calls += 1
        await asyncio.sleep(0)
        if key in self.rows:
            self.conflicts += 1
            raise ConversationConflict(f"{key.low}/{key.high}")
        conversation_id = str(uuid.uuid4())
        self.rows[key] = conversation_id
        return conversation_id


class FakeRedis:
    """Just the get/set/delete surface CandidateCache uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def memory_store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def db_ready():
    """Fresh in-memory schema per test; disposing drops the database."""
    await init_db()
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_ready):
    async with AsyncSessionLocal() as s:
        yield s


@pytest_asyncio.fixture
async def seeded(db_ready):
    """Two profiles; alice owns three videos, one already boosted."""
    async with AsyncSessionLocal() as s:
        async with s.begin():
            alice = Profile(username="alice", display_name="Alice's Bakery", coin_balance=100)
            bob = Profile(username="bob", display_name="Bob", coin_balance=10)
            s.add_all([alice, bob])
            await s.flush()
            videos = [
                Video(user_id=alice.user_id, caption="croissants", boost_value=1.0),
                Video(user_id=alice.user_id, caption="sourdough", boost_value=1.0),
                Video(user_id=alice.user_id, caption="grand opening", boost_value=21.0),
            ]
            s.add_all(videos)
            await s.flush()
    return {
        "alice": alice.user_id,
        "bob": bob.user_id,
        "videos": [v.video_id for v in videos],
    }

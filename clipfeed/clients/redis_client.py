"""
Redis client wrapper.

Responsibilities:
  • Feed candidates — STRING (JSON) keyed by feed:candidates
                       value = [[video_id, boost_value], ...]
                       short TTL; dropped whenever a promotion changes a boost

The feed endpoint reads candidates from here before falling back to the
videos table. Redis is an optimisation only: every failure degrades to a
cache miss.
"""
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from clipfeed.config import settings
from clipfeed.services.sampler import VideoRankingEntry

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None

CANDIDATES_KEY = "feed:candidates"


async def init_redis() -> None:
    global _redis
    if not settings.redis_enabled:
        logger.info("Redis disabled — feed candidates always read from the database")
        return
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> Optional[aioredis.Redis]:
    """FastAPI dependency; None when Redis is disabled or not initialised."""
    return _redis


class CandidateCache:
    def __init__(self, redis: Optional[aioredis.Redis], ttl: int = settings.candidate_cache_ttl) -> None:
        self._redis = redis
        self._ttl = ttl

    async def get(self) -> Optional[list[VideoRankingEntry]]:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(CANDIDATES_KEY)
        except Exception as exc:
            logger.warning("Candidate cache read failed: %s — using database", exc)
            return None
        if not raw:
            return None
        try:
            return [
                VideoRankingEntry(video_id=vid, boost_value=float(boost))
                for vid, boost in json.loads(raw)
            ]
        except (ValueError, TypeError) as exc:
            logger.warning("Candidate cache entry unreadable: %s — using database", exc)
            return None

    async def set(self, candidates: list[VideoRankingEntry]) -> None:
        if self._redis is None:
            return
        payload = json.dumps([[c.video_id, c.boost_value] for c in candidates])
        try:
            await self._redis.set(CANDIDATES_KEY, payload, ex=self._ttl)
        except Exception as exc:
            logger.warning("Candidate cache write failed: %s", exc)

    async def invalidate(self) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.delete(CANDIDATES_KEY)
        except Exception as exc:
            logger.warning("Candidate cache invalidation failed: %s", exc)

"""
Feed endpoint — GET /feed?limit=<n>

Returns a boost-weighted random page of distinct videos. The page may be
shorter than `limit`; see WeightedFeedSampler for why.
"""
import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.clients.redis_client import CandidateCache, get_redis
from clipfeed.config import settings
from clipfeed.database import get_db
from clipfeed.schemas import FeedResponse, FeedVideo
from clipfeed.services.feed import FeedService
from clipfeed.services.sampler import WeightedFeedSampler
from clipfeed.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)
router = APIRouter()


def get_sampler() -> WeightedFeedSampler:
    return WeightedFeedSampler(
        weight_scale=settings.feed_weight_scale,
        attempt_factor=settings.feed_attempt_factor,
    )


def get_candidate_cache(
    redis: Optional[aioredis.Redis] = Depends(get_redis),
) -> CandidateCache:
    return CandidateCache(redis)


@router.get("/", response_model=FeedResponse)
async def get_feed(
    limit: int = Query(settings.feed_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    sampler: WeightedFeedSampler = Depends(get_sampler),
    cache: CandidateCache = Depends(get_candidate_cache),
):
    start_time = time.time()

    page = await FeedService(db, sampler, cache).get_feed(limit)

    latency_ms = (time.time() - start_time) * 1000
    FEED_LATENCY.observe(latency_ms / 1000)

    return FeedResponse(
        videos=[
            FeedVideo(
                video_id=v.video_id,
                user_id=v.user_id,
                username=v.author.username if v.author else None,
                caption=v.caption,
                video_url=v.video_url,
                boost_value=v.boost_value,
                created_at=v.created_at,
            )
            for v in page.videos
        ],
        requested=limit,
        candidates=page.candidate_count,
        latency_ms=round(latency_ms, 2),
    )

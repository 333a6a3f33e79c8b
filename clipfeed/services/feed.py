"""
Feed assembly: candidate fetch → weighted sampling → hydration.

  Stage 1 │ Candidates
  ────────┼──────────────────────────────────────────────────────────────
          │  (video_id, boost_value) for every video.
          │  Redis cache first, videos table on miss.

  Stage 2 │ Sampling
  ────────┼──────────────────────────────────────────────────────────────
          │  WeightedFeedSampler picks up to `limit` distinct ids.

  Stage 3 │ Hydration
  ────────┼──────────────────────────────────────────────────────────────
          │  Bulk-load the sampled videos, keep the sampled order.
"""
import logging
from dataclasses import dataclass

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.clients.redis_client import CandidateCache
from clipfeed.models import Video
from clipfeed.services.sampler import VideoRankingEntry, WeightedFeedSampler
from clipfeed.telemetry import FEED_CANDIDATES_TOTAL, FEED_UNDERFILLED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class FeedPage:
    videos: list[Video]
    candidate_count: int


async def fetch_candidates(db: AsyncSession) -> list[VideoRankingEntry]:
    rows = await db.execute(select(Video.video_id, Video.boost_value))
    return [
        VideoRankingEntry(video_id=video_id, boost_value=boost or 1.0)
        for video_id, boost in rows.all()
    ]


class FeedService:
    def __init__(
        self,
        db: AsyncSession,
        sampler: WeightedFeedSampler,
        cache: CandidateCache,
    ) -> None:
        self._db = db
        self._sampler = sampler
        self._cache = cache

    async def _candidates(self) -> list[VideoRankingEntry]:
        cached = await self._cache.get()
        if cached is not None:
            FEED_CANDIDATES_TOTAL.labels(source="cache").inc(len(cached))
            return cached

        candidates = await fetch_candidates(self._db)
        FEED_CANDIDATES_TOTAL.labels(source="database").inc(len(candidates))
        await self._cache.set(candidates)
        return candidates

    async def get_feed(self, limit: int) -> FeedPage:
        with tracer.start_as_current_span("get_feed") as span:
            candidates = await self._candidates()
            span.set_attribute("feed.candidates", len(candidates))

            with tracer.start_as_current_span("sample_feed"):
                video_ids = self._sampler.sample(candidates, limit)

            distinct = len({c.video_id for c in candidates})
            if len(video_ids) < min(limit, distinct):
                FEED_UNDERFILLED_TOTAL.inc()
                logger.info(
                    "Feed page underfilled: %d of %d requested (%d candidates)",
                    len(video_ids), limit, distinct,
                )

            if not video_ids:
                return FeedPage(videos=[], candidate_count=len(candidates))

            rows = await self._db.execute(select(Video).where(Video.video_id.in_(video_ids)))
            video_map: dict[str, Video] = {v.video_id: v for v in rows.scalars().all()}

            # A cached candidate may have been deleted since; skip it
            videos = [video_map[vid] for vid in video_ids if vid in video_map]
            span.set_attribute("feed.videos_returned", len(videos))
            return FeedPage(videos=videos, candidate_count=len(candidates))

"""
Video endpoints:
  GET  /videos/search?q=…     — caption search with synonym expansion
  POST /videos/{id}/promote   — spend coins to raise a video's feed boost
"""
import logging

from fastapi import APIRouter, Depends, Query
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.clients.redis_client import CandidateCache
from clipfeed.database import get_db, get_session_factory
from clipfeed.errors import ClipfeedError
from clipfeed.routers.feed import get_candidate_cache
from clipfeed.routers.http_errors import to_http
from clipfeed.schemas import PromoteRequest, PromoteResponse, SearchResponse, SearchResult
from clipfeed.services.promotion import promote_video
from clipfeed.services.search import expand_query, search_videos

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("/search", response_model=SearchResponse)
async def search(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("search_videos") as span:
        span.set_attribute("search.query", q)
        hits = await search_videos(db, q, limit=limit)
        span.set_attribute("search.hits", len(hits))

    return SearchResponse(
        query=q,
        expanded_terms=expand_query(q).terms,
        results=[
            SearchResult(
                video_id=h.video.video_id,
                user_id=h.video.user_id,
                username=h.video.author.username if h.video.author else None,
                caption=h.video.caption,
                video_url=h.video.video_url,
                boost_value=h.video.boost_value,
                created_at=h.video.created_at,
                score=h.score,
                matched_terms=h.matched,
            )
            for h in hits
        ],
    )


@router.post("/{video_id}/promote", response_model=PromoteResponse)
async def promote(
    video_id: str,
    body: PromoteRequest,
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: CandidateCache = Depends(get_candidate_cache),
):
    """
    Spend coins on a video. 10 coins add 2.0 boost, up to the configured cap.
    Only the video's owner may promote it.
    """
    with tracer.start_as_current_span("promote_video") as span:
        span.set_attribute("video.id", video_id)
        try:
            result = await promote_video(sessions, cache, body.user_id, video_id, body.coins)
        except ClipfeedError as exc:
            raise to_http(exc) from exc
        span.set_attribute("video.new_boost", result.new_boost)
        return PromoteResponse(**result.__dict__)

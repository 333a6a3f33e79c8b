import random

import pytest

from clipfeed.clients.redis_client import CANDIDATES_KEY, CandidateCache
from clipfeed.models import Profile, Video
from clipfeed.services.feed import FeedService, fetch_candidates
from clipfeed.services.sampler import WeightedFeedSampler


# ── Feed ────────────────────────────────────────────────────────────────────

async def test_fetch_candidates_reads_boosts(session, seeded):
    candidates = await fetch_candidates(session)
    boosts = {c.video_id: c.boost_value for c in candidates}
    assert boosts == {
        seeded["videos"][0]: 1.0,
        seeded["videos"][1]: 1.0,
        seeded["videos"][2]: 21.0,
    }


async def test_profile_videos_load_on_request(session, seeded):
    alice = await session.get(Profile, seeded["alice"])
    await session.refresh(alice, ["videos"])
    assert sorted(v.video_id for v in alice.videos) == sorted(seeded["videos"])


async def test_feed_hydrates_every_sampled_video(session, seeded):
    sampler = WeightedFeedSampler(attempt_factor=100, rng=random.Random(5))
    page = await FeedService(session, sampler, CandidateCache(None)).get_feed(limit=10)

    assert page.candidate_count == 3
    assert sorted(v.video_id for v in page.videos) == sorted(seeded["videos"])
    assert all(v.author.username == "alice" for v in page.videos)


async def test_feed_on_empty_catalogue(session):
    page = await FeedService(session, WeightedFeedSampler(), CandidateCache(None)).get_feed(limit=5)
    assert page.videos == []
    assert page.candidate_count == 0


async def test_feed_serves_cached_candidates_and_skips_deleted_videos(session, seeded, fake_redis):
    cache = CandidateCache(fake_redis)
    sampler = WeightedFeedSampler(attempt_factor=200, rng=random.Random(11))
    service = FeedService(session, sampler, cache)

    await service.get_feed(limit=3)
    assert CANDIDATES_KEY in fake_redis.data

    gone = await session.get(Video, seeded["videos"][0])
    await session.delete(gone)
    await session.flush()

    page = await service.get_feed(limit=3)
    # Cache still lists three candidates; only the two surviving videos hydrate
    assert page.candidate_count == 3
    assert seeded["videos"][0] not in {v.video_id for v in page.videos}
    assert len(page.videos) == 2



@pytest.mark.parametrize("raw", ["not json", "42", '[["v1"]]', '[["v1", "high"]]', '[["v1", null]]'])
async def test_unreadable_cache_entry_falls_back_to_database(session, seeded, fake_redis, raw):
    fake_redis.data[CANDIDATES_KEY] = raw
    sampler = WeightedFeedSampler(attempt_factor=100, rng=random.Random(3))

    page = await FeedService(session, sampler, CandidateCache(fake_redis)).get_feed(limit=10)

    assert page.candidate_count == 3
    assert sorted(v.video_id for v in page.videos) == sorted(seeded["videos"])

import random
from collections import Counter

import pytest

from clipfeed.services.sampler import VideoRankingEntry, WeightedFeedSampler


class ScriptedRandom(random.Random):
    """randrange() returns a fixed sequence of slots."""

    def __init__(self, slots):
        super().__init__(0)
        self._slots = iter(slots)

    def randrange(self, *args, **kwargs):
        return next(self._slots)


def entries(*pairs):
    return [VideoRankingEntry(video_id=vid, boost_value=boost) for vid, boost in pairs]


def test_empty_candidates_return_empty_page():
    assert WeightedFeedSampler().sample([], limit=20) == []


@pytest.mark.parametrize("limit", [0, -3])
def test_non_positive_limit_returns_empty_page(limit):
    assert WeightedFeedSampler().sample(entries(("v1", 1.0)), limit=limit) == []


def test_slot_count_scales_and_rounds_up():
    sampler = WeightedFeedSampler(weight_scale=20)
    assert sampler.slot_count(1.0) == 20
    assert sampler.slot_count(21.0) == 420
    assert sampler.slot_count(1.01) == 21
    assert sampler.slot_count(0.0) == 1


def test_draws_map_to_the_same_video_as_a_duplicated_pool():
    # v1 owns slots 0..19, v2 owns 20..439
    sampler = WeightedFeedSampler(rng=ScriptedRandom([439, 20, 19]))
    assert sampler.sample(entries(("v1", 1.0), ("v2", 21.0)), limit=2) == ["v2", "v1"]


def test_result_is_in_draw_order_not_boost_order():
    sampler = WeightedFeedSampler(rng=ScriptedRandom([0, 25, 45]))
    picked = sampler.sample(entries(("a", 1.0), ("b", 1.0), ("c", 5.0)), limit=3)
    assert picked == ["a", "b", "c"]


def test_cardinality_bound_and_distinct_ids():
    rng = random.Random(1234)
    candidates = entries(*[(f"v{i}", 1.0 + (i % 7) * 3) for i in range(30)])
    for limit in (1, 5, 20, 30, 45):
        picked = WeightedFeedSampler(rng=rng).sample(candidates, limit)
        assert len(picked) <= min(limit, 30)
        assert len(picked) == len(set(picked))


def test_limit_above_candidate_count_returns_every_candidate_once():
    sampler = WeightedFeedSampler(rng=random.Random(3))
    picked = sampler.sample(entries(("v1", 1.0), ("v2", 1.0), ("v3", 2.0)), limit=10)
    assert sorted(picked) == ["v1", "v2", "v3"]


def test_duplicate_ids_pool_their_slots():
    sampler = WeightedFeedSampler(rng=ScriptedRandom([30, 45]))
    # "a" holds 0..39 (two entries of 20 slots), "b" holds 40..59
    picked = sampler.sample(entries(("a", 1.0), ("b", 1.0), ("a", 1.0)), limit=5)
    assert picked == ["a", "b"]


def test_attempt_cap_returns_short_page_without_error():
    rng = random.Random(7)
    sampler = WeightedFeedSampler(attempt_factor=1, rng=rng)
    candidates = entries(("big", 100.0), ("small", 1.0))

    short_pages = 0
    for _ in range(100):
        picked = sampler.sample(candidates, limit=2)
        assert 1 <= len(picked) <= 2
        short_pages += len(picked) < 2
    assert short_pages > 50


def test_high_boost_item_dominates_over_many_trials():
    sampler = WeightedFeedSampler(rng=random.Random(42))
    candidates = entries(("boosted", 100.0), *[(f"plain{i}", 1.0) for i in range(9)])

    counts = Counter()
    for _ in range(2000):
        counts.update(sampler.sample(candidates, limit=1))

    plain_max = max(counts[f"plain{i}"] for i in range(9))
    # Expected share ~91.7% vs ~0.9% for each plain video
    assert counts["boosted"] > 1600
    assert counts["boosted"] > 10 * plain_max


def test_twenty_to_one_boost_wins_majority():
    sampler = WeightedFeedSampler(rng=random.Random(2024))
    candidates = entries(("v1", 1.0), ("v2", 21.0))

    wins = sum(sampler.sample(candidates, limit=1) == ["v2"] for _ in range(100))
    assert wins > 50


def test_invalid_configuration_rejected():
    with pytest.raises(ValueError):
        WeightedFeedSampler(weight_scale=0)
    with pytest.raises(ValueError):
        WeightedFeedSampler(attempt_factor=0)

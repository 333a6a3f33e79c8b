"""
Boost-weighted feed sampler.

Every candidate video occupies ``ceil(boost * weight_scale)`` slots of an
implicit pool; a feed page is drawn uniformly from that pool, keeping only
the first hit for each video:

    video   boost   slots (K=20)   share of pool
    ─────   ─────   ────────────   ─────────────
    v1       1.0        20            ~4.5%
    v2      21.0       420           ~95.5%

The pool is never materialised. Slot counts are turned into a cumulative
array and each uniform draw is located with a binary search, which selects
exactly the same video a lookup into the duplicated pool would.

Draws are capped at ``limit * attempt_factor``. When one video dominates the
pool the sampler may hit the cap before finding ``limit`` distinct videos and
returns a short page; callers treat the result as "at most limit".
"""
import bisect
import itertools
import math
import random
from dataclasses import dataclass
from typing import Iterable, Optional

DEFAULT_WEIGHT_SCALE = 20
DEFAULT_ATTEMPT_FACTOR = 5


@dataclass(frozen=True)
class VideoRankingEntry:
    """A candidate video and its promotion boost (1.0 = never promoted)."""
    video_id: str
    boost_value: float = 1.0


class WeightedFeedSampler:
    def __init__(
        self,
        weight_scale: int = DEFAULT_WEIGHT_SCALE,
        attempt_factor: int = DEFAULT_ATTEMPT_FACTOR,
        rng: Optional[random.Random] = None,
    ) -> None:
        if weight_scale < 1:
            raise ValueError("weight_scale must be >= 1")
        if attempt_factor < 1:
            raise ValueError("attempt_factor must be >= 1")
        self.weight_scale = weight_scale
        self.attempt_factor = attempt_factor
        self._rng = rng or random.Random()

    def slot_count(self, boost_value: float) -> int:
        """Pool slots for one candidate; never less than one."""
        return max(1, math.ceil(boost_value * self.weight_scale))

    def sample(self, candidates: Iterable[VideoRankingEntry], limit: int) -> list[str]:
        """
        Return up to ``limit`` distinct video ids, biased towards high boosts.

        Order is the order in which videos were first drawn. Repeated ids in
        ``candidates`` pool their slots. Never raises for empty or short input.
        """
        if limit <= 0:
            return []

        # Merge duplicates, keeping first-seen order
        slots: dict[str, int] = {}
        for entry in candidates:
            slots[entry.video_id] = slots.get(entry.video_id, 0) + self.slot_count(
                entry.boost_value
            )
        if not slots:
            return []

        video_ids = list(slots)
        cumulative = list(itertools.accumulate(slots.values()))
        total = cumulative[-1]

        target = min(limit, len(video_ids))
        max_attempts = limit * self.attempt_factor

        selected: dict[str, None] = {}   # insertion-ordered set
        attempts = 0
        while len(selected) < target and attempts < max_attempts:
            attempts += 1
            slot = self._rng.randrange(total)
            selected.setdefault(video_ids[bisect.bisect_right(cumulative, slot)], None)

        return list(selected)

"""
Caption search with synonym expansion.

A query is split into lowercase words, then widened with a static synonym
table so "bakery" also finds "croissant" and "sourdough" captions. Any word
in a synonym group pulls in the rest of its group.

Ranking is a linear score over the words found in the caption:

  word typed by the user   → 2 points
  word added by expansion  → 1 point

Ties keep the database order (newest first).
"""
import logging
import re
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clipfeed.config import settings
from clipfeed.models import Video

logger = logging.getLogger(__name__)

DIRECT_WEIGHT = 2
EXPANDED_WEIGHT = 1

SYNONYMS: dict[str, list[str]] = {
    "food": ["restaurant", "eat", "meal", "dinner", "lunch", "cuisine"],
    "restaurant": ["food", "dining", "eatery", "bistro", "diner"],
    "coffee": ["cafe", "espresso", "latte", "cappuccino", "brew"],
    "bakery": ["bread", "pastry", "croissant", "sourdough", "cake", "bakes"],
    "pizza": ["pizzeria", "slice", "italian"],
    "burger": ["burgers", "grill", "fries"],
    "bar": ["pub", "drinks", "cocktail", "beer", "wine"],
    "retail": ["shop", "store", "boutique", "market"],
    "clothes": ["clothing", "fashion", "apparel", "boutique"],
    "haircut": ["barber", "salon", "hair", "stylist"],
    "fitness": ["gym", "workout", "yoga", "training"],
    "cheap": ["affordable", "budget", "deal", "discount"],
    "vegan": ["plant-based", "vegetarian", "veggie"],
}

_WORD = re.compile(r"[\w-]+")


def _groups() -> dict[str, set[str]]:
    """Word → every word that shares a synonym group with it."""
    related: dict[str, set[str]] = {}
    for head, words in SYNONYMS.items():
        group = {head, *words}
        for word in group:
            related.setdefault(word, set()).update(group - {word})
    return related


_RELATED = _groups()


@dataclass
class ExpandedQuery:
    direct: list[str] = field(default_factory=list)
    expanded: list[str] = field(default_factory=list)

    @property
    def terms(self) -> list[str]:
        return self.direct + self.expanded

    def weight(self, term: str) -> int:
        return DIRECT_WEIGHT if term in self.direct else EXPANDED_WEIGHT


def expand_query(query: str) -> ExpandedQuery:
    direct = list(dict.fromkeys(_WORD.findall((query or "").lower())))
    expanded: list[str] = []
    for word in direct:
        for synonym in sorted(_RELATED.get(word, ())):
            if synonym not in direct and synonym not in expanded:
                expanded.append(synonym)
    return ExpandedQuery(direct=direct, expanded=expanded)


@dataclass
class SearchHit:
    video: Video
    score: int
    matched: list[str]


def score_caption(caption: str, query: ExpandedQuery) -> tuple[int, list[str]]:
    text = (caption or "").lower()
    matched = [t for t in query.terms if t in text]
    return sum(query.weight(t) for t in matched), matched


async def search_videos(db: AsyncSession, query: str, limit: int = 20) -> list[SearchHit]:
    expanded = expand_query(query)
    if not expanded.terms:
        return []

    rows = await db.execute(
        select(Video)
        .where(or_(*[Video.caption.icontains(t, autoescape=True) for t in expanded.terms]))
        .order_by(Video.created_at.desc())
        .limit(settings.search_candidate_limit)
    )
    hits = []
    for video in rows.scalars().all():
        score, matched = score_caption(video.caption, expanded)
        hits.append(SearchHit(video=video, score=score, matched=matched))

    hits.sort(key=lambda h: h.score, reverse=True)
    logger.debug(
        "Search %r expanded to %d terms, %d hits", query, len(expanded.terms), len(hits)
    )
    return hits[:limit]

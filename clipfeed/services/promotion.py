"""
Coin-funded video promotion.

Spending coins raises a video's boost_value, which the feed sampler turns
into more pool slots. Boosts only grow and never expire:

    new_boost = min(previous_boost + coins * boost_per_coin, max_boost)

Each promotion is one transaction:

  1. lock the video row and check ownership
  2. debit the balance with a guarded UPDATE (balance >= coins)
  3. read the current boost and write the new one
  4. append a promotion_history row

The candidate cache is dropped only after the commit, so a feed request
can never re-cache the pre-promotion boost.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipfeed.clients.redis_client import CandidateCache
from clipfeed.config import settings
from clipfeed.errors import InsufficientCoins, InvalidArgument, NotFound, StorageError
from clipfeed.models import Profile, PromotionHistory, Video
from clipfeed.telemetry import PROMOTION_COINS_TOTAL

logger = logging.getLogger(__name__)


@dataclass
class PromotionResult:
    video_id: str
    previous_boost: float
    new_boost: float
    coins_spent: int
    remaining_coins: int


def boosted_value(previous_boost: float, coins: int) -> float:
    return min(previous_boost + coins * settings.boost_per_coin, settings.max_boost)


async def promote_video(
    sessions: async_sessionmaker[AsyncSession],
    cache: CandidateCache,
    user_id: str,
    video_id: str,
    coins: int,
) -> PromotionResult:
    if coins < settings.min_promotion_coins or coins > settings.max_promotion_coins:
        raise InvalidArgument(
            f"coins must be between {settings.min_promotion_coins} "
            f"and {settings.max_promotion_coins}"
        )

    try:
        async with sessions() as session:
            async with session.begin():
                owner = await session.scalar(
                    select(Video.user_id)
                    .where(Video.video_id == video_id)
                    .with_for_update()
                )
                if owner != user_id:
                    raise NotFound("Video not found")

                debit = await session.execute(
                    update(Profile)
                    .where(Profile.user_id == user_id, Profile.coin_balance >= coins)
                    .values(coin_balance=Profile.coin_balance - coins)
                    .execution_options(synchronize_session=False)
                )
                if debit.rowcount == 0:
                    raise InsufficientCoins(f"Balance is below the {coins} coins requested")

                # Read after the debit: the row lock (or SQLite's write lock) is held
                previous_boost = await session.scalar(
                    select(Video.boost_value).where(Video.video_id == video_id)
                )
                new_boost = boosted_value(previous_boost, coins)

                await session.execute(
                    update(Video)
                    .where(Video.video_id == video_id)
                    .values(
                        boost_value=new_boost,
                        coins_spent_on_promotion=Video.coins_spent_on_promotion + coins,
                        last_promoted_at=datetime.now(timezone.utc).replace(tzinfo=None),
                    )
                    .execution_options(synchronize_session=False)
                )
                session.add(
                    PromotionHistory(
                        user_id=user_id,
                        video_id=video_id,
                        coins_spent=coins,
                        previous_boost=previous_boost,
                        new_boost=new_boost,
                    )
                )
                remaining = await session.scalar(
                    select(Profile.coin_balance).where(Profile.user_id == user_id)
                )
    except SQLAlchemyError as exc:
        raise StorageError(f"Promotion failed: {exc}") from exc

    await cache.invalidate()
    PROMOTION_COINS_TOTAL.inc(coins)
    logger.info(
        "Video %s promoted by %s: boost %.1f → %.1f (%d coins)",
        video_id, user_id, previous_boost, new_boost, coins,
    )
    return PromotionResult(
        video_id=video_id,
        previous_boost=previous_boost,
        new_boost=new_boost,
        coins_spent=coins,
        remaining_coins=remaining,
    )

"""
Reputation aggregate and its cache.

Ratings are a running mean over received reviews, rounded to one decimal.
"""

import json
import logging
from typing import Optional, Tuple
from uuid import UUID

from agroconnect.config import get_settings
from agroconnect.db import get_redis
from agroconnect.models import ReputationSummary, User

logger = logging.getLogger(__name__)


def running_mean(old_rating: float, old_count: int, rating: int) -> Tuple[float, int]:
    """
    Fold one more rating into a user's aggregate.

    Args:
        old_rating: Current average rating
        old_count: Number of reviews behind old_rating
        rating: New rating (1-5)

    Returns:
        (new_rating rounded to one decimal, new_count)
    """
    new_count = old_count + 1
    new_rating = (old_rating * old_count + rating) / new_count
    return round(new_rating, 1), new_count


def summarize(user: User) -> ReputationSummary:
    """Public reputation summary for a user row"""
    return ReputationSummary(
        user_id=user.id,
        name=user.name,
        user_type=user.user_type,
        rating=user.rating,
        review_count=user.review_count,
        completed_deals=user.completed_deals,
    )


class ReputationCache:
    """Best-effort redis cache of public reputation summaries"""

    def __init__(self, redis_client=None, ttl_seconds: Optional[int] = None):
        cache_settings = get_settings().cache
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds or cache_settings.reputation_ttl_seconds
        self.key_prefix = cache_settings.key_prefix

    @property
    def redis(self):
        return self._redis if self._redis is not None else get_redis()

    def _key(self, user_id: UUID) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def get(self, user_id: UUID) -> Optional[ReputationSummary]:
        """
        Get a cached summary.

        Returns:
            ReputationSummary or None on miss or cache failure
        """
        client = self.redis
        if client is None:
            return None
        try:
            cached = await client.get(self._key(user_id))
            if cached:
                return ReputationSummary(**json.loads(cached))
            return None
        except Exception as e:
            logger.error(f"Reputation cache read failed for {user_id}: {e}")
            return None

    async def set(self, summary: ReputationSummary) -> None:
        """Cache a summary for ttl_seconds"""
        client = self.redis
        if client is None:
            return
        try:
            await client.setex(
                self._key(summary.user_id),
                self.ttl_seconds,
                summary.model_dump_json()
            )
        except Exception as e:
            logger.error(f"Reputation cache write failed for {summary.user_id}: {e}")

    async def invalidate(self, user_id: UUID) -> None:
        """Drop a cached summary after the aggregate changed"""
        client = self.redis
        if client is None:
            return
        try:
            await client.delete(self._key(user_id))
        except Exception as e:
            logger.error(f"Reputation cache invalidation failed for {user_id}: {e}")

"""
Review read side. Writes go through the offer lifecycle manager.
"""

import logging
from typing import Optional
from uuid import UUID

from agroconnect.error_handling import NotFoundError
from agroconnect.models import Page, ReputationSummary, Review, UserStats
from .reputation import ReputationCache, summarize
from .store import Store

logger = logging.getLogger(__name__)


class ReviewQueries:
    """List reviews and read reputation summaries"""

    def __init__(self, store: Store, reputation_cache: Optional[ReputationCache] = None):
        self.store = store
        self.reputation_cache = reputation_cache or ReputationCache()

    async def list_given(self, user_id: UUID, limit: int = 10, offset: int = 0) -> Page[Review]:
        """Reviews written by the user"""
        async with self.store.transaction() as session:
            items, total = await session.list_reviews(reviewer_id=user_id, limit=limit, offset=offset)
        return Page[Review](items=items, total=total, limit=limit, offset=offset)

    async def list_received(self, user_id: UUID, limit: int = 10, offset: int = 0) -> Page[Review]:
        """Reviews about the user"""
        async with self.store.transaction() as session:
            items, total = await session.list_reviews(reviewed_id=user_id, limit=limit, offset=offset)
        return Page[Review](items=items, total=total, limit=limit, offset=offset)

    async def list_for_user(self, user_id: UUID, limit: int = 10, offset: int = 0) -> Page[Review]:
        """
        Public reviews about a user.

        Raises:
            NotFoundError: User missing
        """
        async with self.store.transaction() as session:
            if not await session.get_user(user_id):
                raise NotFoundError(f"User {user_id} not found")
            items, total = await session.list_reviews(reviewed_id=user_id, limit=limit, offset=offset)
        return Page[Review](items=items, total=total, limit=limit, offset=offset)

    async def reputation(self, user_id: UUID) -> ReputationSummary:
        """
        Public reputation summary, served from cache when warm.

        Raises:
            NotFoundError: User missing
        """
        cached = await self.reputation_cache.get(user_id)
        if cached:
            return cached

        async with self.store.transaction() as session:
            user = await session.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        summary = summarize(user)
        await self.reputation_cache.set(summary)
        return summary

    async def user_stats(self, user_id: UUID) -> UserStats:
        """
        Public statistics with the count of reviews received per star.

        Every star from 1 to 5 appears in the distribution, zero when unused.

        Raises:
            NotFoundError: User missing
        """
        async with self.store.transaction() as session:
            user = await session.get_user(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found")
            counts = await session.rating_distribution(user_id)

        return UserStats(
            user_id=user.id,
            rating=user.rating,
            review_count=user.review_count,
            completed_deals=user.completed_deals,
            is_verified=user.is_verified,
            verification_level=user.verification_level,
            rating_distribution={star: counts.get(star, 0) for star in range(1, 6)},
        )

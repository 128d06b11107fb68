"""
Public user profile routes.
"""

from fastapi import APIRouter, Depends
from uuid import UUID

from agroconnect.models import ReputationSummary, UserStats
from agroconnect.services import ReviewQueries
from .deps import get_review_queries

router = APIRouter()


@router.get("/users/{user_id}", response_model=ReputationSummary)
async def get_user_reputation(
    user_id: UUID,
    queries: ReviewQueries = Depends(get_review_queries),
):
    """Public reputation summary (rating, review count, completed deals)."""
    return await queries.reputation(user_id)


@router.get("/users/{user_id}/stats", response_model=UserStats)
async def get_user_stats(
    user_id: UUID,
    queries: ReviewQueries = Depends(get_review_queries),
):
    """Reputation, verification status and the rating distribution from 1 to 5."""
    return await queries.user_stats(user_id)

"""
Review routes.
"""

from fastapi import APIRouter, Depends
from uuid import UUID

from agroconnect.models import Page, Requester, Review, ReviewCreate, ReviewEligibility
from agroconnect.services import OfferLifecycleManager, ReviewQueries
from agroconnect.services.auth import get_current_user
from .deps import Pagination, get_offer_manager, get_review_queries

router = APIRouter()


@router.post("/reviews", response_model=Review, status_code=201)
async def create_review(
    body: ReviewCreate,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Review the counterparty of a completed offer."""
    return await manager.record_review(requester, body.offer_id, body.rating, body.comment)


@router.get("/reviews/check/{offer_id}", response_model=ReviewEligibility)
async def check_can_review(
    offer_id: int,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Whether the current user may review this offer now."""
    return await manager.can_review(requester, offer_id)


@router.get("/reviews/given", response_model=Page[Review])
async def list_given_reviews(
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    queries: ReviewQueries = Depends(get_review_queries),
):
    return await queries.list_given(requester.id, page.limit, page.offset)


@router.get("/reviews/received", response_model=Page[Review])
async def list_received_reviews(
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    queries: ReviewQueries = Depends(get_review_queries),
):
    return await queries.list_received(requester.id, page.limit, page.offset)


@router.get("/reviews/user/{user_id}", response_model=Page[Review])
async def list_user_reviews(
    user_id: UUID,
    page: Pagination = Depends(),
    queries: ReviewQueries = Depends(get_review_queries),
):
    """Public reviews about a user."""
    return await queries.list_for_user(user_id, page.limit, page.offset)

"""
Offer routes: submit, counter, accept/reject/complete and list.
"""

import logging
from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID

from agroconnect.models import (
    CounterOfferRequest,
    Offer,
    OfferCreate,
    OfferStatusUpdate,
    Page,
    Requester,
)
from agroconnect.services import OfferLifecycleManager
from agroconnect.services.auth import get_current_user
from .deps import Pagination, get_offer_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/offers", response_model=Offer, status_code=201)
async def create_offer(
    body: OfferCreate,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Submit an offer on an active announcement."""
    return await manager.create_offer(requester, body.announcement_id, body.price, body.message)


@router.get("/offers/mine", response_model=Page[Offer])
async def list_my_offers(
    status: Optional[str] = Query(None, description="Filter by status"),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Offers the current user made."""
    return await manager.list_my_offers(requester, status, page.limit, page.offset)


@router.get("/offers/received", response_model=Page[Offer])
async def list_received_offers(
    status: Optional[str] = Query(None, description="Filter by status"),
    announcement_id: Optional[UUID] = Query(None),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Offers made on the current user's announcements."""
    return await manager.list_received_offers(
        requester, status, announcement_id, page.limit, page.offset
    )


@router.get("/offers/announcement/{announcement_id}", response_model=Page[Offer])
async def list_announcement_offers(
    announcement_id: UUID,
    status: Optional[str] = Query(None, description="Filter by status"),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Offers on one announcement (owner only)."""
    return await manager.list_announcement_offers(
        requester, announcement_id, status, page.limit, page.offset
    )


@router.get("/offers/{offer_id}", response_model=Offer)
async def get_offer(
    offer_id: int,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Get a single offer (bidder or owner only)."""
    return await manager.get_offer(requester, offer_id)


@router.put("/offers/{offer_id}/counteroffer", response_model=Offer)
async def counter_offer(
    offer_id: int,
    body: CounterOfferRequest,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Revise the price/message of a pending offer."""
    return await manager.counter_offer(requester, offer_id, body.price, body.message)


@router.put("/offers/{offer_id}/status", response_model=Offer)
async def update_offer_status(
    offer_id: int,
    body: OfferStatusUpdate,
    requester: Requester = Depends(get_current_user),
    manager: OfferLifecycleManager = Depends(get_offer_manager),
):
    """Accept, reject or complete an offer."""
    return await manager.update_offer_status(requester, offer_id, body.status)

"""
Announcement routes.
"""

import logging
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID

from agroconnect.models import (
    Announcement,
    AnnouncementCategory,
    AnnouncementCreate,
    AnnouncementFilters,
    AnnouncementStatus,
    AnnouncementUpdate,
    Page,
    Requester,
)
from agroconnect.services import AnnouncementManager
from agroconnect.services.auth import get_current_user
from .deps import Pagination, get_announcement_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/announcements", response_model=Page[Announcement])
async def list_announcements(
    search: Optional[str] = Query(None, description="Text search over title and description"),
    category: Optional[AnnouncementCategory] = Query(None),
    location: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    status: AnnouncementStatus = Query(AnnouncementStatus.ACTIVE),
    page: Pagination = Depends(),
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    """
    List announcements with optional filters.

    Only active announcements are listed unless another status is requested.
    """
    filters = AnnouncementFilters(
        search=search,
        category=category,
        location=location,
        min_price=min_price,
        max_price=max_price,
        status=status,
    )
    return await manager.list_announcements(filters, page.limit, page.offset)


@router.post("/announcements", response_model=Announcement, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    requester: Requester = Depends(get_current_user),
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    return await manager.create_announcement(requester, body)


@router.get("/announcements/mine", response_model=Page[Announcement])
async def list_my_announcements(
    status: Optional[AnnouncementStatus] = Query(None),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    """The current user's announcements with offer counts."""
    return await manager.list_user_announcements(requester, status, page.limit, page.offset)


@router.get("/announcements/{announcement_id}", response_model=Announcement)
async def get_announcement(
    announcement_id: UUID,
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    """Get one announcement; counts as a view."""
    return await manager.get_announcement(announcement_id)


@router.put("/announcements/{announcement_id}", response_model=Announcement)
async def update_announcement(
    announcement_id: UUID,
    body: AnnouncementUpdate,
    requester: Requester = Depends(get_current_user),
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    return await manager.update_announcement(requester, announcement_id, body)


@router.delete("/announcements/{announcement_id}")
async def delete_announcement(
    announcement_id: UUID,
    requester: Requester = Depends(get_current_user),
    manager: AnnouncementManager = Depends(get_announcement_manager),
):
    await manager.delete_announcement(requester, announcement_id)
    return {"status": "success", "message": "Announcement deleted"}

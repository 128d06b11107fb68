"""
Activity log routes.
"""

from fastapi import APIRouter, Depends, Query
from uuid import UUID

from agroconnect.error_handling import NotFoundError
from agroconnect.models import ActivityLog, Page, Requester
from agroconnect.services import ActivityLogger, Store
from agroconnect.services.auth import get_current_user
from .deps import Pagination, get_activity_logger, get_store

router = APIRouter()


@router.get("/activities", response_model=Page[ActivityLog])
async def list_my_activities(
    public: bool = Query(False, description="Only public entries"),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    return await activity.list_for_user(requester.id, public, page.limit, page.offset)


@router.get("/activities/user/{user_id}", response_model=Page[ActivityLog])
async def list_user_public_activities(
    user_id: UUID,
    page: Pagination = Depends(),
    store: Store = Depends(get_store),
    activity: ActivityLogger = Depends(get_activity_logger),
):
    """Public activity of another user."""
    async with store.transaction() as session:
        if not await session.get_user(user_id):
            raise NotFoundError(f"User {user_id} not found")
    return await activity.list_for_user(user_id, True, page.limit, page.offset)

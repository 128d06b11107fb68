"""
Announcement manager - CRUD for listings owned by a user.
"""

import logging
from typing import Optional
from uuid import UUID

from agroconnect.error_handling import ForbiddenError, NotFoundError
from agroconnect.models import (
    ActivityType,
    Announcement,
    AnnouncementCreate,
    AnnouncementFilters,
    AnnouncementStatus,
    AnnouncementUpdate,
    Page,
    Requester,
)
from .activity import ActivityLogger
from .store import Store, StoreSession

logger = logging.getLogger(__name__)


class AnnouncementManager:
    """Manage announcement persistence and ownership checks"""

    def __init__(self, store: Store, activity: Optional[ActivityLogger] = None):
        self.store = store
        self.activity = activity or ActivityLogger(store)

    async def create_announcement(
        self,
        requester: Requester,
        data: AnnouncementCreate
    ) -> Announcement:
        """Create an active announcement owned by the requester"""
        async with self.store.transaction() as session:
            announcement = await session.insert_announcement(requester.id, data)

        logger.info(f"Announcement {announcement.id} created by {requester.id}")
        await self.activity.record(
            requester.id,
            ActivityType.ANNOUNCEMENT_CREATED,
            f"Published \"{announcement.title}\"",
            related_id=announcement.id,
            related_type="Announcement",
            is_public=True,
        )
        return announcement

    async def get_announcement(self, announcement_id: UUID) -> Announcement:
        """
        Get announcement by ID, counting the view.

        Raises:
            NotFoundError: Announcement missing or deleted
        """
        async with self.store.transaction() as session:
            announcement = await self._load(session, announcement_id)
            await session.increment_views(announcement_id)
            offers_count = await session.count_offers(announcement_id)

        return announcement.model_copy(update={
            "views": announcement.views + 1,
            "offers_count": offers_count,
        })

    async def update_announcement(
        self,
        requester: Requester,
        announcement_id: UUID,
        data: AnnouncementUpdate
    ) -> Announcement:
        """
        Update the provided fields of an announcement.

        Raises:
            NotFoundError: Announcement missing
            ForbiddenError: Requester is not the owner
        """
        fields = data.model_dump(exclude_unset=True, exclude_none=True)

        async with self.store.transaction() as session:
            announcement = await self._load(session, announcement_id, for_update=True)
            self._require_owner(announcement, requester, "update")
            if fields:
                announcement = await session.update_announcement(announcement_id, fields)

        if fields:
            await self.activity.record(
                requester.id,
                ActivityType.ANNOUNCEMENT_UPDATED,
                f"Updated \"{announcement.title}\"",
                metadata={"fields": sorted(fields)},
                related_id=announcement_id,
                related_type="Announcement",
            )
        return announcement

    async def delete_announcement(self, requester: Requester, announcement_id: UUID) -> None:
        """
        Soft-delete an announcement.

        Raises:
            NotFoundError: Announcement missing
            ForbiddenError: Requester is not the owner
        """
        async with self.store.transaction() as session:
            announcement = await self._load(session, announcement_id, for_update=True)
            self._require_owner(announcement, requester, "delete")
            await session.soft_delete_announcement(announcement_id)

        logger.info(f"Announcement {announcement_id} deleted by {requester.id}")
        await self.activity.record(
            requester.id,
            ActivityType.ANNOUNCEMENT_DELETED,
            f"Removed \"{announcement.title}\"",
            related_id=announcement_id,
            related_type="Announcement",
        )

    async def list_announcements(
        self,
        filters: AnnouncementFilters,
        limit: int = 10,
        offset: int = 0
    ) -> Page[Announcement]:
        """Public listing with search filters, newest first"""
        async with self.store.transaction() as session:
            items, total = await session.list_announcements(filters, None, limit, offset)
        return Page[Announcement](items=items, total=total, limit=limit, offset=offset)

    async def list_user_announcements(
        self,
        requester: Requester,
        status: Optional[AnnouncementStatus] = None,
        limit: int = 10,
        offset: int = 0
    ) -> Page[Announcement]:
        """The requester's own announcements with offer counts"""
        filters = AnnouncementFilters(status=status) if status else None
        async with self.store.transaction() as session:
            items, total = await session.list_announcements(filters, requester.id, limit, offset)
            counted = [
                item.model_copy(update={"offers_count": await session.count_offers(item.id)})
                for item in items
            ]
        return Page[Announcement](items=counted, total=total, limit=limit, offset=offset)

    async def _load(
        self,
        session: StoreSession,
        announcement_id: UUID,
        for_update: bool = False
    ) -> Announcement:
        announcement = await session.get_announcement(announcement_id, for_update=for_update)
        if not announcement:
            raise NotFoundError(f"Announcement {announcement_id} not found")
        return announcement

    def _require_owner(self, announcement: Announcement, requester: Requester, verb: str) -> None:
        if announcement.user_id != requester.id:
            raise ForbiddenError(f"You are not allowed to {verb} this announcement")

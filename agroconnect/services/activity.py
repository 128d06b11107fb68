"""
Activity log - fire-and-forget append of user-visible events.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from agroconnect.models import ActivityLog, ActivityType, Page
from .store import Store

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Append and read per-user activity entries"""

    def __init__(self, store: Store):
        self.store = store

    async def record(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        related_id: Optional[Any] = None,
        related_type: Optional[str] = None,
        is_public: bool = False,
    ) -> Optional[ActivityLog]:
        """
        Append an entry in its own transaction.

        Failures are logged and swallowed so they never reach the caller of
        the operation that produced the event.

        Returns:
            The stored entry, or None if the write failed
        """
        try:
            async with self.store.transaction() as session:
                return await session.insert_activity(
                    user_id=user_id,
                    activity_type=activity_type,
                    description=description,
                    metadata=metadata,
                    related_id=str(related_id) if related_id is not None else None,
                    related_type=related_type,
                    is_public=is_public,
                )
        except Exception as e:
            logger.error(
                f"Failed to record {activity_type.value} activity for user {user_id}: "
                f"{type(e).__name__}: {e}"
            )
            return None

    async def list_for_user(
        self,
        user_id: UUID,
        public_only: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[ActivityLog]:
        """List a user's activity, newest first"""
        async with self.store.transaction() as session:
            items, total = await session.list_activities(user_id, public_only, limit, offset)
        return Page[ActivityLog](items=items, total=total, limit=limit, offset=offset)

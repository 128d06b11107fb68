"""Activity log data models"""

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID


class ActivityType(str, Enum):
    """Kinds of user activity recorded in the log"""
    OFFER_CREATED = "offer_created"
    OFFER_COUNTERED = "offer_countered"
    OFFER_ACCEPTED = "offer_accepted"
    OFFER_REJECTED = "offer_rejected"
    OFFER_COMPLETED = "offer_completed"
    REVIEW_GIVEN = "review_given"
    REVIEW_RECEIVED = "review_received"
    ANNOUNCEMENT_CREATED = "announcement_created"
    ANNOUNCEMENT_UPDATED = "announcement_updated"
    ANNOUNCEMENT_DELETED = "announcement_deleted"
    DOCUMENT_SUBMITTED = "document_submitted"
    DOCUMENT_VERIFIED = "document_verified"
    DOCUMENT_REJECTED = "document_rejected"
    PROFILE_UPDATED = "profile_updated"
    PASSWORD_CHANGED = "password_changed"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    LOGIN = "login"
    OTHER = "other"


class ActivityLog(BaseModel):
    """Single activity log entry"""
    id: int
    user_id: UUID
    activity_type: ActivityType
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    is_public: bool = False
    created_at: datetime

    class Config:
        from_attributes = True

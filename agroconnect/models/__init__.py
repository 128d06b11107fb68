"""Data models for the AgroConnect API"""

from .user import (
    User,
    UserType,
    UserCreate,
    UserLogin,
    UserUpdate,
    PasswordChange,
    UserStats,
    ReputationSummary,
    Requester,
    TokenResponse,
)
from .announcement import (
    Announcement,
    AnnouncementCategory,
    AnnouncementCreate,
    AnnouncementFilters,
    AnnouncementStatus,
    AnnouncementUpdate,
)
from .offer import Offer, OfferStatus, OfferCreate, CounterOfferRequest, OfferStatusUpdate
from .review import Review, ReviewerType, ReviewCreate, ReviewEligibility
from .document import (
    Document,
    DocumentCreate,
    DocumentStatus,
    DocumentType,
    DocumentVerification,
)
from .activity import ActivityLog, ActivityType
from .page import Page

__all__ = [
    "User",
    "UserType",
    "UserCreate",
    "UserLogin",
    "UserUpdate",
    "PasswordChange",
    "UserStats",
    "ReputationSummary",
    "Requester",
    "TokenResponse",
    "Announcement",
    "AnnouncementCategory",
    "AnnouncementCreate",
    "AnnouncementFilters",
    "AnnouncementStatus",
    "AnnouncementUpdate",
    "Offer",
    "OfferStatus",
    "OfferCreate",
    "CounterOfferRequest",
    "OfferStatusUpdate",
    "Review",
    "ReviewerType",
    "ReviewCreate",
    "ReviewEligibility",
    "Document",
    "DocumentCreate",
    "DocumentStatus",
    "DocumentType",
    "DocumentVerification",
    "ActivityLog",
    "ActivityType",
    "Page",
]

"""Marketplace services"""

from .store import Store, StoreSession
from .activity import ActivityLogger
from .announcements import AnnouncementManager
from .documents import DocumentManager
from .reputation import ReputationCache, running_mean
from .reviews import ReviewQueries
from .offers import OfferLifecycleManager

__all__ = [
    "Store",
    "StoreSession",
    "ActivityLogger",
    "AnnouncementManager",
    "DocumentManager",
    "ReputationCache",
    "running_mean",
    "ReviewQueries",
    "OfferLifecycleManager",
]

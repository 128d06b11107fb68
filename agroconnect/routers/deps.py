"""
Shared router dependencies.

Tests override get_store to run the routers against an in-memory store.
"""

from fastapi import Depends, Query

from agroconnect.config import get_settings
from agroconnect.services import (
    ActivityLogger,
    AnnouncementManager,
    DocumentManager,
    OfferLifecycleManager,
    ReviewQueries,
    Store,
)
from agroconnect.services.auth import AuthService
from agroconnect.services.postgres_store import PostgresStore

_settings = get_settings()


class Pagination:
    """limit/offset query parameters"""

    def __init__(
        self,
        limit: int = Query(_settings.pagination.limit, ge=1, le=_settings.pagination.max_limit),
        offset: int = Query(_settings.pagination.offset, ge=0),
    ):
        self.limit = limit
        self.offset = offset


def get_store() -> Store:
    return PostgresStore()


def get_activity_logger(store: Store = Depends(get_store)) -> ActivityLogger:
    return ActivityLogger(store)


def get_offer_manager(
    store: Store = Depends(get_store),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> OfferLifecycleManager:
    return OfferLifecycleManager(store, activity=activity)


def get_announcement_manager(
    store: Store = Depends(get_store),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> AnnouncementManager:
    return AnnouncementManager(store, activity=activity)


def get_review_queries(store: Store = Depends(get_store)) -> ReviewQueries:
    return ReviewQueries(store)


def get_auth_service(
    store: Store = Depends(get_store),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> AuthService:
    return AuthService(store, activity=activity)


def get_document_manager(
    store: Store = Depends(get_store),
    activity: ActivityLogger = Depends(get_activity_logger),
) -> DocumentManager:
    return DocumentManager(store, activity=activity)

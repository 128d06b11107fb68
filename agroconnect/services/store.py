"""
Store interface for marketplace persistence.

Managers open one transaction per operation and issue every read-check-write
step through the session it yields.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, AsyncContextManager, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from agroconnect.models import (
    ActivityLog,
    ActivityType,
    Announcement,
    AnnouncementCreate,
    AnnouncementFilters,
    Document,
    DocumentCreate,
    DocumentStatus,
    DocumentType,
    Offer,
    OfferStatus,
    Review,
    ReviewerType,
    User,
    UserCreate,
)


class StoreSession(ABC):
    """Operations available inside one transaction."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: UUID, for_update: bool = False) -> Optional[User]:
        """Get user by ID."""

    @abstractmethod
    async def get_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        """Get a user and their password hash by email."""

    @abstractmethod
    async def insert_user(self, data: UserCreate, password_hash: str) -> User:
        """Create a user."""

    @abstractmethod
    async def update_user_reputation(self, user_id: UUID, rating: float, review_count: int) -> None:
        """Overwrite a user's rating aggregate."""

    @abstractmethod
    async def increment_completed_deals(self, user_ids: Sequence[UUID]) -> None:
        """Add one completed deal to each user."""

    @abstractmethod
    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        """Stored password hash for a user."""

    @abstractmethod
    async def update_user(self, user_id: UUID, fields: Dict[str, Any]) -> User:
        """Write the given profile or status columns and return the updated user."""

    @abstractmethod
    async def update_password(self, user_id: UUID, password_hash: str) -> None:
        """Replace a user's password hash."""

    # Announcements

    @abstractmethod
    async def get_announcement(
        self, announcement_id: UUID, for_update: bool = False
    ) -> Optional[Announcement]:
        """Get a non-deleted announcement by ID."""

    @abstractmethod
    async def insert_announcement(self, owner_id: UUID, data: AnnouncementCreate) -> Announcement:
        """Create an announcement owned by owner_id."""

    @abstractmethod
    async def update_announcement(self, announcement_id: UUID, fields: Dict[str, Any]) -> Announcement:
        """Write the given columns and return the updated row."""

    @abstractmethod
    async def soft_delete_announcement(self, announcement_id: UUID) -> None:
        """Mark an announcement as deleted."""

    @abstractmethod
    async def increment_views(self, announcement_id: UUID) -> None:
        """Add one view to an announcement."""

    @abstractmethod
    async def count_offers(self, announcement_id: UUID) -> int:
        """Number of offers on an announcement."""

    @abstractmethod
    async def list_announcements(
        self,
        filters: Optional[AnnouncementFilters],
        owner_id: Optional[UUID],
        limit: int,
        offset: int,
    ) -> Tuple[List[Announcement], int]:
        """Page of announcements (newest first) and the total count."""

    # Offers

    @abstractmethod
    async def get_offer(self, offer_id: int, for_update: bool = False) -> Optional[Offer]:
        """Get an offer with its announcement owner joined in as seller_id."""

    @abstractmethod
    async def find_pending_offer(self, bidder_id: UUID, announcement_id: UUID) -> Optional[Offer]:
        """The bidder's pending offer on an announcement, if any."""

    @abstractmethod
    async def insert_offer(
        self,
        bidder_id: UUID,
        announcement_id: UUID,
        price: Decimal,
        message: Optional[str],
    ) -> Offer:
        """Create a pending offer."""

    @abstractmethod
    async def update_offer(self, offer_id: int, fields: Dict[str, Any]) -> Offer:
        """Write the given columns and return the updated offer."""

    @abstractmethod
    async def reject_pending_siblings(self, announcement_id: UUID, except_offer_id: int) -> List[int]:
        """Reject every other pending offer on the announcement; return their IDs."""

    @abstractmethod
    async def list_offers(
        self,
        bidder_id: Optional[UUID] = None,
        seller_id: Optional[UUID] = None,
        announcement_id: Optional[UUID] = None,
        status: Optional[OfferStatus] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Offer], int]:
        """Page of offers (newest first) and the total count."""

    # Reviews

    @abstractmethod
    async def insert_review(
        self,
        reviewer_id: UUID,
        reviewed_id: UUID,
        offer_id: int,
        rating: int,
        comment: Optional[str],
        reviewer_type: ReviewerType,
    ) -> Review:
        """Create a review."""

    @abstractmethod
    async def list_reviews(
        self,
        reviewer_id: Optional[UUID] = None,
        reviewed_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Review], int]:
        """Page of reviews (newest first) and the total count."""

    @abstractmethod
    async def rating_distribution(self, reviewed_id: UUID) -> Dict[int, int]:
        """Number of reviews per star value received by a user."""

    # Documents

    @abstractmethod
    async def get_document(self, document_id: int, for_update: bool = False) -> Optional[Document]:
        """Get a non-deleted document by ID."""

    @abstractmethod
    async def find_open_document(
        self, user_id: UUID, document_type: DocumentType
    ) -> Optional[Document]:
        """The user's pending or approved document of a type, if any."""

    @abstractmethod
    async def insert_document(self, user_id: UUID, data: DocumentCreate) -> Document:
        """Create a pending document."""

    @abstractmethod
    async def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        """Write the given columns and return the updated document."""

    @abstractmethod
    async def delete_document(self, document_id: int) -> None:
        """Mark a document as deleted."""

    @abstractmethod
    async def list_documents(
        self,
        user_id: UUID,
        status: Optional[DocumentStatus],
        limit: int,
        offset: int,
    ) -> Tuple[List[Document], int]:
        """Page of a user's documents (newest first) and the total count."""

    # Activity log

    @abstractmethod
    async def insert_activity(
        self,
        user_id: UUID,
        activity_type: ActivityType,
        description: str,
        metadata: Optional[Dict[str, Any]],
        related_id: Optional[str],
        related_type: Optional[str],
        is_public: bool,
    ) -> ActivityLog:
        """Append an activity log entry."""

    @abstractmethod
    async def list_activities(
        self,
        user_id: UUID,
        public_only: bool,
        limit: int,
        offset: int,
    ) -> Tuple[List[ActivityLog], int]:
        """Page of a user's activity (newest first) and the total count."""


class Store(ABC):
    """Factory for transactional sessions."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[StoreSession]:
        """Open a transaction; commits on clean exit, rolls back on error."""

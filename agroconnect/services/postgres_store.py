"""
PostgreSQL store - asyncpg implementation of the store interface.
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import asyncpg

from agroconnect.db import get_pg_pool
from agroconnect.error_handling import InvalidStateError
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
from .store import Store, StoreSession

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, name, email, user_type, phone, location, profile_image,
    rating, review_count, completed_deals, active,
    is_verified, verification_level, is_admin, created_at
"""

USER_UPDATABLE = {
    "name", "phone", "location", "profile_image", "active",
    "is_verified", "verification_level",
}

OFFER_SELECT = """
    SELECT o.id, o.user_id, o.announcement_id, o.price, o.message, o.status,
           o.buyer_reviewed, o.seller_reviewed, o.created_at, o.updated_at,
           o.deleted_at, a.user_id AS seller_id
    FROM offers o
    JOIN announcements a ON a.id = o.announcement_id
"""

ANNOUNCEMENT_UPDATABLE = {
    "title", "description", "price", "location", "category", "images",
    "accept_counter_offers", "status",
}

OFFER_UPDATABLE = {"price", "message", "status", "buyer_reviewed", "seller_reviewed"}

DOCUMENT_COLUMNS = """
    id, user_id, type, document_number, document_url, is_verified, status,
    verified_at, verified_by, rejection_reason, expires_at, created_at, updated_at
"""

DOCUMENT_UPDATABLE = {"status", "is_verified", "verified_at", "verified_by", "rejection_reason"}


def _db_value(value: Any) -> Any:
    """Unwrap enums before handing values to asyncpg"""
    if isinstance(value, Enum):
        return value.value
    return value


def _set_clause(fields: Dict[str, Any], allowed: set, start: int = 1) -> Tuple[str, List[Any]]:
    """Build "col = $n" assignments for whitelisted columns"""
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")

    assignments = []
    values = []
    for index, (column, value) in enumerate(fields.items(), start=start):
        assignments.append(f"{column} = ${index}")
        values.append(_db_value(value))
    return ", ".join(assignments), values


class PostgresSession(StoreSession):
    """Session bound to one connection with an open transaction"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    # Users

    async def get_user(self, user_id: UUID, for_update: bool = False) -> Optional[User]:
        lock = " FOR UPDATE" if for_update else ""
        row = await self.conn.fetchrow(f"""
            SELECT {USER_COLUMNS} FROM users
            WHERE id = $1 AND deleted_at IS NULL{lock}
        """, user_id)
        return User(**dict(row)) if row else None

    async def get_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        row = await self.conn.fetchrow(f"""
            SELECT {USER_COLUMNS}, password_hash FROM users
            WHERE email = $1 AND deleted_at IS NULL
        """, email)
        if not row:
            return None
        data = dict(row)
        password_hash = data.pop("password_hash")
        return User(**data), password_hash

    async def insert_user(self, data: UserCreate, password_hash: str) -> User:
        try:
            row = await self.conn.fetchrow(f"""
                INSERT INTO users (name, email, password_hash, user_type, phone, location, profile_image)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING {USER_COLUMNS}
            """,
                data.name,
                data.email,
                password_hash,
                data.user_type.value,
                data.phone,
                data.location,
                data.profile_image
            )
        except asyncpg.UniqueViolationError:
            raise InvalidStateError("This email is already in use.")
        return User(**dict(row))

    async def update_user_reputation(self, user_id: UUID, rating: float, review_count: int) -> None:
        await self.conn.execute("""
            UPDATE users SET rating = $1, review_count = $2, updated_at = NOW()
            WHERE id = $3
        """, rating, review_count, user_id)

    async def increment_completed_deals(self, user_ids: Sequence[UUID]) -> None:
        await self.conn.execute("""
            UPDATE users SET completed_deals = completed_deals + 1, updated_at = NOW()
            WHERE id = ANY($1::uuid[])
        """, list(user_ids))

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        return await self.conn.fetchval("""
            SELECT password_hash FROM users
            WHERE id = $1 AND deleted_at IS NULL
        """, user_id)

    async def update_user(self, user_id: UUID, fields: Dict[str, Any]) -> User:
        clause, values = _set_clause(fields, USER_UPDATABLE)
        row = await self.conn.fetchrow(f"""
            UPDATE users SET {clause}, updated_at = NOW()
            WHERE id = ${len(values) + 1}
            RETURNING {USER_COLUMNS}
        """, *values, user_id)
        return User(**dict(row))

    async def update_password(self, user_id: UUID, password_hash: str) -> None:
        await self.conn.execute("""
            UPDATE users SET password_hash = $1, updated_at = NOW()
            WHERE id = $2
        """, password_hash, user_id)

    # Announcements

    async def get_announcement(
        self, announcement_id: UUID, for_update: bool = False
    ) -> Optional[Announcement]:
        lock = " FOR UPDATE" if for_update else ""
        row = await self.conn.fetchrow(f"""
            SELECT * FROM announcements
            WHERE id = $1 AND deleted_at IS NULL{lock}
        """, announcement_id)
        return Announcement(**dict(row)) if row else None

    async def insert_announcement(self, owner_id: UUID, data: AnnouncementCreate) -> Announcement:
        row = await self.conn.fetchrow("""
            INSERT INTO announcements (
                user_id, title, description, price, location, category,
                images, accept_counter_offers
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *
        """,
            owner_id,
            data.title,
            data.description,
            data.price,
            data.location,
            data.category.value,
            data.images,
            data.accept_counter_offers
        )
        return Announcement(**dict(row))

    async def update_announcement(self, announcement_id: UUID, fields: Dict[str, Any]) -> Announcement:
        clause, values = _set_clause(fields, ANNOUNCEMENT_UPDATABLE)
        row = await self.conn.fetchrow(f"""
            UPDATE announcements SET {clause}, updated_at = NOW()
            WHERE id = ${len(values) + 1}
            RETURNING *
        """, *values, announcement_id)
        return Announcement(**dict(row))

    async def soft_delete_announcement(self, announcement_id: UUID) -> None:
        await self.conn.execute("""
            UPDATE announcements SET deleted_at = NOW() WHERE id = $1
        """, announcement_id)

    async def increment_views(self, announcement_id: UUID) -> None:
        await self.conn.execute("""
            UPDATE announcements SET views = views + 1 WHERE id = $1
        """, announcement_id)

    async def count_offers(self, announcement_id: UUID) -> int:
        return await self.conn.fetchval("""
            SELECT COUNT(*) FROM offers
            WHERE announcement_id = $1 AND deleted_at IS NULL
        """, announcement_id)

    async def list_announcements(
        self,
        filters: Optional[AnnouncementFilters],
        owner_id: Optional[UUID],
        limit: int,
        offset: int,
    ) -> Tuple[List[Announcement], int]:
        conditions = ["deleted_at IS NULL"]
        values: List[Any] = []

        def add(condition: str, value: Any) -> None:
            values.append(value)
            conditions.append(condition.format(n=len(values)))

        if owner_id is not None:
            add("user_id = ${n}", owner_id)
        if filters is not None:
            if filters.status:
                add("status = ${n}", filters.status.value)
            if filters.search:
                add("(title ILIKE ${n} OR description ILIKE ${n})", f"%{filters.search}%")
            if filters.category:
                add("category = ${n}", filters.category.value)
            if filters.location:
                add("location ILIKE ${n}", f"%{filters.location}%")
            if filters.min_price is not None:
                add("price >= ${n}", filters.min_price)
            if filters.max_price is not None:
                add("price <= ${n}", filters.max_price)

        where = " AND ".join(conditions)
        total = await self.conn.fetchval(
            f"SELECT COUNT(*) FROM announcements WHERE {where}", *values
        )
        rows = await self.conn.fetch(f"""
            SELECT * FROM announcements
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT ${len(values) + 1} OFFSET ${len(values) + 2}
        """, *values, limit, offset)
        return [Announcement(**dict(row)) for row in rows], total

    # Offers

    async def get_offer(self, offer_id: int, for_update: bool = False) -> Optional[Offer]:
        lock = " FOR UPDATE OF o" if for_update else ""
        row = await self.conn.fetchrow(f"""
            {OFFER_SELECT}
            WHERE o.id = $1 AND o.deleted_at IS NULL{lock}
        """, offer_id)
        return Offer(**dict(row)) if row else None

    async def find_pending_offer(self, bidder_id: UUID, announcement_id: UUID) -> Optional[Offer]:
        row = await self.conn.fetchrow(f"""
            {OFFER_SELECT}
            WHERE o.user_id = $1 AND o.announcement_id = $2
              AND o.status = 'pending' AND o.deleted_at IS NULL
        """, bidder_id, announcement_id)
        return Offer(**dict(row)) if row else None

    async def insert_offer(
        self,
        bidder_id: UUID,
        announcement_id: UUID,
        price: Decimal,
        message: Optional[str],
    ) -> Offer:
        try:
            offer_id = await self.conn.fetchval("""
                INSERT INTO offers (user_id, announcement_id, price, message)
                VALUES ($1, $2, $3, $4)
                RETURNING id
            """, bidder_id, announcement_id, price, message)
        except asyncpg.UniqueViolationError:
            # uq_offers_pending_bidder caught a concurrent duplicate
            raise InvalidStateError("You already have a pending offer for this announcement")
        return await self.get_offer(offer_id)

    async def update_offer(self, offer_id: int, fields: Dict[str, Any]) -> Offer:
        clause, values = _set_clause(fields, OFFER_UPDATABLE)
        await self.conn.execute(f"""
            UPDATE offers SET {clause}, updated_at = NOW()
            WHERE id = ${len(values) + 1}
        """, *values, offer_id)
        return await self.get_offer(offer_id)

    async def reject_pending_siblings(self, announcement_id: UUID, except_offer_id: int) -> List[int]:
        rows = await self.conn.fetch("""
            UPDATE offers SET status = 'rejected', updated_at = NOW()
            WHERE announcement_id = $1 AND id <> $2
              AND status = 'pending' AND deleted_at IS NULL
            RETURNING id
        """, announcement_id, except_offer_id)
        return [row['id'] for row in rows]

    async def list_offers(
        self,
        bidder_id: Optional[UUID] = None,
        seller_id: Optional[UUID] = None,
        announcement_id: Optional[UUID] = None,
        status: Optional[OfferStatus] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Offer], int]:
        conditions = ["o.deleted_at IS NULL"]
        values: List[Any] = []
        for condition, value in (
            ("o.user_id = ${n}", bidder_id),
            ("a.user_id = ${n}", seller_id),
            ("o.announcement_id = ${n}", announcement_id),
            ("o.status = ${n}", _db_value(status)),
        ):
            if value is not None:
                values.append(value)
                conditions.append(condition.format(n=len(values)))

        where = " AND ".join(conditions)
        total = await self.conn.fetchval(f"""
            SELECT COUNT(*) FROM offers o
            JOIN announcements a ON a.id = o.announcement_id
            WHERE {where}
        """, *values)
        rows = await self.conn.fetch(f"""
            {OFFER_SELECT}
            WHERE {where}
            ORDER BY o.created_at DESC
            LIMIT ${len(values) + 1} OFFSET ${len(values) + 2}
        """, *values, limit, offset)
        return [Offer(**dict(row)) for row in rows], total

    # Reviews

    async def insert_review(
        self,
        reviewer_id: UUID,
        reviewed_id: UUID,
        offer_id: int,
        rating: int,
        comment: Optional[str],
        reviewer_type: ReviewerType,
    ) -> Review:
        row = await self.conn.fetchrow("""
            INSERT INTO reviews (reviewer_id, reviewed_id, offer_id, rating, comment, reviewer_type)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING id, reviewer_id, reviewed_id, offer_id, rating, comment,
                      reviewer_type, created_at
        """, reviewer_id, reviewed_id, offer_id, rating, comment, reviewer_type.value)
        return Review(**dict(row))

    async def list_reviews(
        self,
        reviewer_id: Optional[UUID] = None,
        reviewed_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Review], int]:
        conditions = ["deleted_at IS NULL"]
        values: List[Any] = []
        if reviewer_id is not None:
            values.append(reviewer_id)
            conditions.append(f"reviewer_id = ${len(values)}")
        if reviewed_id is not None:
            values.append(reviewed_id)
            conditions.append(f"reviewed_id = ${len(values)}")

        where = " AND ".join(conditions)
        total = await self.conn.fetchval(f"SELECT COUNT(*) FROM reviews WHERE {where}", *values)
        rows = await self.conn.fetch(f"""
            SELECT id, reviewer_id, reviewed_id, offer_id, rating, comment,
                   reviewer_type, created_at
            FROM reviews
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT ${len(values) + 1} OFFSET ${len(values) + 2}
        """, *values, limit, offset)
        return [Review(**dict(row)) for row in rows], total

    async def rating_distribution(self, reviewed_id: UUID) -> Dict[int, int]:
        rows = await self.conn.fetch("""
            SELECT rating, COUNT(*) AS count FROM reviews
            WHERE reviewed_id = $1 AND deleted_at IS NULL
            GROUP BY rating
        """, reviewed_id)
        return {row['rating']: row['count'] for row in rows}

    # Documents

    async def get_document(self, document_id: int, for_update: bool = False) -> Optional[Document]:
        lock = " FOR UPDATE" if for_update else ""
        row = await self.conn.fetchrow(f"""
            SELECT {DOCUMENT_COLUMNS} FROM documents
            WHERE id = $1 AND deleted_at IS NULL{lock}
        """, document_id)
        return Document(**dict(row)) if row else None

    async def find_open_document(
        self, user_id: UUID, document_type: DocumentType
    ) -> Optional[Document]:
        row = await self.conn.fetchrow(f"""
            SELECT {DOCUMENT_COLUMNS} FROM documents
            WHERE user_id = $1 AND type = $2
              AND status IN ('pending', 'approved') AND deleted_at IS NULL
        """, user_id, document_type.value)
        return Document(**dict(row)) if row else None

    async def insert_document(self, user_id: UUID, data: DocumentCreate) -> Document:
        try:
            row = await self.conn.fetchrow(f"""
                INSERT INTO documents (user_id, type, document_number, document_url)
                VALUES ($1, $2, $3, $4)
                RETURNING {DOCUMENT_COLUMNS}
            """, user_id, data.type.value, data.document_number, data.document_url)
        except asyncpg.UniqueViolationError:
            raise InvalidStateError("You already have a document of this type under review or approved")
        return Document(**dict(row))

    async def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        clause, values = _set_clause(fields, DOCUMENT_UPDATABLE)
        row = await self.conn.fetchrow(f"""
            UPDATE documents SET {clause}, updated_at = NOW()
            WHERE id = ${len(values) + 1}
            RETURNING {DOCUMENT_COLUMNS}
        """, *values, document_id)
        return Document(**dict(row))

    async def delete_document(self, document_id: int) -> None:
        await self.conn.execute("""
            UPDATE documents SET deleted_at = NOW() WHERE id = $1
        """, document_id)

    async def list_documents(
        self,
        user_id: UUID,
        status: Optional[DocumentStatus],
        limit: int,
        offset: int,
    ) -> Tuple[List[Document], int]:
        conditions = ["user_id = $1", "deleted_at IS NULL"]
        values: List[Any] = [user_id]
        if status is not None:
            values.append(status.value)
            conditions.append(f"status = ${len(values)}")

        where = " AND ".join(conditions)
        total = await self.conn.fetchval(f"SELECT COUNT(*) FROM documents WHERE {where}", *values)
        rows = await self.conn.fetch(f"""
            SELECT {DOCUMENT_COLUMNS} FROM documents
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT ${len(values) + 1} OFFSET ${len(values) + 2}
        """, *values, limit, offset)
        return [Document(**dict(row)) for row in rows], total

    # Activity log

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
        row = await self.conn.fetchrow("""
            INSERT INTO activity_logs (
                user_id, activity_type, description, metadata,
                related_id, related_type, is_public
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING *
        """,
            user_id,
            activity_type.value,
            description,
            metadata or {},
            related_id,
            related_type,
            is_public
        )
        return ActivityLog(**dict(row))

    async def list_activities(
        self,
        user_id: UUID,
        public_only: bool,
        limit: int,
        offset: int,
    ) -> Tuple[List[ActivityLog], int]:
        public_clause = " AND is_public" if public_only else ""
        total = await self.conn.fetchval(f"""
            SELECT COUNT(*) FROM activity_logs WHERE user_id = $1{public_clause}
        """, user_id)
        rows = await self.conn.fetch(f"""
            SELECT * FROM activity_logs
            WHERE user_id = $1{public_clause}
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
        """, user_id, limit, offset)
        return [ActivityLog(**dict(row)) for row in rows], total


class PostgresStore(Store):
    """Store backed by the global asyncpg pool"""

    def __init__(self, pool: Optional[asyncpg.Pool] = None):
        self._pool = pool

    @property
    def pool(self) -> asyncpg.Pool:
        return self._pool or get_pg_pool()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresSession]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield PostgresSession(conn)

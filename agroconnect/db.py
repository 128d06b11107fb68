"""
Database connection and initialization.
"""

import asyncpg
import redis.asyncio as redis
import json
from typing import Optional
import logging

from agroconnect.config import get_settings

logger = logging.getLogger(__name__)

# Global connection pools
pg_pool: Optional[asyncpg.Pool] = None
redis_client: Optional[redis.Redis] = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns into Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_db():
    """Initialize database connections"""
    global pg_pool, redis_client

    settings = get_settings().database

    # PostgreSQL
    try:
        pg_pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            init=_init_connection,
        )
        logger.info("PostgreSQL connection pool created")

        # Create tables
        await create_tables()
    except Exception as e:
        logger.error(f"Failed to connect to PostgreSQL: {e}")
        raise

    # Redis is a cache only; the API keeps serving without it
    try:
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        await redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Failed to connect to Redis, reputation cache disabled: {e}")
        redis_client = None


async def close_db():
    """Close database connections"""
    global pg_pool, redis_client

    if pg_pool:
        await pg_pool.close()
        pg_pool = None
        logger.info("PostgreSQL connection pool closed")

    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis connection closed")


async def create_tables():
    """Create database tables if they don't exist"""
    async with pg_pool.acquire() as conn:
        # Users table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                user_type TEXT NOT NULL CHECK (user_type IN ('produtor', 'tecnico')),
                phone TEXT,
                location TEXT,
                profile_image TEXT,
                rating DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (rating >= 0 AND rating <= 5),
                review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
                completed_deals INTEGER NOT NULL DEFAULT 0,
                active BOOLEAN NOT NULL DEFAULT TRUE,
                is_verified BOOLEAN NOT NULL DEFAULT FALSE,
                verification_level INTEGER NOT NULL DEFAULT 0
                    CHECK (verification_level BETWEEN 0 AND 3),
                is_admin BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
                deleted_at TIMESTAMP
            )
        """)

        # Verification columns for databases created before documents existed
        await conn.execute("""
            ALTER TABLE users
                ADD COLUMN IF NOT EXISTS is_verified BOOLEAN NOT NULL DEFAULT FALSE,
                ADD COLUMN IF NOT EXISTS verification_level INTEGER NOT NULL DEFAULT 0,
                ADD COLUMN IF NOT EXISTS is_admin BOOLEAN NOT NULL DEFAULT FALSE;
        """)

        # Announcements table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS announcements (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                user_id UUID NOT NULL REFERENCES users(id),
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                price NUMERIC(10, 2) NOT NULL CHECK (price >= 0),
                location TEXT NOT NULL,
                category TEXT NOT NULL,
                images JSONB NOT NULL DEFAULT '[]',
                accept_counter_offers BOOLEAN NOT NULL DEFAULT TRUE,
                status TEXT NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'pending', 'completed', 'cancelled')),
                views INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
                deleted_at TIMESTAMP
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_announcements_status ON announcements(status);
        """)

        # Offers table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS offers (
                id SERIAL PRIMARY KEY,
                user_id UUID NOT NULL REFERENCES users(id),
                announcement_id UUID NOT NULL REFERENCES announcements(id),
                price NUMERIC(10, 2) NOT NULL CHECK (price > 0),
                message TEXT,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'accepted', 'rejected', 'completed')),
                buyer_reviewed BOOLEAN NOT NULL DEFAULT FALSE,
                seller_reviewed BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
                deleted_at TIMESTAMP,
                CHECK (status = 'completed' OR (NOT buyer_reviewed AND NOT seller_reviewed))
            )
        """)

        # One pending offer per bidder per announcement
        await conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_offers_pending_bidder
            ON offers(user_id, announcement_id) WHERE status = 'pending';
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_offers_announcement ON offers(announcement_id);
        """)

        # Reviews table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS reviews (
                id SERIAL PRIMARY KEY,
                reviewer_id UUID NOT NULL REFERENCES users(id),
                reviewed_id UUID NOT NULL REFERENCES users(id),
                offer_id INTEGER NOT NULL REFERENCES offers(id),
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                comment TEXT,
                reviewer_type TEXT NOT NULL CHECK (reviewer_type IN ('buyer', 'seller')),
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                deleted_at TIMESTAMP
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_reviews_reviewed ON reviews(reviewed_id);
        """)

        # Documents table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id SERIAL PRIMARY KEY,
                user_id UUID NOT NULL REFERENCES users(id),
                type TEXT NOT NULL
                    CHECK (type IN ('cpf', 'cnpj', 'rg', 'crea', 'diploma', 'certificado', 'outro')),
                document_number TEXT,
                document_url TEXT NOT NULL,
                is_verified BOOLEAN NOT NULL DEFAULT FALSE,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (status IN ('pending', 'approved', 'rejected')),
                verified_at TIMESTAMP,
                verified_by UUID REFERENCES users(id),
                rejection_reason TEXT,
                expires_at TIMESTAMP,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
                deleted_at TIMESTAMP
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id, status);
        """)

        # One pending or approved document per user per type
        await conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_documents_open_type
            ON documents(user_id, type)
            WHERE status IN ('pending', 'approved') AND deleted_at IS NULL;
        """)

        # Activity log table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS activity_logs (
                id SERIAL PRIMARY KEY,
                user_id UUID NOT NULL REFERENCES users(id),
                activity_type TEXT NOT NULL,
                description TEXT NOT NULL,
                metadata JSONB NOT NULL DEFAULT '{}',
                related_id TEXT,
                related_type TEXT,
                is_public BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMP NOT NULL DEFAULT NOW()
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_activity_logs_user ON activity_logs(user_id, created_at);
        """)

        logger.info("Database tables created/verified")


def get_pg_pool() -> asyncpg.Pool:
    """Get PostgreSQL connection pool"""
    if pg_pool is None:
        raise RuntimeError("Database not initialized")
    return pg_pool


def get_redis() -> Optional[redis.Redis]:
    """Get Redis client (None when the cache is unavailable)"""
    return redis_client

"""Tests for the asyncpg session's SQL assembly, using a mocked connection."""

from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from agroconnect.models import AnnouncementFilters, AnnouncementCategory, DocumentStatus, OfferStatus
from agroconnect.services.postgres_store import PostgresSession, _db_value, _set_clause
from memory_store import run_async


def test_set_clause_numbers_placeholders():
    clause, values = _set_clause(
        {"status": OfferStatus.COMPLETED, "buyer_reviewed": False},
        {"status", "buyer_reviewed"},
    )

    assert clause == "status = $1, buyer_reviewed = $2"
    assert values == ["completed", False]


def test_set_clause_rejects_unknown_columns():
    with pytest.raises(ValueError):
        _set_clause({"user_id": uuid4()}, {"status"})


def test_db_value_unwraps_enums_only():
    assert _db_value(OfferStatus.PENDING) == "pending"
    assert _db_value(Decimal("10.50")) == Decimal("10.50")


def test_update_offer_passes_id_after_values():
    conn = AsyncMock()
    conn.fetchrow.return_value = None
    session = PostgresSession(conn)

    run_async(session.update_offer(7, {"price": Decimal("120"), "status": OfferStatus.PENDING}))

    sql, *args = conn.execute.await_args.args
    assert "price = $1, status = $2" in sql
    assert "WHERE id = $3" in sql
    assert args == [Decimal("120"), "pending", 7]


def test_get_offer_locks_offer_row_only_when_asked():
    conn = AsyncMock()
    conn.fetchrow.return_value = None
    session = PostgresSession(conn)

    assert run_async(session.get_offer(1)) is None
    assert "FOR UPDATE" not in conn.fetchrow.await_args.args[0]

    run_async(session.get_offer(1, for_update=True))
    assert "FOR UPDATE OF o" in conn.fetchrow.await_args.args[0]


def test_list_announcements_builds_filters():
    conn = AsyncMock()
    conn.fetchval.return_value = 0
    conn.fetch.return_value = []
    session = PostgresSession(conn)
    owner_id = uuid4()

    items, total = run_async(session.list_announcements(
        AnnouncementFilters(search="trator", category=AnnouncementCategory.MAQUINARIO),
        owner_id,
        limit=5,
        offset=10,
    ))

    assert (items, total) == ([], 0)
    sql, *args = conn.fetch.await_args.args
    assert "user_id = $1" in sql
    assert "status = $2" in sql
    assert "(title ILIKE $3 OR description ILIKE $3)" in sql
    assert "category = $4" in sql
    assert "LIMIT $5 OFFSET $6" in sql
    assert args == [owner_id, "active", "%trator%", "Maquinario", 5, 10]


def test_update_user_rejects_non_profile_columns():
    session = PostgresSession(AsyncMock())

    with pytest.raises(ValueError):
        run_async(session.update_user(uuid4(), {"is_admin": True}))
    with pytest.raises(ValueError):
        run_async(session.update_user(uuid4(), {"email": "outro@example.com"}))


def test_get_document_locks_only_when_asked():
    conn = AsyncMock()
    conn.fetchrow.return_value = None
    session = PostgresSession(conn)

    run_async(session.get_document(3))
    assert "FOR UPDATE" not in conn.fetchrow.await_args.args[0]

    run_async(session.get_document(3, for_update=True))
    assert "FOR UPDATE" in conn.fetchrow.await_args.args[0]


def test_list_documents_filters_by_status():
    conn = AsyncMock()
    conn.fetchval.return_value = 0
    conn.fetch.return_value = []
    session = PostgresSession(conn)
    user_id = uuid4()

    run_async(session.list_documents(user_id, DocumentStatus.PENDING, limit=5, offset=0))

    sql, *args = conn.fetch.await_args.args
    assert "user_id = $1" in sql
    assert "status = $2" in sql
    assert "LIMIT $3 OFFSET $4" in sql
    assert args == [user_id, "pending", 5, 0]


def test_rating_distribution_groups_by_star():
    conn = AsyncMock()
    conn.fetch.return_value = [{"rating": 5, "count": 2}, {"rating": 3, "count": 1}]
    session = PostgresSession(conn)

    assert run_async(session.rating_distribution(uuid4())) == {5: 2, 3: 1}
    assert "GROUP BY rating" in conn.fetch.await_args.args[0]

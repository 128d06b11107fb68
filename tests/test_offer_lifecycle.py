"""Tests for offer creation, counter-offers and status transitions."""

from decimal import Decimal
from uuid import uuid4

import pytest

from agroconnect.error_handling import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from agroconnect.models import ActivityType, AnnouncementStatus, OfferStatus
from memory_store import as_requester, run_async


def test_create_offer_starts_pending(manager, store, bidder, announcement):
    """A new offer is pending with both review flags cleared."""
    offer = run_async(manager.create_offer(
        as_requester(bidder), announcement.id, Decimal("100"), "Posso buscar amanha"
    ))

    assert offer.status == OfferStatus.PENDING
    assert offer.buyer_reviewed is False
    assert offer.seller_reviewed is False
    assert offer.price == Decimal("100")
    assert offer.seller_id == announcement.user_id
    assert store.offers[offer.id].user_id == bidder.id

    created = [a for a in store.activities if a.activity_type == ActivityType.OFFER_CREATED]
    assert len(created) == 1
    assert created[0].user_id == bidder.id


@pytest.mark.parametrize("price", [0, -5, "0.00", Decimal("-0.01")])
def test_create_offer_rejects_non_positive_price(manager, store, bidder, announcement, price):
    with pytest.raises(InvalidArgumentError):
        run_async(manager.create_offer(as_requester(bidder), announcement.id, price))

    assert store.offers == {}


def test_create_offer_rejects_unparseable_price(manager, bidder, announcement):
    with pytest.raises(InvalidArgumentError):
        run_async(manager.create_offer(as_requester(bidder), announcement.id, "cem reais"))


@pytest.mark.parametrize("price", [
    Decimal("123456789012.345"),
    Decimal("100000000"),
    Decimal("10.123"),
    "0.001",
])
def test_create_offer_rejects_price_outside_column_range(manager, store, bidder, announcement, price):
    """Prices must fit NUMERIC(10, 2): at most 8 integer digits and 2 decimals."""
    with pytest.raises(InvalidArgumentError):
        run_async(manager.create_offer(as_requester(bidder), announcement.id, price))

    assert store.offers == {}


@pytest.mark.parametrize("price", [Decimal("99999999.99"), Decimal("0.01"), Decimal("10.500"), "1E+2"])
def test_create_offer_accepts_price_at_column_limits(manager, bidder, announcement, price):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, price))

    assert offer.price == Decimal(str(price))


def test_create_offer_missing_announcement(manager, bidder):
    with pytest.raises(NotFoundError):
        run_async(manager.create_offer(as_requester(bidder), uuid4(), Decimal("100")))


def test_create_offer_on_deleted_announcement(manager, store, bidder, owner):
    announcement = store.add_announcement(owner)
    store.announcements[announcement.id] = announcement.model_copy(
        update={"deleted_at": store.tick()}
    )

    with pytest.raises(NotFoundError):
        run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))


@pytest.mark.parametrize("status", [
    AnnouncementStatus.PENDING,
    AnnouncementStatus.COMPLETED,
    AnnouncementStatus.CANCELLED,
])
def test_create_offer_requires_active_announcement(manager, store, owner, bidder, status):
    announcement = store.add_announcement(owner, status=status)

    with pytest.raises(InvalidStateError):
        run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))


def test_owner_cannot_bid_on_own_announcement(manager, owner, announcement):
    with pytest.raises(InvalidStateError):
        run_async(manager.create_offer(as_requester(owner), announcement.id, Decimal("100")))


def test_second_pending_offer_from_same_bidder_rejected(manager, store, bidder, announcement):
    first = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    with pytest.raises(InvalidStateError) as exc_info:
        run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("120")))

    assert exc_info.value.details == {"offer_id": first.id}
    assert len(store.offers) == 1


def test_bidder_can_bid_again_after_rejection(manager, owner, bidder, announcement):
    first = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), first.id, "rejected"))

    second = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("150")))

    assert second.id != first.id
    assert second.status == OfferStatus.PENDING


def test_accept_rejects_pending_siblings(manager, store, owner, bidder, other_bidder, outsider, announcement):
    """Accepting A rejects B and C on the same announcement only."""
    offer_a = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    offer_b = run_async(manager.create_offer(as_requester(other_bidder), announcement.id, Decimal("90")))
    offer_c = run_async(manager.create_offer(as_requester(outsider), announcement.id, Decimal("80")))

    elsewhere = store.add_announcement(owner, title="Colheitadeira John Deere")
    unrelated = run_async(manager.create_offer(as_requester(other_bidder), elsewhere.id, Decimal("70")))

    accepted = run_async(manager.update_offer_status(as_requester(owner), offer_a.id, "accepted"))

    assert accepted.status == OfferStatus.ACCEPTED
    assert store.offers[offer_a.id].status == OfferStatus.ACCEPTED
    assert store.offers[offer_b.id].status == OfferStatus.REJECTED
    assert store.offers[offer_c.id].status == OfferStatus.REJECTED
    assert store.offers[unrelated.id].status == OfferStatus.PENDING

    entry = [a for a in store.activities if a.activity_type == ActivityType.OFFER_ACCEPTED][0]
    assert sorted(entry.metadata["rejected_offer_ids"]) == sorted([offer_b.id, offer_c.id])


@pytest.mark.parametrize("status", ["accepted", "rejected"])
def test_status_change_locks_announcement_before_offer(manager, store, owner, bidder, announcement, status):
    """Transitions take row locks in the same order as create_offer."""
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    store.locks.clear()

    run_async(manager.update_offer_status(as_requester(owner), offer.id, status))

    assert store.locks == [("announcement", announcement.id), ("offer", offer.id)]


def test_complete_locks_announcement_before_offer(manager, store, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))
    store.locks.clear()

    run_async(manager.update_offer_status(as_requester(bidder), offer.id, "completed"))

    assert store.locks == [("announcement", announcement.id), ("offer", offer.id)]


@pytest.mark.parametrize("status", ["accepted", "rejected"])
def test_only_owner_accepts_or_rejects(manager, store, bidder, outsider, announcement, status):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    for requester in (bidder, outsider):
        with pytest.raises(ForbiddenError):
            run_async(manager.update_offer_status(as_requester(requester), offer.id, status))

    assert store.offers[offer.id].status == OfferStatus.PENDING


@pytest.mark.parametrize("status", ["pending", "countered", "counteroffered", "cancelled", ""])
def test_unknown_target_status_is_invalid_argument(manager, owner, bidder, announcement, status):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    with pytest.raises(InvalidArgumentError):
        run_async(manager.update_offer_status(as_requester(owner), offer.id, status))


def test_update_status_missing_offer(manager, owner):
    with pytest.raises(NotFoundError):
        run_async(manager.update_offer_status(as_requester(owner), 999, "accepted"))


def test_complete_requires_accepted(manager, owner, bidder, other_bidder, announcement):
    """Completing fails from pending and from rejected."""
    pending = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    with pytest.raises(InvalidStateError):
        run_async(manager.update_offer_status(as_requester(owner), pending.id, "completed"))

    rejected = run_async(manager.create_offer(as_requester(other_bidder), announcement.id, Decimal("90")))
    run_async(manager.update_offer_status(as_requester(owner), rejected.id, "rejected"))
    with pytest.raises(InvalidStateError):
        run_async(manager.update_offer_status(as_requester(other_bidder), rejected.id, "completed"))


@pytest.mark.parametrize("completer", ["bidder", "owner"])
def test_either_party_completes_accepted_offer(manager, store, owner, bidder, announcement, completer):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))

    party = bidder if completer == "bidder" else owner
    completed = run_async(manager.update_offer_status(as_requester(party), offer.id, "completed"))

    assert completed.status == OfferStatus.COMPLETED
    assert completed.buyer_reviewed is False
    assert completed.seller_reviewed is False
    assert store.users[bidder.id].completed_deals == 1
    assert store.users[owner.id].completed_deals == 1

    entry = [a for a in store.activities if a.activity_type == ActivityType.OFFER_COMPLETED][0]
    assert entry.is_public is True


def test_outsider_cannot_complete(manager, owner, bidder, outsider, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))

    with pytest.raises(ForbiddenError):
        run_async(manager.update_offer_status(as_requester(outsider), offer.id, "completed"))


def test_terminal_offers_accept_no_further_transitions(manager, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "completed"))

    for status in ("accepted", "rejected", "completed"):
        with pytest.raises(InvalidStateError):
            run_async(manager.update_offer_status(as_requester(owner), offer.id, status))


def test_accepted_offer_can_still_be_rejected(manager, store, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))

    rejected = run_async(manager.update_offer_status(as_requester(owner), offer.id, "rejected"))

    assert rejected.status == OfferStatus.REJECTED


def test_counter_offer_keeps_offer_pending(manager, store, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    countered = run_async(manager.counter_offer(
        as_requester(owner), offer.id, Decimal("130"), "Faco por 130"
    ))
    assert countered.status == OfferStatus.PENDING
    assert countered.price == Decimal("130")
    assert countered.message == "Faco por 130"

    revised = run_async(manager.counter_offer(as_requester(bidder), offer.id, "115"))
    assert revised.status == OfferStatus.PENDING
    assert revised.price == Decimal("115")

    entries = [a for a in store.activities if a.activity_type == ActivityType.OFFER_COUNTERED]
    assert [e.metadata["previous_price"] for e in entries] == ["100", "130"]


def test_counter_offer_requires_pending(manager, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    run_async(manager.update_offer_status(as_requester(owner), offer.id, "accepted"))

    with pytest.raises(InvalidStateError):
        run_async(manager.counter_offer(as_requester(bidder), offer.id, Decimal("90")))


def test_counter_offer_by_outsider_forbidden(manager, bidder, outsider, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    with pytest.raises(ForbiddenError):
        run_async(manager.counter_offer(as_requester(outsider), offer.id, Decimal("90")))


def test_counter_offer_respects_announcement_setting(manager, store, owner, bidder):
    announcement = store.add_announcement(owner, accept_counter_offers=False)
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    with pytest.raises(InvalidStateError):
        run_async(manager.counter_offer(as_requester(owner), offer.id, Decimal("150")))

    assert store.offers[offer.id].price == Decimal("100")


def test_counter_offer_rejects_non_positive_price(manager, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    with pytest.raises(InvalidArgumentError):
        run_async(manager.counter_offer(as_requester(owner), offer.id, Decimal("0")))


def test_counter_offer_rejects_price_outside_column_range(manager, store, owner, bidder, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    for price in (Decimal("123456789012.345"), Decimal("140.555")):
        with pytest.raises(InvalidArgumentError):
            run_async(manager.counter_offer(as_requester(owner), offer.id, price))

    assert store.offers[offer.id].price == Decimal("100")


def test_get_offer_visible_to_parties_only(manager, owner, bidder, outsider, announcement):
    offer = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))

    assert run_async(manager.get_offer(as_requester(bidder), offer.id)).id == offer.id
    assert run_async(manager.get_offer(as_requester(owner), offer.id)).id == offer.id
    with pytest.raises(ForbiddenError):
        run_async(manager.get_offer(as_requester(outsider), offer.id))


def test_offer_listings(manager, store, owner, bidder, other_bidder, announcement):
    mine = run_async(manager.create_offer(as_requester(bidder), announcement.id, Decimal("100")))
    theirs = run_async(manager.create_offer(as_requester(other_bidder), announcement.id, Decimal("90")))
    run_async(manager.update_offer_status(as_requester(owner), theirs.id, "rejected"))

    my_page = run_async(manager.list_my_offers(as_requester(bidder)))
    assert [o.id for o in my_page.items] == [mine.id]
    assert my_page.total == 1

    received = run_async(manager.list_received_offers(as_requester(owner)))
    assert [o.id for o in received.items] == [theirs.id, mine.id]

    pending_only = run_async(manager.list_received_offers(as_requester(owner), status="pending"))
    assert [o.id for o in pending_only.items] == [mine.id]

    on_announcement = run_async(manager.list_announcement_offers(
        as_requester(owner), announcement.id, limit=1, offset=1
    ))
    assert on_announcement.total == 2
    assert [o.id for o in on_announcement.items] == [mine.id]


def test_announcement_offers_owner_only(manager, bidder, announcement):
    with pytest.raises(ForbiddenError):
        run_async(manager.list_announcement_offers(as_requester(bidder), announcement.id))


def test_listing_with_unknown_status_filter(manager, bidder):
    with pytest.raises(InvalidArgumentError):
        run_async(manager.list_my_offers(as_requester(bidder), status="countered"))

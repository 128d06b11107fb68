"""
Offer lifecycle manager - Runs state machine transitions against the store.

Each operation is one transaction: the read-check-write steps, the sibling
rejection on accept and the three review writes commit or roll back
together. Activity entries are appended after commit.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

from agroconnect.error_handling import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from agroconnect.models import (
    ActivityType,
    AnnouncementStatus,
    Offer,
    OfferStatus,
    Page,
    Requester,
    Review,
    ReviewEligibility,
)
from agroconnect.services.activity import ActivityLogger
from agroconnect.services.reputation import ReputationCache, running_mean
from agroconnect.services.store import Store, StoreSession
from .state_machine import (
    ALREADY_REVIEWED,
    NOT_A_PARTY,
    NOT_COMPLETED,
    OfferAction,
    OfferLifecycle,
    action_for_status,
    authorize,
    review_role,
)

logger = logging.getLogger(__name__)

STATUS_ACTIVITIES = {
    OfferStatus.ACCEPTED: ActivityType.OFFER_ACCEPTED,
    OfferStatus.REJECTED: ActivityType.OFFER_REJECTED,
    OfferStatus.COMPLETED: ActivityType.OFFER_COMPLETED,
}

# offers.price is NUMERIC(10, 2)
PRICE_SCALE = 2
MAX_PRICE = Decimal(10) ** (10 - PRICE_SCALE)


def _positive_price(price: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce a price to Decimal and require it to fit NUMERIC(10, 2) and be > 0"""
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"Invalid price: {price}")
    if not value.is_finite() or value <= 0:
        raise InvalidArgumentError("Price must be greater than zero")
    if value >= MAX_PRICE:
        raise InvalidArgumentError(f"Price must be less than {MAX_PRICE}")
    if value.normalize().as_tuple().exponent < -PRICE_SCALE:
        raise InvalidArgumentError(f"Price must have at most {PRICE_SCALE} decimal places")
    return value


def _parse_status(status: Optional[str]) -> Optional[OfferStatus]:
    """Validate an optional status filter"""
    if status is None:
        return None
    try:
        return OfferStatus(status)
    except ValueError:
        raise InvalidArgumentError(f"Invalid status: {status}")


class OfferLifecycleManager:
    """Gate offer transitions and review eligibility behind role and state checks"""

    def __init__(
        self,
        store: Store,
        activity: Optional[ActivityLogger] = None,
        reputation_cache: Optional[ReputationCache] = None,
    ):
        self.store = store
        self.activity = activity or ActivityLogger(store)
        self.reputation_cache = reputation_cache or ReputationCache()

    async def create_offer(
        self,
        requester: Requester,
        announcement_id: UUID,
        price: Union[Decimal, int, float, str],
        message: Optional[str] = None,
    ) -> Offer:
        """
        Submit a new offer against an active announcement.

        Args:
            requester: Bidder
            announcement_id: Announcement being bid on
            price: Proposed price, must be > 0
            message: Optional note to the owner

        Returns:
            The new pending offer

        Raises:
            NotFoundError: Announcement missing
            InvalidArgumentError: Price <= 0
            InvalidStateError: Announcement not active, bidder is the owner,
                or the bidder already has a pending offer on it
        """
        amount = _positive_price(price)

        async with self.store.transaction() as session:
            # Locking the announcement serializes concurrent offers on it
            announcement = await session.get_announcement(announcement_id, for_update=True)
            if not announcement:
                raise NotFoundError(f"Announcement {announcement_id} not found")

            if announcement.status != AnnouncementStatus.ACTIVE:
                raise InvalidStateError("This announcement is not active")

            if announcement.user_id == requester.id:
                raise InvalidStateError("You cannot make an offer on your own announcement")

            existing = await session.find_pending_offer(requester.id, announcement_id)
            if existing:
                raise InvalidStateError(
                    "You already have a pending offer for this announcement",
                    {"offer_id": existing.id},
                )

            offer = await session.insert_offer(requester.id, announcement_id, amount, message)

        logger.info(
            f"Offer {offer.id} created by {requester.id} on announcement {announcement_id} at {amount}"
        )
        await self.activity.record(
            requester.id,
            ActivityType.OFFER_CREATED,
            f"Made an offer of {amount} on \"{announcement.title}\"",
            metadata={"announcement_id": str(announcement_id), "price": str(amount)},
            related_id=offer.id,
            related_type="Offer",
        )
        return offer

    async def counter_offer(
        self,
        requester: Requester,
        offer_id: int,
        price: Union[Decimal, int, float, str],
        message: Optional[str] = None,
    ) -> Offer:
        """
        Revise the price and message of a pending offer.

        The offer stays pending; there is no separate countered status.

        Raises:
            NotFoundError: Offer missing
            ForbiddenError: Requester is not a party to the offer
            InvalidArgumentError: Price <= 0
            InvalidStateError: Offer not pending, or the announcement does
                not accept counter-offers
        """
        amount = _positive_price(price)

        async with self.store.transaction() as session:
            offer = await self._load_offer(session, offer_id, for_update=True)
            authorize(offer, requester.id, OfferAction.COUNTER)
            lifecycle = OfferLifecycle.from_offer(offer).apply(OfferAction.COUNTER)

            announcement = await session.get_announcement(offer.announcement_id)
            if announcement and not announcement.accept_counter_offers:
                raise InvalidStateError("This announcement does not accept counter-offers")

            updated = await session.update_offer(offer_id, {
                "price": amount,
                "message": message,
                **lifecycle.to_fields(),
            })

        logger.info(f"Offer {offer_id} countered by {requester.id}: {offer.price} -> {amount}")
        await self.activity.record(
            requester.id,
            ActivityType.OFFER_COUNTERED,
            f"Counter-offer of {amount} on offer #{offer_id}",
            metadata={"previous_price": str(offer.price), "price": str(amount)},
            related_id=offer_id,
            related_type="Offer",
        )
        return updated

    async def update_offer_status(
        self,
        requester: Requester,
        offer_id: int,
        new_status: Union[OfferStatus, str],
    ) -> Offer:
        """
        Accept, reject or complete an offer.

        Accepting rejects every other pending offer on the same announcement
        in the same transaction. Completing adds a completed deal to both
        parties.

        Raises:
            InvalidArgumentError: Status other than accepted/rejected/completed
            NotFoundError: Offer missing
            ForbiddenError: Requester lacks the role for the transition
            InvalidStateError: Transition not allowed from the current status
        """
        action = action_for_status(new_status)
        rejected_ids = []

        async with self.store.transaction() as session:
            # Announcement before offer, the same order create_offer takes,
            # so accepts racing on sibling offers queue instead of deadlocking
            located = await self._load_offer(session, offer_id)
            await session.get_announcement(located.announcement_id, for_update=True)
            offer = await self._load_offer(session, offer_id, for_update=True)
            authorize(offer, requester.id, action)
            lifecycle = OfferLifecycle.from_offer(offer).apply(action)

            updated = await session.update_offer(offer_id, lifecycle.to_fields())

            if lifecycle.status == OfferStatus.ACCEPTED:
                rejected_ids = await session.reject_pending_siblings(
                    offer.announcement_id, offer_id
                )
            elif lifecycle.status == OfferStatus.COMPLETED:
                await session.increment_completed_deals([offer.user_id, offer.seller_id])

        logger.info(
            f"Offer {offer_id}: {offer.status.value} -> {lifecycle.status.value} by {requester.id}"
        )
        if rejected_ids:
            logger.info(f"Rejected sibling offers {rejected_ids} on announcement {offer.announcement_id}")

        if lifecycle.status == OfferStatus.COMPLETED:
            await self.reputation_cache.invalidate(offer.user_id)
            await self.reputation_cache.invalidate(offer.seller_id)

        await self.activity.record(
            requester.id,
            STATUS_ACTIVITIES[lifecycle.status],
            f"Offer #{offer_id} marked as {lifecycle.status.value}",
            metadata={
                "previous_status": offer.status.value,
                "status": lifecycle.status.value,
                "rejected_offer_ids": rejected_ids,
            },
            related_id=offer_id,
            related_type="Offer",
            is_public=lifecycle.status == OfferStatus.COMPLETED,
        )
        return updated

    async def can_review(self, requester: Requester, offer_id: int) -> ReviewEligibility:
        """
        Check whether the requester may review this offer now.

        Raises:
            NotFoundError: Offer missing
        """
        async with self.store.transaction() as session:
            offer = await self._load_offer(session, offer_id)
        return self._eligibility(offer, requester.id)

    async def record_review(
        self,
        requester: Requester,
        offer_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """
        Review the counterparty of a completed offer.

        Inserts the review, sets the reviewer's flag on the offer and folds
        the rating into the reviewed user's aggregate in one transaction.

        Raises:
            InvalidArgumentError: Rating outside 1-5
            NotFoundError: Offer or reviewed user missing
            ForbiddenError: Requester is not a party to the offer
            InvalidStateError: Offer not completed or already reviewed
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidArgumentError("Rating must be an integer between 1 and 5")

        async with self.store.transaction() as session:
            offer = await self._load_offer(session, offer_id, for_update=True)
            eligibility = self._eligibility(offer, requester.id)
            if not eligibility.eligible:
                if eligibility.reason == NOT_A_PARTY:
                    raise ForbiddenError("You are not allowed to review this offer")
                raise InvalidStateError(eligibility.reason)

            reviewer_type = eligibility.reviewer_type
            reviewed_id = eligibility.counterparty_user_id
            lifecycle = OfferLifecycle.from_offer(offer).record_review(reviewer_type)

            reviewed = await session.get_user(reviewed_id, for_update=True)
            if not reviewed:
                raise NotFoundError(f"User {reviewed_id} not found")

            review = await session.insert_review(
                reviewer_id=requester.id,
                reviewed_id=reviewed_id,
                offer_id=offer_id,
                rating=rating,
                comment=comment,
                reviewer_type=reviewer_type,
            )
            await session.update_offer(offer_id, lifecycle.to_fields())

            new_rating, new_count = running_mean(reviewed.rating, reviewed.review_count, rating)
            await session.update_user_reputation(reviewed_id, new_rating, new_count)

        logger.info(
            f"Review {review.id} on offer {offer_id}: {reviewer_type.value} {requester.id} "
            f"rated {reviewed_id} {rating} (now {new_rating} over {new_count})"
        )
        await self.reputation_cache.invalidate(reviewed_id)
        await self.activity.record(
            requester.id,
            ActivityType.REVIEW_GIVEN,
            f"Rated a deal {rating}/5",
            metadata={"offer_id": offer_id, "rating": rating},
            related_id=review.id,
            related_type="Review",
        )
        await self.activity.record(
            reviewed_id,
            ActivityType.REVIEW_RECEIVED,
            f"Received a {rating}/5 rating",
            metadata={"offer_id": offer_id, "rating": rating},
            related_id=review.id,
            related_type="Review",
            is_public=True,
        )
        return review

    async def get_offer(self, requester: Requester, offer_id: int) -> Offer:
        """
        Get an offer visible to one of its parties.

        Raises:
            NotFoundError: Offer missing
            ForbiddenError: Requester is neither bidder nor owner
        """
        async with self.store.transaction() as session:
            offer = await self._load_offer(session, offer_id)
        if requester.id not in (offer.user_id, offer.seller_id):
            raise ForbiddenError("You are not allowed to view this offer")
        return offer

    async def list_my_offers(
        self,
        requester: Requester,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[Offer]:
        """Offers the requester made, newest first"""
        status_filter = _parse_status(status)
        async with self.store.transaction() as session:
            items, total = await session.list_offers(
                bidder_id=requester.id, status=status_filter, limit=limit, offset=offset
            )
        return Page[Offer](items=items, total=total, limit=limit, offset=offset)

    async def list_received_offers(
        self,
        requester: Requester,
        status: Optional[str] = None,
        announcement_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[Offer]:
        """Offers made on the requester's announcements, newest first"""
        status_filter = _parse_status(status)
        async with self.store.transaction() as session:
            items, total = await session.list_offers(
                seller_id=requester.id,
                announcement_id=announcement_id,
                status=status_filter,
                limit=limit,
                offset=offset,
            )
        return Page[Offer](items=items, total=total, limit=limit, offset=offset)

    async def list_announcement_offers(
        self,
        requester: Requester,
        announcement_id: UUID,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[Offer]:
        """
        Offers on one announcement, for its owner.

        Raises:
            NotFoundError: Announcement missing
            ForbiddenError: Requester does not own the announcement
        """
        status_filter = _parse_status(status)
        async with self.store.transaction() as session:
            announcement = await session.get_announcement(announcement_id)
            if not announcement:
                raise NotFoundError(f"Announcement {announcement_id} not found")
            if announcement.user_id != requester.id:
                raise ForbiddenError("You are not allowed to view offers on this announcement")
            items, total = await session.list_offers(
                announcement_id=announcement_id, status=status_filter, limit=limit, offset=offset
            )
        return Page[Offer](items=items, total=total, limit=limit, offset=offset)

    async def _load_offer(
        self,
        session: StoreSession,
        offer_id: int,
        for_update: bool = False,
    ) -> Offer:
        offer = await session.get_offer(offer_id, for_update=for_update)
        if not offer:
            raise NotFoundError(f"Offer {offer_id} not found")
        return offer

    def _eligibility(self, offer: Offer, requester_id: UUID) -> ReviewEligibility:
        reviewer_type, counterparty = review_role(offer, requester_id)
        if reviewer_type is None:
            return ReviewEligibility(eligible=False, reason=NOT_A_PARTY)

        if offer.status != OfferStatus.COMPLETED:
            return ReviewEligibility(
                eligible=False,
                reviewer_type=reviewer_type,
                counterparty_user_id=counterparty,
                reason=NOT_COMPLETED,
            )

        flags = OfferLifecycle.from_offer(offer).reviews
        if flags.is_reviewed(reviewer_type):
            return ReviewEligibility(
                eligible=False,
                reviewer_type=reviewer_type,
                counterparty_user_id=counterparty,
                reason=ALREADY_REVIEWED,
            )

        return ReviewEligibility(
            eligible=True,
            reviewer_type=reviewer_type,
            counterparty_user_id=counterparty,
        )

"""
Offer lifecycle state machine - Pure Python implementation.

Status transitions are looked up in an explicit table; the review flags live
on the completed variant only, so a reviewed-but-not-completed offer cannot
be built.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple
from uuid import UUID

from agroconnect.error_handling import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
)
from agroconnect.models import Offer, OfferStatus, ReviewerType

logger = logging.getLogger(__name__)


class OfferAction(str, Enum):
    """Actions that can be applied to an offer"""
    COUNTER = "counter"
    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"


class Party(str, Enum):
    """Roles a requester can hold relative to one offer"""
    BIDDER = "bidder"
    OWNER = "owner"


TRANSITIONS: Dict[Tuple[OfferStatus, OfferAction], OfferStatus] = {
    (OfferStatus.PENDING, OfferAction.COUNTER): OfferStatus.PENDING,
    (OfferStatus.PENDING, OfferAction.ACCEPT): OfferStatus.ACCEPTED,
    (OfferStatus.PENDING, OfferAction.REJECT): OfferStatus.REJECTED,
    (OfferStatus.ACCEPTED, OfferAction.REJECT): OfferStatus.REJECTED,
    (OfferStatus.ACCEPTED, OfferAction.COMPLETE): OfferStatus.COMPLETED,
}

ALLOWED_PARTIES: Dict[OfferAction, FrozenSet[Party]] = {
    OfferAction.COUNTER: frozenset({Party.BIDDER, Party.OWNER}),
    OfferAction.ACCEPT: frozenset({Party.OWNER}),
    OfferAction.REJECT: frozenset({Party.OWNER}),
    OfferAction.COMPLETE: frozenset({Party.BIDDER, Party.OWNER}),
}

# Requested status value -> action that produces it
STATUS_ACTIONS: Dict[str, OfferAction] = {
    OfferStatus.ACCEPTED.value: OfferAction.ACCEPT,
    OfferStatus.REJECTED.value: OfferAction.REJECT,
    OfferStatus.COMPLETED.value: OfferAction.COMPLETE,
}

TERMINAL_STATES = frozenset({OfferStatus.REJECTED, OfferStatus.COMPLETED})

NOT_COMPLETED = "offer is not completed"
ALREADY_REVIEWED = "already reviewed"
NOT_A_PARTY = "not a party to this offer"


@dataclass(frozen=True)
class ReviewFlags:
    """Two-bit review sub-state of a completed offer."""
    buyer_reviewed: bool = False
    seller_reviewed: bool = False

    def is_reviewed(self, reviewer_type: ReviewerType) -> bool:
        if reviewer_type == ReviewerType.BUYER:
            return self.buyer_reviewed
        return self.seller_reviewed

    def mark(self, reviewer_type: ReviewerType) -> "ReviewFlags":
        """Return the flags with one side set; each side can be set only once."""
        if self.is_reviewed(reviewer_type):
            raise InvalidStateError(ALREADY_REVIEWED)
        if reviewer_type == ReviewerType.BUYER:
            return replace(self, buyer_reviewed=True)
        return replace(self, seller_reviewed=True)


@dataclass(frozen=True)
class OfferLifecycle:
    """
    Tagged lifecycle value for one offer.

    Attributes:
        status: Current status
        reviews: Review flags, present if and only if status is completed
    """
    status: OfferStatus
    reviews: Optional[ReviewFlags] = None

    def __post_init__(self):
        if (self.status == OfferStatus.COMPLETED) != (self.reviews is not None):
            raise ValueError(
                f"review flags must be present exactly when completed (status={self.status.value})"
            )

    @classmethod
    def pending(cls) -> "OfferLifecycle":
        return cls(OfferStatus.PENDING)

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferLifecycle":
        """
        Rebuild the lifecycle value from a stored offer row.

        Raises:
            ValueError: If the row carries review flags outside completed
        """
        if offer.status == OfferStatus.COMPLETED:
            return cls(
                offer.status,
                ReviewFlags(offer.buyer_reviewed, offer.seller_reviewed),
            )
        if offer.buyer_reviewed or offer.seller_reviewed:
            raise ValueError(f"Offer {offer.id} has review flags while {offer.status.value}")
        return cls(offer.status)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def apply(self, action: OfferAction) -> "OfferLifecycle":
        """
        Apply an action and return the next lifecycle value.

        Raises:
            InvalidStateError: If the table has no entry for (status, action)
        """
        next_status = TRANSITIONS.get((self.status, action))
        if next_status is None:
            raise InvalidStateError(
                f"Cannot {action.value} an offer that is {self.status.value}",
                {"status": self.status.value, "action": action.value},
            )
        if next_status == OfferStatus.COMPLETED:
            return OfferLifecycle(next_status, ReviewFlags())
        return OfferLifecycle(next_status)

    def record_review(self, reviewer_type: ReviewerType) -> "OfferLifecycle":
        """
        Set one side's review flag.

        Raises:
            InvalidStateError: If not completed or that side already reviewed
        """
        if self.reviews is None:
            raise InvalidStateError(NOT_COMPLETED)
        return OfferLifecycle(self.status, self.reviews.mark(reviewer_type))

    def to_fields(self) -> Dict[str, object]:
        """Column values for persisting this lifecycle value."""
        flags = self.reviews or ReviewFlags()
        return {
            "status": self.status,
            "buyer_reviewed": flags.buyer_reviewed,
            "seller_reviewed": flags.seller_reviewed,
        }


def parties_of(offer: Offer, requester_id: UUID) -> FrozenSet[Party]:
    """Roles the requester holds on the offer (possibly none)."""
    parties = set()
    if offer.user_id == requester_id:
        parties.add(Party.BIDDER)
    if offer.seller_id == requester_id:
        parties.add(Party.OWNER)
    return frozenset(parties)


def action_for_status(requested: str) -> OfferAction:
    """
    Map a requested status value onto a lifecycle action.

    Raises:
        InvalidArgumentError: For anything but accepted, rejected or completed
    """
    value = requested.value if isinstance(requested, OfferStatus) else str(requested)
    action = STATUS_ACTIONS.get(value)
    if action is None:
        raise InvalidArgumentError(f"Invalid status: {value}")
    return action


def authorize(offer: Offer, requester_id: UUID, action: OfferAction) -> FrozenSet[Party]:
    """
    Check that the requester may perform the action on this offer.

    Returns:
        The requester's roles on the offer

    Raises:
        ForbiddenError: If none of the requester's roles allows the action
    """
    parties = parties_of(offer, requester_id)
    if not parties & ALLOWED_PARTIES[action]:
        logger.warning(
            f"Requester {requester_id} may not {action.value} offer {offer.id}"
        )
        raise ForbiddenError(
            f"You are not allowed to {action.value} this offer",
            {"offer_id": offer.id, "action": action.value},
        )
    return parties


def review_role(offer: Offer, requester_id: UUID) -> Tuple[Optional[ReviewerType], Optional[UUID]]:
    """
    Reviewer type and counterparty for the requester on this offer.

    The bidder reviews as buyer (reviewing the owner); the owner reviews as
    seller (reviewing the bidder). Non-parties get (None, None).
    """
    if offer.user_id == requester_id:
        return ReviewerType.BUYER, offer.seller_id
    if offer.seller_id == requester_id:
        return ReviewerType.SELLER, offer.user_id
    return None, None

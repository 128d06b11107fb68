"""Offer lifecycle services"""

from .state_machine import OfferAction, OfferLifecycle, ReviewFlags, TRANSITIONS
from .manager import OfferLifecycleManager

__all__ = ["OfferAction", "OfferLifecycle", "ReviewFlags", "TRANSITIONS", "OfferLifecycleManager"]

"""Review data models"""

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import Optional
from uuid import UUID


class ReviewerType(str, Enum):
    """Which side of the deal wrote the review"""
    BUYER = "buyer"
    SELLER = "seller"


class ReviewCreate(BaseModel):
    """Request body for reviewing a completed offer"""
    offer_id: int
    rating: int
    comment: Optional[str] = None


class Review(BaseModel):
    """Complete review model"""
    id: int
    reviewer_id: UUID
    reviewed_id: UUID
    offer_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    reviewer_type: ReviewerType
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewEligibility(BaseModel):
    """Result of a can-review check"""
    eligible: bool
    reviewer_type: Optional[ReviewerType] = None
    counterparty_user_id: Optional[UUID] = None
    reason: Optional[str] = None

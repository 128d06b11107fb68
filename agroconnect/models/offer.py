"""Offer data models"""

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID


class OfferStatus(str, Enum):
    """Offer lifecycle states"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class OfferCreate(BaseModel):
    """Request body for submitting an offer"""
    announcement_id: UUID
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    message: Optional[str] = None


class CounterOfferRequest(BaseModel):
    """Request body for revising a pending offer"""
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    message: Optional[str] = None


class OfferStatusUpdate(BaseModel):
    """Request body for a status change; validated by the state machine"""
    status: str


class Offer(BaseModel):
    """Complete offer model"""
    id: int
    user_id: UUID
    announcement_id: UUID
    price: Decimal
    message: Optional[str] = None
    status: OfferStatus = OfferStatus.PENDING
    buyer_reviewed: bool = False
    seller_reviewed: bool = False
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    # Joined from the announcement
    seller_id: Optional[UUID] = Field(None, description="Announcement owner")

    class Config:
        from_attributes = True

"""Announcement data models"""

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID


class AnnouncementStatus(str, Enum):
    """Announcement status, tracked independently of its offers"""
    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AnnouncementCategory(str, Enum):
    """Listing category"""
    MAQUINARIO = "Maquinario"
    CONSULTORIA = "Consultoria"
    SERVICOS = "Servicos"
    INSUMOS = "Insumos"
    OUTROS = "Outros"


class AnnouncementBase(BaseModel):
    """Base announcement fields"""
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    location: str = Field(min_length=1)
    category: AnnouncementCategory
    images: List[str] = Field(default_factory=list)
    accept_counter_offers: bool = True


class AnnouncementCreate(AnnouncementBase):
    """Model for creating a new announcement"""
    pass


class AnnouncementUpdate(BaseModel):
    """Partial update; only provided fields are written"""
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=20, max_length=2000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    location: Optional[str] = None
    category: Optional[AnnouncementCategory] = None
    images: Optional[List[str]] = None
    accept_counter_offers: Optional[bool] = None
    status: Optional[AnnouncementStatus] = None


class Announcement(AnnouncementBase):
    """Complete announcement model"""
    id: UUID
    user_id: UUID
    status: AnnouncementStatus = AnnouncementStatus.ACTIVE
    views: int = 0
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    # Computed fields
    offers_count: Optional[int] = None

    class Config:
        from_attributes = True


class AnnouncementFilters(BaseModel):
    """Query filters for the public announcement listing"""
    search: Optional[str] = None
    category: Optional[AnnouncementCategory] = None
    location: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    status: AnnouncementStatus = AnnouncementStatus.ACTIVE

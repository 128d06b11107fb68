"""User data models"""

from pydantic import BaseModel, EmailStr, Field
from enum import Enum
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID


class UserType(str, Enum):
    """Kind of marketplace participant"""
    PRODUTOR = "produtor"
    TECNICO = "tecnico"


class UserBase(BaseModel):
    """Base user fields"""
    name: str = Field(min_length=3, max_length=100)
    email: EmailStr
    user_type: UserType
    phone: Optional[str] = Field(None, pattern=r"^\(\d{2}\) \d{5}-\d{4}$")
    location: Optional[str] = None
    profile_image: Optional[str] = None


class UserCreate(UserBase):
    """Model for registering a new user"""
    password: str = Field(min_length=6, max_length=100)


class UserLogin(BaseModel):
    """Login credentials"""
    email: EmailStr
    password: str


class User(UserBase):
    """Complete user model (never carries the password hash)"""
    id: UUID
    rating: float = 0.0
    review_count: int = 0
    completed_deals: int = 0
    active: bool = True
    is_verified: bool = False
    verification_level: int = Field(0, ge=0, le=3)
    is_admin: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields a user may change; omitted fields are left as they are"""
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    phone: Optional[str] = Field(None, pattern=r"^\(\d{2}\) \d{5}-\d{4}$")
    location: Optional[str] = None
    profile_image: Optional[str] = None


class PasswordChange(BaseModel):
    """Request body for changing the account password"""
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=100)


class ReputationSummary(BaseModel):
    """Public reputation aggregate for a user"""
    user_id: UUID
    name: str
    user_type: UserType
    rating: float
    review_count: int
    completed_deals: int


class UserStats(BaseModel):
    """Public statistics for a user, with ratings bucketed by star"""
    user_id: UUID
    rating: float
    review_count: int
    completed_deals: int
    is_verified: bool
    verification_level: int
    rating_distribution: Dict[int, int]


class Requester(BaseModel):
    """Authenticated identity passed explicitly into lifecycle operations"""
    id: UUID
    user_type: Optional[UserType] = None


class TokenResponse(BaseModel):
    """Response body for register/login"""
    token: str
    user: User

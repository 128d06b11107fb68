"""Identity document data models"""

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime
from typing import Optional
from uuid import UUID


class DocumentType(str, Enum):
    """Kinds of document a user can submit for verification"""
    CPF = "cpf"
    CNPJ = "cnpj"
    RG = "rg"
    CREA = "crea"
    DIPLOMA = "diploma"
    CERTIFICADO = "certificado"
    OUTRO = "outro"


class DocumentStatus(str, Enum):
    """Review state of a submitted document"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentCreate(BaseModel):
    """Request body for submitting a document; the file itself is uploaded elsewhere"""
    type: DocumentType
    document_number: Optional[str] = Field(None, max_length=50)
    document_url: str = Field(pattern=r"^https?://\S+$", max_length=500)


class DocumentVerification(BaseModel):
    """Request body for an administrator's decision"""
    status: DocumentStatus
    rejection_reason: Optional[str] = None


class Document(BaseModel):
    """Complete document model"""
    id: int
    user_id: UUID
    type: DocumentType
    document_number: Optional[str] = None
    document_url: str
    is_verified: bool = False
    status: DocumentStatus = DocumentStatus.PENDING
    verified_at: Optional[datetime] = None
    verified_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

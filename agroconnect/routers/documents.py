"""
Verification document routes.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from agroconnect.models import (
    Document,
    DocumentCreate,
    DocumentVerification,
    Page,
    Requester,
)
from agroconnect.services import DocumentManager
from agroconnect.services.auth import get_current_user
from .deps import Pagination, get_document_manager

router = APIRouter()


@router.post("/documents", response_model=Document, status_code=201)
async def submit_document(
    body: DocumentCreate,
    requester: Requester = Depends(get_current_user),
    manager: DocumentManager = Depends(get_document_manager),
):
    """Submit a document for verification."""
    return await manager.submit_document(requester, body)


@router.get("/documents", response_model=Page[Document])
async def list_documents(
    status: Optional[str] = Query(None, description="Filter by status"),
    page: Pagination = Depends(),
    requester: Requester = Depends(get_current_user),
    manager: DocumentManager = Depends(get_document_manager),
):
    """The current user's documents."""
    return await manager.list_documents(requester, status, page.limit, page.offset)


@router.get("/documents/{document_id}", response_model=Document)
async def get_document(
    document_id: int,
    requester: Requester = Depends(get_current_user),
    manager: DocumentManager = Depends(get_document_manager),
):
    return await manager.get_document(requester, document_id)


@router.put("/documents/{document_id}/verify", response_model=Document)
async def verify_document(
    document_id: int,
    body: DocumentVerification,
    requester: Requester = Depends(get_current_user),
    manager: DocumentManager = Depends(get_document_manager),
):
    """Approve or reject a pending document (administrators only)."""
    return await manager.verify_document(requester, document_id, body)


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: int,
    requester: Requester = Depends(get_current_user),
    manager: DocumentManager = Depends(get_document_manager),
):
    await manager.delete_document(requester, document_id)
    return {"status": "success", "message": "Document deleted"}

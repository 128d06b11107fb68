"""
Document manager - Identity documents submitted for verification.

Files are uploaded out of band; a document row only carries the URL. An
administrator approves or rejects each pending document, and an approval
raises the owner to the document-verified level.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from agroconnect.error_handling import (
    AuthenticationError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from agroconnect.models import (
    ActivityType,
    Document,
    DocumentCreate,
    DocumentStatus,
    DocumentVerification,
    Page,
    Requester,
    User,
)
from .activity import ActivityLogger
from .store import Store, StoreSession

logger = logging.getLogger(__name__)

# 0 unverified, 1 email, 2 phone, 3 document
DOCUMENT_VERIFIED_LEVEL = 3


class DocumentManager:
    """Submit, review and remove verification documents"""

    def __init__(self, store: Store, activity: Optional[ActivityLogger] = None):
        self.store = store
        self.activity = activity or ActivityLogger(store)

    async def submit_document(self, requester: Requester, data: DocumentCreate) -> Document:
        """
        Submit a document for verification.

        Raises:
            AuthenticationError: Requester's account missing or deactivated
            InvalidStateError: A document of this type is already pending or approved
        """
        async with self.store.transaction() as session:
            await self._load_active_user(session, requester.id)
            if await session.find_open_document(requester.id, data.type):
                raise InvalidStateError(
                    "You already have a document of this type under review or approved"
                )
            document = await session.insert_document(requester.id, data)

        logger.info(f"Document {document.id} ({document.type.value}) submitted by {requester.id}")
        await self.activity.record(
            requester.id,
            ActivityType.DOCUMENT_SUBMITTED,
            f"Submitted {document.type.value} document for verification",
            related_id=document.id,
            related_type="Document",
        )
        return document

    async def list_documents(
        self,
        requester: Requester,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[Document]:
        """The requester's documents, newest first"""
        status_filter = _parse_status(status)
        async with self.store.transaction() as session:
            items, total = await session.list_documents(
                requester.id, status_filter, limit=limit, offset=offset
            )
        return Page[Document](items=items, total=total, limit=limit, offset=offset)

    async def get_document(self, requester: Requester, document_id: int) -> Document:
        """
        Get a document visible to its owner or an administrator.

        Raises:
            NotFoundError: Document missing
            ForbiddenError: Requester is neither owner nor administrator
        """
        async with self.store.transaction() as session:
            document = await self._load(session, document_id)
            if document.user_id != requester.id:
                viewer = await session.get_user(requester.id)
                if not viewer or not viewer.is_admin:
                    raise ForbiddenError("You are not allowed to view this document")
        return document

    async def verify_document(
        self,
        requester: Requester,
        document_id: int,
        decision: DocumentVerification,
    ) -> Document:
        """
        Approve or reject a pending document.

        Approval marks the document verified and raises the owner's
        verification level; both writes commit together.

        Raises:
            InvalidArgumentError: Decision is not approved/rejected, or a
                rejection has no reason
            ForbiddenError: Requester is not an administrator
            NotFoundError: Document missing
            InvalidStateError: Document was already reviewed
        """
        if decision.status == DocumentStatus.PENDING:
            raise InvalidArgumentError("Status must be approved or rejected")
        approved = decision.status == DocumentStatus.APPROVED
        reason = (decision.rejection_reason or "").strip()
        if not approved and not reason:
            raise InvalidArgumentError("A rejection reason is required when rejecting a document")

        async with self.store.transaction() as session:
            verifier = await session.get_user(requester.id)
            if not verifier or not verifier.is_admin:
                raise ForbiddenError("Only administrators can verify documents")

            document = await self._load(session, document_id, for_update=True)
            if document.status != DocumentStatus.PENDING:
                raise InvalidStateError(
                    "This document has already been reviewed",
                    {"status": document.status.value},
                )

            document = await session.update_document(document_id, {
                "status": decision.status,
                "is_verified": approved,
                "verified_at": datetime.now() if approved else None,
                "verified_by": requester.id if approved else None,
                "rejection_reason": None if approved else reason,
            })

            if approved:
                owner = await session.get_user(document.user_id, for_update=True)
                if owner and owner.verification_level < DOCUMENT_VERIFIED_LEVEL:
                    await session.update_user(owner.id, {
                        "verification_level": DOCUMENT_VERIFIED_LEVEL,
                        "is_verified": True,
                    })

        logger.info(
            f"Document {document_id} {decision.status.value} by {requester.id} "
            f"for user {document.user_id}"
        )
        if approved:
            await self.activity.record(
                document.user_id,
                ActivityType.DOCUMENT_VERIFIED,
                f"Document {document.type.value} verified",
                metadata={"document_type": document.type.value},
                related_id=document_id,
                related_type="Document",
                is_public=True,
            )
        else:
            await self.activity.record(
                document.user_id,
                ActivityType.DOCUMENT_REJECTED,
                f"Document {document.type.value} rejected: {reason}",
                related_id=document_id,
                related_type="Document",
            )
        return document

    async def delete_document(self, requester: Requester, document_id: int) -> None:
        """
        Withdraw a document that has not been approved.

        Raises:
            NotFoundError: Document missing
            ForbiddenError: Requester is not the owner
            InvalidStateError: Document is approved
        """
        async with self.store.transaction() as session:
            document = await self._load(session, document_id, for_update=True)
            if document.user_id != requester.id:
                raise ForbiddenError("You are not allowed to delete this document")
            if document.status == DocumentStatus.APPROVED:
                raise InvalidStateError("Verified documents cannot be deleted")
            await session.delete_document(document_id)

        logger.info(f"Document {document_id} deleted by {requester.id}")

    async def _load(
        self,
        session: StoreSession,
        document_id: int,
        for_update: bool = False,
    ) -> Document:
        document = await session.get_document(document_id, for_update=for_update)
        if not document:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def _load_active_user(self, session: StoreSession, user_id: UUID) -> User:
        user = await session.get_user(user_id)
        if not user or not user.active:
            raise AuthenticationError("Account not found or deactivated.")
        return user


def _parse_status(status: Optional[str]) -> Optional[DocumentStatus]:
    if status is None:
        return None
    try:
        return DocumentStatus(status)
    except ValueError:
        raise InvalidArgumentError(f"Invalid status: {status}")

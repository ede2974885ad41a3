# Overview: Draft -> Posted lifecycle for financial documents.

"""
ERP Document Lifecycle Service

================================================================================
PURPOSE: Promote documents from draft to posted, once
================================================================================

STATE MACHINE:
    DRAFT -> POSTED

    draft:  data entry, can be edited/deleted, not yet part of the books
    posted: IMMUTABLE, counted by reports, cannot be edited or deleted

RULES (NON-NEGOTIABLE):
1. Only draft documents can be posted.
2. Nothing leaves posted. Corrections are new documents.
3. The posting decision comes from immutability_service.validate_post so
   the HTTP, CLI and batch paths agree.
"""

from __future__ import annotations

import logging
from typing import Literal

from ..extensions import db
from erp.time_utils import utcnow
from . import immutability_service
from .document_service import DocumentNotFoundError, DocumentType


logger = logging.getLogger(__name__)

VALID_STATUSES = {"draft", "posted"}
MAX_STATUS_QUERY_LIMIT = 1000
LifecycleStatus = Literal["draft", "posted"]


class LifecycleError(ValueError):
    """
    Raised when an invalid lifecycle transition is attempted.

    This is a domain error, not a technical error.
    """
    pass


def validate_status(status: str) -> None:
    """
    Raises:
        LifecycleError: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Valid: draft -> posted. Same-state is a no-op and allowed.
    Invalid: posted -> draft.
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True

    return (from_status, to_status) == ("draft", "posted")


def post_document(
    doc_type: DocumentType,
    record_id: int,
    *,
    posted_by: str | None = None,
):
    """
    Post a draft document (draft -> posted).

    Args:
        doc_type: Registry entry for the document kind
        record_id: ID of the document to post
        posted_by: Free-form actor recorded for the audit trail

    Returns:
        The posted document

    Raises:
        DocumentNotFoundError: If the document does not exist
        LifecycleError: If the document is not a draft
    """
    doc = db.session.get(doc_type.model, record_id)

    decision = immutability_service.validate_post(doc, doc_type.label)
    if decision.status_code == 404:
        raise DocumentNotFoundError(decision.error)
    if not decision.allowed:
        raise LifecycleError(
            f"Cannot post {doc_type.label.lower()} {record_id}: "
            f"current status is '{doc.status}', must be 'draft'"
        )

    doc.status = "posted"
    doc.posted_at = utcnow()
    doc.posted_by = posted_by

    db.session.commit()
    logger.info("Posted %s %s", doc_type.key, record_id)
    return doc


def post_documents_batch(
    doc_type: DocumentType,
    record_ids: list[int],
    *,
    posted_by: str | None = None,
) -> tuple[list, list[tuple[int, str]]]:
    """
    Post several drafts. Each id stands alone: a failure is recorded and the
    batch carries on.

    Returns:
        Tuple of (posted_documents, failed_ids_with_errors)
    """
    posted = []
    failed: list[tuple[int, str]] = []

    for record_id in record_ids:
        try:
            posted.append(post_document(doc_type, record_id, posted_by=posted_by))
        except (DocumentNotFoundError, LifecycleError) as e:
            db.session.rollback()
            failed.append((record_id, str(e)))

    logger.info(
        "Batch post of %s: %d posted, %d failed",
        doc_type.key, len(posted), len(failed),
    )
    return posted, failed


def get_documents_by_status(
    doc_type: DocumentType,
    status: LifecycleStatus,
    *,
    limit: int = 200,
) -> list:
    """
    USAGE EXAMPLES:
    - "Pending posting" queue: get_documents_by_status(invoice_type, "draft")
    - Posted history: get_documents_by_status(invoice_type, "posted")

    limit is clamped to 1..MAX_STATUS_QUERY_LIMIT.
    """
    validate_status(status)
    limit = min(max(limit, 1), MAX_STATUS_QUERY_LIMIT)

    model = doc_type.model
    q = db.session.query(model).filter(model.status == status)
    q = q.order_by(model.created_at.desc(), model.id.desc())

    return q.limit(limit).all()


def get_status_info(status: str | None, record_type: str = "Document") -> dict:
    """Describe what a status permits, for display next to the document."""
    bucket = immutability_service.RecordStatus.classify(status)

    if bucket is immutability_service.RecordStatus.DRAFT:
        return {
            "canModify": True,
            "canPost": True,
            "description": f"{record_type} is in draft status and can be modified or posted",
        }
    if bucket is immutability_service.RecordStatus.POSTED:
        return {
            "canModify": False,
            "canPost": False,
            "description": f"{record_type} is posted and cannot be modified or posted again",
        }
    return {
        "canModify": False,
        "canPost": False,
        "description": f"Unknown {record_type.lower()} status",
    }

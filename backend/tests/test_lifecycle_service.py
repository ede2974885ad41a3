"""
Tests for the draft -> posted lifecycle.

Posting is the only way a document becomes immutable, so these tests also
check that a posted document is rejected by the update/delete path.
"""

import asyncio

import pytest

from erp.services import lifecycle_service
from erp.services.document_service import (
    DocumentNotFoundError,
    delete_document,
    get_document_type,
    update_document,
)
from erp.services.immutability_service import ImmutabilityViolation
from erp.services.lifecycle_service import LifecycleError


INVOICE = get_document_type("invoice")


class TestTransitions:
    def test_draft_to_posted_is_valid(self):
        assert lifecycle_service.can_transition("draft", "posted") is True

    def test_posted_to_draft_is_invalid(self):
        assert lifecycle_service.can_transition("posted", "draft") is False

    def test_same_state_is_allowed(self):
        assert lifecycle_service.can_transition("posted", "posted") is True

    def test_unknown_status_raises(self):
        with pytest.raises(LifecycleError, match="Invalid status 'cancelled'"):
            lifecycle_service.can_transition("draft", "cancelled")


class TestPostDocument:
    def test_posts_draft(self, make_document):
        doc = make_document("invoice")

        posted = lifecycle_service.post_document(INVOICE, doc.id, posted_by="jane")

        assert posted.status == "posted"
        assert posted.posted_by == "jane"
        assert posted.posted_at is not None

    def test_posting_twice_fails(self, make_document):
        doc = make_document("invoice")
        lifecycle_service.post_document(INVOICE, doc.id)

        with pytest.raises(LifecycleError) as excinfo:
            lifecycle_service.post_document(INVOICE, doc.id)

        assert str(excinfo.value) == (
            f"Cannot post invoice {doc.id}: current status is 'posted', must be 'draft'"
        )

    def test_missing_document(self, db_session):
        with pytest.raises(DocumentNotFoundError, match="Invoice not found"):
            lifecycle_service.post_document(INVOICE, 4242)

    def test_posted_document_can_no_longer_be_changed(self, make_document):
        doc = make_document("invoice", amount_cents=500)
        lifecycle_service.post_document(INVOICE, doc.id)

        with pytest.raises(ImmutabilityViolation) as update_exc:
            asyncio.run(update_document(INVOICE, doc.id, {"amount_cents": 1}))
        with pytest.raises(ImmutabilityViolation) as delete_exc:
            asyncio.run(delete_document(INVOICE, doc.id))

        assert update_exc.value.status_code == 403
        assert delete_exc.value.status_code == 403
        assert doc.amount_cents == 500


class TestBatchPosting:
    def test_each_id_stands_alone(self, make_document):
        draft = make_document("invoice")
        posted = make_document("invoice", status="posted")

        done, failed = lifecycle_service.post_documents_batch(
            INVOICE, [draft.id, posted.id, 9999], posted_by="batch",
        )

        assert [d.id for d in done] == [draft.id]
        assert [record_id for record_id, _ in failed] == [posted.id, 9999]
        assert failed[1][1] == "Invoice not found"


class TestQueries:
    def test_get_documents_by_status(self, make_document):
        make_document("budget", status="posted")
        drafts = [make_document("budget"), make_document("budget")]

        found = lifecycle_service.get_documents_by_status(get_document_type("budget"), "draft")

        assert sorted(d.id for d in found) == sorted(d.id for d in drafts)

    def test_get_documents_by_status_clamps_limit(self, make_document):
        for _ in range(2):
            make_document("budget")
        budget = get_document_type("budget")

        assert len(lifecycle_service.get_documents_by_status(budget, "draft", limit=-1)) == 1
        assert len(lifecycle_service.get_documents_by_status(budget, "draft", limit=10**9)) == 2

    def test_get_documents_by_status_rejects_unknown(self, db_session):
        with pytest.raises(LifecycleError):
            lifecycle_service.get_documents_by_status(INVOICE, "void")


class TestStatusInfo:
    def test_draft(self):
        assert lifecycle_service.get_status_info("draft", "Invoice") == {
            "canModify": True,
            "canPost": True,
            "description": "Invoice is in draft status and can be modified or posted",
        }

    def test_posted(self):
        info = lifecycle_service.get_status_info("posted")
        assert info["canModify"] is False
        assert info["description"] == "Document is posted and cannot be modified or posted again"

    def test_unknown(self):
        assert lifecycle_service.get_status_info("cancelled", "Budget")["description"] == "Unknown budget status"
        assert lifecycle_service.get_status_info(None)["canPost"] is False

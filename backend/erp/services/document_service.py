# backend/erp/services/document_service.py
"""
Document Service

One registry entry per document type (invoice, purchase bill, production
expense, budget, sales order, purchase order) and one set of CRUD operations
that works for all of them.

IMMUTABILITY:
- update_document / delete_document call immutability_service.enforce()
  before touching the row. A posted document raises ImmutabilityViolation
  (403) and the session is left untouched.
- create_document always stores status "draft"; clients cannot choose.
- Status changes (draft -> posted) live in lifecycle_service.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..extensions import db
from ..models import Budget, Invoice, ProductionExpense, PurchaseBill, PurchaseOrder, SalesOrder
from ..validation import ModelValidationPolicy, enforce_rules_document, validate_payload
from . import immutability_service
from .immutability_service import Loader, Operation

COMMON_FIELDS = frozenset({"amount_cents", "description", "cost_center_id"})


class UnknownDocumentTypeError(ValueError):
    """Raised for a document type key that is not registered."""


class DocumentNotFoundError(ValueError):
    """Raised when a document id does not exist for its type."""


class ConflictError(ValueError):
    """Raised when a document clashes with another stored document (HTTP 409)."""


@dataclass(frozen=True)
class DocumentType:
    key: str
    label: str
    model: type
    policy: ModelValidationPolicy
    url_prefix: str
    # Cross-document rule run on create and update: (merged values, own id or None)
    check_conflicts: Callable[[dict, Any], None] | None = None


def _policy(*fields: str, required: tuple[str, ...]) -> ModelValidationPolicy:
    return ModelValidationPolicy(
        writable_fields=COMMON_FIELDS | frozenset(fields),
        required_on_create=frozenset(("amount_cents",) + required),
    )


def check_budget_overlap(values: dict, budget_id: Any = None) -> None:
    """
    Budget periods for one cost center may not overlap. Periods are
    half-open, so a budget ending on the day the next one starts is fine.

    Raises:
        ConflictError: If another budget for the same cost center overlaps
    """
    cost_center_id = values.get("cost_center_id")
    start, end = values.get("period_start"), values.get("period_end")
    if cost_center_id is None or start is None or end is None:
        return

    q = db.session.query(Budget.id).filter(
        Budget.cost_center_id == cost_center_id,
        Budget.period_start < end,
        Budget.period_end > start,
    )
    if budget_id is not None:
        q = q.filter(Budget.id != budget_id)

    clash = q.order_by(Budget.id.asc()).first()
    if clash is not None:
        raise ConflictError(
            f"Budget period overlaps with budget {clash.id} for cost center {cost_center_id}"
        )


DOCUMENT_TYPES: dict[str, DocumentType] = {
    doc_type.key: doc_type
    for doc_type in (
        DocumentType(
            key="invoice",
            label="Invoice",
            model=Invoice,
            policy=_policy("customer_id", "invoice_date", required=("customer_id", "invoice_date", "cost_center_id")),
            url_prefix="/api/invoices",
        ),
        DocumentType(
            key="purchase_bill",
            label="Purchase bill",
            model=PurchaseBill,
            policy=_policy("vendor_id", "bill_date", required=("vendor_id", "bill_date", "cost_center_id")),
            url_prefix="/api/purchase-bills",
        ),
        DocumentType(
            key="production_expense",
            label="Production expense",
            model=ProductionExpense,
            policy=_policy("expense_date", "category", required=("expense_date", "cost_center_id", "description")),
            url_prefix="/api/production-expenses",
        ),
        DocumentType(
            key="budget",
            label="Budget",
            model=Budget,
            policy=_policy(
                "name", "period_start", "period_end",
                required=("name", "period_start", "period_end", "cost_center_id"),
            ),
            url_prefix="/api/budgets",
            check_conflicts=check_budget_overlap,
        ),
        DocumentType(
            key="sales_order",
            label="Sales order",
            model=SalesOrder,
            policy=_policy("customer_id", "order_date", required=("customer_id", "order_date")),
            url_prefix="/api/sales-orders",
        ),
        DocumentType(
            key="purchase_order",
            label="Purchase order",
            model=PurchaseOrder,
            policy=_policy("vendor_id", "order_date", required=("vendor_id", "order_date")),
            url_prefix="/api/purchase-orders",
        ),
    )
}


def get_document_type(key: str) -> DocumentType:
    """
    Resolve a registry key. Hyphenated keys ("purchase-bill") are accepted
    so URL segments can be passed straight through.
    """
    doc_type = DOCUMENT_TYPES.get(key.replace("-", "_"))
    if doc_type is None:
        raise UnknownDocumentTypeError(
            f"Unknown document type '{key}'. Must be one of: {', '.join(sorted(DOCUMENT_TYPES))}"
        )
    return doc_type


def make_loader(doc_type: DocumentType) -> Loader:
    """Async loader over the current session, as expected by immutability_service."""
    async def load(record_id: Any):
        return db.session.get(doc_type.model, record_id)

    return load


def list_documents(
    doc_type: DocumentType,
    *,
    status: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    List documents newest first, optionally filtered by status.

    Args:
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    model = doc_type.model
    q = db.session.query(model)
    if status is not None:
        q = q.filter(model.status == status)
    q = q.order_by(model.created_at.desc(), model.id.desc())

    if page is None:
        items = q.all()
        return {"items": [d.to_dict() for d in items], "count": len(items)}

    page = max(page, 1)
    per_page = min(max(per_page or 20, 1), 100)
    total = q.count()
    items = q.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [d.to_dict() for d in items],
        "count": len(items),
        "page": page,
        "per_page": per_page,
        "total": total,
        "pages": (total + per_page - 1) // per_page,
    }


def get_document(doc_type: DocumentType, record_id: int):
    doc = db.session.get(doc_type.model, record_id)
    if doc is None:
        raise DocumentNotFoundError(f"{doc_type.label} not found")
    return doc


def create_document(doc_type: DocumentType, payload: dict):
    """
    Create a document from client JSON. New documents are always drafts.

    Raises:
        ValidationError: If the payload is invalid
        ConflictError: If the document clashes with a stored one
    """
    patch = validate_payload(model=doc_type.model, payload=payload, policy=doc_type.policy, partial=False)
    enforce_rules_document(patch)
    if doc_type.check_conflicts:
        doc_type.check_conflicts(patch, None)

    doc = doc_type.model(**patch)
    doc.status = "draft"
    db.session.add(doc)
    db.session.commit()
    return doc


async def update_document(doc_type: DocumentType, record_id: int, payload: dict):
    """
    Apply client JSON to a draft document. Immutability is checked before the
    payload is even looked at, so a posted document always answers 403.

    Raises:
        ImmutabilityViolation: 404 if missing, 403 if posted, 500 if the
            lookup failed
        ValidationError: If the payload is invalid or the merged document
            breaks a business rule
        ConflictError: If the merged document clashes with a stored one
    """
    await immutability_service.enforce(record_id, make_loader(doc_type), Operation.UPDATE, doc_type.label)

    patch = validate_payload(model=doc_type.model, payload=payload, policy=doc_type.policy, partial=True)
    doc = db.session.get(doc_type.model, record_id)
    enforce_rules_document(patch, current=doc)
    if doc_type.check_conflicts:
        merged = {col.key: getattr(doc, col.key) for col in doc_type.model.__mapper__.columns}
        doc_type.check_conflicts({**merged, **patch}, doc.id)
    for k, v in patch.items():
        setattr(doc, k, v)

    db.session.commit()
    return doc


async def delete_document(doc_type: DocumentType, record_id: int) -> None:
    """
    Delete a draft document.

    Raises:
        ImmutabilityViolation: 404 if missing, 403 if posted, 500 if the
            lookup failed
    """
    await immutability_service.enforce(record_id, make_loader(doc_type), Operation.DELETE, doc_type.label)

    doc = db.session.get(doc_type.model, record_id)
    db.session.delete(doc)
    db.session.commit()

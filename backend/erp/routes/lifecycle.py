# backend/erp/routes/lifecycle.py
"""
Document Lifecycle API Routes

These routes handle state transitions for every registered document type
(invoice, purchase-bill, production-expense, budget, sales-order,
purchase-order):
- POST /api/lifecycle/post/<type>/<id>   - Post a draft (draft -> posted)
- POST /api/lifecycle/post/<type>/batch  - Post several drafts
- GET  /api/lifecycle/pending/<type>     - List drafts waiting to be posted

WHY SEPARATE ROUTES:
- Lifecycle operations are distinct from CRUD on the documents themselves
- Makes it clear which endpoints change document state

The actor recorded in posted_by comes from the X-Actor header when present.
"""

from flask import Blueprint, request, current_app

from ..services import lifecycle_service
from ..services.document_service import DocumentNotFoundError, UnknownDocumentTypeError, get_document_type
from ..services.lifecycle_service import LifecycleError
from ..validation import ValidationError, validate_id_list


lifecycle_bp = Blueprint("lifecycle", __name__, url_prefix="/api/lifecycle")


@lifecycle_bp.post("/post/<doc_type_key>/<int:record_id>")
def post_document_route(doc_type_key: str, record_id: int):
    """
    Post a draft document.

    CRITICAL: Once posted, a document is immutable. This cannot be undone.

    Response:
        {
            "<type>": {...},  // Updated document with status=posted
            "message": "..."
        }

    Error responses:
        404: Unknown document type or document not found
        400: Document not in draft status (lifecycle error)
    """
    try:
        doc_type = get_document_type(doc_type_key)
        doc = lifecycle_service.post_document(
            doc_type,
            record_id,
            posted_by=request.headers.get("X-Actor"),
        )

        return {
            doc_type.key: doc.to_dict(),
            "message": f"{doc_type.label} {record_id} posted successfully",
        }, 200

    except (UnknownDocumentTypeError, DocumentNotFoundError) as e:
        return {"error": str(e)}, 404
    except LifecycleError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to post document")
        return {"error": "Internal server error"}, 500


@lifecycle_bp.post("/post/<doc_type_key>/batch")
def post_documents_batch_route(doc_type_key: str):
    """
    Post multiple drafts at once. Each id is posted independently.

    Expected request body:
        {
            "ids": [1, 2, 3, ...]
        }

    Response:
        {
            "successful": [{...}, {...}],  // Posted documents
            "failed": [                    // Failed with reasons
                {"id": 1, "error": "..."},
                ...
            ]
        }
    """
    payload = request.get_json(silent=True) or {}
    try:
        ids = validate_id_list(payload.get("ids"), max_ids=current_app.config["BULK_MAX_IDS"], action="posted")
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        doc_type = get_document_type(doc_type_key)
        posted, failed = lifecycle_service.post_documents_batch(
            doc_type,
            ids,
            posted_by=request.headers.get("X-Actor"),
        )

        return {
            "successful": [doc.to_dict() for doc in posted],
            "failed": [{"id": record_id, "error": error} for record_id, error in failed],
        }, 200

    except UnknownDocumentTypeError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to post document batch")
        return {"error": "Internal server error"}, 500


@lifecycle_bp.get("/pending/<doc_type_key>")
def list_pending_documents_route(doc_type_key: str):
    """
    List drafts waiting to be posted.

    Query parameters:
        limit (optional): Max results (default 200, clamped to 1..1000)

    USAGE EXAMPLE:
        GET /api/lifecycle/pending/invoice?limit=50
    """
    try:
        doc_type = get_document_type(doc_type_key)
        limit = request.args.get("limit", type=int, default=200)

        documents = lifecycle_service.get_documents_by_status(doc_type, "draft", limit=limit)

        return {
            "documents": [doc.to_dict() for doc in documents],
            "count": len(documents),
        }, 200

    except UnknownDocumentTypeError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to list pending documents")
        return {"error": "Internal server error"}, 500

# Overview: Flask API routes for document CRUD; parses input and returns JSON responses.

# backend/erp/routes/documents.py
"""
Document CRUD routes, one blueprint per document type.

Every type in document_service.DOCUMENT_TYPES gets the same endpoints under
its url_prefix (e.g. /api/invoices):

- GET    ""                              List (status, page, per_page)
- POST   ""                              Create a draft
- GET    /<id>                           Document + allowed operations
- PUT    /<id>                           Update (drafts only)
- DELETE /<id>                           Delete (drafts only)
- GET    /<id>/operations                Capability vector + status info
- GET    /<id>/operations/<operation>    Can this one operation run?
- POST   /validate-bulk                  Dry-run update/delete over many ids

IMMUTABILITY: PUT and DELETE go through immutability_service.enforce() in the
service layer. Posted documents answer 403 with the standard
"Posted records cannot be modified" body.
"""

from flask import Blueprint, current_app, request

from ..extensions import db
from ..services import document_service, immutability_service, lifecycle_service
from ..services.document_service import DOCUMENT_TYPES, ConflictError, DocumentNotFoundError, DocumentType
from ..services.immutability_service import Decision, ImmutabilityViolation, Operation
from ..validation import ValidationError, validate_id_list


def denied_response(decision: Decision, doc_type: DocumentType, operation: str):
    """
    JSON body for a denied decision. 403 uses the standard immutability
    payload; 404/500 carry the decision's own error text.
    """
    if decision.status_code == 403:
        body = immutability_service.build_immutability_error(doc_type.label, operation)
    else:
        body = {
            "success": False,
            "statusCode": decision.status_code,
            "error": decision.error,
        }
    return body, decision.status_code


def violation_response(e: ImmutabilityViolation, doc_type: DocumentType, operation: str):
    body, status_code = denied_response(e.decision, doc_type, operation)
    body["type"] = e.kind.value
    return body, status_code


def make_documents_blueprint(doc_type: DocumentType) -> Blueprint:
    bp = Blueprint(doc_type.key, __name__, url_prefix=doc_type.url_prefix)
    label = doc_type.label

    @bp.get("")
    def list_documents_route():
        """
        Query params:
        - status: str (optional) - draft or posted
        - page: int (optional) - page number (1-indexed). If omitted, returns all items.
        - per_page: int (optional) - items per page (default 20, max 100)
        """
        status = request.args.get("status")
        page = request.args.get("page", type=int)
        per_page = request.args.get("per_page", type=int)

        try:
            if status is not None:
                lifecycle_service.validate_status(status)
            return document_service.list_documents(
                doc_type, status=status, page=page, per_page=per_page,
            )
        except lifecycle_service.LifecycleError as e:
            return {"error": str(e)}, 400
        except Exception:
            current_app.logger.exception("Failed to list %s documents", doc_type.key)
            return {"error": "Internal server error"}, 500

    @bp.post("")
    def create_document_route():
        payload = request.get_json(silent=True) or {}

        try:
            doc = document_service.create_document(doc_type, payload)
        except ValidationError as e:
            return {"error": str(e)}, 400
        except ConflictError as e:
            db.session.rollback()
            return {"error": str(e)}, 409
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to create %s", doc_type.key)
            return {"error": "Internal server error"}, 500

        return {doc_type.key: doc.to_dict(), "message": f"{label} created successfully"}, 201

    @bp.get("/<int:record_id>")
    def get_document_route(record_id: int):
        try:
            doc = document_service.get_document(doc_type, record_id)
        except DocumentNotFoundError as e:
            return {"error": str(e)}, 404

        return {
            doc_type.key: doc.to_dict(),
            "allowed_operations": immutability_service.get_allowed_operations(doc).to_dict(),
        }

    @bp.put("/<int:record_id>")
    async def update_document_route(record_id: int):
        """
        Update a draft document.

        Error responses:
            400: Invalid payload
            403: Document is posted
            404: Document not found
            409: Budget period overlaps another budget for the cost center
            500: Document could not be loaded
        """
        payload = request.get_json(silent=True) or {}

        try:
            doc = await document_service.update_document(doc_type, record_id, payload)
        except ImmutabilityViolation as e:
            return violation_response(e, doc_type, Operation.UPDATE.value)
        except ValidationError as e:
            db.session.rollback()
            return {"error": str(e)}, 400
        except ConflictError as e:
            db.session.rollback()
            return {"error": str(e)}, 409
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to update %s %s", doc_type.key, record_id)
            return {"error": "Internal server error"}, 500

        return {doc_type.key: doc.to_dict(), "message": f"{label} updated successfully"}, 200

    @bp.delete("/<int:record_id>")
    async def delete_document_route(record_id: int):
        try:
            await document_service.delete_document(doc_type, record_id)
        except ImmutabilityViolation as e:
            return violation_response(e, doc_type, Operation.DELETE.value)
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to delete %s %s", doc_type.key, record_id)
            return {"error": "Internal server error"}, 500

        return {"message": f"{label} deleted successfully"}, 200

    @bp.get("/<int:record_id>/operations")
    def allowed_operations_route(record_id: int):
        doc = db.session.get(doc_type.model, record_id)
        if doc is None:
            return {"error": f"{label} not found"}, 404

        return {
            "id": record_id,
            "status": doc.status,
            "allowed_operations": immutability_service.get_allowed_operations(doc).to_dict(),
            "status_info": lifecycle_service.get_status_info(doc.status, label),
        }

    @bp.get("/<int:record_id>/operations/<operation>")
    async def check_operation_route(record_id: int, operation: str):
        """
        Answer whether a single operation (update, delete, post) may run now.

        Response (allowed):
            {"success": true, "statusCode": 200, "message": "...", "details": {...}}
        """
        try:
            op = Operation(operation)
        except ValueError:
            return {"error": f"Unsupported operation '{operation}'. Must be one of: delete, post, update"}, 400

        if op is Operation.POST:
            decision = immutability_service.validate_post(db.session.get(doc_type.model, record_id), label)
        else:
            decision = await immutability_service.validate_by_loader(
                record_id, document_service.make_loader(doc_type), op, label,
            )

        if not decision.allowed:
            return denied_response(decision, doc_type, op.value)
        return immutability_service.build_allowed_response(label, op.value), 200

    @bp.post("/validate-bulk")
    async def validate_bulk_route():
        """
        Dry-run an update or delete over many ids. Nothing is modified.

        Expected request body:
            {"ids": [1, 2, 3], "operation": "delete"}

        A well-formed body always answers 200; the verdict is in "success"
        and "summary".
        """
        payload = request.get_json(silent=True) or {}
        operation = payload.get("operation", Operation.UPDATE.value)

        try:
            ids = validate_id_list(
                payload.get("ids"), max_ids=current_app.config["BULK_MAX_IDS"], action="validated",
            )
        except ValidationError as e:
            return {"error": str(e)}, 400
        if operation not in (Operation.UPDATE.value, Operation.DELETE.value):
            return {"error": "operation must be 'update' or 'delete'"}, 400

        result = await immutability_service.validate_bulk(
            ids, document_service.make_loader(doc_type), operation, label,
        )
        return result.to_dict(), 200

    return bp


documents_blueprints = [make_documents_blueprint(doc_type) for doc_type in DOCUMENT_TYPES.values()]

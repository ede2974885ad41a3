# Overview: Status-based mutability policy for posted financial documents.

"""
ERP Record Immutability Service

================================================================================
PURPOSE: Decide whether a document may be updated, deleted, or posted
================================================================================

Every financial document (invoice, purchase bill, production expense, budget,
sales order, purchase order) runs through this module before a mutation.

STATUS BUCKETS:
    draft:  mutable, may be updated, deleted, or posted
    posted: IMMUTABLE, read only, forever
    other:  anything else (cancelled, unknown, missing), read only in
            get_allowed_operations()

RULES (NON-NEGOTIABLE):
1. A posted record is never updated or deleted, whoever asks.
2. Not found is reported before status (404 wins over 403).
3. Validators return Decision objects and never raise for an outcome.
   Only enforce() turns a denial into an ImmutabilityViolation.

Records are read through an injected async loader so this module holds no
session, cache, or connection of its own.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable


logger = logging.getLogger(__name__)

DEFAULT_RECORD_TYPE = "record"
IMMUTABLE_ERROR = "Posted records cannot be modified"
IMMUTABLE_REASON = "Record is in posted status and cannot be modified to maintain accounting integrity"
ALLOWED_REASON = "Record is in draft status and can be modified"

Loader = Callable[[Any], Awaitable[Any]]


class RecordStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    OTHER = "other"

    @classmethod
    def classify(cls, value: Any) -> "RecordStatus":
        """Map a raw status value onto a bucket. Unrecognised values are OTHER."""
        if value == cls.DRAFT.value:
            return cls.DRAFT
        if value == cls.POSTED.value:
            return cls.POSTED
        return cls.OTHER


class Operation(str, Enum):
    UPDATE = "update"
    DELETE = "delete"
    POST = "post"


class ViolationKind(str, Enum):
    IMMUTABILITY_VIOLATION = "IMMUTABILITY_VIOLATION"


@dataclass(frozen=True)
class Decision:
    """
    Allow/deny verdict for one record and one operation.

    status_code is HTTP-shaped (200, 400, 403, 404, 500) so routes can map it
    straight onto the response.
    """
    operation: Operation
    allowed: bool
    status_code: int
    message: str | None = None
    error: str | None = None

    @property
    def can_update(self) -> bool:
        return self.operation is Operation.UPDATE and self.allowed

    @property
    def can_delete(self) -> bool:
        return self.operation is Operation.DELETE and self.allowed

    @property
    def can_post(self) -> bool:
        return self.operation is Operation.POST and self.allowed

    def to_dict(self) -> dict:
        flag = {
            Operation.UPDATE: "canUpdate",
            Operation.DELETE: "canDelete",
            Operation.POST: "canPost",
        }[self.operation]
        data: dict = {flag: self.allowed, "statusCode": self.status_code}
        if self.allowed:
            data["message"] = self.message
        else:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AllowedOperations:
    can_read: bool
    can_update: bool
    can_delete: bool
    can_post: bool

    def to_dict(self) -> dict:
        return {
            "canRead": self.can_read,
            "canUpdate": self.can_update,
            "canDelete": self.can_delete,
            "canPost": self.can_post,
        }


@dataclass(frozen=True)
class BulkEntry:
    record_id: Any
    decision: Decision

    def to_dict(self) -> dict:
        return {"recordId": self.record_id, **self.decision.to_dict()}


@dataclass(frozen=True)
class BulkSummary:
    total: int = 0
    allowed: int = 0
    blocked: int = 0

    def to_dict(self) -> dict:
        return {"total": self.total, "allowed": self.allowed, "blocked": self.blocked}


@dataclass(frozen=True)
class BulkResult:
    success: bool
    results: list[BulkEntry] = field(default_factory=list)
    summary: BulkSummary = field(default_factory=BulkSummary)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "results": [entry.to_dict() for entry in self.results],
            "summary": self.summary.to_dict(),
        }


class ImmutabilityViolation(Exception):
    """
    Raised by enforce() when an update/delete is denied.

    Carries the decision's status code (404, 403 or 500) so an error handler
    can answer without re-deriving anything.
    """

    def __init__(self, decision: Decision):
        super().__init__(decision.error)
        self.decision = decision
        self.status_code = decision.status_code
        self.message = decision.error
        self.kind = ViolationKind.IMMUTABILITY_VIOLATION

    def to_dict(self) -> dict:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "kind": self.kind.value,
        }


# ================================================================================
# STATUS CLASSIFIER
# ================================================================================

def status_of(record: Any) -> RecordStatus:
    """Read the status of a mapping or an object (model row, namespace)."""
    if isinstance(record, Mapping):
        raw = record.get("status")
    else:
        raw = getattr(record, "status", None)
    return RecordStatus.classify(raw)


def is_posted(record: Any) -> bool:
    return record is not None and status_of(record) is RecordStatus.POSTED


def is_draft(record: Any) -> bool:
    return record is not None and status_of(record) is RecordStatus.DRAFT


# ================================================================================
# OPERATION VALIDATOR
# ================================================================================

def _validate_mutation(record: Any, record_type: str, operation: Operation) -> Decision:
    if record is None:
        return Decision(
            operation=operation,
            allowed=False,
            status_code=404,
            error=f"{record_type} not found",
        )

    if is_posted(record):
        return Decision(
            operation=operation,
            allowed=False,
            status_code=403,
            error=IMMUTABLE_ERROR,
        )

    verb = "updated" if operation is Operation.UPDATE else "deleted"
    return Decision(
        operation=operation,
        allowed=True,
        status_code=200,
        message=f"{record_type} can be {verb}",
    )


def validate_update(record: Any, record_type: str = DEFAULT_RECORD_TYPE) -> Decision:
    """
    Decide whether `record` may be updated.

    Args:
        record: The loaded record, or None when it does not exist
        record_type: Human-readable label used in messages ("Invoice", ...)

    Returns:
        404 when missing, 403 when posted, 200 otherwise
    """
    return _validate_mutation(record, record_type, Operation.UPDATE)


def validate_deletion(record: Any, record_type: str = DEFAULT_RECORD_TYPE) -> Decision:
    """Same rules as validate_update; only the success message differs."""
    return _validate_mutation(record, record_type, Operation.DELETE)


def validate_post(record: Any, record_type: str = DEFAULT_RECORD_TYPE) -> Decision:
    """
    Decide whether `record` may be promoted draft -> posted.

    Only drafts can be posted. Any other status answers 400
    because the request is a lifecycle error, not an immutability one.
    """
    if record is None:
        return Decision(
            operation=Operation.POST,
            allowed=False,
            status_code=404,
            error=f"{record_type} not found",
        )

    if not is_draft(record):
        return Decision(
            operation=Operation.POST,
            allowed=False,
            status_code=400,
            error=f"Only draft {record_type.lower()}s can be posted",
        )

    return Decision(
        operation=Operation.POST,
        allowed=True,
        status_code=200,
        message=f"{record_type} can be posted",
    )


_VALIDATORS = {
    Operation.UPDATE: validate_update,
    Operation.DELETE: validate_deletion,
}


def _mutation_operation(operation: Operation | str) -> Operation:
    op = Operation(operation)
    if op not in _VALIDATORS:
        raise ValueError(f"Unsupported operation '{op.value}'. Must be one of: delete, update")
    return op


async def validate_by_loader(
    record_id: Any,
    loader: Loader,
    operation: Operation | str = Operation.UPDATE,
    record_type: str = DEFAULT_RECORD_TYPE,
) -> Decision:
    """
    Load a record and validate `operation` against it.

    A loader failure is not retried and not re-raised: it becomes a 500
    decision so callers always get a Decision back.

    Raises:
        ValueError: If `operation` is not "update" or "delete"
    """
    op = _mutation_operation(operation)

    try:
        record = await loader(record_id)
    except Exception:
        logger.warning(
            "Loader failed while validating %s of %s %r",
            op.value, record_type, record_id, exc_info=True,
        )
        return Decision(
            operation=op,
            allowed=False,
            status_code=500,
            error=f"Failed to retrieve {record_type.lower()} for validation",
        )

    return _VALIDATORS[op](record, record_type)


# ================================================================================
# ALLOWED-OPERATIONS DERIVER
# ================================================================================

_READ_ONLY = AllowedOperations(can_read=True, can_update=False, can_delete=False, can_post=False)


def get_allowed_operations(record: Any) -> AllowedOperations:
    """
    Capability vector for a record, used by read paths to decide which
    actions a client may offer.
    """
    if record is None:
        return AllowedOperations(can_read=False, can_update=False, can_delete=False, can_post=False)

    status = status_of(record)
    if status is RecordStatus.DRAFT:
        return AllowedOperations(can_read=True, can_update=True, can_delete=True, can_post=True)
    # posted, and anything else: cancelled, unknown or missing status
    return _READ_ONLY


# ================================================================================
# BULK ADAPTER
# ================================================================================

async def validate_bulk(
    record_ids: Iterable[Any],
    loader: Loader,
    operation: Operation | str = Operation.UPDATE,
    record_type: str = DEFAULT_RECORD_TYPE,
) -> BulkResult:
    """
    Validate `operation` for every id, sequentially and in input order.

    One failing id never stops the rest. Only the flag for the requested
    operation counts towards `allowed`.
    """
    op = _mutation_operation(operation)

    results: list[BulkEntry] = []
    for record_id in record_ids:
        decision = await validate_by_loader(record_id, loader, op, record_type)
        results.append(BulkEntry(record_id=record_id, decision=decision))

    allowed = sum(1 for entry in results if entry.decision.allowed)
    summary = BulkSummary(total=len(results), allowed=allowed, blocked=len(results) - allowed)

    return BulkResult(success=summary.blocked == 0, results=results, summary=summary)


# ================================================================================
# MIDDLEWARE ADAPTER
# ================================================================================

async def enforce(
    record_id: Any,
    loader: Loader,
    operation: Operation | str,
    record_type: str = DEFAULT_RECORD_TYPE,
) -> Decision:
    """
    Validate and raise on denial. Call before any mutation is attempted.

    Raises:
        ImmutabilityViolation: On 404, 403 or 500 decisions
    """
    decision = await validate_by_loader(record_id, loader, operation, record_type)
    if not decision.allowed:
        raise ImmutabilityViolation(decision)
    return decision


# ================================================================================
# RESPONSE BUILDERS
# ================================================================================

def build_immutability_error(record_type: str = DEFAULT_RECORD_TYPE, operation: str = "modify") -> dict:
    return {
        "success": False,
        "statusCode": 403,
        "error": IMMUTABLE_ERROR,
        "details": {
            "recordType": record_type,
            "operation": operation,
            "reason": IMMUTABLE_REASON,
        },
    }


def build_allowed_response(record_type: str = DEFAULT_RECORD_TYPE, operation: str = "modify") -> dict:
    return {
        "success": True,
        "statusCode": 200,
        "message": f"{record_type} {operation} operation is allowed",
        "details": {
            "recordType": record_type,
            "operation": operation,
            "reason": ALLOWED_REASON,
        },
    }

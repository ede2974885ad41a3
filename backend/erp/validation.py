# Overview: Request payload validation for document create/update.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from erp.time_utils import parse_iso_datetime


# Maximum document amount: $99,999,999.99
MAX_AMOUNT_CENTS = 9_999_999_999

# Lifecycle and audit columns are owned by the server, never by the client
SERVER_OWNED_FIELDS = frozenset({"id", "status", "posted_at", "posted_by", "created_at", "updated_at", "version_id"})


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Per-document-type input policy.

    writable_fields is the allowlist of keys a client may send at all;
    required_on_create must be present when a document is created and can
    never be cleared afterwards (no null, no blank), even when the column
    itself is nullable.
    Server-owned fields can never appear in writable_fields.
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()

    def __post_init__(self):
        leaked = self.writable_fields & SERVER_OWNED_FIELDS
        if leaked:
            raise ValueError(f"Server-owned fields cannot be writable: {', '.join(sorted(leaked))}")


def _as_int(key: str, value: Any) -> int:
    # bool is an int subclass; JSON true/false is not an amount
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    if "e" in text.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in text:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _parse_timestamp(key: str, value: Any, kind: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a {kind}")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 {kind}")
    return parsed


def _as_date(key: str, value: Any) -> date:
    """Business dates: a date, a datetime (truncated) or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _parse_timestamp(key, value, "date").date()


def _as_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return _parse_timestamp(key, value, "datetime")


def _as_bool(key: str, value: Any) -> bool:
    return value if isinstance(value, bool) else bool(value)


def _as_text(key: str, value: Any) -> str:
    return str(value).strip()


_COERCERS: tuple[tuple[type, Callable[[str, Any], Any]], ...] = (
    (Integer, _as_int),
    (Boolean, _as_bool),
    (Date, _as_date),
    (DateTime, _as_datetime),
    ((String, Text), _as_text),
)


def _coerce(col, value: Any):
    for coltypes, coercer in _COERCERS:
        if isinstance(col.type, coltypes):
            return coercer(col.key, value)
    return value


def _check_keys(payload: dict, columns: dict, policy: ModelValidationPolicy) -> None:
    for key in payload:
        if key in SERVER_OWNED_FIELDS:
            raise ValidationError(f"Field is managed by the server: {key}")
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn client JSON into a clean patch for `model`.

    Keys are checked against the policy before any value is looked at, so a
    client trying to set status or posted_at gets a clear error instead of a
    silently dropped field. Values are coerced from the column type and
    checked for null, blank and String length.

    Args:
        partial: False for create (required_on_create enforced), True for
            update (only the keys sent are validated)

    Raises:
        ValidationError: On the first problem found
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create.difference(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    _check_keys(payload, columns, policy)

    patch: dict = {}
    for key, raw in payload.items():
        col = columns[key]
        mandatory = not col.nullable or key in policy.required_on_create

        if raw is None:
            if mandatory:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce(col, raw)

        if isinstance(value, str):
            if value == "" and mandatory:
                raise ValidationError(f"{key} cannot be blank")
            max_length = getattr(col.type, "length", None)
            if max_length and len(value) > max_length:
                raise ValidationError(f"{key} exceeds max length {max_length}")

        patch[key] = value

    return patch


def enforce_rules_document(patch: dict, current: Any = None) -> None:
    """
    Rules column metadata cannot express.

    `current` is the stored row on update so the period check sees the
    merged state.
    """
    if "amount_cents" in patch:
        amount = patch["amount_cents"]
        if amount is None or amount <= 0:
            raise ValidationError("amount_cents must be > 0")
        if amount > MAX_AMOUNT_CENTS:
            raise ValidationError(f"amount_cents cannot exceed {MAX_AMOUNT_CENTS} (${MAX_AMOUNT_CENTS / 100:,.2f})")

    if "period_start" in patch or "period_end" in patch:
        start = patch.get("period_start", getattr(current, "period_start", None))
        end = patch.get("period_end", getattr(current, "period_end", None))
        if start is not None and end is not None and end <= start:
            raise ValidationError("period_end must be after period_start")


def validate_id_list(ids: Any, *, max_ids: int, action: str) -> list[int]:
    """
    Body check shared by the bulk endpoints.

    Raises:
        ValidationError: If ids is not a non-empty list of at most max_ids
            integers
    """
    if not isinstance(ids, list) or not ids:
        raise ValidationError("ids must be a non-empty list")
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise ValidationError("ids must be integers")
    if len(ids) > max_ids:
        raise ValidationError(f"At most {max_ids} ids can be {action} at once")
    return ids

from datetime import date
from types import SimpleNamespace

import pytest

from erp.models import Budget, Invoice, ProductionExpense
from erp.services.document_service import get_document_type
from erp.validation import (
    MAX_AMOUNT_CENTS,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_document,
    validate_id_list,
    validate_payload,
)


INVOICE_POLICY = get_document_type("invoice").policy


def validate_invoice(payload, partial=False):
    return validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=partial)


def test_normalizes_create_payload():
    patch = validate_invoice({
        "amount_cents": "1500",
        "customer_id": 4,
        "cost_center_id": 1,
        "invoice_date": "2026-05-01T10:30:00Z",
        "description": "  consulting  ",
    })

    assert patch == {
        "amount_cents": 1500,
        "customer_id": 4,
        "cost_center_id": 1,
        "invoice_date": date(2026, 5, 1),
        "description": "consulting",
    }


@pytest.mark.parametrize("value, message", [
    (12.5, "amount_cents must be an integer, not a decimal"),
    ("1e3", "amount_cents must be a plain integer (scientific notation not allowed)"),
    ("10.00", "amount_cents must be an integer (no decimals)"),
    (True, "amount_cents must be an integer"),
])
def test_rejects_non_integer_amounts(value, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_invoice({"amount_cents": value}, partial=True)
    assert str(excinfo.value) == message


def test_rejects_bad_date():
    with pytest.raises(ValidationError, match="invoice_date must be an ISO-8601 date"):
        validate_invoice({"invoice_date": "first of May"}, partial=True)


def test_rejects_null_for_required_column():
    with pytest.raises(ValidationError, match="customer_id cannot be null"):
        validate_invoice({"customer_id": None}, partial=True)


def test_partial_allows_missing_required_fields():
    assert validate_invoice({"description": None}, partial=True) == {"description": None}


def test_rejects_fields_of_other_types():
    with pytest.raises(ValidationError, match="Field not allowed: vendor_id"):
        validate_invoice({"vendor_id": 1}, partial=True)


def test_budget_name_length():
    policy = get_document_type("budget").policy

    with pytest.raises(ValidationError, match="name exceeds max length 120"):
        validate_payload(model=Budget, payload={"name": "x" * 121}, policy=policy, partial=True)


def test_policy_cannot_expose_server_fields():
    with pytest.raises(ValueError, match="Server-owned fields cannot be writable: status"):
        ModelValidationPolicy(writable_fields=frozenset({"amount_cents", "status"}))


def test_amount_upper_bound():
    enforce_rules_document({"amount_cents": MAX_AMOUNT_CENTS})
    with pytest.raises(ValidationError, match="amount_cents cannot exceed"):
        enforce_rules_document({"amount_cents": MAX_AMOUNT_CENTS + 1})


def test_period_rule_merges_current_values():
    current = SimpleNamespace(period_start=date(2026, 1, 1), period_end=date(2026, 3, 31))

    enforce_rules_document({"period_end": date(2026, 1, 2)}, current=current)
    with pytest.raises(ValidationError):
        enforce_rules_document({"period_start": date(2026, 4, 1)}, current=current)


def test_period_must_span_at_least_one_day():
    with pytest.raises(ValidationError, match="period_end must be after period_start"):
        enforce_rules_document({"period_start": date(2026, 1, 1), "period_end": date(2026, 1, 1)})


def test_required_fields_cannot_be_cleared_on_update():
    policy = get_document_type("production_expense").policy

    with pytest.raises(ValidationError, match="description cannot be blank"):
        validate_payload(model=ProductionExpense, payload={"description": "   "}, policy=policy, partial=True)
    with pytest.raises(ValidationError, match="cost_center_id cannot be null"):
        validate_payload(model=ProductionExpense, payload={"cost_center_id": None}, policy=policy, partial=True)


def test_optional_text_may_be_cleared():
    assert validate_invoice({"description": ""}, partial=True) == {"description": ""}


@pytest.mark.parametrize("ids, message", [
    (None, "ids must be a non-empty list"),
    ([], "ids must be a non-empty list"),
    ([1, "2"], "ids must be integers"),
    ([True], "ids must be integers"),
    ([[1]], "ids must be integers"),
    ([1, 2, 3, 4], "At most 3 ids can be checked at once"),
])
def test_id_list_rejects(ids, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_id_list(ids, max_ids=3, action="checked")
    assert str(excinfo.value) == message


def test_id_list_accepts_integers():
    assert validate_id_list([3, 1, 2], max_ids=3, action="checked") == [3, 1, 2]

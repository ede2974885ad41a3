from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from erp.time_utils import to_iso_date, to_utc_z


class DocumentMixin:
    """
    Columns shared by every document governed by the posting lifecycle.

    LIFECYCLE:
    1. draft: created by data entry, may be edited or deleted
    2. posted: final, immutable (see immutability_service)

    Amounts are stored in cents, as everywhere else in the backend.
    """
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)  # draft, posted

    amount_cents = db.Column(db.BigInteger, nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Analytic account the amount is booked against (cost centers live in master data)
    cost_center_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    posted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    posted_by = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.version_id}

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "cost_center_id": self.cost_center_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "posted_at": to_utc_z(self.posted_at),
            "posted_by": self.posted_by,
            "version_id": self.version_id,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} status={self.status!r}>"


class Invoice(DocumentMixin, db.Model):
    """Customer invoice."""
    __tablename__ = "invoices"

    customer_id = db.Column(db.Integer, nullable=False, index=True)
    invoice_date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "customer_id": self.customer_id,
            "invoice_date": to_iso_date(self.invoice_date),
        }


class PurchaseBill(DocumentMixin, db.Model):
    """Vendor bill received against a purchase."""
    __tablename__ = "purchase_bills"

    vendor_id = db.Column(db.Integer, nullable=False, index=True)
    bill_date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "vendor_id": self.vendor_id,
            "bill_date": to_iso_date(self.bill_date),
        }


class ProductionExpense(DocumentMixin, db.Model):
    __tablename__ = "production_expenses"

    expense_date = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "expense_date": to_iso_date(self.expense_date),
            "category": self.category,
        }


class Budget(DocumentMixin, db.Model):
    """
    Budget allocated to a cost center for a period.

    Once posted, the figures are what budget-vs-actual reports compare
    against, so they follow the same immutability rule as invoices.
    """
    __tablename__ = "budgets"

    name = db.Column(db.String(120), nullable=False)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "name": self.name,
            "period_start": to_iso_date(self.period_start),
            "period_end": to_iso_date(self.period_end),
        }


class SalesOrder(DocumentMixin, db.Model):
    __tablename__ = "sales_orders"

    customer_id = db.Column(db.Integer, nullable=False, index=True)
    order_date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "customer_id": self.customer_id,
            "order_date": to_iso_date(self.order_date),
        }


class PurchaseOrder(DocumentMixin, db.Model):
    __tablename__ = "purchase_orders"

    vendor_id = db.Column(db.Integer, nullable=False, index=True)
    order_date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            **self._base_dict(),
            "vendor_id": self.vendor_id,
            "order_date": to_iso_date(self.order_date),
        }

"""
Pytest fixtures for ERP backend tests.

Provides an in-memory database, a test client, a CLI runner and a small
document factory.
"""

from datetime import date

import pytest
from erp import create_app
from erp.extensions import db
from erp.services.document_service import get_document_type


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BULK_MAX_IDS': 5,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


DEFAULT_FIELDS = {
    "invoice": {"customer_id": 7, "invoice_date": date(2026, 3, 1)},
    "purchase_bill": {"vendor_id": 9, "bill_date": date(2026, 3, 2)},
    "production_expense": {"expense_date": date(2026, 3, 3), "category": "materials"},
    "budget": {"name": "Q1 Marketing", "period_start": date(2026, 1, 1), "period_end": date(2026, 3, 31)},
    "sales_order": {"customer_id": 7, "order_date": date(2026, 3, 4)},
    "purchase_order": {"vendor_id": 9, "order_date": date(2026, 3, 5)},
}


@pytest.fixture(scope='function')
def make_document(db_session):
    """
    Insert a document straight into the database, bypassing the API, so
    tests can start from any status.
    """
    def _make(key: str = "invoice", status: str = "draft", amount_cents: int = 10_000, **fields):
        doc_type = get_document_type(key)
        values = {**DEFAULT_FIELDS[doc_type.key], **fields}
        doc = doc_type.model(status=status, amount_cents=amount_cents, **values)
        db_session.add(doc)
        db_session.commit()
        return doc

    return _make

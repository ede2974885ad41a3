"""Document tables: invoices, purchase bills, production expenses, budgets, orders

Revision ID: 20261001_documents
Revises:
Create Date: 2026-10-01

Every table shares the draft/posted lifecycle columns (status, posted_at,
posted_by) and the optimistic-locking version_id.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_documents"
down_revision = None
branch_labels = None
depends_on = None


def _document_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cost_center_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("posted_by", sa.String(128), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
    ]


def _document_tables():
    """table name -> (type-specific columns, indexed party column)"""
    return {
        "invoices": (
            [sa.Column("customer_id", sa.Integer(), nullable=False), sa.Column("invoice_date", sa.Date(), nullable=False)],
            "customer_id",
        ),
        "purchase_bills": (
            [sa.Column("vendor_id", sa.Integer(), nullable=False), sa.Column("bill_date", sa.Date(), nullable=False)],
            "vendor_id",
        ),
        "production_expenses": (
            [sa.Column("expense_date", sa.Date(), nullable=False), sa.Column("category", sa.String(64), nullable=True)],
            None,
        ),
        "budgets": (
            [
                sa.Column("name", sa.String(120), nullable=False),
                sa.Column("period_start", sa.Date(), nullable=False),
                sa.Column("period_end", sa.Date(), nullable=False),
            ],
            None,
        ),
        "sales_orders": (
            [sa.Column("customer_id", sa.Integer(), nullable=False), sa.Column("order_date", sa.Date(), nullable=False)],
            "customer_id",
        ),
        "purchase_orders": (
            [sa.Column("vendor_id", sa.Integer(), nullable=False), sa.Column("order_date", sa.Date(), nullable=False)],
            "vendor_id",
        ),
    }


def upgrade():
    for table_name, (extra_columns, party_column) in _document_tables().items():
        op.create_table(
            table_name,
            *_document_columns(),
            *extra_columns,
            sa.PrimaryKeyConstraint("id", name=f"pk_{table_name}"),
            sqlite_autoincrement=True,
        )

        with op.batch_alter_table(table_name, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table_name}_status", ["status"], unique=False)
            batch_op.create_index(f"ix_{table_name}_cost_center_id", ["cost_center_id"], unique=False)
            if party_column:
                batch_op.create_index(f"ix_{table_name}_{party_column}", [party_column], unique=False)


def downgrade():
    for table_name in reversed(list(_document_tables())):
        op.drop_table(table_name)

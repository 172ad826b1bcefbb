"""transaction category key and 64-bit amounts

Revision ID: 202610170900
Revises: 202610010900
Create Date: 2026-10-17 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610170900"
down_revision = "202610010900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("transactions") as batch_op:
        batch_op.add_column(sa.Column("category_key", sa.String(length=100)))
        batch_op.alter_column(
            "amount_cents", existing_type=sa.Integer(), type_=sa.BigInteger()
        )

    # Keys are folded in Python; SQL lower() only folds ASCII on SQLite.
    conn = op.get_bind()
    transactions = sa.table(
        "transactions",
        sa.column("id", sa.Integer()),
        sa.column("category", sa.String()),
        sa.column("category_key", sa.String()),
    )
    rows = conn.execute(sa.select(transactions.c.id, transactions.c.category)).all()
    for txn_id, category in rows:
        conn.execute(
            transactions.update()
            .where(transactions.c.id == txn_id)
            .values(category_key=category.strip().lower())
        )

    with op.batch_alter_table("transactions") as batch_op:
        batch_op.alter_column(
            "category_key", existing_type=sa.String(length=100), nullable=False
        )
        batch_op.create_index(
            "ix_transactions_owner_category", ["owner_id", "category_key"]
        )

    with op.batch_alter_table("budgets") as batch_op:
        batch_op.alter_column(
            "limit_cents", existing_type=sa.Integer(), type_=sa.BigInteger()
        )


def downgrade() -> None:
    with op.batch_alter_table("budgets") as batch_op:
        batch_op.alter_column(
            "limit_cents", existing_type=sa.BigInteger(), type_=sa.Integer()
        )
    with op.batch_alter_table("transactions") as batch_op:
        batch_op.drop_index("ix_transactions_owner_category")
        batch_op.drop_column("category_key")
        batch_op.alter_column(
            "amount_cents", existing_type=sa.BigInteger(), type_=sa.Integer()
        )

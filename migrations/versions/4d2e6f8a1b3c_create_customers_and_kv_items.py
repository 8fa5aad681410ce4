"""create customers and kv_items

Revision ID: 4d2e6f8a1b3c
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "4d2e6f8a1b3c"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        return any(ix.get("name") == name for ix in insp.get_indexes(table))

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("custno", sa.Text(), nullable=False),
            sa.Column("custname", sa.Text(), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("payterm", sa.Text(), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.UniqueConstraint("custno", name="uq_customers_custno"),
        )
    if "customers" not in existing_tables or not _has_index("customers", "idx_customers_custname"):
        op.create_index("idx_customers_custname", "customers", ["custname"])

    if "kv_items" not in existing_tables:
        op.create_table(
            "kv_items",
            sa.Column("key", sa.String(length=255), primary_key=True, nullable=False),
            sa.Column("value", sa.Text(), nullable=False),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
        )


def downgrade() -> None:
    op.drop_table("kv_items")
    op.drop_index("idx_customers_custname", table_name="customers")
    op.drop_table("customers")

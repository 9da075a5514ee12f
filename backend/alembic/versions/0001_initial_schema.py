"""Initial schema: systems, products, bars, tables, relations, orders.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("user_password", sa.String(length=255), nullable=False),
        sa.Column("admin_password", sa.String(length=255), nullable=False),
        sa.Column("live", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_system_settings_id", "system_settings", ["id"])
    op.create_index("ix_system_settings_live", "system_settings", ["live"])

    op.create_table(
        "product",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("system_id", sa.Integer(), sa.ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("product_price", sa.Float(), nullable=False),
        sa.Column("product_type", sa.Enum("DRINK", "FOOD", name="product_type"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_index("ix_product_id", "product", ["id"])
    op.create_index("ix_product_system_id", "product", ["system_id"])
    op.create_index("idx_product_system_type", "product", ["system_id", "product_type"])

    op.create_table(
        "bar",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("system_id", sa.Integer(), sa.ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bar_number", sa.Integer(), nullable=False),
        sa.Column("bar_name", sa.String(length=255), nullable=False),
        sa.Column("bar_type", sa.Enum("BAR", "KITCHEN", name="bar_type"), nullable=False),
    )
    op.create_index("ix_bar_id", "bar", ["id"])
    op.create_index("ix_bar_system_id", "bar", ["system_id"])

    op.create_table(
        "table",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("system_id", sa.Integer(), sa.ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("system_id", "table_number", name="uq_table_system_number"),
    )
    op.create_index("ix_table_id", "table", ["id"])
    op.create_index("ix_table_system_id", "table", ["system_id"])

    op.create_table(
        "bar_table_relation",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("system_id", sa.Integer(), sa.ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("table.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bar_id", sa.Integer(), sa.ForeignKey("bar.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_bar_table_relation_id", "bar_table_relation", ["id"])
    op.create_index("ix_bar_table_relation_system_id", "bar_table_relation", ["system_id"])
    op.create_index("ix_bar_table_relation_table_id", "bar_table_relation", ["table_id"])
    op.create_index("ix_bar_table_relation_bar_id", "bar_table_relation", ["bar_id"])

    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("system_id", sa.Integer(), sa.ForeignKey("system_settings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("table.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bar_id", sa.Integer(), sa.ForeignKey("bar.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="order_status"),
            nullable=False,
        ),
        sa.Column("drinks", sa.JSON(), nullable=False),
        sa.Column("foods", sa.JSON(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_order_id", "order", ["id"])
    op.create_index("ix_order_system_id", "order", ["system_id"])
    op.create_index("ix_order_table_id", "order", ["table_id"])
    op.create_index("ix_order_bar_id", "order", ["bar_id"])
    op.create_index("ix_order_created_at", "order", ["created_at"])
    op.create_index("idx_order_system_status", "order", ["system_id", "status"])
    op.create_index("idx_order_bar_status", "order", ["bar_id", "status"])


def downgrade() -> None:
    op.drop_table("order")
    op.drop_table("bar_table_relation")
    op.drop_table("table")
    op.drop_table("bar")
    op.drop_table("product")
    op.drop_table("system_settings")

"""add_product_shipping

Revision ID: 8c4b7e0d2f15
Revises: 3e8d1f2a6b90
Create Date: 2026-10-14
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c4b7e0d2f15"
down_revision: Union[str, Sequence[str], None] = "3e8d1f2a6b90"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "product_shipping",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=True),
        sa.Column("avasam_sku", sa.String(length=100), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.Column("service_name", sa.String(length=200), nullable=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=True),
        sa.Column("warehouse_name", sa.String(length=200), nullable=True),
        sa.Column("shipping_cost", sa.Float(), nullable=True),
        sa.Column("shipping_cost_inc_vat", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("dispatch_days", sa.Integer(), nullable=True),
        sa.Column("delivery_min_days", sa.Integer(), nullable=True),
        sa.Column("delivery_max_days", sa.Integer(), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_product_shipping_product_id"), "product_shipping", ["product_id"], unique=False)
    # Upsert target: one quote per SKU.
    op.create_index(op.f("ix_product_shipping_avasam_sku"), "product_shipping", ["avasam_sku"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_product_shipping_avasam_sku"), table_name="product_shipping")
    op.drop_index(op.f("ix_product_shipping_product_id"), table_name="product_shipping")
    op.drop_table("product_shipping")

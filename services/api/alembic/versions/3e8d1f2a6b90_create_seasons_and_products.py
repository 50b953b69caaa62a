"""create_seasons_and_products

Revision ID: 3e8d1f2a6b90
Revises:
Create Date: 2026-10-12
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3e8d1f2a6b90"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "seasons",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("primary_color", sa.String(length=20), nullable=True),
        sa.Column("accent_color", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_seasons_slug"), "seasons", ["slug"], unique=True)
    op.create_index(op.f("ix_seasons_start_date"), "seasons", ["start_date"], unique=False)
    op.create_index(op.f("ix_seasons_end_date"), "seasons", ["end_date"], unique=False)
    op.create_index(op.f("ix_seasons_is_active"), "seasons", ["is_active"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("avasam_sku", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("retail_price", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_products_avasam_sku"), "products", ["avasam_sku"], unique=False)

    op.create_table(
        "product_seasons",
        sa.Column("season_id", sa.String(length=36), nullable=False),
        sa.Column("product_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("season_id", "product_id"),
    )


def downgrade() -> None:
    op.drop_table("product_seasons")
    op.drop_index(op.f("ix_products_avasam_sku"), table_name="products")
    op.drop_table("products")
    op.drop_index(op.f("ix_seasons_is_active"), table_name="seasons")
    op.drop_index(op.f("ix_seasons_end_date"), table_name="seasons")
    op.drop_index(op.f("ix_seasons_start_date"), table_name="seasons")
    op.drop_index(op.f("ix_seasons_slug"), table_name="seasons")
    op.drop_table("seasons")

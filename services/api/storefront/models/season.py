"""Season model.

A Season is a time-boxed catalogue configuration: the products linked to it
are shown while now falls inside [start_date, end_date] and is_active is set.

Seasons are edited outside this service; the API only reads them.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base


def generate_season_id() -> str:
    """Generate unique season ID."""
    return str(uuid4())


# Many-to-many link between seasons and products.
product_seasons = Table(
    "product_seasons",
    Base.metadata,
    Column("season_id", String(36), ForeignKey("seasons.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)


class Season(Base):
    """Seasonal catalogue configuration."""

    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_season_id)

    # URL-friendly key (e.g., "winter-warmers")
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))

    # Active window
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    is_active: Mapped[bool] = mapped_column(default=True, index=True)

    # Theme colours (hex strings, e.g. "#6E2F8A")
    primary_color: Mapped[str | None] = mapped_column(String(20))
    accent_color: Mapped[str | None] = mapped_column(String(20))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Season {self.slug}>"

"""Product model.

Local product record. The supplier SKU joins it to live Avasam data; the
other columns are optional display overrides and a fallback retail price.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base


def generate_product_id() -> str:
    """Generate unique product ID."""
    return str(uuid4())


class Product(Base):
    """Curated product linked to a supplier SKU."""

    __tablename__ = "products"

    # Public product ID (used in URLs)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_product_id)

    # Supplier SKU
    avasam_sku: Mapped[str] = mapped_column(String(100), index=True)

    # Display overrides
    name: Mapped[str] = mapped_column(String(300), default="")
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text)

    # Fallback pricing (used when the supplier has no price for the SKU)
    retail_price: Mapped[float | None] = mapped_column()
    currency: Mapped[str | None] = mapped_column(String(3))

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
        return f"<Product {self.avasam_sku}>"

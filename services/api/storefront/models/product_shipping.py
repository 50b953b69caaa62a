"""ProductShipping model.

One row per supplier SKU holding the best shipping option we last saw for it.
Rows are upserted on avasam_sku and never deleted by the API.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.stores.postgres import Base


class ProductShipping(Base):
    """Cached shipping quote for a supplier SKU."""

    __tablename__ = "product_shipping"

    id: Mapped[int] = mapped_column(primary_key=True)

    product_id: Mapped[str | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"),
        index=True,
    )
    avasam_sku: Mapped[str] = mapped_column(String(100), unique=True, index=True)

    # Chosen service / warehouse
    service_id: Mapped[int | None] = mapped_column()
    service_name: Mapped[str | None] = mapped_column(String(200))
    warehouse_id: Mapped[int | None] = mapped_column()
    warehouse_name: Mapped[str | None] = mapped_column(String(200))

    # Cost
    shipping_cost: Mapped[float | None] = mapped_column()
    shipping_cost_inc_vat: Mapped[float | None] = mapped_column()
    currency: Mapped[str | None] = mapped_column(String(3))

    # Timing (days)
    dispatch_days: Mapped[int | None] = mapped_column()
    delivery_min_days: Mapped[int | None] = mapped_column()
    delivery_max_days: Mapped[int | None] = mapped_column()

    # Supplier payload the option was built from
    raw: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True))

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductShipping {self.avasam_sku} {self.service_name}>"

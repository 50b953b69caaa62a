"""Schemas for seasons (/api/seasons/current)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SeasonOut(BaseModel):
    """Season as exposed to the storefront."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    primary_color: str | None = None
    accent_color: str | None = None


class CurrentSeasonResponse(BaseModel):
    """Response payload for GET /api/seasons/current."""

    season: SeasonOut | None = None

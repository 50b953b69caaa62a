"""Season endpoints.

GET /api/seasons/current - The season shown right now (or null).
"""

from fastapi import APIRouter

from storefront.schemas import CurrentSeasonResponse
from storefront.services.seasons import get_current_season

router = APIRouter()


@router.get("/current", response_model=CurrentSeasonResponse)
async def get_season() -> CurrentSeasonResponse:
    """Get the currently active season, null when none is configured."""
    season = await get_current_season()
    return CurrentSeasonResponse(season=season)

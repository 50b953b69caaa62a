"""Current season lookup.

A season is current when start_date <= now <= end_date and is_active is set.
Overlapping active seasons are allowed by the data model; the most recently
started one wins and the overlap is logged so it can be fixed upstream.

Store failures are logged and reported as "no active season" (None).
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from storefront.models import Season
from storefront.schemas.season import SeasonOut
from storefront.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


async def get_current_season(now: datetime | None = None) -> SeasonOut | None:
    """Get the season active at `now` (defaults to current UTC time).

    Returns:
        The current season, or None when none matches or the query fails.
    """
    now = now or datetime.now(timezone.utc)

    try:
        async with get_session() as session:
            result = await session.execute(
                select(Season)
                .where(Season.start_date <= now)
                .where(Season.end_date >= now)
                .where(Season.is_active.is_(True))
                .order_by(Season.start_date.desc())
                .limit(2)
            )
            seasons = result.scalars().all()
    except (SQLAlchemyError, RuntimeError, OSError) as e:
        logger.error(f"Error fetching current season: {e}")
        return None

    if not seasons:
        return None

    if len(seasons) > 1:
        logger.warning(
            f"Overlapping active seasons: using {seasons[0].slug}, also matching {seasons[1].slug}"
        )

    return SeasonOut.model_validate(seasons[0])

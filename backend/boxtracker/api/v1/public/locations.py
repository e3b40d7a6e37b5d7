from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_services
from boxtracker.core.config import settings
from boxtracker.db.session import get_db
from boxtracker.services.container import Services

router = APIRouter()


@router.get("/locations-cache")
async def get_locations_cache(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """
    Raw locations cache blob. Generated on first read if it does not exist yet.
    """
    content = await services.locations_cache.read_or_generate(db)
    return Response(
        content=content,
        media_type="application/json",
        headers={
            "Cache-Control": f"public, max-age={settings.LOCATIONS_CACHE_MAX_AGE}",
            "Access-Control-Allow-Origin": "*",
        },
    )

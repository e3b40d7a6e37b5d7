"""
Volunteer-triggered jobs and autocomplete.
Same operations the scheduler and the operator triggers run, gated on an
authorized volunteer.
"""

from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_current_caller, get_services
from boxtracker.core.security import CallerIdentity
from boxtracker.db.session import get_db
from boxtracker.schemas.jobs import CacheRefreshResponse, SuggestionResponse, SyncResponse
from boxtracker.services.audit_service import AuditAction
from boxtracker.services.container import Services
from boxtracker.services.suggestion_sync import search_suggestions

router = APIRouter()


@router.post("/jobs/sync-location-suggestions", response_model=SyncResponse)
async def sync_location_suggestions(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    decision = await services.gate.require_authorized(db, caller)
    result = await services.suggestion_sync.sync(db)
    await services.audit.log(AuditAction.SYNC_LOCATION_SUGGESTIONS, decision.caller, {"count": result.synced})
    return result


@router.post("/jobs/refresh-locations-cache", response_model=CacheRefreshResponse)
async def refresh_locations_cache(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    decision = await services.gate.require_authorized(db, caller)
    result = await services.locations_cache.generate(db)
    await services.audit.log(AuditAction.REFRESH_LOCATIONS_CACHE, decision.caller, {"count": result.count})
    return result


@router.get("/suggestions", response_model=List[SuggestionResponse])
async def get_suggestions(
    q: str = Query(..., description="Prefix to search for"),
    field: Literal["label", "address"] = "address",
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """
    Autocomplete for the box setup form.
    """
    await services.gate.require_authorized(db, caller)
    return await search_suggestions(db, field, q, limit=limit)

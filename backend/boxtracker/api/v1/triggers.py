"""
Unauthenticated operator triggers.

Meant for curl from ops scripts and deploy hooks. Both jobs are idempotent
(merge-upserts and full-replacement caches), so an extra call only costs
redundant work.
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_services
from boxtracker.db.session import get_db
from boxtracker.schemas.jobs import CacheRefreshResponse, SyncResponse
from boxtracker.services.container import Services

logger = structlog.get_logger()

router = APIRouter()

MAX_DELAY_SECONDS = 300


@router.get("/sync-location-suggestions", response_model=SyncResponse)
async def trigger_suggestion_sync(
    delay_seconds: int = Query(0, alias="delaySeconds", ge=0, le=MAX_DELAY_SECONDS),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """
    Sync the spreadsheet into location suggestions.
    `delaySeconds` waits before reading, e.g. to let a just-edited sheet settle.
    """
    if delay_seconds:
        logger.info("suggestion_sync_delayed", delay_seconds=delay_seconds)
        await asyncio.sleep(delay_seconds)
    return await services.suggestion_sync.sync(db)


@router.get("/refresh-locations-cache", response_model=CacheRefreshResponse)
async def trigger_cache_refresh(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await services.locations_cache.generate(db)

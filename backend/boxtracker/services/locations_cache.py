"""
Locations cache.

A single JSON blob listing every active box, regenerated wholesale so the
public map can load without hitting the database. Consumers treat it as a
cache with max-age LOCATIONS_CACHE_MAX_AGE, not as the source of truth.
"""

import json
from typing import Any, Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.exceptions import InternalError
from boxtracker.core.time_utils import format_utc, get_utc_now
from boxtracker.models.box import Box, BoxStatus
from boxtracker.schemas.jobs import CacheRefreshResponse
from boxtracker.services.storage_service import StorageService

logger = structlog.get_logger()

CACHE_SCHEMA_VERSION = 1


def project_box(box: Box) -> Dict[str, Any]:
    """Public fields only; internal bookkeeping and contact details stay out."""
    return {
        "id": box.box_id,
        "label": box.label,
        "address": box.address,
        "city": box.city,
        "state": box.state,
        "lat": box.lat,
        "lon": box.lon,
        "boxes": box.boxes,
        "volunteer": box.volunteer,
        "status": BoxStatus(box.status).value,
        "created": format_utc(box.created_at),
    }


class LocationsCacheBuilder:

    def __init__(self, storage: StorageService, path: str, max_age: int = 3600):
        self.storage = storage
        self.path = path
        self.max_age = max_age

    async def build_envelope(self, session: AsyncSession) -> Dict[str, Any]:
        stmt = select(Box).where(Box.status == BoxStatus.ACTIVE).order_by(Box.box_id)
        result = await session.execute(stmt)
        locations: List[Dict[str, Any]] = [project_box(box) for box in result.scalars().all()]
        return {
            "version": CACHE_SCHEMA_VERSION,
            "generatedAt": format_utc(get_utc_now()),
            "count": len(locations),
            "locations": locations,
        }

    async def generate(self, session: AsyncSession) -> CacheRefreshResponse:
        response, _ = await self._generate(session)
        return response

    async def _generate(self, session: AsyncSession):
        try:
            envelope = await self.build_envelope(session)
        except SQLAlchemyError as e:
            logger.error("locations_cache_read_failed", error=str(e))
            raise InternalError("Failed to read locations.") from e

        content = json.dumps(envelope, separators=(",", ":")).encode("utf-8")
        try:
            url = await self.storage.write(
                self.path,
                content,
                content_type="application/json",
                cache_control=f"public, max-age={self.max_age}",
            )
        except (OSError, ValueError) as e:
            logger.error("locations_cache_write_failed", path=self.path, error=str(e))
            raise InternalError("Failed to write locations cache.") from e

        logger.info("locations_cache_generated", count=envelope["count"], path=self.path, bytes=len(content))
        response = CacheRefreshResponse(
            success=True,
            count=envelope["count"],
            message=f"Locations cache refreshed with {envelope['count']} locations.",
            url=url,
        )
        return response, content

    async def read_or_generate(self, session: AsyncSession) -> bytes:
        """
        Serve the cached blob, building it first if it has never been generated.
        """
        try:
            content = await self.storage.read(self.path)
        except OSError as e:
            logger.warning("locations_cache_read_blob_failed", path=self.path, error=str(e))
            content = None
        if content is not None:
            return content

        logger.info("locations_cache_missing", path=self.path)
        _, content = await self._generate(session)
        return content

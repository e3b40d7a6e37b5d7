from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float
    formatted_address: Optional[str] = None


class Geocoder:
    """
    Google Geocoding API client.

    geocode() is best-effort: a missing key, transport error, provider error
    or zero results all come back as None and are logged, never raised.
    """

    def __init__(self, client: httpx.AsyncClient, api_key: str, url: str, timeout: float = 10.0):
        self.client = client
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    async def geocode(self, address: str) -> Optional[GeoPoint]:
        if not self.api_key:
            logger.warning("geocoding_skipped", reason="missing_api_key", address=address)
            return None

        try:
            resp = await self.client.get(
                self.url,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("geocoding_failed", address=address, error=str(e))
            return None

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.warning("geocoding_no_result", address=address, status=status)
            return None

        try:
            location = results[0]["geometry"]["location"]
            point = GeoPoint(
                lat=float(location["lat"]),
                lon=float(location["lng"]),
                formatted_address=results[0].get("formatted_address"),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("geocoding_bad_payload", address=address, error=str(e))
            return None

        logger.info("geocoding_ok", address=address, lat=point.lat, lon=point.lon)
        return point


def format_full_address(address: str, city: Optional[str], state: Optional[str]) -> str:
    parts = [p.strip() for p in (address, city or "", state or "") if p and p.strip()]
    return ", ".join(parts)

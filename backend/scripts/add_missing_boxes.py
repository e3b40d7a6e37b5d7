"""
Add boxes for location suggestions that were never provisioned.

Usage (from backend/):
    python -m scripts.add_missing_boxes [--dry-run]

Needs DATABASE_URL and GEOCODING_API_KEY (backend_config.env or environment).
"""

import argparse
import asyncio
import sys

import httpx
import structlog

from boxtracker.core.config import settings
from boxtracker.core.logging import setup_logging
from boxtracker.db.session import build_engine, build_sessionmaker
from boxtracker.services.gap_filler import GapFiller
from boxtracker.services.geocoding import Geocoder

logger = structlog.get_logger()


async def main(dry_run: bool = False) -> int:
    engine = build_engine(settings.DATABASE_URL)
    sessionmaker = build_sessionmaker(engine)
    try:
        async with httpx.AsyncClient(timeout=settings.OUTBOUND_TIMEOUT_SECONDS) as client:
            geocoder = Geocoder(client, settings.GEOCODING_API_KEY, settings.GEOCODING_URL)
            filler = GapFiller(sessionmaker, geocoder)
            report = await filler.run(dry_run=dry_run)
    finally:
        await engine.dispose()

    print("\nComplete!" if not dry_run else "\nDry run, nothing written.")
    print(report.summary())
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--dry-run", action="store_true", help="only list how many boxes are missing")
    args = parser.parse_args()

    setup_logging()
    if not settings.GEOCODING_API_KEY and not args.dry_run:
        print("GEOCODING_API_KEY is not set; every candidate would be skipped.")
        sys.exit(1)
    sys.exit(asyncio.run(main(dry_run=args.dry_run)))

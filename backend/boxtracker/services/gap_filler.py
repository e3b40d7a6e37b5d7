"""
Gap filler: create boxes for spreadsheet suggestions that were never provisioned.

Offline operator tool. One bad candidate never stops the batch: geocoding
failures are skipped, write failures are counted, and the run always ends
with a tally.
"""

import asyncio
import re
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boxtracker.core.time_utils import get_utc_now
from boxtracker.models.box import Box, BoxStatus
from boxtracker.models.report import Report, ReportStatus, ReportType
from boxtracker.models.suggestion import LocationSuggestion
from boxtracker.services.geocoding import Geocoder, format_full_address

logger = structlog.get_logger()

SYSTEM_VOLUNTEER = "system"
DEFAULT_STATE = "GA"

_BASE36 = string.digits + string.ascii_lowercase


def normalize(value: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (value or "").strip().lower())


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_box_id(label: Optional[str], now_ms: Optional[int] = None) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (label or "").lower())[:20]
    stamp = to_base36(now_ms if now_ms is not None else int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{slug}-{stamp}{suffix}".upper()


@dataclass
class GapFillReport:
    existing: int = 0
    suggestions: int = 0
    candidates: int = 0
    added: int = 0
    failed: int = 0
    skipped: int = 0
    added_ids: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Existing boxes: {self.existing}\n"
            f"Suggestions: {self.suggestions}\n"
            f"Missing boxes: {self.candidates}\n"
            f"Successfully added: {self.added}\n"
            f"Skipped (geocoding failed): {self.skipped}\n"
            f"Failed: {self.failed}\n"
            f"Total boxes now: {self.existing + self.added}"
        )


class _Matcher:
    def __init__(self, boxes: Iterable[Box]):
        self.labels: Set[str] = set()
        self.addresses: Set[str] = set()
        for box in boxes:
            self.add(box.label, box.address)

    def add(self, label: Optional[str], address: Optional[str]) -> None:
        if normalize(label):
            self.labels.add(normalize(label))
        if normalize(address):
            self.addresses.add(normalize(address))

    def matches(self, label: Optional[str], address: Optional[str]) -> bool:
        return normalize(label) in self.labels or normalize(address) in self.addresses


class GapFiller:

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        geocoder: Geocoder,
        pause_seconds: float = 0.2,
    ):
        self.sessionmaker = sessionmaker
        self.geocoder = geocoder
        self.pause_seconds = pause_seconds

    async def _load(self):
        async with self.sessionmaker() as session:
            boxes = (await session.execute(select(Box))).scalars().all()
            suggestions = (await session.execute(
                select(LocationSuggestion).order_by(LocationSuggestion.row_number)
            )).scalars().all()
        return list(boxes), list(suggestions)

    def find_missing(self, boxes: List[Box], suggestions: List[LocationSuggestion]) -> List[LocationSuggestion]:
        matcher = _Matcher(boxes)
        missing = []
        for suggestion in suggestions:
            if not normalize(suggestion.address):
                continue
            if matcher.matches(suggestion.label, suggestion.address):
                continue
            missing.append(suggestion)
            # Two suggestions for the same place should only produce one box
            matcher.add(suggestion.label, suggestion.address)
        return missing

    async def run(self, dry_run: bool = False) -> GapFillReport:
        boxes, suggestions = await self._load()
        report = GapFillReport(existing=len(boxes), suggestions=len(suggestions))

        missing = self.find_missing(boxes, suggestions)
        report.candidates = len(missing)
        logger.info("gap_fill_start", existing=report.existing, suggestions=report.suggestions,
                    candidates=report.candidates, dry_run=dry_run)
        if dry_run or not missing:
            return report

        for suggestion in missing:
            await self._add_one(suggestion, report)

        logger.info("gap_fill_complete", added=report.added, skipped=report.skipped, failed=report.failed)
        return report

    async def _add_one(self, suggestion: LocationSuggestion, report: GapFillReport) -> None:
        box_id = generate_box_id(suggestion.label)
        state = suggestion.state or DEFAULT_STATE
        full_address = format_full_address(suggestion.address, suggestion.city, state)
        log = logger.bind(box_id=box_id, label=suggestion.label)

        try:
            point = await self.geocoder.geocode(full_address)
        except Exception as e:
            log.error("gap_fill_geocode_crashed", error=str(e))
            point = None
        if point is None:
            log.warning("gap_fill_skipped", reason="geocoding_failed", address=full_address)
            report.skipped += 1
            return

        now = get_utc_now()
        box = Box(
            box_id=box_id,
            label=suggestion.label or "Unnamed Location",
            address=suggestion.address,
            city=suggestion.city or "",
            state=state,
            lat=point.lat,
            lon=point.lon,
            volunteer=SYSTEM_VOLUNTEER,
            provisioned_by=SYSTEM_VOLUNTEER,
            contact_name=suggestion.contact_name or "",
            contact_email=suggestion.contact_email or "",
            contact_phone=suggestion.contact_phone or "",
            status=BoxStatus.ACTIVE,
            created_at=now,
        )
        registered = Report(
            box_id=box_id,
            report_type=ReportType.BOX_REGISTERED,
            status=ReportStatus.CLEARED,
            description=f"Box registered by {SYSTEM_VOLUNTEER}.",
            reporter_id=SYSTEM_VOLUNTEER,
            reporter_name=SYSTEM_VOLUNTEER,
            label=box.label,
            address=box.address,
            city=box.city,
            state=box.state,
            volunteer=box.volunteer,
            created_at=now,
        )
        try:
            async with self.sessionmaker() as session:
                session.add(box)
                session.add(registered)
                await session.commit()
        except SQLAlchemyError as e:
            log.error("gap_fill_write_failed", error=str(e))
            report.failed += 1
            return

        log.info("gap_fill_added", lat=point.lat, lon=point.lon)
        report.added += 1
        report.added_ids.append(box_id)
        if self.pause_seconds:
            # Stay under the geocoding provider's rate limit
            await asyncio.sleep(self.pause_seconds)

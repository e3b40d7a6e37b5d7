"""
Location suggestion sync.

Mirrors the volunteer spreadsheet into location_suggestions. Ids are derived
from the row content (label + address), so re-running the sync updates the
same rows instead of adding new ones. Changing suggestion_id() would orphan
every previously synced row.
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.exceptions import InternalError
from boxtracker.core.time_utils import get_utc_now
from boxtracker.models.suggestion import LocationSuggestion
from boxtracker.schemas.jobs import SyncResponse
from boxtracker.services.sheets import SpreadsheetSource

logger = structlog.get_logger()

# Spreadsheet column order
COLUMNS = ("label", "address", "city", "state", "contact_name", "contact_email", "contact_phone")

SUGGESTION_ID_LENGTH = 40
MIN_SEARCH_LENGTH = 3
SEARCH_FIELDS = {"label": "search_label", "address": "search_address"}


@dataclass(frozen=True)
class SuggestionRow:
    label: str
    address: str
    city: str
    state: str
    contact_name: str
    contact_email: str
    contact_phone: str
    row_number: int

    @property
    def id(self) -> str:
        return suggestion_id(self.label, self.address)


def suggestion_id(label: str, address: str) -> str:
    digest = hashlib.sha256(f"{label}{address}".encode("utf-8")).digest()
    encoded = base64.b64encode(digest).decode("ascii")
    for ch in "/+=":
        encoded = encoded.replace(ch, "")
    return encoded[:SUGGESTION_ID_LENGTH]


def normalize_for_search(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def parse_rows(rows: Sequence[Sequence[str]]) -> List[SuggestionRow]:
    """
    Turn raw sheet rows (header first) into suggestion rows.
    Cells are trimmed; rows without a label or address are dropped.
    """
    parsed = []
    for index, raw in enumerate(rows[1:], start=2):
        cells = [str(c).strip() if c is not None else "" for c in raw]
        cells += [""] * (len(COLUMNS) - len(cells))
        values = dict(zip(COLUMNS, cells))
        if not values["label"] or not values["address"]:
            continue
        parsed.append(SuggestionRow(row_number=index, **values))
    return parsed


class SuggestionSyncService:

    def __init__(self, source: SpreadsheetSource):
        self.source = source

    async def sync(self, session: AsyncSession) -> SyncResponse:
        # A read failure aborts before anything is written
        raw_rows = await self.source.fetch_rows()
        rows = parse_rows(raw_rows)

        if not rows:
            logger.info("suggestion_sync_empty", raw_rows=len(raw_rows))
            return SyncResponse(success=True, synced=0, message="No rows found in spreadsheet.")

        # Duplicate label+address rows collapse onto one id; the last one wins
        by_id: Dict[str, SuggestionRow] = {}
        for row in rows:
            by_id[row.id] = row

        now = get_utc_now()
        try:
            result = await session.execute(
                select(LocationSuggestion).where(LocationSuggestion.id.in_(list(by_id)))
            )
            existing = {s.id: s for s in result.scalars().all()}

            created = 0
            for doc_id, row in by_id.items():
                suggestion = existing.get(doc_id)
                if suggestion is None:
                    suggestion = LocationSuggestion(id=doc_id)
                    session.add(suggestion)
                    created += 1
                # Assigning an unchanged value does not produce a column write
                suggestion.label = row.label
                suggestion.address = row.address
                suggestion.city = row.city
                suggestion.state = row.state
                suggestion.contact_name = row.contact_name
                suggestion.contact_email = row.contact_email
                suggestion.contact_phone = row.contact_phone
                suggestion.search_label = normalize_for_search(row.label)
                suggestion.search_address = normalize_for_search(row.address)
                suggestion.row_number = row.row_number
                suggestion.synced_at = now

            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("suggestion_sync_write_failed", error=str(e))
            raise InternalError("Failed to save location suggestions.") from e

        synced = len(by_id)
        logger.info("suggestion_sync_complete", synced=synced, created=created, rows=len(rows))
        return SyncResponse(
            success=True,
            synced=synced,
            message=f"Synced {synced} location suggestions.",
        )


async def search_suggestions(
    session: AsyncSession,
    field: str,
    prefix: str,
    limit: int = 10,
) -> List[LocationSuggestion]:
    """
    Prefix search over the lower-cased label or address projection.
    """
    column = getattr(LocationSuggestion, SEARCH_FIELDS[field])
    term = normalize_for_search(prefix)
    if len(term) < MIN_SEARCH_LENGTH:
        return []
    stmt = (
        select(LocationSuggestion)
        .where(column >= term, column <= term + "\uf8ff")
        .order_by(column)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())

import pytest
from sqlalchemy import func, select

from boxtracker.core.exceptions import InternalError
from boxtracker.models.suggestion import LocationSuggestion
from boxtracker.services.sheets import SpreadsheetSource
from boxtracker.services.suggestion_sync import (
    SUGGESTION_ID_LENGTH,
    SuggestionSyncService,
    parse_rows,
    search_suggestions,
    suggestion_id,
)

HEADER = ["Label", "Address", "City", "State", "Contact Name", "Contact Email", "Contact Phone"]

ROWS = [
    HEADER,
    ["Hardware Store", "1 Main St", "Atlanta", "GA", "Sam", "sam@example.org", "555-0100"],
    ["  Pizza Place ", "22 Peach Ave", "Decatur"],
    ["", "99 No Label Rd", "Atlanta", "GA"],
    ["Library"],
]


@pytest.fixture
def service(sheet_source):
    return SuggestionSyncService(sheet_source)


async def suggestion_count(session):
    return (await session.execute(select(func.count()).select_from(LocationSuggestion))).scalar_one()


def test_suggestion_id_is_stable_and_url_safe():
    first = suggestion_id("Hardware Store", "1 Main St")
    assert first == suggestion_id("Hardware Store", "1 Main St")
    assert first != suggestion_id("Hardware Store", "2 Main St")
    assert len(first) <= SUGGESTION_ID_LENGTH
    assert not set("/+=") & set(first)


def test_parse_rows_skips_header_and_incomplete_rows():
    rows = parse_rows(ROWS)

    assert [r.label for r in rows] == ["Hardware Store", "Pizza Place"]
    assert rows[0].row_number == 2
    assert rows[1].row_number == 3
    assert rows[1].state == ""
    assert rows[1].contact_phone == ""


async def test_sync_writes_suggestions(session, service, providers):
    providers.sheet_rows = ROWS

    result = await service.sync(session)

    assert result.success is True
    assert result.synced == 2
    assert result.message == "Synced 2 location suggestions."

    stored = await session.get(LocationSuggestion, suggestion_id("Hardware Store", "1 Main St"))
    assert stored.contact_email == "sam@example.org"
    assert stored.search_label == "hardware store"
    assert stored.search_address == "1 main st"

    (request,) = providers.sent_to("sheets.test")
    assert request.url.path == "/v4/spreadsheets/sheet-123/values/Sheet1!A:G"
    assert request.url.params["key"] == "sheet-key"


async def test_resync_is_idempotent(session, service, providers):
    providers.sheet_rows = ROWS

    await service.sync(session)
    await service.sync(session)
    assert await suggestion_count(session) == 2

    # Edited contact on an existing row updates in place
    providers.sheet_rows = [HEADER, ROWS[1][:4] + ["Sam", "new@example.org", ""], ROWS[2]]
    await service.sync(session)
    assert await suggestion_count(session) == 2
    session.expire_all()
    stored = await session.get(LocationSuggestion, suggestion_id("Hardware Store", "1 Main St"))
    assert stored.contact_email == "new@example.org"


async def test_duplicate_rows_collapse(session, service, providers):
    providers.sheet_rows = [HEADER, ROWS[1], ROWS[1]]

    result = await service.sync(session)
    assert result.synced == 1
    assert await suggestion_count(session) == 1


async def test_header_only_sheet(session, service, providers):
    providers.sheet_rows = [HEADER]

    result = await service.sync(session)
    assert result.synced == 0
    assert result.message == "No rows found in spreadsheet."


async def test_spreadsheet_failure_aborts_without_writes(session, service, providers):
    providers.sheet_http_status = 403

    with pytest.raises(InternalError) as excinfo:
        await service.sync(session)
    assert excinfo.value.message == "Failed to read the location spreadsheet."
    assert await suggestion_count(session) == 0


async def test_unconfigured_spreadsheet(session, http_client):
    service = SuggestionSyncService(SpreadsheetSource(http_client, "", "", "Sheet1", "A:G"))
    with pytest.raises(InternalError):
        await service.sync(session)


async def test_prefix_search(session, service, providers):
    providers.sheet_rows = ROWS
    await service.sync(session)

    by_label = await search_suggestions(session, "label", "HARD")
    assert [s.label for s in by_label] == ["Hardware Store"]

    by_address = await search_suggestions(session, "address", "22 p")
    assert [s.label for s in by_address] == ["Pizza Place"]

    assert await search_suggestions(session, "label", "ha") == []

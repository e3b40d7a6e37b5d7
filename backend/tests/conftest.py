import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Settings() needs a signing key before any boxtracker import
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import httpx
import pytest
from fastapi.testclient import TestClient

from boxtracker.core.config import settings
from boxtracker.core.security import CallerIdentity, create_access_token
from boxtracker.db.session import build_engine, build_sessionmaker
from boxtracker.init_db import init_models
from boxtracker.services.audit_service import AuditLogger
from boxtracker.services.authorization import VolunteerGate
from boxtracker.services.geocoding import Geocoder
from boxtracker.services.notifier import ReportNotifier
from boxtracker.services.sheets import SpreadsheetSource

PASSCODE = "semperfi"

GEOCODE_URL = "https://geocode.test/json"
SHEETS_URL = "https://sheets.test/v4/spreadsheets"
MAIL_URL = "https://mail.test/v3"


@dataclass
class FakeProviders:
    """
    Canned answers for the outbound providers, served through httpx.MockTransport.
    Tests flip the attributes to simulate outages.
    """
    location: Optional[Dict[str, float]] = field(default_factory=lambda: {"lat": 33.749, "lng": -84.388})
    geocode_status: str = "OK"
    geocode_http_status: int = 200
    sheet_rows: List[List[str]] = field(default_factory=list)
    sheet_http_status: int = 200
    mail_http_status: int = 200
    requests: List[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in ("geocode.test", "maps.googleapis.com"):
            if self.geocode_http_status != 200:
                return httpx.Response(self.geocode_http_status, text="upstream error")
            results = []
            if self.location is not None:
                results.append({
                    "formatted_address": request.url.params.get("address"),
                    "geometry": {"location": self.location},
                })
            return httpx.Response(200, json={"status": self.geocode_status, "results": results})
        if host in ("sheets.test", "sheets.googleapis.com"):
            if self.sheet_http_status != 200:
                return httpx.Response(self.sheet_http_status, json={"error": {"message": "denied"}})
            return httpx.Response(200, json={"range": "Sheet1!A1:G100", "values": self.sheet_rows})
        if host in ("mail.test", "api.mailgun.net"):
            if self.mail_http_status != 200:
                return httpx.Response(self.mail_http_status, json={"message": "rejected"})
            return httpx.Response(200, json={"id": "<20261018.1@mg.example.org>", "message": "Queued."})
        return httpx.Response(404)

    def sent_to(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
async def http_client(providers):
    async with httpx.AsyncClient(transport=providers.transport()) as client:
        yield client


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine, PASSCODE)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def gate():
    return VolunteerGate()


@pytest.fixture
def audit(sessionmaker):
    return AuditLogger(sessionmaker)


@pytest.fixture
def geocoder(http_client):
    return Geocoder(http_client, "geo-key", GEOCODE_URL)


@pytest.fixture
def notifier(http_client):
    return ReportNotifier(http_client, api_key="mail-key", domain="mg.example.org",
                          recipient="coordinators@example.org", base_url=MAIL_URL)


@pytest.fixture
def sheet_source(http_client):
    return SpreadsheetSource(http_client, api_key="sheet-key", spreadsheet_id="sheet-123",
                             sheet_name="Sheet1", sheet_range="A:G", base_url=SHEETS_URL)


@pytest.fixture
def alice():
    return CallerIdentity(uid="uid-alice", email="alice@example.org", name="Alice Volunteer")


@pytest.fixture
def bob():
    return CallerIdentity(uid="uid-bob", email="bob@example.org", name="Bob Helper")


def auth_headers(caller: CallerIdentity) -> Dict[str, str]:
    token = create_access_token(caller.uid, email=caller.email, name=caller.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_client(tmp_path, monkeypatch, providers):
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"

    async def prepare():
        engine = build_engine(db_url)
        try:
            await init_models(engine, PASSCODE)
        finally:
            await engine.dispose()

    asyncio.run(prepare())

    monkeypatch.setattr(settings, "DATABASE_URL", db_url)
    monkeypatch.setattr(settings, "BLOB_STORAGE_DIR", str(tmp_path / "blobs"))
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://cdn.test/blobs")
    monkeypatch.setattr(settings, "GEOCODING_API_KEY", "geo-key")
    monkeypatch.setattr(settings, "GEOCODING_URL", GEOCODE_URL)
    monkeypatch.setattr(settings, "SHEETS_API_KEY", "sheet-key")
    monkeypatch.setattr(settings, "SHEETS_API_URL", SHEETS_URL)
    monkeypatch.setattr(settings, "SPREADSHEET_ID", "sheet-123")
    monkeypatch.setattr(settings, "MAILGUN_API_KEY", "mail-key")
    monkeypatch.setattr(settings, "MAILGUN_DOMAIN", "mg.example.org")
    monkeypatch.setattr(settings, "MAILGUN_BASE_URL", MAIL_URL)
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", False)

    from boxtracker.main import app

    app.state.http_transport = providers.transport()
    try:
        with TestClient(app) as client:
            yield client
    finally:
        del app.state.http_transport


def read_json(content: bytes) -> Any:
    return json.loads(content.decode("utf-8"))

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boxtracker.core.config import Settings
from boxtracker.services.audit_service import AuditLogger
from boxtracker.services.authorization import VolunteerGate
from boxtracker.services.geocoding import Geocoder
from boxtracker.services.locations_cache import LocationsCacheBuilder
from boxtracker.services.notifier import ReportNotifier
from boxtracker.services.provisioning import BoxProvisioningService
from boxtracker.services.reporting import ReportService
from boxtracker.services.sheets import SpreadsheetSource
from boxtracker.services.storage_service import StorageService
from boxtracker.services.suggestion_sync import SuggestionSyncService


@dataclass
class Services:
    """
    Every collaborator the request handlers and jobs need.
    Built once by the process entry point and stored on app.state.
    """
    gate: VolunteerGate
    audit: AuditLogger
    geocoder: Geocoder
    notifier: ReportNotifier
    storage: StorageService
    provisioning: BoxProvisioningService
    reports: ReportService
    suggestion_sync: SuggestionSyncService
    locations_cache: LocationsCacheBuilder


def build_services(
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
) -> Services:
    timeout = settings.OUTBOUND_TIMEOUT_SECONDS

    gate = VolunteerGate()
    audit = AuditLogger(sessionmaker)
    geocoder = Geocoder(http_client, settings.GEOCODING_API_KEY, settings.GEOCODING_URL, timeout=timeout)
    notifier = ReportNotifier(
        http_client,
        api_key=settings.MAILGUN_API_KEY,
        domain=settings.MAILGUN_DOMAIN,
        recipient=settings.REPORT_RECIPIENT_EMAIL,
        base_url=settings.MAILGUN_BASE_URL,
        timeout=timeout,
    )
    source = SpreadsheetSource(
        http_client,
        api_key=settings.SHEETS_API_KEY,
        spreadsheet_id=settings.SPREADSHEET_ID,
        sheet_name=settings.SHEET_NAME,
        sheet_range=settings.SHEET_RANGE,
        base_url=settings.SHEETS_API_URL,
        timeout=timeout,
    )
    storage = StorageService(settings.BLOB_STORAGE_DIR, settings.PUBLIC_BASE_URL)

    return Services(
        gate=gate,
        audit=audit,
        geocoder=geocoder,
        notifier=notifier,
        storage=storage,
        provisioning=BoxProvisioningService(gate, geocoder, audit),
        reports=ReportService(gate, notifier, audit),
        suggestion_sync=SuggestionSyncService(source),
        locations_cache=LocationsCacheBuilder(storage, settings.LOCATIONS_CACHE_PATH, settings.LOCATIONS_CACHE_MAX_AGE),
    )

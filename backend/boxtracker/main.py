import asyncio
import contextlib
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from boxtracker.core.config import settings
from boxtracker.core.logging import setup_logging
from boxtracker.core.exceptions import (
    ServiceError,
    global_exception_handler,
    http_exception_handler,
    service_exception_handler,
    validation_exception_handler,
)
from boxtracker.db.session import build_engine, build_sessionmaker
from boxtracker.services.container import build_services
from boxtracker.services.scheduler import run_cache_refresh, run_every, run_suggestion_sync

# Setup Logging
setup_logging()
logger = structlog.get_logger()


def _start_scheduler(app: FastAPI) -> list:
    services = app.state.services
    sessionmaker = app.state.sessionmaker
    return [
        asyncio.create_task(run_every(
            "sync_location_suggestions",
            settings.SUGGESTION_SYNC_INTERVAL_SECONDS,
            lambda: run_suggestion_sync(services, sessionmaker),
        )),
        asyncio.create_task(run_every(
            "refresh_locations_cache",
            settings.CACHE_REFRESH_INTERVAL_SECONDS,
            lambda: run_cache_refresh(services, sessionmaker),
        )),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the application.
    Owns the database engine, the outbound HTTP client and the service graph.
    """
    logger.info("startup", project=settings.PROJECT_NAME, environment=settings.ENVIRONMENT)

    engine = build_engine(settings.DATABASE_URL, echo=False)
    app.state.sessionmaker = build_sessionmaker(engine)
    # Tests install an httpx.MockTransport here before startup
    transport = getattr(app.state, "http_transport", None)
    http_client = httpx.AsyncClient(transport=transport, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
    app.state.services = build_services(settings, app.state.sessionmaker, http_client)

    tasks = _start_scheduler(app) if settings.ENABLE_SCHEDULER else []
    if tasks:
        logger.info("scheduler_started",
                    sync_interval=settings.SUGGESTION_SYNC_INTERVAL_SECONDS,
                    cache_interval=settings.CACHE_REFRESH_INTERVAL_SECONDS)
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await http_client.aclose()
        await engine.dispose()
        logger.info("shutdown")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Donation box tracking: provisioning, public reports and location caches",
    lifespan=lifespan,
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# Middleware: CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,  # MUST be False when using wildcard origins
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception Handlers
app.add_exception_handler(ServiceError, service_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Health Check
@app.get("/health", tags=["system"])
async def health_check():
    """
    Public health check endpoint for load balancers.
    """
    return {"status": "ok", "environment": settings.ENVIRONMENT}


from boxtracker.api import blobs
from boxtracker.api.v1 import triggers
from boxtracker.api.v1.public import locations as public_locations, reports as public_reports
from boxtracker.api.v1.volunteer import auth as volunteer_auth, boxes as volunteer_boxes, jobs as volunteer_jobs, reports as volunteer_reports

app.include_router(public_reports.router, prefix=f"{settings.API_V1_STR}/public", tags=["public"])
app.include_router(public_locations.router, prefix=f"{settings.API_V1_STR}/public", tags=["public"])
app.include_router(volunteer_auth.router, prefix=f"{settings.API_V1_STR}/volunteer/authorization", tags=["volunteer-auth"])
app.include_router(volunteer_boxes.router, prefix=f"{settings.API_V1_STR}/volunteer/boxes", tags=["volunteer-boxes"])
app.include_router(volunteer_reports.router, prefix=f"{settings.API_V1_STR}/volunteer/reports", tags=["volunteer-reports"])
app.include_router(volunteer_jobs.router, prefix=f"{settings.API_V1_STR}/volunteer", tags=["volunteer-jobs"])
app.include_router(triggers.router, prefix=f"{settings.API_V1_STR}/triggers", tags=["triggers"])

# Generated blobs (the locations cache), read through the lifespan-owned storage
app.include_router(blobs.router, prefix="/blobs", tags=["blobs"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("boxtracker.main:app", host="0.0.0.0", port=8000, reload=True)

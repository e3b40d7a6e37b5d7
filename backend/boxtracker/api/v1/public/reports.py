"""
Public reporting API.

Anyone holding a box's QR link can read the box and file a pickup or problem
report against it. No sign-in is required; a bearer token, when present, is
recorded as the reporter.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_optional_caller, get_services
from boxtracker.core.security import CallerIdentity
from boxtracker.db.session import get_db
from boxtracker.schemas.box import BoxResponse
from boxtracker.schemas.report import ReportResponse, SubmitReportRequest, SubmitReportResponse
from boxtracker.services.container import Services

router = APIRouter()


@router.post("/reports", response_model=SubmitReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    request: SubmitReportRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: Optional[CallerIdentity] = Depends(get_optional_caller),
):
    """
    Persist a pickup/problem report and email the coordinators.
    The email leg is reported in `notification`; its failure does not undo the report.
    """
    return await services.reports.submit(db, request, reporter=caller)


@router.get("/boxes/{box_id}", response_model=BoxResponse)
async def get_box(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await services.provisioning.get_box(db, box_id)


@router.get("/boxes/{box_id}/reports", response_model=List[ReportResponse])
async def get_box_history(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """
    Status history for a box, oldest first.
    """
    return await services.reports.box_history(db, box_id)

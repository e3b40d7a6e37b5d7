from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_current_caller, get_services
from boxtracker.core.security import CallerIdentity
from boxtracker.db.session import get_db
from boxtracker.schemas.report import ReportResponse
from boxtracker.services.container import Services

router = APIRouter()


@router.post("/{report_id}/clear", response_model=ReportResponse)
async def clear_report(
    report_id: UUID,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """
    Mark a report as handled. Reports are never deleted.
    """
    return await services.reports.clear_report(db, caller, report_id)

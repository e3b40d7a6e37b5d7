from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from boxtracker.models.report import ReportStatus, ReportType
from boxtracker.schemas.base import CamelModel


class SubmitReportRequest(CamelModel):
    """Public pickup/problem form submission"""
    box_id: Optional[str] = None
    form_type: Optional[str] = Field(None, description="Form name or report type")
    notes: Optional[str] = None
    description: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None


class NotificationResult(CamelModel):
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SubmitReportResponse(CamelModel):
    success: bool
    record_id: UUID
    notification: NotificationResult


class ReportResponse(CamelModel):
    id: UUID
    box_id: str
    report_type: ReportType
    status: ReportStatus
    description: Optional[str] = None
    notes: Optional[str] = None
    reporter_name: Optional[str] = None
    label: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    volunteer: Optional[str] = None
    created_at: datetime
    cleared_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

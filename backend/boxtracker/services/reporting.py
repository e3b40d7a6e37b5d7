from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.exceptions import InternalError, InvalidArgument, NotFound
from boxtracker.core.security import CallerIdentity
from boxtracker.core.time_utils import get_utc_now
from boxtracker.models.box import Box
from boxtracker.models.report import Report, ReportStatus, ReportType
from boxtracker.schemas.report import NotificationResult, SubmitReportRequest, SubmitReportResponse
from boxtracker.services.audit_service import AuditAction, AuditLogger
from boxtracker.services.authorization import VolunteerGate
from boxtracker.services.notifier import ReportNotifier

logger = structlog.get_logger()

# Names of the public HTML forms
FORM_TYPES = {
    "pickup-details-form": ReportType.PICKUP_DETAILS,
    "pickup-alert-form": ReportType.PICKUP_ALERT,
    "problem-report-form": ReportType.PROBLEM_REPORT,
    "problem-alert-form": ReportType.PROBLEM_ALERT,
}


def resolve_report_type(form_type: Optional[str]) -> ReportType:
    if not form_type:
        raise InvalidArgument("Missing required field: formType.")
    key = form_type.strip()
    if key in FORM_TYPES:
        return FORM_TYPES[key]
    try:
        report_type = ReportType(key)
    except ValueError:
        raise InvalidArgument(f"Unknown formType: {key}.")
    if report_type == ReportType.BOX_REGISTERED:
        # Only provisioning writes registration reports
        raise InvalidArgument(f"Unknown formType: {key}.")
    return report_type


class ReportService:

    def __init__(self, gate: VolunteerGate, notifier: ReportNotifier, audit: AuditLogger):
        self.gate = gate
        self.notifier = notifier
        self.audit = audit

    async def submit(
        self,
        session: AsyncSession,
        request: SubmitReportRequest,
        reporter: Optional[CallerIdentity] = None,
    ) -> SubmitReportResponse:
        """
        Persist a public pickup/problem report, then email it (best-effort).
        The box does not have to exist.
        """
        box_id = (request.box_id or "").strip()
        if not box_id:
            raise InvalidArgument("Missing required field: boxId.")
        report_type = resolve_report_type(request.form_type)

        report = Report(
            box_id=box_id,
            report_type=report_type,
            status=ReportStatus.NEW,
            description=request.description or None,
            notes=request.notes or None,
            reporter_id=reporter.uid if reporter else None,
            reporter_name=request.contact_name or (reporter.name if reporter else None),
            reporter_email=request.contact_email or (reporter.email if reporter else None),
            created_at=get_utc_now(),
        )

        try:
            box = await session.get(Box, box_id)
            if box is not None:
                report.label = box.label
                report.address = box.address
                report.city = box.city
                report.state = box.state
                report.volunteer = box.volunteer
            session.add(report)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("report_write_failed", box_id=box_id, error=str(e))
            raise InternalError("Failed to process report.") from e

        logger.info("report_submitted", report_id=str(report.id), box_id=box_id,
                    report_type=report_type.value, known_box=box is not None)

        try:
            notification = await self.notifier.notify(report)
            result = NotificationResult(
                sent=notification.sent,
                message_id=notification.message_id,
                error=notification.error,
            )
        except Exception as e:
            logger.error("report_notification_crashed", report_id=str(report.id), error=str(e))
            result = NotificationResult(sent=False, error="Failed to send notification email.")

        return SubmitReportResponse(success=True, record_id=report.id, notification=result)

    async def box_history(self, session: AsyncSession, box_id: str) -> List[Report]:
        stmt = select(Report).where(Report.box_id == box_id).order_by(Report.created_at, Report.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def clear_report(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
        report_id: UUID,
    ) -> Report:
        decision = await self.gate.require_authorized(session, caller)

        report = await session.get(Report, report_id)
        if report is None:
            raise NotFound("Report not found.")
        if report.status == ReportStatus.CLEARED:
            return report

        report.status = ReportStatus.CLEARED
        report.cleared_at = get_utc_now()
        report.cleared_by = decision.caller.uid
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("report_clear_failed", report_id=str(report_id), error=str(e))
            raise InternalError("Failed to update report.") from e

        logger.info("report_cleared", report_id=str(report_id), uid=decision.caller.uid)
        await self.audit.log(AuditAction.CLEAR_REPORT, decision.caller, {
            "targetId": str(report_id),
            "targetType": "report",
            "boxId": report.box_id,
        })
        return report

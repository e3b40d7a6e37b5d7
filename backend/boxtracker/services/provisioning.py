"""
Box provisioning.

A box, its initial 'box_registered' report and (for first-time volunteers)
the authorized-volunteer row are written in a single transaction. The box
insert is conditional: the primary key on boxes.box_id rejects a second
provision of the same id even when two requests race past the pre-check.
"""

from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.exceptions import (
    AlreadyExists,
    InternalError,
    InvalidArgument,
    NotFound,
    PermissionDenied,
)
from boxtracker.core.security import CallerIdentity
from boxtracker.core.time_utils import get_utc_now
from boxtracker.models.box import Box, BoxStatus
from boxtracker.models.report import Report, ReportStatus, ReportType
from boxtracker.models.volunteer import AuthorizedVolunteer, VolunteerRole
from boxtracker.schemas.box import ProvisionBoxRequest, ProvisionBoxResponse
from boxtracker.services.audit_service import AuditAction, AuditLogger
from boxtracker.services.authorization import VolunteerGate, require_caller, upsert_volunteer
from boxtracker.services.geocoding import GeoPoint, Geocoder, format_full_address

logger = structlog.get_logger()

MAX_BOX_ID_LENGTH = 128
WRITE_ATTEMPTS = 2


class BoxProvisioningService:

    def __init__(self, gate: VolunteerGate, geocoder: Geocoder, audit: AuditLogger):
        self.gate = gate
        self.geocoder = geocoder
        self.audit = audit

    async def provision(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
        request: ProvisionBoxRequest,
    ) -> ProvisionBoxResponse:
        # 1. Auth, then authorization (or passcode), then arguments
        caller = require_caller(caller)
        decision = await self.gate.require(session, caller, request.passcode)
        self._validate(request)

        box_id = request.box_id
        log = logger.bind(box_id=box_id, uid=caller.uid)

        # 2. Geocode; failure leaves lat/lon null
        point = await self._geocode(request)

        # 3. Commit everything or nothing
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            box, initial_report = self._build_rows(caller, request, point)
            try:
                if await session.get(Box, box_id) is not None:
                    raise AlreadyExists(f"Box ID {box_id} has already been set up.")

                session.add(box)
                if not decision.already_authorized:
                    existing = await session.get(AuthorizedVolunteer, caller.uid, populate_existing=True)
                    upsert_volunteer(session, existing, caller)
                session.add(initial_report)
                await session.commit()
                break
            except AlreadyExists:
                await session.rollback()
                log.info("provision_duplicate")
                raise
            except IntegrityError as e:
                await session.rollback()
                if await self._box_exists(session, box_id):
                    log.info("provision_race_lost")
                    raise AlreadyExists(f"Box ID {box_id} has already been set up.") from e
                # A concurrent request by the same first-time volunteer inserted their row first
                if attempt < WRITE_ATTEMPTS and not decision.already_authorized:
                    log.info("provision_retry", attempt=attempt, error=str(e))
                    continue
                log.error("provision_write_failed", error=str(e))
                raise InternalError("Failed to save location data.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                log.error("provision_write_failed", error=str(e))
                raise InternalError("Failed to save location data.") from e

        log.info("box_provisioned", geocoded=point is not None, newly_authorized=not decision.already_authorized)
        await self.audit.log(AuditAction.PROVISION_BOX, caller, {
            "targetId": box_id,
            "targetType": "box",
            "targetLabel": request.label,
            "newlyAuthorized": not decision.already_authorized,
        })

        if decision.already_authorized:
            message = "Location saved and initial report created."
        else:
            message = "Location saved, user authorized, and initial report created."
        return ProvisionBoxResponse(success=True, box_id=box_id, message=message)

    def _validate(self, request: ProvisionBoxRequest) -> None:
        missing = []
        if not request.box_id:
            missing.append("boxId")
        if not request.address:
            missing.append("address")
        if missing:
            raise InvalidArgument(f"Missing required field(s): {', '.join(missing)}.")
        if len(request.box_id) > MAX_BOX_ID_LENGTH or "/" in request.box_id:
            raise InvalidArgument("boxId must be at most 128 characters and may not contain '/'.")

    def _build_rows(
        self,
        caller: CallerIdentity,
        request: ProvisionBoxRequest,
        point: Optional[GeoPoint],
    ) -> tuple[Box, Report]:
        now = get_utc_now()
        box = Box(
            box_id=request.box_id,
            label=request.label,
            address=request.address,
            city=request.city,
            state=request.state,
            boxes=request.boxes,
            lat=point.lat if point else None,
            lon=point.lon if point else None,
            volunteer=caller.display_name,
            provisioned_by=caller.uid,
            contact_name=request.contact_name,
            contact_email=request.contact_email,
            contact_phone=request.contact_phone,
            status=BoxStatus.ACTIVE,
            created_at=now,
        )
        initial_report = Report(
            box_id=request.box_id,
            report_type=ReportType.BOX_REGISTERED,
            status=ReportStatus.CLEARED,
            description=f"Box registered by {caller.display_name}.",
            reporter_id=caller.uid,
            reporter_name=caller.display_name,
            reporter_email=caller.email,
            label=box.label,
            address=box.address,
            city=box.city,
            state=box.state,
            volunteer=box.volunteer,
            created_at=now,
        )
        return box, initial_report

    async def _geocode(self, request: ProvisionBoxRequest) -> Optional[GeoPoint]:
        full_address = format_full_address(request.address, request.city, request.state)
        try:
            return await self.geocoder.geocode(full_address)
        except Exception as e:
            logger.error("geocoding_crashed", address=full_address, error=str(e))
            return None

    async def _box_exists(self, session: AsyncSession, box_id: str) -> bool:
        try:
            return await session.get(Box, box_id, populate_existing=True) is not None
        except SQLAlchemyError:
            return False

    async def get_box(self, session: AsyncSession, box_id: str) -> Box:
        box = await session.get(Box, box_id)
        if box is None:
            raise NotFound(f"Box {box_id} not found.")
        return box

    async def set_status(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
        box_id: str,
        status: BoxStatus,
    ) -> Box:
        """
        Soft-delete or restore a box. Allowed for the volunteer who
        provisioned it and for root volunteers.
        """
        decision = await self.gate.require_authorized(session, caller)
        box = await self.get_box(session, box_id)

        is_root = decision.volunteer is not None and decision.volunteer.role == VolunteerRole.ROOT
        if box.provisioned_by != decision.caller.uid and not is_root:
            raise PermissionDenied("Only the volunteer who set up this box can change it.")

        if box.status == status:
            return box

        box.status = status
        box.deleted_at = get_utc_now() if status == BoxStatus.DELETED else None
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("box_status_write_failed", box_id=box_id, error=str(e))
            raise InternalError("Failed to update box.") from e

        action = AuditAction.DELETE_BOX if status == BoxStatus.DELETED else AuditAction.RESTORE_BOX
        logger.info("box_status_changed", box_id=box_id, status=status.value, uid=decision.caller.uid)
        await self.audit.log(action, decision.caller, {
            "targetId": box_id,
            "targetType": "box",
            "targetLabel": box.label,
        })
        return box

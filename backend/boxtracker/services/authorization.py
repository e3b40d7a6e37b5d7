"""
Volunteer authorization gate.

Every privileged operation goes through VolunteerGate. A caller with an
authorized-volunteer row is let through without a passcode; anyone else must
present the shared passcode stored in the SharedConfig row. The gate itself
never writes: recording a newly authorized volunteer is done by the operation
that asked, inside its own transaction.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.exceptions import (
    InternalError,
    InvalidArgument,
    PermissionDenied,
    Unauthenticated,
)
from boxtracker.core.security import CallerIdentity
from boxtracker.core.time_utils import get_utc_now
from boxtracker.models.volunteer import AuthorizedVolunteer, SharedConfig, VolunteerRole
from boxtracker.schemas.volunteer import AuthorizationStatus

logger = structlog.get_logger()

INCORRECT_PASSCODE = "Incorrect passcode. New volunteers must provide the correct password."


@dataclass(frozen=True)
class GateDecision:
    caller: CallerIdentity
    already_authorized: bool
    volunteer: Optional[AuthorizedVolunteer] = None


def require_caller(caller: Optional[CallerIdentity]) -> CallerIdentity:
    if caller is None or not caller.uid:
        raise Unauthenticated("You must be signed in to perform this action.")
    return caller


class VolunteerGate:

    async def get_volunteer(self, session: AsyncSession, uid: str) -> Optional[AuthorizedVolunteer]:
        try:
            volunteer = await session.get(AuthorizedVolunteer, uid)
        except SQLAlchemyError as e:
            logger.error("authorization_lookup_failed", uid=uid, error=str(e))
            raise InternalError("Could not check authorization.") from e
        if volunteer is None or volunteer.deleted:
            return None
        return volunteer

    async def check_passcode(self, session: AsyncSession, passcode: Optional[str]) -> None:
        try:
            config = await session.get(SharedConfig, SharedConfig.SINGLETON_ID)
        except SQLAlchemyError as e:
            logger.error("config_read_failed", error=str(e))
            raise InternalError("Could not read server configuration.") from e

        if config is None:
            logger.error("config_missing")
            raise InternalError("Server configuration is missing. Cannot verify passcode.")

        # Exact comparison: no trimming or case folding of either side
        if not passcode or passcode != config.shared_passcode:
            raise PermissionDenied(INCORRECT_PASSCODE)

    async def require(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
        passcode: Optional[str] = None,
    ) -> GateDecision:
        """
        Authorize a caller for a privileged operation, accepting the passcode
        from callers who are not yet authorized.
        """
        caller = require_caller(caller)
        volunteer = await self.get_volunteer(session, caller.uid)
        if volunteer is not None:
            return GateDecision(caller=caller, already_authorized=True, volunteer=volunteer)

        await self.check_passcode(session, passcode)
        logger.info("passcode_accepted", uid=caller.uid)
        return GateDecision(caller=caller, already_authorized=False)

    async def require_authorized(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
    ) -> GateDecision:
        """Authorize a caller for an operation that never accepts the passcode."""
        caller = require_caller(caller)
        volunteer = await self.get_volunteer(session, caller.uid)
        if volunteer is None:
            raise PermissionDenied("You are not an authorized volunteer.")
        return GateDecision(caller=caller, already_authorized=True, volunteer=volunteer)

    async def is_authorized(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
    ) -> AuthorizationStatus:
        caller = require_caller(caller)
        volunteer = await self.get_volunteer(session, caller.uid)
        return AuthorizationStatus(is_authorized=volunteer is not None, display_name=caller.name)

    async def authorize_with_passcode(
        self,
        session: AsyncSession,
        caller: Optional[CallerIdentity],
        code: Optional[str],
    ) -> str:
        """
        Redeem the passcode directly. Returns a message for the caller.
        """
        caller = require_caller(caller)
        if await self.get_volunteer(session, caller.uid) is not None:
            return "You are already an authorized volunteer."

        if not code:
            raise InvalidArgument("A passcode is required.")
        await self.check_passcode(session, code)

        upsert_volunteer(session, await session.get(AuthorizedVolunteer, caller.uid), caller)
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("authorize_write_failed", uid=caller.uid, error=str(e))
            raise InternalError("Could not save authorization.") from e

        logger.info("volunteer_authorized", uid=caller.uid)
        return "You are now an authorized volunteer."


def upsert_volunteer(
    session: AsyncSession,
    existing: Optional[AuthorizedVolunteer],
    caller: CallerIdentity,
) -> AuthorizedVolunteer:
    """
    Stage an authorized-volunteer row for caller. A soft-deleted row is
    revived with its role kept.
    """
    now = get_utc_now()
    if existing is None:
        volunteer = AuthorizedVolunteer(
            uid=caller.uid,
            email=caller.email,
            display_name=caller.name,
            role=VolunteerRole.VOLUNTEER,
            deleted=False,
            authorized_at=now,
        )
        session.add(volunteer)
        return volunteer

    existing.email = caller.email or existing.email
    existing.display_name = caller.name or existing.display_name
    existing.deleted = False
    existing.authorized_at = now
    existing.modified_at = now
    return existing

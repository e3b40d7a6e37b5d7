from typing import Any, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boxtracker.core.security import CallerIdentity
from boxtracker.models.audit import AuditLog

logger = structlog.get_logger()


class AuditAction:
    PROVISION_BOX = "provision_box"
    DELETE_BOX = "delete_box"
    RESTORE_BOX = "restore_box"
    CLEAR_REPORT = "clear_report"
    MODIFY_VOLUNTEER_ROLE = "modify_volunteer_role"
    SYNC_LOCATION_SUGGESTIONS = "sync_location_suggestions"
    REFRESH_LOCATIONS_CACHE = "refresh_locations_cache"


class AuditLogger:
    """
    Append-only audit trail for privileged mutations.

    Entries are written in their own session after the audited action has
    committed, so a failure here can never roll the action back. Failures are
    logged and swallowed.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self.sessionmaker = sessionmaker

    async def log(
        self,
        action: str,
        actor: Optional[CallerIdentity],
        details: Optional[Dict[str, Any]] = None,
    ) -> bool:
        try:
            async with self.sessionmaker() as session:
                session.add(AuditLog(
                    action=action,
                    actor_id=actor.uid if actor else None,
                    actor_email=actor.email if actor else None,
                    actor_name=actor.display_name if actor else None,
                    details=details or {},
                ))
                await session.commit()
        except Exception as e:
            logger.error("audit_log_failed", action=action, error=str(e))
            return False
        return True

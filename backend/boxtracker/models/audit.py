import uuid
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.types import Uuid

from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(String(64), nullable=False, index=True)

    actor_id = Column(String(128), nullable=True, index=True)
    actor_email = Column(String(255), nullable=True)
    actor_name = Column(String(255), nullable=True)

    details = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False, index=True)

from sqlalchemy import Column, String, Boolean, DateTime, Enum
import enum

from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.base import Base


class VolunteerRole(str, enum.Enum):
    ROOT = 'root'
    VOLUNTEER = 'volunteer'


class AuthorizedVolunteer(Base):
    """
    Existence of a (non-deleted) row is the sole gate for privileged operations.
    """
    __tablename__ = "authorized_volunteers"

    uid = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(
        Enum(VolunteerRole, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=VolunteerRole.VOLUNTEER,
        nullable=False,
    )
    deleted = Column(Boolean, default=False, nullable=False)

    authorized_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)
    modified_at = Column(DateTime(timezone=True), nullable=True)


class SharedConfig(Base):
    """
    Singleton row holding the shared volunteer passcode.
    Kept in the database so it can be rotated without a redeploy.
    """
    __tablename__ = "shared_config"

    SINGLETON_ID = "config"

    id = Column(String(32), primary_key=True, default=SINGLETON_ID)
    shared_passcode = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now, nullable=False)

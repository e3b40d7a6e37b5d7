"""
Box Model - one row per physical donation box.

box_id is supplied by the volunteer (it is printed on the QR label) and is
immutable once created. Boxes are never hard-deleted by the app; deletion
flips status to 'deleted'.
"""

from sqlalchemy import Column, String, Integer, Float, DateTime, Enum
import enum

from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.base import Base


class BoxStatus(str, enum.Enum):
    ACTIVE = 'active'
    DELETED = 'deleted'


class Box(Base):
    __tablename__ = "boxes"

    box_id = Column(String(128), primary_key=True)

    label = Column(String(255), nullable=True)
    address = Column(String(512), nullable=False)
    city = Column(String(128), nullable=True)
    state = Column(String(64), nullable=True)
    boxes = Column(Integer, nullable=True)

    # Null when geocoding failed
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)

    volunteer = Column(String(255), nullable=True)  # display name of the provisioning volunteer
    provisioned_by = Column(String(128), nullable=False, index=True)

    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(64), nullable=True)

    status = Column(
        Enum(BoxStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=BoxStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

import uuid
from sqlalchemy import Column, String, DateTime, Enum, Text
from sqlalchemy.types import Uuid
import enum

from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.base import Base


class ReportType(str, enum.Enum):
    BOX_REGISTERED = 'box_registered'
    PICKUP_ALERT = 'pickup_alert'
    PICKUP_DETAILS = 'pickup_details'
    PROBLEM_ALERT = 'problem_alert'
    PROBLEM_REPORT = 'problem_report'

    @property
    def is_pickup(self) -> bool:
        return self in (ReportType.PICKUP_ALERT, ReportType.PICKUP_DETAILS)

    @property
    def is_problem(self) -> bool:
        return self in (ReportType.PROBLEM_ALERT, ReportType.PROBLEM_REPORT)


class ReportStatus(str, enum.Enum):
    NEW = 'new'
    CLEARED = 'cleared'


def _enum_column(enum_cls):
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class Report(Base):
    """
    Append-only event attached to a box.
    box_id is deliberately not a foreign key: anonymous reporters may submit
    against any id. The label/address/city/state/volunteer columns are a
    snapshot of the box at the time the report was written.
    """
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    box_id = Column(String(128), nullable=False, index=True)

    report_type = Column(_enum_column(ReportType), nullable=False, index=True)
    status = Column(_enum_column(ReportStatus), default=ReportStatus.NEW, nullable=False, index=True)

    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Reporter (null for anonymous public reports)
    reporter_id = Column(String(128), nullable=True)
    reporter_name = Column(String(255), nullable=True)
    reporter_email = Column(String(255), nullable=True)

    # Box snapshot
    label = Column(String(255), nullable=True)
    address = Column(String(512), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(64), nullable=True)
    volunteer = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False, index=True)
    cleared_at = Column(DateTime(timezone=True), nullable=True)
    cleared_by = Column(String(128), nullable=True)

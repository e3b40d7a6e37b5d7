from sqlalchemy import Column, String, Integer, DateTime

from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.base import Base


class LocationSuggestion(Base):
    """
    Candidate location mirrored from the volunteer spreadsheet.
    The id is derived from label + address so a re-sync hits the same row.
    """
    __tablename__ = "location_suggestions"

    id = Column(String(64), primary_key=True)

    label = Column(String(255), nullable=False)
    address = Column(String(512), nullable=False)
    city = Column(String(128), nullable=True)
    state = Column(String(64), nullable=True)

    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(64), nullable=True)

    # Lower-cased projections used for prefix search
    search_label = Column(String(255), nullable=False, index=True)
    search_address = Column(String(512), nullable=False, index=True)

    row_number = Column(Integer, nullable=True)
    synced_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)

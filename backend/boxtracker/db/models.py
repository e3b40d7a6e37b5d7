# Import all models so Base.metadata knows about every table
from boxtracker.db.base import Base
from boxtracker.models.audit import AuditLog
from boxtracker.models.box import Box
from boxtracker.models.report import Report
from boxtracker.models.suggestion import LocationSuggestion
from boxtracker.models.volunteer import AuthorizedVolunteer, SharedConfig

__all__ = [
    "Base",
    "AuditLog",
    "Box",
    "Report",
    "LocationSuggestion",
    "AuthorizedVolunteer",
    "SharedConfig",
]

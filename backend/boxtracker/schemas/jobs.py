from typing import Optional

from pydantic import ConfigDict

from boxtracker.schemas.base import CamelModel


class SyncResponse(CamelModel):
    success: bool
    synced: int
    message: str


class CacheRefreshResponse(CamelModel):
    success: bool
    count: int
    message: str
    url: str


class SuggestionResponse(CamelModel):
    id: str
    label: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

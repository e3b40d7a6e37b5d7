from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from boxtracker.models.box import BoxStatus
from boxtracker.schemas.base import CamelModel


class ProvisionBoxRequest(CamelModel):
    """Everything is optional at the schema level; the service names missing fields."""
    box_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    label: Optional[str] = None
    boxes: Optional[int] = Field(None, ge=0)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    passcode: Optional[str] = None

    @field_validator("box_id", "address", "city", "state", "label", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProvisionBoxResponse(CamelModel):
    success: bool
    box_id: str
    message: str


class BoxResponse(CamelModel):
    box_id: str
    label: Optional[str] = None
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    boxes: Optional[int] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    volunteer: Optional[str] = None
    status: BoxStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BoxStatusResponse(CamelModel):
    success: bool
    box_id: str
    status: BoxStatus

from typing import Optional

from boxtracker.schemas.base import CamelModel


class AuthorizationStatus(CamelModel):
    is_authorized: bool
    display_name: Optional[str] = None


class AuthorizeRequest(CamelModel):
    code: Optional[str] = None


class AuthorizeResponse(CamelModel):
    success: bool
    message: str

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from boxtracker.core.exceptions import Unauthenticated
from boxtracker.core.security import CallerIdentity, decode_access_token
from boxtracker.services.container import Services

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CallerIdentity]:
    if credentials is None or not credentials.credentials:
        return None
    return decode_access_token(credentials.credentials)


async def get_current_caller(
    caller: Optional[CallerIdentity] = Depends(get_optional_caller),
) -> CallerIdentity:
    if caller is None:
        raise Unauthenticated("You must be signed in to perform this action.")
    return caller

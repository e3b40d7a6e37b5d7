from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_current_caller, get_services
from boxtracker.core.security import CallerIdentity
from boxtracker.db.session import get_db
from boxtracker.schemas.volunteer import AuthorizationStatus, AuthorizeRequest, AuthorizeResponse
from boxtracker.services.container import Services

router = APIRouter()


@router.get("", response_model=AuthorizationStatus)
async def check_authorization(
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """
    Whether the caller is already an authorized volunteer.
    For deciding what to show only; never used to gate writes.
    """
    return await services.gate.is_authorized(db, caller)


@router.post("", response_model=AuthorizeResponse)
async def authorize_with_passcode(
    request: AuthorizeRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    message = await services.gate.authorize_with_passcode(db, caller, request.code)
    return AuthorizeResponse(success=True, message=message)

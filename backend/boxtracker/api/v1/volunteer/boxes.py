from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.api.deps import get_current_caller, get_services
from boxtracker.core.security import CallerIdentity
from boxtracker.db.session import get_db
from boxtracker.models.box import BoxStatus
from boxtracker.schemas.box import BoxStatusResponse, ProvisionBoxRequest, ProvisionBoxResponse
from boxtracker.services.container import Services

router = APIRouter()


@router.post("", response_model=ProvisionBoxResponse, status_code=status.HTTP_201_CREATED)
async def provision_box(
    request: ProvisionBoxRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """
    Register a new box. First-time volunteers must include the shared passcode
    and are authorized as part of the same write.
    """
    return await services.provisioning.provision(db, caller, request)


@router.delete("/{box_id}", response_model=BoxStatusResponse)
async def delete_box(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    box = await services.provisioning.set_status(db, caller, box_id, BoxStatus.DELETED)
    return BoxStatusResponse(success=True, box_id=box.box_id, status=box.status)


@router.post("/{box_id}/restore", response_model=BoxStatusResponse)
async def restore_box(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
    caller: CallerIdentity = Depends(get_current_caller),
):
    box = await services.provisioning.set_status(db, caller, box_id, BoxStatus.ACTIVE)
    return BoxStatusResponse(success=True, box_id=box.box_id, status=box.status)

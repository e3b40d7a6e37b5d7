from fastapi import APIRouter, Depends, Response

from boxtracker.api.deps import get_services
from boxtracker.core.exceptions import NotFound
from boxtracker.services.container import Services

router = APIRouter()


@router.get("/{path:path}")
async def get_blob(path: str, services: Services = Depends(get_services)):
    """
    Public read of a stored blob, with the headers it was written with.
    """
    try:
        blob = await services.storage.read_blob(path)
    except ValueError:
        blob = None
    if blob is None:
        raise NotFound(f"Blob {path} not found.")

    headers = {"Access-Control-Allow-Origin": "*"}
    if blob.cache_control:
        headers["Cache-Control"] = blob.cache_control
    return Response(content=blob.content, media_type=blob.content_type, headers=headers)

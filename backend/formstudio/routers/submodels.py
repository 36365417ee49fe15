"""
Submodel persistence endpoints.

Proxies submodel operations to the configured BaSyx AAS Environment.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from formstudio.clients.basyx_client import BaSyxClient, BaSyxError
from formstudio.dependencies import get_basyx_client
from formstudio.schemas.form_data import SaveSubmodelRequest, SubmodelListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/submodels", tags=["submodels"])


@router.get("", response_model=SubmodelListResponse)
async def list_submodels(
    client: Annotated[BaSyxClient, Depends(get_basyx_client)],
) -> SubmodelListResponse:
    """List all submodels stored in the AAS Environment."""
    try:
        submodels = await client.list()
        return SubmodelListResponse(submodels=submodels, total=len(submodels))
    except BaSyxError as e:
        logger.warning(f"Failed to list submodels: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("")
async def save_submodel(
    request: SaveSubmodelRequest,
    client: Annotated[BaSyxClient, Depends(get_basyx_client)],
) -> dict[str, Any]:
    """
    Store a submodel.

    With ``upsert`` an existing submodel of the same id is replaced;
    otherwise the submodel is created.
    """
    try:
        if request.upsert:
            saved = await client.save(request.submodel)
        else:
            saved = await client.create(request.submodel)
        return {"submodel": saved}
    except BaSyxError as e:
        logger.warning(f"Failed to save submodel {request.submodel['id']}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{submodel_id:path}")
async def get_submodel(
    submodel_id: str,
    client: Annotated[BaSyxClient, Depends(get_basyx_client)],
) -> dict[str, Any]:
    """Get a submodel by its identifier."""
    try:
        return await client.get(submodel_id)
    except BaSyxError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{submodel_id:path}")
async def delete_submodel(
    submodel_id: str,
    client: Annotated[BaSyxClient, Depends(get_basyx_client)],
) -> dict[str, bool]:
    """Delete a submodel by its identifier."""
    try:
        await client.delete(submodel_id)
        return {"deleted": True}
    except BaSyxError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

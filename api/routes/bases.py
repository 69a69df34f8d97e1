"""
List the bases visible to a credential
"""

from typing import Callable, List
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from api.dependencies import get_client_factory
from core.exceptions import SnapshotException, SourceAPIError
from schemas.api import BaseInfo, ListBasesRequest
from snapshot.client import AirtableClient
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Bases"])


@router.post("/list-bases", response_model=List[BaseInfo])
async def list_bases(
    request: ListBasesRequest,
    client_factory: Callable[[str], AirtableClient] = Depends(get_client_factory)
):
    """Return id/name pairs for every base the API key can read"""
    if not request.api_key:
        return JSONResponse(status_code=400, content={"message": "API Key is required."})

    try:
        async with client_factory(request.api_key) as client:
            bases = await client.list_bases()
    except SourceAPIError as e:
        logger.error(f"Error listing bases: {e.message}", extra={"error_context": e.to_dict()})
        return JSONResponse(
            status_code=e.status_code or 502,
            content={"message": e.message or "Failed to fetch bases from Airtable."}
        )
    except SnapshotException as e:
        logger.error(f"Error listing bases: {e.message}", extra={"error_context": e.to_dict()})
        return JSONResponse(status_code=500, content={"message": "Failed to fetch bases from Airtable."})

    return [
        BaseInfo(id=base.id, name=base.name, permissionLevel=base.permission_level)
        for base in bases
    ]

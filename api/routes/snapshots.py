"""
Generate and download a snapshot of one base
"""

from typing import Callable
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask
from api.dependencies import get_client_factory
from core.config import settings
from core.exceptions import ConfigurationError, SnapshotException
from schemas.api import GenerateSnapshotRequest
from snapshot.client import AirtableClient
from snapshot.runner import SnapshotRunner
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Snapshots"])

SQLITE_MEDIA_TYPE = "application/vnd.sqlite3"


@router.post("/generate-snapshot")
async def generate_snapshot(
    request: GenerateSnapshotRequest,
    client_factory: Callable[[str], AirtableClient] = Depends(get_client_factory)
):
    """
    Build a SQLite snapshot of a base and stream it back.
    
    Skipped rows and incomplete tables are reported in the
    X-Snapshot-Rows-Failed and X-Snapshot-Tables-Degraded headers.
    The file is deleted once the response has been sent.
    """
    if not request.api_key or not request.base_id:
        return JSONResponse(status_code=400, content={"message": "API Key and Base ID are required."})

    try:
        async with client_factory(request.api_key) as client:
            runner = SnapshotRunner(client)
            result = await runner.run(request.base_id, request.base_name)
    except ConfigurationError as e:
        return JSONResponse(status_code=400, content={"message": e.message})
    except SnapshotException as e:
        logger.error(
            f"Detailed error in /api/generate-snapshot: {e}",
            extra={"error_context": e.to_dict()}
        )
        content = {"message": "Error generating Airtable snapshot.", "error": e.message}
        if settings.ENVIRONMENT == "development":
            content["context"] = {k: str(v) for k, v in e.context.items()}
        return JSONResponse(status_code=500, content=content)

    logger.info(f"Sending SQLite file: {result.file_name}")
    return FileResponse(
        result.file_path,
        media_type=SQLITE_MEDIA_TYPE,
        filename=result.file_name,
        headers={
            "X-Snapshot-Rows-Written": str(result.rows_written),
            "X-Snapshot-Rows-Failed": str(result.rows_failed),
            "X-Snapshot-Tables-Degraded": str(result.tables_degraded),
        },
        background=BackgroundTask(result.discard)
    )

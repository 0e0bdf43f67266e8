"""Single-file download router."""

import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Header, HTTPException, Path, Request
from fastapi.responses import StreamingResponse

from dirserve.config import get_settings
from dirserve.core.errors import DirServeError
from dirserve.services.download_service import iter_file, open_download, plan_download
from dirserve.utils.formatters import content_disposition

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/dl/{path:path}")
async def download_file(
    request: Request,
    path: str = Path(..., description="File path relative to the data root"),
    range_header: Optional[str] = Header(None, alias="Range", description="Single byte range, e.g. bytes=100-"),
):
    """
    Download one file.

    A single ``Range: bytes=start-[end]`` is honoured with a 206 response.

    Args:
        path: File path relative to the data root
        range_header: Optional Range header

    Returns:
        File content stream
    """
    logger.info(f"Downloading [{path}]")
    try:
        plan = await asyncio.to_thread(plan_download, request.app.state.data_root, path, range_header)
        source = await asyncio.to_thread(open_download, plan)
    except DirServeError:
        raise
    except Exception as e:
        logger.error(f"Error preparing download of '{path}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error preparing download")

    headers = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(plan.length),
        "Content-Disposition": content_disposition(plan.filename),
    }
    status_code = 200
    if plan.partial:
        headers["Content-Range"] = plan.content_range
        status_code = 206

    chunk_size = get_settings().download_chunk_size
    return StreamingResponse(
        iter_file(source, plan.start, plan.length, chunk_size),
        status_code=status_code,
        media_type=plan.content_type,
        headers=headers,
    )

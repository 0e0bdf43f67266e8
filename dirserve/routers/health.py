"""Health check router."""

import logging
import os
from fastapi import APIRouter, Request

from dirserve.config import get_settings
from dirserve.models.response import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        Health status information
    """
    settings = get_settings()
    data_root = request.app.state.data_root
    readable = os.access(data_root, os.R_OK | os.X_OK)
    if not readable:
        logger.warning(f"Data root is not readable: {data_root}")

    return HealthResponse(
        status="healthy" if readable else "degraded",
        service=settings.api_title,
        version=settings.api_version,
        data_dir=str(data_root),
        data_dir_readable=readable,
    )

"""Browse router: directory listings and aria2 exports."""

import asyncio
import logging
import stat
from typing import Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from dirserve.config import get_settings
from dirserve.core.errors import DirServeError, NotADirectory, translate_os_error
from dirserve.models.listing import DirectoryListing, SortDirection, SortKey
from dirserve.services.aria2_service import Aria2Exporter
from dirserve.services.listing_service import ListingService
from dirserve.services.path_resolver import split_relative_path

logger = logging.getLogger(__name__)
router = APIRouter()


def get_listing_service(request: Request) -> ListingService:
    """Dependency to get listing service."""
    return ListingService(request.app.state.data_root)


def _classify(service: ListingService, path: str) -> int:
    try:
        return service.resolve(path).stat().st_mode
    except OSError as e:
        raise translate_os_error(e, path) from e


async def _view_for_path(
    path: str,
    request: Request,
    service: ListingService,
    sort: SortKey,
    ord: SortDirection,
    aria2: Optional[str],
):
    logger.info(f"Displaying directory view for '{path or '/'}'")
    logger.debug(f"sort={sort.value}, ord={ord.value}, aria2={aria2 is not None}")

    try:
        mode = await asyncio.to_thread(_classify, service, path)

        if stat.S_ISREG(mode):
            target = "/".join(quote(part, safe="") for part in split_relative_path(path))
            return RedirectResponse(url=f"/dl/{target}", status_code=308)
        if not stat.S_ISDIR(mode):
            raise NotADirectory(f"Not a directory: {path}", path=path)

        if aria2 is not None:
            base_url = get_settings().base_url or str(request.base_url)
            exporter = Aria2Exporter(service.data_root, base_url)
            body = await asyncio.to_thread(exporter.export, path)
            return PlainTextResponse(body)

        return await asyncio.to_thread(service.browse, path, sort, ord)

    except DirServeError:
        raise
    except Exception as e:
        logger.error(f"Error listing '{path}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error listing directory")


@router.get("/browse", response_model=DirectoryListing)
@router.get("/browse/", response_model=DirectoryListing, include_in_schema=False)
async def root_directory_view(
    request: Request,
    sort: SortKey = Query(SortKey.NAME, description="Sort key"),
    ord: SortDirection = Query(SortDirection.ASCENDING, description="Sort direction"),
    aria2: Optional[str] = Query(None, description="Return an aria2 input file instead"),
    service: ListingService = Depends(get_listing_service),
):
    """
    List the data root.

    Args:
        sort: name, date, size or children_count
        ord: asc or desc
        aria2: When present, return the recursive aria2c input file

    Returns:
        Directory listing
    """
    return await _view_for_path("", request, service, sort, ord, aria2)


@router.get("/browse/{path:path}", response_model=DirectoryListing)
async def serve_path_view(
    request: Request,
    path: str = Path(..., description="Directory path relative to the data root"),
    sort: SortKey = Query(SortKey.NAME, description="Sort key"),
    ord: SortDirection = Query(SortDirection.ASCENDING, description="Sort direction"),
    aria2: Optional[str] = Query(None, description="Return an aria2 input file instead"),
    service: ListingService = Depends(get_listing_service),
):
    """
    List a directory below the data root.

    Browsing a file redirects to its download URL.

    Args:
        path: Directory path relative to the data root
        sort: name, date, size or children_count
        ord: asc or desc
        aria2: When present, return the recursive aria2c input file

    Returns:
        Directory listing
    """
    return await _view_for_path(path, request, service, sort, ord, aria2)

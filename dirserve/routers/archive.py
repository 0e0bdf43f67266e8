"""Archive router: streamed ZIP of a directory selection."""

import asyncio
import logging
import threading
from pathlib import Path as FsPath
from fastapi import APIRouter, HTTPException, Path, Query, Request
from fastapi.responses import StreamingResponse

from dirserve.config import get_settings
from dirserve.core.errors import DirServeError, SinkWriteFailure
from dirserve.services import path_resolver
from dirserve.services.archive_service import ArchiveStreamer
from dirserve.services.sinks import QueueSink
from dirserve.utils.formatters import content_disposition

logger = logging.getLogger(__name__)
router = APIRouter()


def get_archive_streamer(request: Request) -> ArchiveStreamer:
    """Build an archive streamer from the current settings."""
    settings = get_settings()
    return ArchiveStreamer(
        request.app.state.data_root,
        chunk_size=settings.archive_chunk_size,
        compression=settings.archive_compression,
    )


def _produce(
    streamer: ArchiveStreamer,
    base_directory: FsPath,
    selected: list[tuple[str, FsPath]],
    sink: QueueSink,
) -> None:
    """Worker thread body: write the archive, then signal the end to the consumer."""
    try:
        report = streamer.write(base_directory, selected, sink)
    except SinkWriteFailure:
        logger.info(f"Client disconnected, archive of '{base_directory.name}' stopped")
        sink.finish()
    except Exception as e:
        logger.error(f"Archive of '{base_directory.name}' aborted: {e}", exc_info=True)
        sink.finish(e)
    else:
        if report.skipped:
            logger.warning(f"Archive of '{base_directory.name}' left out: {', '.join(report.skipped)}")
        sink.finish()


def _prepare(streamer: ArchiveStreamer, path: str, names: list[str]) -> tuple[FsPath, list]:
    base_directory = path_resolver.resolve(streamer.data_root, path)
    return base_directory, streamer.prepare(base_directory, names)


async def _archive_response(request: Request, path: str, names: list[str]) -> StreamingResponse:
    logger.info(f"Archiving {len(names)} entries of '{path or '/'}'")
    streamer = get_archive_streamer(request)
    try:
        base_directory, selected = await asyncio.to_thread(_prepare, streamer, path, names)
    except DirServeError:
        raise
    except Exception as e:
        logger.error(f"Error preparing archive of '{path}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error preparing archive")

    sink = QueueSink(depth=get_settings().archive_queue_depth)

    async def body():
        worker = threading.Thread(
            target=_produce,
            args=(streamer, base_directory, selected, sink),
            name=f"archive-{base_directory.name}",
            daemon=True,
        )
        worker.start()
        try:
            while True:
                chunk = await asyncio.to_thread(sink.get)
                if chunk is None:
                    break
                yield chunk
        finally:
            sink.cancel()

    archive_name = f"{base_directory.name or 'archive'}.zip"
    return StreamingResponse(
        body(),
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(archive_name)},
    )


@router.get("/arc")
@router.get("/arc/", include_in_schema=False)
async def archive_root(
    request: Request,
    names: list[str] = Query([], description="Names of entries of the data root to include"),
):
    """
    Stream a ZIP archive of selected entries of the data root.

    Args:
        names: Repeated names of immediate children

    Returns:
        ZIP archive stream
    """
    return await _archive_response(request, "", names)


@router.get("/arc/{path:path}")
async def archive_directory(
    request: Request,
    path: str = Path(..., description="Directory path relative to the data root"),
    names: list[str] = Query([], description="Names of entries of the directory to include"),
):
    """
    Stream a ZIP archive of selected entries of a directory.

    All names are checked before the first byte is sent, so an invalid
    selection fails with a JSON error instead of a truncated archive.

    Args:
        path: Directory path relative to the data root
        names: Repeated names of immediate children

    Returns:
        ZIP archive stream
    """
    return await _archive_response(request, path, names)

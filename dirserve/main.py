"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from dirserve.config import get_settings
from dirserve.core.errors import DirServeError
from dirserve.models.response import ErrorResponse
from dirserve.routers import archive, browse, download, health

# Configure logging
settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format=settings.log_format
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    current = get_settings()
    app.state.data_root = current.get_data_root()
    logger.info("Starting dirserve")
    logger.info(f"Data root: {app.state.data_root}")
    logger.info(f"Archive compression: {current.archive_compression}, chunk size: {current.archive_chunk_size}")

    yield

    logger.info("Shutting down dirserve")


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=settings.api_description,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Range"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(browse.router, tags=["Browse"])
app.include_router(download.router, tags=["Download"])
app.include_router(archive.router, tags=["Archive"])


@app.exception_handler(DirServeError)
async def dirserve_exception_handler(request: Request, exc: DirServeError):
    """Render typed engine errors as JSON with their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.error} on {request.url.path}: {exc.detail}")
    body = ErrorResponse(error=exc.error, detail=exc.detail, path=exc.path)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if get_settings().debug else "An unexpected error occurred"
        }
    )


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint."""
    return RedirectResponse(url="/browse/", status_code=308)

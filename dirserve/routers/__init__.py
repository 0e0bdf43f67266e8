"""API routers for dirserve."""

from dirserve.routers import health, browse, download, archive

__all__ = ["health", "browse", "download", "archive"]

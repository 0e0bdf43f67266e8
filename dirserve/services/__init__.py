"""Service layer for dirserve."""

from dirserve.services.listing_service import ListingService, list_directory, sort_entries
from dirserve.services.archive_service import ArchiveReport, ArchiveStreamer, stream_archive
from dirserve.services.download_service import DownloadPlan, plan_download
from dirserve.services.aria2_service import Aria2Exporter
from dirserve.services.sinks import MemorySink, QueueSink, WriteSink

__all__ = [
    "ListingService",
    "list_directory",
    "sort_entries",
    "ArchiveReport",
    "ArchiveStreamer",
    "stream_archive",
    "DownloadPlan",
    "plan_download",
    "Aria2Exporter",
    "MemorySink",
    "QueueSink",
    "WriteSink",
]

"""
Export service for the Imperva account export API.

Features:
- Retries transient failures (transport errors, 5xx, 401) with backoff
- Polls the export job with exponential backoff under a deadline
- Streams the archive to disk through a temp file and atomic rename
"""

from imperva_export.services.export._aio import AsyncExportService
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import (
    APIErrorDetail,
    AsyncResponse,
    ErrorResponse,
    ExportResult,
    PollState,
)
from imperva_export.services.export._poller import ExportPoller
from imperva_export.services.export._request import RequestExecutor
from imperva_export.services.export._sync import ExportService
from imperva_export.services.export._writer import AtomicFileWriter

__all__ = [
    "APIErrorDetail",
    "AsyncResponse",
    "ErrorResponse",
    "ExportResult",
    "PollState",
    "Deadline",
    "RequestExecutor",
    "ExportPoller",
    "AtomicFileWriter",
    "AsyncExportService",
    "ExportService",
]

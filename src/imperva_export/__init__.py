"""
Imperva account export client.

Triggers an account export, waits for it to finish and saves the
Terraform zip archive locally.

Usage:
    >>> from imperva_export import AsyncExportService, load_settings
    >>>
    >>> async with AsyncExportService(load_settings()) as service:
    ...     result = await service.run(caid=12345)
"""

from imperva_export.config import VERSION, ExportSettings, load_settings
from imperva_export.exceptions import (
    APIError,
    ConfigError,
    ExportError,
    ExportNotReadyError,
    MaxAttemptsExceededError,
    OperationTimeoutError,
    ProtocolError,
    RequestCancelledError,
    RetriesExhaustedError,
    StorageError,
    TransportError,
    ValidationError,
)
from imperva_export.services.export import (
    AsyncExportService,
    Deadline,
    ExportResult,
    ExportService,
)

__version__ = VERSION

__all__ = [
    "__version__",
    # Settings
    "ExportSettings",
    "load_settings",
    # Services
    "AsyncExportService",
    "ExportService",
    "Deadline",
    "ExportResult",
    # Errors
    "ExportError",
    "ConfigError",
    "ValidationError",
    "TransportError",
    "RetriesExhaustedError",
    "APIError",
    "ProtocolError",
    "ExportNotReadyError",
    "OperationTimeoutError",
    "MaxAttemptsExceededError",
    "RequestCancelledError",
    "StorageError",
]

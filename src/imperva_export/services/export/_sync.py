"""
Synchronous export service.

Wrapper around AsyncExportService using asyncio.run().
Each call opens and closes its own HTTP client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from imperva_export.config import ExportSettings
from imperva_export.services.export._aio import AsyncExportService
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import ExportResult


class ExportService:
    """
    Synchronous export service.

    Thin wrapper around AsyncExportService for scripts that do not run an
    event loop.

    Example:
        >>> service = ExportService(load_settings())
        >>> result = service.run(caid=12345)
        >>> print(result)
    """

    def __init__(self, settings: ExportSettings, **options: Any) -> None:
        self._settings = settings
        self._options = options

    @property
    def settings(self) -> ExportSettings:
        return self._settings

    def submit(self, caid: int, timeout: float | None = None) -> str:
        """Start an export and return its handler."""
        return asyncio.run(self._call("submit", caid, deadline=_deadline(timeout)))

    def wait(
        self,
        caid: int,
        handler: str,
        timeout: float | None = None,
        on_pending: Callable[[int], None] | None = None,
    ) -> ExportResult:
        """Wait for an export to finish and save the archive."""
        return asyncio.run(
            self._call("wait", caid, handler, deadline=_deadline(timeout), on_pending=on_pending)
        )

    def download(self, caid: int, handler: str, timeout: float | None = None) -> ExportResult:
        """Download a finished export with a single request."""
        return asyncio.run(self._call("download", caid, handler, deadline=_deadline(timeout)))

    def run(
        self,
        caid: int,
        timeout: float | None = None,
        on_pending: Callable[[int], None] | None = None,
        on_submitted: Callable[[str], None] | None = None,
    ) -> ExportResult:
        """Submit an export and wait for it."""
        return asyncio.run(
            self._call(
                "run",
                caid,
                deadline=_deadline(timeout),
                on_pending=on_pending,
                on_submitted=on_submitted,
            )
        )

    async def _call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        async with AsyncExportService(self._settings, **self._options) as service:
            return await getattr(service, operation)(*args, **kwargs)


def _deadline(timeout: float | None) -> Deadline | None:
    return None if timeout is None else Deadline(timeout)

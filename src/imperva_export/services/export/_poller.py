"""
Status poller for export jobs.

Polls the download endpoint until the archive is ready, then hands the
live response to the writer. Bounded by the caller's deadline and by a
maximum number of poll attempts.
"""

from __future__ import annotations

from typing import Callable

from imperva_export.exceptions import (
    MaxAttemptsExceededError,
    OperationTimeoutError,
)
from imperva_export.logging import get_logger
from imperva_export.services.export._config import (
    MAX_POLL_ATTEMPTS,
    POLL_INITIAL_DELAY,
    POLL_MAX_DELAY,
)
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import ExportResult, PollState
from imperva_export.services.export._request import RequestExecutor, read_error
from imperva_export.services.export._writer import AtomicFileWriter

logger = get_logger(__name__)


class ExportPoller:
    """Waits for an export to complete and saves the archive."""

    def __init__(
        self,
        executor: RequestExecutor,
        writer: AtomicFileWriter,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        initial_delay: float = POLL_INITIAL_DELAY,
        max_delay: float = POLL_MAX_DELAY,
    ) -> None:
        self._executor = executor
        self._writer = writer
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._max_delay = max_delay

    async def wait(
        self,
        url: str,
        account_id: int,
        handler: str,
        deadline: Deadline,
        on_pending: Callable[[int], None] | None = None,
    ) -> ExportResult:
        """
        Poll until the export is downloadable, then persist it.

        Args:
            url: Download endpoint for this handler.
            account_id: Account the export belongs to.
            handler: Export handler.
            deadline: Operation deadline, checked before each request and
                during each sleep.
            on_pending: Callback(attempt) after each 202 response.

        Returns:
            ExportResult for the saved archive.

        Raises:
            OperationTimeoutError: Deadline expired or cancelled.
            MaxAttemptsExceededError: Attempt budget spent.
            APIError / ProtocolError: Export failed server-side.
        """
        delay = self._initial_delay
        attempts = 0

        logger.info("Waiting for export to complete...")

        while True:
            if deadline.expired:
                raise OperationTimeoutError()

            logger.debug(f"Checking export status at URL: {url}")
            response = await self._executor.send("GET", url, deadline=deadline)
            state = PollState.from_status(response.status_code)

            if state is PollState.COMPLETED:
                logger.info("Export completed. Saving file...")
                try:
                    return await self._writer.write(account_id, handler, response, deadline)
                finally:
                    await response.aclose()

            if state is PollState.FAILED:
                raise await read_error(response)

            await response.aclose()
            attempts += 1
            logger.info("Export still in progress...")
            if on_pending is not None:
                on_pending(attempts)

            if not await deadline.sleep(delay):
                raise OperationTimeoutError()
            delay = min(delay * 2, self._max_delay)

            if attempts >= self._max_attempts:
                raise MaxAttemptsExceededError(self._max_attempts)


__all__ = ["ExportPoller"]

"""
Asynchronous export service.

Drives one export end to end:
- submit the export job and receive a handler
- poll the download endpoint until the archive is ready
- stream the archive to disk atomically
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
from pydantic import ValidationError as PydanticValidationError

from imperva_export.config import API_ID_HEADER, API_KEY_HEADER, USER_AGENT, ExportSettings
from imperva_export.exceptions import ExportError, ExportNotReadyError, ProtocolError
from imperva_export.logging import get_logger
from imperva_export.services.export._config import (
    BACKOFF_BASE,
    DEFAULT_CHUNK_SIZE,
    DOWNLOAD_PATH,
    DOWNLOAD_TIMEOUT,
    EXPORT_PATH,
    MAX_BACKOFF,
    MAX_POLL_ATTEMPTS,
    MAX_RETRIES,
    POLL_INITIAL_DELAY,
    POLL_MAX_DELAY,
    SUBMIT_TIMEOUT,
    WAIT_TIMEOUT,
)
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import AsyncResponse, ExportResult, PollState
from imperva_export.services.export._poller import ExportPoller
from imperva_export.services.export._request import RequestExecutor, read_error
from imperva_export.services.export._writer import AtomicFileWriter
from imperva_export.validation import validate_account_id, validate_handler

logger = get_logger(__name__)


class AsyncExportService:
    """
    Asynchronous account export service.

    Example:
        >>> settings = load_settings(api_id="123", api_key="secret")
        >>> async with AsyncExportService(settings) as service:
        ...     result = await service.run(caid=12345)
        ...     print(result.path)
    """

    def __init__(
        self,
        settings: ExportSettings,
        client: httpx.AsyncClient | None = None,
        *,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
        max_backoff: float = MAX_BACKOFF,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        poll_initial_delay: float = POLL_INITIAL_DELAY,
        poll_max_delay: float = POLL_MAX_DELAY,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client if client is not None else self._create_client(settings)
        self._executor = RequestExecutor(
            self._client,
            headers=build_headers(settings),
            max_retries=max_retries,
            backoff_base=backoff_base,
            max_backoff=max_backoff,
        )
        self._writer = AtomicFileWriter(settings.output_dir, chunk_size=chunk_size)
        self._poller = ExportPoller(
            self._executor,
            self._writer,
            max_attempts=max_poll_attempts,
            initial_delay=poll_initial_delay,
            max_delay=poll_max_delay,
        )

    @staticmethod
    def _create_client(settings: ExportSettings) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )

    @property
    def settings(self) -> ExportSettings:
        return self._settings

    @property
    def writer(self) -> AtomicFileWriter:
        return self._writer

    def export_url(self, caid: int) -> str:
        return f"{self._settings.api_base_url}{EXPORT_PATH}?caid={caid}"

    def download_url(self, caid: int, handler: str) -> str:
        path = DOWNLOAD_PATH.format(handler=handler)
        return f"{self._settings.api_base_url}{path}?caid={caid}"

    # =========================================================================
    # Operations
    # =========================================================================

    async def submit(self, caid: int, deadline: Deadline | None = None) -> str:
        """
        Start an export for an account.

        Args:
            caid: Account id.
            deadline: Defaults to 60 seconds.

        Returns:
            Export handler.
        """
        validate_account_id(caid)
        deadline = deadline or Deadline(SUBMIT_TIMEOUT)
        try:
            return await self._submit(caid, deadline)
        except ExportError as e:
            raise e.add_context("failed to initiate export")

    async def _submit(self, caid: int, deadline: Deadline) -> str:
        url = self.export_url(caid)
        logger.debug(f"Initiating export for CAID: {caid}")
        logger.debug(f"Export URL: {url}")

        response = await self._executor.send("POST", url, deadline=deadline)
        if response.status_code >= 400:
            raise await read_error(response)

        try:
            body = await response.aread()
        except httpx.HTTPError as e:
            raise ProtocolError(f"failed to read export initiation response: {e}", cause=e) from e
        finally:
            await response.aclose()

        if not 200 <= response.status_code < 300:
            raise ProtocolError(
                f"unexpected status code {response.status_code}: {body.decode('utf-8', 'replace')}",
                status_code=response.status_code,
            )

        try:
            parsed = AsyncResponse.model_validate_json(body)
        except PydanticValidationError as e:
            raise ProtocolError(
                f"failed to decode export initiation response: {e}",
                status_code=response.status_code,
                cause=e,
            ) from e

        if not parsed.handler:
            raise ProtocolError("received empty handler in response", status_code=response.status_code)

        logger.info(f"Export initiated. Handler: {parsed.handler} (status: {parsed.status})")
        return parsed.handler

    async def wait(
        self,
        caid: int,
        handler: str,
        deadline: Deadline | None = None,
        on_pending: Callable[[int], None] | None = None,
    ) -> ExportResult:
        """
        Wait for an export to finish and save the archive.

        Args:
            caid: Account id.
            handler: Handler returned by submit.
            deadline: Defaults to 10 minutes.
            on_pending: Callback(attempt) while the export is still running.
        """
        validate_account_id(caid)
        handler = validate_handler(handler)
        self._writer.validate()
        deadline = deadline or Deadline(WAIT_TIMEOUT)
        try:
            return await self._poller.wait(
                self.download_url(caid, handler),
                caid,
                handler,
                deadline,
                on_pending=on_pending,
            )
        except ExportError as e:
            raise e.add_context("error checking export status")

    async def download(
        self,
        caid: int,
        handler: str,
        deadline: Deadline | None = None,
    ) -> ExportResult:
        """
        Download a finished export with a single request.

        Raises:
            ExportNotReadyError: The export is still running.
        """
        validate_account_id(caid)
        handler = validate_handler(handler)
        self._writer.validate()
        deadline = deadline or Deadline(DOWNLOAD_TIMEOUT)
        try:
            response = await self._executor.send(
                "GET", self.download_url(caid, handler), deadline=deadline
            )
            state = PollState.from_status(response.status_code)
            if state is PollState.PENDING:
                await response.aclose()
                raise ExportNotReadyError(handler)
            if state is PollState.FAILED:
                raise await read_error(response)
            try:
                return await self._writer.write(caid, handler, response, deadline)
            finally:
                await response.aclose()
        except ExportError as e:
            raise e.add_context("error downloading export file")

    async def run(
        self,
        caid: int,
        deadline: Deadline | None = None,
        on_pending: Callable[[int], None] | None = None,
        on_submitted: Callable[[str], None] | None = None,
    ) -> ExportResult:
        """
        Submit an export and wait for it under one deadline.

        Args:
            caid: Account id.
            deadline: Shared by submit and wait. Defaults to 10 minutes.
            on_pending: Callback(attempt) while the export is still running.
            on_submitted: Callback(handler) once the export is accepted.
        """
        validate_account_id(caid)
        self._writer.validate()
        deadline = deadline or Deadline(WAIT_TIMEOUT)
        logger.info(f"Initiating export for CAID: {caid}")

        try:
            handler = await self._submit(caid, deadline)
        except ExportError as e:
            logger.error(f"Failed to initiate export: {e}")
            raise e.add_context("failed to initiate export")

        if on_submitted is not None:
            on_submitted(handler)

        try:
            result = await self._poller.wait(
                self.download_url(caid, handler),
                caid,
                handler,
                deadline,
                on_pending=on_pending,
            )
        except ExportError as e:
            logger.error(f"Error during status check: {e}")
            raise e.add_context(f"error waiting for export {handler}")

        logger.debug("Export completed successfully")
        return result

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncExportService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<AsyncExportService base_url={self._settings.api_base_url!r}>"


def build_headers(settings: ExportSettings) -> dict[str, str]:
    """Credential and client identifier headers sent with every request."""
    return {
        API_ID_HEADER: settings.api_id,
        API_KEY_HEADER: settings.api_key,
        "User-Agent": USER_AGENT,
    }


__all__ = ["AsyncExportService", "build_headers"]

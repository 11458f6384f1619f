"""
Resilient request executor.

Sends one logical HTTP request with a fixed retry budget. Transport errors,
5xx responses and 401 responses are retried with exponential backoff; every
other response is returned to the caller as a live stream.
"""

from __future__ import annotations

from typing import Mapping

import httpx

from imperva_export.exceptions import (
    APIError,
    ExportError,
    ProtocolError,
    RequestCancelledError,
    RetriesExhaustedError,
    TransportError,
    ValidationError,
)
from imperva_export.logging import get_logger
from imperva_export.services.export._config import BACKOFF_BASE, MAX_BACKOFF, MAX_RETRIES
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import ErrorResponse

logger = get_logger(__name__)


def is_retryable_status(status_code: int) -> bool:
    """5xx and 401 are retried. 401 is retried to ride out credential rotation."""
    return status_code >= 500 or status_code == 401


def backoff_delay(attempt: int, base: float = BACKOFF_BASE, ceiling: float = MAX_BACKOFF) -> float:
    """Delay after 0-indexed attempt: min(base * 2**attempt, ceiling)."""
    return min(base * (2**attempt), ceiling)


class RequestExecutor:
    """
    Issues requests with bounded retries.

    The returned response is streamed; callers must close it.

    Example:
        >>> executor = RequestExecutor(client)
        >>> response = await executor.send("GET", url, deadline=Deadline(60))
        >>> try:
        ...     ...
        ... finally:
        ...     await response.aclose()
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        headers: Mapping[str, str] | None = None,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE,
        max_backoff: float = MAX_BACKOFF,
    ) -> None:
        self._client = client
        self._headers = dict(headers or {})
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def send(
        self,
        method: str,
        url: str,
        *,
        deadline: Deadline,
        content: bytes | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Args:
            method: HTTP method.
            url: Absolute or client-relative URL.
            deadline: Operation deadline; bounds attempts and backoff waits.
            content: Optional body, replayed on every attempt.

        Returns:
            Live response with a non-retryable status.

        Raises:
            ValidationError: URL does not parse.
            RequestCancelledError: Deadline expired or operation cancelled.
            RetriesExhaustedError: Every attempt returned 5xx or 401.
            TransportError: The last attempt failed at the transport level.
        """
        try:
            target = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValidationError(f"invalid URL '{url}': {e}", value=url) from e

        last_error: httpx.TransportError | None = None
        last_status = 0

        for attempt in range(self._max_retries + 1):
            if deadline.expired:
                raise RequestCancelledError()

            request = self._client.build_request(
                method, target, content=content, headers=self._headers
            )
            try:
                response = await deadline.run(self._client.send(request, stream=True))
            except httpx.TransportError as e:
                last_error, last_status = e, 0
                reason = f"failed ({e!r})"
            else:
                if not is_retryable_status(response.status_code):
                    return response
                await self._discard(response)
                last_error, last_status = None, response.status_code
                reason = f"returned {response.status_code}"

            if attempt == self._max_retries:
                break

            delay = backoff_delay(attempt, self._backoff_base, self._max_backoff)
            logger.warning(
                f"{method} {target} {reason}, "
                f"retry {attempt + 1}/{self._max_retries} in {delay:.1f}s"
            )
            if not await deadline.sleep(delay):
                raise RequestCancelledError()

        if last_error is not None:
            raise TransportError(
                f"request failed after {self._max_retries} retries: {last_error}",
                retries=self._max_retries,
                cause=last_error,
            )
        raise RetriesExhaustedError(self._max_retries, last_status)

    async def _discard(self, response: httpx.Response) -> None:
        """Drain and close a response so the connection can be reused."""
        try:
            await response.aread()
        except httpx.HTTPError as e:
            logger.warning(f"Error discarding response body: {e}")
        try:
            await response.aclose()
        except httpx.HTTPError as e:
            logger.warning(f"Error closing response body: {e}")


def error_from_body(status_code: int, body: bytes) -> ExportError:
    """
    Build the exception for a failed response body.

    Structured {"errors": [...]} payloads become APIError; anything else
    becomes ProtocolError carrying the raw text.
    """
    text = body.decode("utf-8", errors="replace")
    parsed = ErrorResponse.parse(body)
    if parsed is not None and parsed.errors:
        return APIError(status_code, parsed.errors)
    return ProtocolError(
        f"unexpected status code {status_code}: {text}",
        status_code=status_code,
        body=text,
    )


async def read_error(response: httpx.Response) -> ExportError:
    """Drain and close a failed response, returning the matching exception."""
    logger.debug(f"Received status code {response.status_code}")
    try:
        body = await response.aread()
    except httpx.HTTPError as e:
        return TransportError(f"failed to read response body: {e}", cause=e)
    finally:
        await response.aclose()
    return error_from_body(response.status_code, body)


__all__ = [
    "RequestExecutor",
    "is_retryable_status",
    "backoff_delay",
    "error_from_body",
    "read_error",
]

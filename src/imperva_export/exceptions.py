"""
Exceptions for the Imperva export client.

Hierarchy:
    ExportError
    ├── ConfigError
    ├── ValidationError
    ├── TransportError
    │   └── RetriesExhaustedError
    ├── APIError
    ├── ProtocolError
    │   └── ExportNotReadyError
    ├── OperationTimeoutError
    │   ├── MaxAttemptsExceededError
    │   └── RequestCancelledError
    └── StorageError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imperva_export.services.export._models import APIErrorDetail


class ExportError(Exception):
    """Base exception for all export client errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._original_cause = cause
        if cause is not None:
            self.__cause__ = cause

    def add_context(self, context: str) -> ExportError:
        """
        Prefix the message with the name of the failing operation.

        Type and cause are preserved so callers can still match on the class.

        Example:
            >>> try:
            ...     await executor.send("POST", url, deadline=deadline)
            ... except ExportError as e:
            ...     raise e.add_context("failed to initiate export")
        """
        self.message = f"{context}: {self.message}"
        self.args = (self.message,)
        return self

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Local errors
# =============================================================================


class ConfigError(ExportError):
    """Settings could not be loaded or are incomplete."""


class ValidationError(ExportError):
    """Input rejected before any I/O happened."""

    def __init__(self, message: str, value: object = None) -> None:
        super().__init__(message)
        self.value = value


class StorageError(ExportError):
    """Local filesystem failure while staging or promoting the archive."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.path = path


# =============================================================================
# Remote errors
# =============================================================================


class TransportError(ExportError):
    """Network-level failure that survived the retry budget."""

    def __init__(
        self,
        message: str,
        retries: int = 0,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.retries = retries


class RetriesExhaustedError(TransportError):
    """Every attempt returned a retryable status code."""

    def __init__(self, retries: int, status_code: int) -> None:
        super().__init__(
            f"request failed after {retries} retries with status code: {status_code}",
            retries=retries,
        )
        self.status_code = status_code


class APIError(ExportError):
    """Structured error payload returned by the export API."""

    def __init__(self, status_code: int, errors: list[APIErrorDetail]) -> None:
        joined = "; ".join(str(e) for e in errors)
        super().__init__(f"API errors: {joined}")
        self.status_code = status_code
        self.errors = errors


class ProtocolError(ExportError):
    """Response had an unexpected status or shape."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.body = body


class ExportNotReadyError(ProtocolError):
    """Download requested while the export job is still running."""

    def __init__(self, handler: str) -> None:
        super().__init__(
            f"export {handler} is still in progress, try the status command",
            status_code=202,
        )
        self.handler = handler


# =============================================================================
# Time budget errors
# =============================================================================


class OperationTimeoutError(ExportError):
    """Deadline expired or the operation was cancelled."""

    def __init__(self, message: str = "timed out while waiting for export to complete") -> None:
        super().__init__(message)


class MaxAttemptsExceededError(OperationTimeoutError):
    """Poll attempt budget spent before the export finished."""

    def __init__(self, max_attempts: int) -> None:
        super().__init__(
            f"maximum number of attempts ({max_attempts}) reached "
            "while waiting for export to complete"
        )
        self.max_attempts = max_attempts


class RequestCancelledError(OperationTimeoutError):
    """Deadline or cancellation hit while a request was pending or backing off."""

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__("request context canceled")
        if cause is not None:
            self._original_cause = cause
            self.__cause__ = cause


__all__ = [
    "ExportError",
    "ConfigError",
    "ValidationError",
    "StorageError",
    "TransportError",
    "RetriesExhaustedError",
    "APIError",
    "ProtocolError",
    "ExportNotReadyError",
    "OperationTimeoutError",
    "MaxAttemptsExceededError",
    "RequestCancelledError",
]

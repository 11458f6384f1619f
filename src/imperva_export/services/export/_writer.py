"""
Atomic file writer for export archives.

The archive is streamed into a process-unique ``<final>.<random>.tmp`` file
in the output directory and renamed into place only after the whole body has
been written. The final path never holds a partial file, and concurrent
writers of the same export do not collide (the last rename wins).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO

import httpx

from imperva_export.exceptions import StorageError, TransportError
from imperva_export.logging import get_logger
from imperva_export.services.export._config import DEFAULT_CHUNK_SIZE
from imperva_export.services.export._deadline import Deadline
from imperva_export.services.export._models import ExportResult
from imperva_export.validation import validate_file_path, validate_output_dir

logger = get_logger(__name__)

TEMP_SUFFIX = ".tmp"


def export_filename(account_id: int, handler: str) -> str:
    return f"export_{account_id}_{handler}.zip"


class AtomicFileWriter:
    """Streams a response body to ``<output_dir>/export_<caid>_<handler>.zip``."""

    def __init__(
        self,
        output_dir: str | os.PathLike[str] = ".",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._output_dir = os.fspath(output_dir) or "."
        self._chunk_size = chunk_size

    @property
    def output_dir(self) -> str:
        return self._output_dir

    def target_path(self, account_id: int, handler: str) -> Path:
        return Path(os.path.join(self._output_dir, export_filename(account_id, handler)))

    def validate(self) -> None:
        """
        Check the output directory before any request is sent.

        Raises:
            ValidationError: Directory contains '..' or temp files in it
                would be rejected.
        """
        validate_output_dir(self._output_dir)
        validate_file_path(os.path.join(self._output_dir, f"export{TEMP_SUFFIX}"))

    async def write(
        self,
        account_id: int,
        handler: str,
        response: httpx.Response,
        deadline: Deadline | None = None,
    ) -> ExportResult:
        """
        Persist the response body.

        The response is read but not closed. When a deadline is given the
        body copy is bounded by it.

        Raises:
            ValidationError: Output directory or temp path rejected.
            TransportError: Reading the body failed.
            StorageError: Creating, writing or renaming the file failed.
            RequestCancelledError: The deadline expired mid-copy.
        """
        self.validate()
        final_path = self.target_path(account_id, handler)

        try:
            os.makedirs(self._output_dir, mode=0o750, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create output directory: {self._output_dir}")
            raise StorageError(
                f"failed to create output directory: {e}", path=self._output_dir, cause=e
            ) from e

        try:
            fd, temp_name = tempfile.mkstemp(
                dir=self._output_dir, prefix=f"{final_path.name}.", suffix=TEMP_SUFFIX
            )
        except OSError as e:
            logger.error(f"Failed to create temp file in: {self._output_dir}")
            raise StorageError(
                f"failed to create temp file: {e}", path=self._output_dir, cause=e
            ) from e
        temp_path = Path(temp_name)

        try:
            try:
                with os.fdopen(fd, "wb") as f:
                    copy = self._copy(response, f)
                    total_bytes = await (copy if deadline is None else deadline.run(copy))
            except httpx.HTTPError as e:
                logger.error(f"Error reading response body: {e}")
                raise TransportError(f"error reading response body: {e}", cause=e) from e
            except OSError as e:
                logger.error(f"Failed to write to temp file: {temp_path}")
                raise StorageError(
                    f"failed to write to temp file: {e}", path=str(temp_path), cause=e
                ) from e

            try:
                os.replace(temp_path, final_path)
            except OSError as e:
                logger.error(f"Failed to rename temp file to final file: {final_path}")
                raise StorageError(
                    f"failed to rename temp file to final file: {e}",
                    path=str(final_path),
                    cause=e,
                ) from e
        finally:
            self._remove_temp(temp_path)

        logger.info(f"Export file downloaded successfully to {final_path} ({total_bytes} bytes)")
        return ExportResult(
            account_id=account_id,
            handler=handler,
            path=final_path,
            size=total_bytes,
        )

    async def _copy(self, response: httpx.Response, f: BinaryIO) -> int:
        total = 0
        async for chunk in response.aiter_bytes(self._chunk_size):
            f.write(chunk)
            total += len(chunk)
        return total

    def _remove_temp(self, temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove temp file: {temp_path}: {e}")


__all__ = ["AtomicFileWriter", "export_filename", "TEMP_SUFFIX"]

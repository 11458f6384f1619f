"""
Input validators.

Pure checks run before any request is sent or any file is touched.
Each raises ValidationError naming the rejected value.
"""

from __future__ import annotations

import os
import re
import tempfile

from imperva_export.exceptions import ValidationError

HANDLER_PATTERN = re.compile(
    r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$"
)


def validate_account_id(caid: int) -> int:
    """Account ids are strictly positive integers."""
    if isinstance(caid, bool) or not isinstance(caid, int) or caid <= 0:
        raise ValidationError(f"invalid caid: {caid}", value=caid)
    return caid


def validate_handler(handler: str) -> str:
    """
    Check an export handler and return it trimmed.

    Handlers are lowercase 8-4-4-4-12 UUIDs. Surrounding whitespace is allowed.
    """
    trimmed = (handler or "").strip()
    if not trimmed:
        raise ValidationError("handler is required", value=handler)
    if not HANDLER_PATTERN.match(trimmed):
        raise ValidationError(f"invalid handler format: {handler!r}", value=handler)
    return trimmed


def validate_output_dir(output_dir: str | os.PathLike[str]) -> None:
    """Reject directories containing a '..' traversal sequence."""
    if ".." in os.fspath(output_dir):
        raise ValidationError(f"invalid output directory: {output_dir}", value=output_dir)


def validate_file_path(path: str | os.PathLike[str]) -> None:
    """
    Check a file path before writing to it.

    Rejects '..' anywhere in the path. Absolute paths are only accepted
    inside the system temp directory. The parent directory must pass
    validate_output_dir.
    """
    raw = os.fspath(path)
    if ".." in raw:
        raise ValidationError(f"invalid file path: {raw}", value=raw)

    if os.path.isabs(raw):
        temp_dir = os.path.abspath(tempfile.gettempdir())
        candidate = os.path.abspath(raw)
        if os.path.commonpath([temp_dir, candidate]) != temp_dir:
            raise ValidationError(
                f"absolute paths are only allowed in the system temp directory: {raw}",
                value=raw,
            )

    parent = os.path.dirname(raw)
    try:
        validate_output_dir(parent)
    except ValidationError as e:
        raise ValidationError(f"invalid directory in file path: {parent}", value=raw) from e


__all__ = [
    "HANDLER_PATTERN",
    "validate_account_id",
    "validate_handler",
    "validate_output_dir",
    "validate_file_path",
]

"""
Models for export service.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError


class PollState(str, Enum):
    """Export state as reported by the download endpoint."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_status(cls, status_code: int) -> PollState:
        if status_code == 200:
            return cls.COMPLETED
        if status_code == 202:
            return cls.PENDING
        return cls.FAILED


class AsyncResponse(BaseModel):
    """Body of the export initiation response."""

    handler: str = ""
    status: str = ""


class APIErrorSource(BaseModel):
    pointer: str = ""


class APIErrorDetail(BaseModel):
    """One entry of the API error envelope."""

    status: int = 0
    id: str = ""
    code: str = ""
    source: APIErrorSource = Field(default_factory=APIErrorSource)
    title: str = ""
    detail: str = ""

    def __str__(self) -> str:
        return f"API error: {self.title} - {self.detail} (Status Code: {self.status})"


class ErrorResponse(BaseModel):
    """Error envelope: {"errors": [...]}."""

    errors: list[APIErrorDetail] = Field(default_factory=list)

    @classmethod
    def parse(cls, body: bytes | str) -> ErrorResponse | None:
        """Parse an error body. Returns None when it is not an error envelope."""
        try:
            data = json.loads(body)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None


class ExportResult(BaseModel):
    """Result of a completed export download."""

    model_config = {"arbitrary_types_allowed": True}

    account_id: int
    handler: str
    path: Path
    size: int = 0

    def __str__(self) -> str:
        return f"Export file downloaded successfully to {self.path} ({self.size} bytes)"

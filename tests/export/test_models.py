"""Tests for export models."""

from pathlib import Path

import pytest

from imperva_export.services.export import (
    APIErrorDetail,
    AsyncResponse,
    ErrorResponse,
    ExportResult,
    PollState,
)


class TestPollState:
    """Tests for status code classification."""

    def test_ok_is_completed(self):
        assert PollState.from_status(200) is PollState.COMPLETED

    def test_accepted_is_pending(self):
        assert PollState.from_status(202) is PollState.PENDING

    @pytest.mark.parametrize("status", [201, 204, 400, 404, 409, 500])
    def test_everything_else_failed(self, status):
        assert PollState.from_status(status) is PollState.FAILED


class TestAsyncResponse:
    """Tests for AsyncResponse model."""

    def test_parse(self):
        parsed = AsyncResponse.model_validate_json(
            '{"handler": "abc", "status": "IN_PROGRESS"}'
        )
        assert parsed.handler == "abc"
        assert parsed.status == "IN_PROGRESS"

    def test_missing_fields_default_empty(self):
        parsed = AsyncResponse.model_validate_json("{}")
        assert parsed.handler == ""


class TestErrorResponse:
    """Tests for the API error envelope."""

    def test_parse_full(self):
        body = (
            b'{"errors":[{"status":400,"id":"error1","code":"BadRequest",'
            b'"source":{"pointer":"/export"},"title":"Bad Request","detail":"Invalid input"}]}'
        )
        parsed = ErrorResponse.parse(body)
        assert parsed is not None
        assert len(parsed.errors) == 1
        error = parsed.errors[0]
        assert error.status == 400
        assert error.id == "error1"
        assert error.code == "BadRequest"
        assert error.source.pointer == "/export"
        assert str(error) == "API error: Bad Request - Invalid input (Status Code: 400)"

    @pytest.mark.parametrize("body", [b"", b"not json", b"[1, 2]", b'{"errors": "nope"}'])
    def test_unparseable(self, body):
        assert ErrorResponse.parse(body) is None

    def test_empty_errors(self):
        parsed = ErrorResponse.parse(b'{"errors": []}')
        assert parsed is not None
        assert parsed.errors == []

    def test_detail_defaults(self):
        detail = APIErrorDetail()
        assert detail.status == 0
        assert detail.source.pointer == ""


class TestExportResult:
    """Tests for ExportResult model."""

    def test_str(self):
        result = ExportResult(
            account_id=1,
            handler="h",
            path=Path("out/export_1_h.zip"),
            size=42,
        )
        assert str(result) == "Export file downloaded successfully to out/export_1_h.zip (42 bytes)"

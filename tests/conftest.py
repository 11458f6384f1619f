"""
Pytest configuration and fixtures for export client tests.
"""

from __future__ import annotations

import logging

import pytest

from imperva_export.config import ExportSettings
from imperva_export.logging import ROOT_LOGGER

ENV_VARS = [
    "API_ID",
    "API_KEY",
    "OUTPUT_DIR",
    "IMPERVA_API_ID",
    "IMPERVA_API_KEY",
    "IMPERVA_OUTPUT_DIR",
    "IMPERVA_API_BASE_URL",
    "IMPERVA_LOG_LEVEL",
    "IMPERVA_LOG_JSON",
    "IMPERVA_REQUEST_TIMEOUT",
]

VALID_HANDLER = "28c5f5af-bd9e-423f-99a7-d2a8c440db7e"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's credentials and config file out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore the package logger after each test."""
    logger = logging.getLogger(ROOT_LOGGER)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def handler() -> str:
    return VALID_HANDLER


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "exports"


@pytest.fixture
def settings(output_dir) -> ExportSettings:
    """Settings pointing at a fake API and a temp output directory."""
    return ExportSettings(
        api_id="test-api-id",
        api_key="test-api-key",
        api_base_url="https://api.test/account-export-import",
        output_dir=str(output_dir),
    )

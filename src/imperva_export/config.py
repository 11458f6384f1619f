"""
Settings for the export client (pydantic-settings).

Settings are an explicit value handed to each service; nothing reads a
process-wide store. Sources, highest priority first:

1. explicit overrides (CLI flags, keyword arguments)
2. environment variables (API_ID, API_KEY, OUTPUT_DIR, IMPERVA_*)
3. YAML config file (~/.config/imperva-export-cli.yaml by default)
4. defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from imperva_export.exceptions import ConfigError

VERSION = "1.0.0"

DEFAULT_API_BASE_URL = "https://api.imperva.com/account-export-import"
CONFIG_FILE_NAME = "imperva-export-cli.yaml"

API_ID_HEADER = "x-API-Id"
API_KEY_HEADER = "x-API-Key"
USER_AGENT = f"imperva-export-cli/{VERSION}"


class ExportSettings(BaseSettings):
    """
    Export client settings.

    Example:
        >>> settings = ExportSettings(api_id="123", api_key="secret")
        >>> settings.output_dir
        '.'
    """

    model_config = SettingsConfigDict(
        env_prefix="IMPERVA_",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    api_id: str = Field(
        default="",
        validation_alias=AliasChoices("api_id", "imperva_api_id"),
        description="API ID sent in the x-API-Id header",
    )
    api_key: str = Field(
        default="",
        repr=False,
        validation_alias=AliasChoices("api_key", "imperva_api_key"),
        description="API key sent in the x-API-Key header",
    )

    # Endpoint
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="Base URL of the account export API",
    )
    request_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Per-attempt HTTP timeout in seconds",
    )

    # Output
    output_dir: str = Field(
        default=".",
        validation_alias=AliasChoices("output_dir", "imperva_output_dir"),
        description="Directory to save exported files",
    )

    # Logging
    log_level: str = Field(
        default="none",
        description="none, debug, info, warn or error",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("output_dir")
    @classmethod
    def _default_output_dir(cls, value: str) -> str:
        return value or "."

    def require_credentials(self) -> None:
        """Raise ConfigError unless both credentials are set."""
        if not self.api_id or not self.api_key:
            raise ConfigError(
                "API ID and API Key must be provided via flags, config file, "
                "or environment variables (API_ID, API_KEY)"
            )


def default_config_file() -> Path:
    """Default config file location."""
    return Path.home() / ".config" / CONFIG_FILE_NAME


def read_config_file(path: Path, required: bool = False) -> dict[str, Any]:
    """
    Read a YAML config file into field-name keys.

    Hyphenated keys (api-id, output-dir) are accepted.

    Raises:
        ConfigError: If the file is required but missing, unreadable, or not a mapping.
    """
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"error reading config file: {e}", cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"error reading config file: {path} must contain a mapping")

    return {str(key).replace("-", "_"): value for key, value in data.items()}


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> ExportSettings:
    """
    Build settings from overrides, environment and config file.

    Args:
        config_file: Explicit YAML file. Must exist when given.
        **overrides: Field values that win over every other source.
            None values are ignored so unset CLI flags fall through.

    Returns:
        Validated ExportSettings.
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}

    if config_file is not None:
        file_values = read_config_file(Path(config_file), required=True)
    else:
        file_values = read_config_file(default_config_file())

    try:
        base = ExportSettings(**explicit)
        fallback = {
            key: value
            for key, value in file_values.items()
            if key in ExportSettings.model_fields and key not in base.model_fields_set
        }
        if not fallback:
            return base
        return ExportSettings(**fallback, **explicit)
    except ValidationError as e:
        raise ConfigError(f"invalid settings: {e}", cause=e) from e


__all__ = [
    "ExportSettings",
    "load_settings",
    "read_config_file",
    "default_config_file",
    "VERSION",
    "DEFAULT_API_BASE_URL",
    "API_ID_HEADER",
    "API_KEY_HEADER",
    "USER_AGENT",
]

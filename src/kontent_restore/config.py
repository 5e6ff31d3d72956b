"""Configuration management for Kontent Restore using Pydantic.

Serializable settings (API access, retry policy, logging, import options) are
Pydantic models that can be loaded from YAML and environment variables.
Runtime callables (inclusion predicates and observer callbacks) cannot be
serialized and are carried separately by ImportHooks.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://manage.kontent.ai/v2"


class ManagementApiConfig(BaseModel):
    """Configuration for the target project's Management API."""

    project_id: str = Field(..., description="Target project id")
    api_key: str = Field(..., description="Management API key")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="Management API base URL")
    timeout: int = Field(default=60, ge=1, le=1200, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate and normalize URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("api_key", "project_id")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate value is not empty."""
        if not v or v.strip() == "":
            raise ValueError("Value cannot be empty")
        return v.strip()


class RetryConfig(BaseModel):
    """Retry policy for transient transport failures."""

    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per request")
    min_wait: float = Field(default=1.0, ge=0.0, le=60.0, description="Initial backoff in seconds")
    max_wait: float = Field(default=30.0, ge=0.0, le=300.0, description="Backoff ceiling in seconds")
    max_total_wait: float = Field(
        default=60.0, ge=0.0, le=3600.0, description="Cumulative wait cap in seconds"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="WARNING", description="Console log level")
    file_level: str = Field(default="DEBUG", description="File log level")
    format: str = Field(default="json", description="File log format (json or console)")
    file: str | None = Field(default=None, description="Log file path")
    log_payloads: bool = Field(
        default=False,
        description="Log request/response payloads at DEBUG level (API keys are redacted)",
    )
    max_payload_size: int = Field(default=10000, ge=100, le=1000000)

    @field_validator("level", "file_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        v_lower = v.lower()
        if v_lower not in ("json", "console"):
            raise ValueError("Log format must be one of: json, console")
        return v_lower


class ImportConfig(BaseSettings):
    """Main import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KONTENT_RESTORE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    management: ManagementApiConfig = Field(..., description="Target project API access")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")

    enable_log: bool = Field(default=False, description="Print import progress to the console")
    enable_publish: bool = Field(
        default=False, description="Publish variants that were published in the source"
    )
    workflow_id_for_imported_items: str | None = Field(
        default=None, description="Move every imported variant to this workflow step id"
    )
    fix_languages: bool = Field(
        default=False,
        description="Rename the target default language and reactivate inactive languages",
    )


EntityPredicate = Callable[[dict[str, Any]], bool]


@dataclass
class ProcessFilters:
    """Per-kind inclusion predicates. An entity is kept if its predicate is unset or returns True."""

    asset: EntityPredicate | None = None
    language: EntityPredicate | None = None
    asset_folder: EntityPredicate | None = None
    content_type: EntityPredicate | None = None
    content_item: EntityPredicate | None = None
    content_type_snippet: EntityPredicate | None = None
    language_variant: EntityPredicate | None = None
    taxonomy: EntityPredicate | None = None


@dataclass
class ImportHooks:
    """Runtime callables supplied by the caller of a restore run.

    Attributes:
        process: Inclusion predicates per entity kind
        on_import: Called with an ImportEvent after every processed entity
        on_unsupported_binary_file: Called with the BinaryFile of every oversized asset
        on_error: Called with an ImportFailure before a failure aborts the run
    """

    process: ProcessFilters = field(default_factory=ProcessFilters)
    on_import: Callable[[Any], None] | None = None
    on_unsupported_binary_file: Callable[[Any], None] | None = None
    on_error: Callable[[Any], None] | None = None


def load_config_from_yaml(config_path: str | Path) -> ImportConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        ImportConfig: Loaded configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is empty or references unset variables
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        raise ValueError(f"Empty configuration file: {config_path}")

    return ImportConfig(**_expand_env_vars(config_data))


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} values from the environment."""
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    if isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        var_name = data[2:-1]
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not found. "
                f"Please set it in your environment or .env file."
            )
        return env_value
    return data

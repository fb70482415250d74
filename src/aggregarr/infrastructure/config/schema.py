"""Pydantic configuration models with validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from aggregarr.domain.entities import ProtocolType

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """Coerce str/Path to an expanded Path. Never touches the filesystem."""
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class IndexerSettings(BaseModel):
    """One configured indexer, as read from the indexer settings file.

    Completeness (name, base_url, api_key) is NOT enforced here; the
    config gate decides whether a profile is usable. Accepts both the
    snake_case keys and the legacy camelCase keys (url, apiKey, timeout, type).
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    base_url: str = Field(
        default="",
        validation_alias=AliasChoices("base_url", "baseUrl", "url"),
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("api_key", "apiKey", "apikey"),
    )
    api_key_env: Optional[str] = Field(
        default=None,
        description="Environment variable holding the API key (if api_key unset).",
    )
    enabled: bool = True
    timeout_seconds: int = Field(
        default=30,
        validation_alias=AliasChoices("timeout_seconds", "timeoutSeconds", "timeout"),
    )
    protocol: ProtocolType = Field(
        default="newznab",
        validation_alias=AliasChoices("protocol", "protocolType", "type"),
    )
    categories: list[str] = Field(default_factory=list)

    @field_validator("name", "base_url", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("categories", mode="before")
    @classmethod
    def _coerce_categories(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, int)):
            v = str(v).split(",")
        return [str(c).strip() for c in v if str(c).strip()]

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _resolve_api_key_env(self) -> "IndexerSettings":
        if not self.api_key and self.api_key_env:
            self.api_key = os.environ.get(self.api_key_env) or None
        return self


class AppConfig(BaseModel):
    """Process-wide settings, validated once at startup.

    Field aliases accept both the flat name (`log_level`) and the YAML section
    path (`logging.level`); load.py derives its flat-to-section mapping from
    the AliasPath entries below. Indexer profiles are not part of AppConfig:
    they live in the file at `indexer_config_path` and are re-read per search.
    """

    # General
    app_name: str = Field(default="aggregarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default HTTP timeout; each indexer applies its own on top.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="Aggregarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Indexers (YAML section: indexers.*)
    indexer_config_path: Path = Field(
        default=Path("./config/indexers.yaml"),
        validation_alias=AliasChoices(
            "indexer_config_path",
            AliasPath("indexers", "config_path"),
        ),
        description="YAML/JSON file listing the indexer profiles.",
    )
    config_redirect_to: str = Field(
        default="/config",
        validation_alias=AliasChoices(
            "config_redirect_to",
            AliasPath("indexers", "redirect_to"),
        ),
        description="Where clients are sent to fix indexer configuration.",
    )

    # Search fan-out (YAML section: search.*)
    search_max_concurrent_indexers: int = Field(
        default=10,
        validation_alias=AliasChoices(
            "search_max_concurrent_indexers",
            AliasPath("search", "max_concurrent_indexers"),
        ),
        description="Max indexers queried in parallel for one search.",
    )

    @field_validator("indexer_config_path", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("search_max_concurrent_indexers")
    @classmethod
    def _validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError("search_max_concurrent_indexers must be >= 1")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Inverse of the loader: the sectioned shape config.yaml uses."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "indexers": {
                "config_path": str(self.indexer_config_path),
                "redirect_to": self.config_redirect_to,
            },
            "search": {
                "max_concurrent_indexers": self.search_max_concurrent_indexers,
            },
        }


class EnvOverrides(BaseSettings):
    """`AGGREGARR_*` environment variables, one per flat AppConfig field.

    Every field is optional; unset variables stay None and do not override
    lower layers (e.g. `AGGREGARR_INDEXER_CONFIG_PATH=/srv/indexers.yaml`).
    """

    model_config = SettingsConfigDict(
        env_prefix="AGGREGARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    indexer_config_path: Optional[Path] = None
    config_redirect_to: Optional[str] = None

    search_max_concurrent_indexers: Optional[int] = None

    @field_validator("indexer_config_path", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """Flat dict of the variables that were actually set."""
        return self.model_dump(exclude_none=True)

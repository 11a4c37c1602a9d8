"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (DOCMAPPER_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class StoreSettings(BaseModel):
    """Configuration for the document store backing the models."""

    backend: Literal["elasticsearch", "opensearch", "memory"] = Field(
        default="elasticsearch",
        description="Store backend name",
    )
    hosts: list[str] = Field(default_factory=lambda: ["http://localhost:9200"], description="Backend host URLs")
    username: str | None = Field(default=None, description="Authentication username")
    password: str | None = Field(default=None, description="Authentication password")
    api_key: str | None = Field(default=None, description="API key authentication")
    verify_certs: bool = Field(default=True, description="Verify TLS certificates")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    refresh_on_write: bool = Field(
        default=False,
        description="Refresh the index after every write so documents are searchable immediately",
    )
    extra: dict[str, Any] = Field(default_factory=dict, description="Backend-specific options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var) or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            # Single host as plain string
            return [v] if v else []
        return list(v)


class PaginationSettings(BaseModel):
    """Default page window for searches."""

    default_per_page: int = Field(default=10, ge=1, description="Page size when none is requested")
    max_per_page: int = Field(default=100, ge=1, description="Upper bound on requested page size")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the DOCMAPPER_ prefix.
    Nested settings use double underscores: DOCMAPPER_STORE__BACKEND=memory

    Example:
        DOCMAPPER_STORE__HOSTS='["http://es-1:9200", "http://es-2:9200"]'
        DOCMAPPER_STORE__REFRESH_ON_WRITE=true
        DOCMAPPER_PAGINATION__DEFAULT_PER_PAGE=25
    """

    model_config = {
        "env_prefix": "DOCMAPPER_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    debug: bool = Field(default=False, description="Debug mode")

    store: StoreSettings = Field(default_factory=StoreSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

"""
genstudio.core.config - Configuration Management
==================================================

This module provides the configuration system for GenStudio. Configuration
can be loaded from multiple sources with the following priority (highest
first):

    1. Explicit constructor arguments
    2. Environment variables (prefixed with GENSTUDIO_)
    3. YAML configuration file (genstudio.yaml)
    4. Default values defined in the models below

Architecture Context:
    GenStudioConfig is created once and handed to the facade, which passes
    the relevant section to each component:

        GenStudioConfig
            ├── GatewayConfig  → GenerationGateway, FailurePolicy
            ├── RetryConfig    → AttemptController (BackoffPolicy)
            ├── StorageConfig  → ArtifactStore selection
            └── ApiConfig      → FastAPI app, uvicorn

Usage:
    # Load from environment variables:
    config = GenStudioConfig()

    # Load from YAML file:
    config = load_config("genstudio.yaml")

    # Explicit overrides:
    config = GenStudioConfig(gateway=GatewayConfig(overload_probability=0.0))

Environment Variables:
    GENSTUDIO_LOG_LEVEL=DEBUG
    GENSTUDIO_GATEWAY__OVERLOAD_PROBABILITY=0.5
    GENSTUDIO_RETRY__MAX_RETRIES=5
    GENSTUDIO_STORAGE__BACKEND=sqlite
    GENSTUDIO_STORAGE__DATABASE_PATH=/var/lib/genstudio/generations.sqlite
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from genstudio.core.enums import StorageBackend
from genstudio.core.exceptions import ConfigurationError


# =============================================================================
# Gateway Configuration
# =============================================================================
# Controls the simulated model-serving endpoint: how often it pretends to
# be overloaded, how long a successful generation "takes", and how image
# references become URLs.
# =============================================================================
class GatewayConfig(BaseModel):
    """Configuration for the GenerationGateway.

    Attributes:
        overload_probability: Probability that an attempt is rejected as
            overloaded. The original service used a fixed 20%.
        failure_seed: Optional seed for the overload RNG. Set it to make a
            run reproducible.
        processing_delay_min: Lower bound (seconds) of the simulated
            processing delay after the overload gate.
        processing_delay_max: Upper bound (seconds) of that delay.
        image_url_prefix: Prefix joined to bare image references to form
            the artifact's image_url.
        default_history_limit: Page size for the recent-list operation when
            the caller gives none.
    """

    overload_probability: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Probability of a simulated overload rejection",
    )
    failure_seed: Optional[int] = Field(
        default=None,
        description="Seed for the overload RNG (None = nondeterministic)",
    )
    processing_delay_min: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum simulated processing delay in seconds",
    )
    processing_delay_max: float = Field(
        default=2.0,
        ge=0.0,
        description="Maximum simulated processing delay in seconds",
    )
    image_url_prefix: str = Field(
        default="/uploads/",
        description="Prefix for building image URLs from bare references",
    )
    default_history_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Default number of artifacts returned by the recent list",
    )

    @model_validator(mode="after")
    def _check_delay_range(self) -> "GatewayConfig":
        if self.processing_delay_max < self.processing_delay_min:
            raise ValueError(
                "processing_delay_max must be >= processing_delay_min"
            )
        return self


# =============================================================================
# Retry Configuration
# =============================================================================
# Backoff is LINEAR in the retry count: delay = base_delay * retry_count.
# With the defaults the waits are 1s then 2s before giving up on the third
# overloaded attempt.
# =============================================================================
class RetryConfig(BaseModel):
    """Configuration for the AttemptController's retry loop.

    Attributes:
        max_retries: Total attempt budget per submission (attempts
            0..max_retries-1). Only overloaded outcomes consume it.
        base_delay: Seconds multiplied by the retry count to get the
            backoff before the next attempt.
        max_delay: Upper bound on any single backoff sleep.
    """

    max_retries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempt budget per submission",
    )
    base_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Linear backoff base in seconds",
    )
    max_delay: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Cap on a single backoff sleep in seconds",
    )


# =============================================================================
# Storage Configuration
# =============================================================================
class StorageConfig(BaseModel):
    """Configuration for artifact persistence.

    Attributes:
        backend: "memory" (default, dev/test) or "sqlite".
        database_path: SQLite file path, used when backend is "sqlite".
    """

    backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="ArtifactStore implementation to use",
    )
    database_path: str = Field(
        default="genstudio.sqlite",
        description="SQLite database file (sqlite backend only)",
    )


# =============================================================================
# API Configuration
# =============================================================================
class ApiConfig(BaseModel):
    """Configuration for the FastAPI server.

    Attributes:
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        cors_origins: Origins allowed to call the API from a browser.
        api_tokens: Static bearer-token → owner-id map used by the default
            authenticator. Token issuance lives outside this service.
    """

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=3001, ge=1, le=65535, description="Listen port")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Allowed CORS origins",
    )
    api_tokens: dict[str, int] = Field(
        default_factory=dict,
        description="Bearer token → owner id",
    )


# =============================================================================
# Main Configuration
# =============================================================================
# Environment Variable Mapping:
#   GENSTUDIO_LOG_LEVEL                      → config.log_level
#   GENSTUDIO_ENVIRONMENT                    → config.environment
#   GENSTUDIO_GATEWAY__OVERLOAD_PROBABILITY  → config.gateway.overload_probability
#   GENSTUDIO_RETRY__MAX_RETRIES             → config.retry.max_retries
# =============================================================================
class GenStudioConfig(BaseSettings):
    """Top-level configuration for GenStudio.

    Attributes:
        environment: Deployment environment.
        log_level: Level filter for structlog output.
        gateway: GenerationGateway configuration.
        retry: AttemptController retry configuration.
        storage: ArtifactStore configuration.
        api: HTTP server configuration.

    Example:
        >>> config = GenStudioConfig(
        ...     log_level="DEBUG",
        ...     gateway=GatewayConfig(overload_probability=0.0),
        ... )
    """

    # -------------------------------------------------------------------------
    # General Settings
    # -------------------------------------------------------------------------
    environment: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    # -------------------------------------------------------------------------
    # Nested Configurations
    # -------------------------------------------------------------------------
    gateway: GatewayConfig = Field(
        default_factory=GatewayConfig,
        description="GenerationGateway configuration",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry and backoff configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="ArtifactStore configuration",
    )
    api: ApiConfig = Field(
        default_factory=ApiConfig,
        description="HTTP API configuration",
    )

    model_config = {
        "env_prefix": "GENSTUDIO_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> GenStudioConfig:
    """Load GenStudio configuration from a YAML file and/or environment.

    Args:
        path: Path to a YAML configuration file. If None, looks for
            'genstudio.yaml' in the current directory and falls back to
            pure defaults + environment variables.

    Returns:
        A fully validated GenStudioConfig instance.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Example:
        >>> config = load_config("genstudio.yaml")
        >>> config = load_config()  # auto-detect or use defaults
    """
    if path is None:
        default_path = Path("genstudio.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {path}. "
                f"Create one or use GENSTUDIO_* environment variables."
            )

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    message=f"Invalid YAML in configuration file: {path}",
                    details={"path": path, "reason": str(exc)},
                ) from exc

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise ConfigurationError(
                message="Configuration file must contain a mapping at the top level",
                details={"path": path, "type": type(raw_data).__name__},
            )
        yaml_data = raw_data

    return GenStudioConfig(**yaml_data)


def get_default_config() -> GenStudioConfig:
    """Create a GenStudioConfig with all defaults (plus any GENSTUDIO_* env vars)."""
    return GenStudioConfig()

"""
genstudio.facade - GenStudio Top-Level Facade
===============================================

This module implements the GenStudio facade: the single entry point that
wires configuration, storage, the server-side gateway and the client-side
controller together.

Architecture Context:

    ┌──────────────────────────────────────────────────┐
    │                GenStudio (Facade)                 │
    │                                                   │
    │  ┌─────────────────────────────────────────────┐ │
    │  │  Orchestration: AttemptController, Sleeper   │ │
    │  └─────────────────────┬───────────────────────┘ │
    │                        │ LocalGatewayTransport    │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │  Gateway: GenerationGateway, FailurePolicy   │ │
    │  └─────────────────────┬───────────────────────┘ │
    │                        │                          │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │  Infrastructure: ArtifactStore               │ │
    │  └─────────────────────────────────────────────┘ │
    │                                                   │
    │  create_app() ──> FastAPI in front of the gateway │
    └──────────────────────────────────────────────────┘

Usage:
    >>> async with GenStudio() as studio:
    ...     artifact = await studio.submit(
    ...         owner_id=1,
    ...         request=GenerationRequest(image_ref="a.png", prompt="Linen suit", style="formal"),
    ...     )
    ...     recent = await studio.recent(owner_id=1)
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI

from genstudio.api.app import create_app
from genstudio.api.auth import TokenAuthenticator
from genstudio.core.config import GenStudioConfig
from genstudio.core.enums import StorageBackend
from genstudio.core.models import GenerationArtifact, GenerationRequest
from genstudio.gateway.failure_policy import FailurePolicy
from genstudio.gateway.generation_gateway import GenerationGateway
from genstudio.infrastructure.artifact_store import (
    ArtifactStore,
    InMemoryArtifactStore,
    SQLiteArtifactStore,
)
from genstudio.integrations.transport import LocalGatewayTransport
from genstudio.orchestration.attempt_controller import (
    AttemptController,
    BackoffPolicy,
    StateCallback,
)
from genstudio.orchestration.clock import Sleeper


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def build_artifact_store(config: GenStudioConfig) -> ArtifactStore:
    """Create the ArtifactStore selected by ``config.storage.backend``."""
    if config.storage.backend == StorageBackend.SQLITE:
        return SQLiteArtifactStore(config.storage.database_path)
    return InMemoryArtifactStore()


class GenStudio:
    """Top-level facade for GenStudio.

    Lifecycle:
        1. ``GenStudio(config)`` - build store, gateway and backoff policy
        2. ``await initialize()``
        3. ``submit()`` / ``recent()`` / ``create_controller()`` / ``create_app()``
        4. ``await shutdown()`` - closes the artifact store

    Attributes:
        _config: GenStudio configuration.
        _artifact_store: Persistence for completed generations.
        _gateway: The server-side GenerationGateway.
        _backoff: Retry budget and timing for controllers built here.
        _sleeper: Shared sleep implementation (None means real asyncio sleeps).
        _initialized: Whether initialize() has been called.
    """

    def __init__(
        self,
        config: Optional[GenStudioConfig] = None,
        *,
        artifact_store: Optional[ArtifactStore] = None,
        failure_policy: Optional[FailurePolicy] = None,
        sleeper: Optional[Sleeper] = None,
    ) -> None:
        """Initialize the GenStudio facade.

        Args:
            config: GenStudio configuration. Defaults to GenStudioConfig(),
                which reads GENSTUDIO_* environment variables.
            artifact_store: Custom store. Defaults to the backend named in
                ``config.storage``.
            failure_policy: Custom overload gate. Defaults to a
                ProbabilisticFailurePolicy from ``config.gateway``.
            sleeper: Sleep implementation shared by the gateway's simulated
                processing and every controller's backoff.
        """
        self._config = config or GenStudioConfig()

        # --- Infrastructure Layer ---
        self._artifact_store = artifact_store or build_artifact_store(self._config)

        # --- Gateway Layer ---
        self._gateway = GenerationGateway(
            self._artifact_store,
            failure_policy=failure_policy,
            config=self._config.gateway,
            sleeper=sleeper,
        )

        # --- Orchestration Layer ---
        self._backoff = BackoffPolicy.from_config(self._config.retry)
        self._sleeper = sleeper

        self._initialized = False
        self._logger = logger.bind(component="genstudio")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> GenStudioConfig:
        return self._config

    @property
    def gateway(self) -> GenerationGateway:
        return self._gateway

    @property
    def artifact_store(self) -> ArtifactStore:
        return self._artifact_store

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def initialize(self) -> None:
        """Mark the facade ready. Idempotent."""
        if self._initialized:
            self._logger.debug("genstudio_already_initialized")
            return

        self._initialized = True
        self._logger.info(
            "genstudio_initialized",
            environment=self._config.environment,
            storage_backend=self._config.storage.backend.value,
            max_retries=self._backoff.max_retries,
        )

    async def shutdown(self) -> None:
        """Close the artifact store. Idempotent."""
        if not self._initialized:
            self._logger.debug("genstudio_not_initialized_skipping_shutdown")
            return

        await self._artifact_store.close()
        self._initialized = False
        self._logger.info("genstudio_shutdown_complete")

    async def __aenter__(self) -> GenStudio:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Client-Side Operations
    # =========================================================================

    def create_controller(self, owner_id: int) -> AttemptController:
        """Build an AttemptController that talks to this facade's gateway.

        Each caller (browser tab, CLI session) should own its controller,
        since a controller runs one submission at a time.
        """
        return AttemptController(
            LocalGatewayTransport(self._gateway, owner_id),
            backoff=self._backoff,
            sleeper=self._sleeper,
        )

    async def submit(
        self,
        owner_id: int,
        request: GenerationRequest,
        max_retries: Optional[int] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> Optional[GenerationArtifact]:
        """Run one submission on a fresh controller.

        Returns:
            The artifact on success, otherwise None. Use
            ``create_controller()`` directly when the final AttemptState
            or cancellation is needed.

        Raises:
            RuntimeError: If GenStudio has not been initialized.
        """
        self._ensure_initialized()
        controller = self.create_controller(owner_id)
        return await controller.submit(
            request,
            max_retries=max_retries,
            on_state_change=on_state_change,
        )

    async def recent(
        self,
        owner_id: int,
        limit: Optional[int] = None,
    ) -> list[GenerationArtifact]:
        """The owner's most recent artifacts, newest first."""
        self._ensure_initialized()
        return await self._gateway.list_recent(owner_id, limit)

    # =========================================================================
    # HTTP Surface
    # =========================================================================

    def create_app(self, tokens: Optional[dict[str, int]] = None) -> FastAPI:
        """Build the FastAPI app in front of this facade's gateway.

        Args:
            tokens: Bearer token → owner id map. Defaults to
                ``config.api.api_tokens``.
        """
        authenticator = TokenAuthenticator(
            self._config.api.api_tokens if tokens is None else tokens
        )
        return create_app(
            self._gateway,
            authenticator=authenticator,
            config=self._config.api,
            on_startup=self.initialize,
            on_shutdown=self.shutdown,
        )

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "GenStudio has not been initialized. "
                "Call await studio.initialize() or use 'async with GenStudio() as studio:'"
            )

    def __repr__(self) -> str:
        return (
            f"GenStudio(initialized={self._initialized}, "
            f"storage={type(self._artifact_store).__name__}, "
            f"max_retries={self._backoff.max_retries})"
        )

"""
genstudio.integrations.transport - Gateway Transport Abstraction
==================================================================

The AttemptController does not know whether the GenerationGateway runs in
the same process or behind an HTTP server. It talks to a GatewayTransport,
and every transport reports failures with the same exception taxonomy
(ValidationError, AuthError, OverloadedError, UnknownError), so outcome
classification is identical across them.

    AttemptController ──> GatewayTransport
                              ├── LocalGatewayTransport  (in-process)
                              ├── HttpGatewayTransport   (httpx → FastAPI)
                              └── MockGatewayTransport   (scripted, tests)

Every transport call is a cancellation point: the controller runs it as a
task inside a CancellationScope and cancels that task when the submission
is cancelled. Transports therefore must not swallow asyncio.CancelledError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import structlog

from genstudio.core.models import GenerationArtifact, GenerationRequest

if TYPE_CHECKING:
    from genstudio.gateway.generation_gateway import GenerationGateway


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Abstract Base Class
# =============================================================================
class GatewayTransport(ABC):
    """Interface between the client-side controller and the gateway."""

    @abstractmethod
    async def create(self, request: GenerationRequest) -> GenerationArtifact:
        """Issue one generation attempt.

        Raises:
            ValidationError, AuthError, OverloadedError, UnknownError
        """
        ...

    @abstractmethod
    async def list_recent(self, limit: Optional[int] = None) -> list[GenerationArtifact]:
        """Fetch the caller's most recent artifacts, newest first."""
        ...

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
        return None


# =============================================================================
# In-Process Transport
# =============================================================================
class LocalGatewayTransport(GatewayTransport):
    """Calls a GenerationGateway directly, on behalf of one owner.

    Example:
        >>> transport = LocalGatewayTransport(gateway, owner_id=1)
        >>> artifact = await transport.create(request)
    """

    def __init__(self, gateway: "GenerationGateway", owner_id: Optional[int]) -> None:
        self._gateway = gateway
        self._owner_id = owner_id

    @property
    def owner_id(self) -> Optional[int]:
        return self._owner_id

    async def create(self, request: GenerationRequest) -> GenerationArtifact:
        return await self._gateway.create(
            owner_id=self._owner_id,
            prompt=request.prompt,
            style=request.style,
            image_ref=request.image_ref,
        )

    async def list_recent(self, limit: Optional[int] = None) -> list[GenerationArtifact]:
        return await self._gateway.list_recent(self._owner_id, limit)

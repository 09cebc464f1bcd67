"""
genstudio.integrations.http_transport - HTTP Gateway Transport
================================================================

Talks to the GenStudio FastAPI server with an httpx.AsyncClient and maps
HTTP responses back onto the GenStudio exception taxonomy.

Status Mapping:

    201 / 200   → GenerationArtifact / list of artifacts
    400         → ValidationError   (message from body, verbatim)
    401, 403    → AuthError
    503         → OverloadedError   (the only retryable one)
    other       → UnknownError
    network     → UnknownError      (httpx.TransportError)

Usage:
    >>> transport = HttpGatewayTransport("http://localhost:3001", token="tok-alice")
    >>> artifact = await transport.create(request)
    >>> await transport.aclose()

Testing against an in-process app:
    >>> client = httpx.AsyncClient(
    ...     transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ... )
    >>> transport = HttpGatewayTransport(token="tok-alice", client=client)
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from genstudio.core.exceptions import (
    AuthError,
    GenStudioError,
    OverloadedError,
    UnknownError,
    ValidationError,
)
from genstudio.core.models import GenerationArtifact, GenerationRequest
from genstudio.integrations.transport import GatewayTransport


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def _body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body, or return {} for anything else."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def error_from_response(response: httpx.Response) -> GenStudioError:
    """Map a non-success HTTP response to a GenStudio exception."""
    body = _body(response)
    message = body.get("message")
    status = response.status_code

    if status == 400:
        return ValidationError(
            message=message or "Validation error",
            details={"errors": body.get("errors", [])},
        )
    if status in (401, 403):
        return AuthError(
            message=message or "Authentication required",
            error_code=body.get("error_code", "AUTH_REQUIRED"),
        )
    if status == 503:
        return OverloadedError(message=message or "Model overloaded")
    return UnknownError(
        message=message or "An error occurred",
        details={"status_code": status},
    )


class HttpGatewayTransport(GatewayTransport):
    """GatewayTransport over HTTP.

    Args:
        base_url: Server root, e.g. "http://localhost:3001". Ignored when a
            ready-made ``client`` is passed.
        token: Bearer token sent as the Authorization header.
        client: Optional pre-configured httpx.AsyncClient. The transport
            only closes clients it created itself.
        timeout: Request timeout in seconds for a self-created client.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        token: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._logger = logger.bind(component="http_gateway_transport")

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            self._logger.warning("gateway_request_failed", method=method, path=path, error=str(exc))
            raise UnknownError(
                message="Could not reach the generation service",
                error_code="NETWORK_ERROR",
                details={"method": method, "path": path, "reason": str(exc)},
            ) from exc

    async def create(self, request: GenerationRequest) -> GenerationArtifact:
        response = await self._send("POST", "/generations", json=request.model_dump())
        if response.status_code in (200, 201):
            return GenerationArtifact.model_validate(response.json())

        error = error_from_response(response)
        self._logger.debug(
            "gateway_request_rejected",
            status_code=response.status_code,
            error_code=error.error_code,
        )
        raise error

    async def list_recent(self, limit: Optional[int] = None) -> list[GenerationArtifact]:
        params = {} if limit is None else {"limit": limit}
        response = await self._send("GET", "/generations", params=params)
        if response.status_code != 200:
            raise error_from_response(response)
        return [GenerationArtifact.model_validate(item) for item in response.json()]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

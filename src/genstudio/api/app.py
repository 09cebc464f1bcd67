"""
genstudio.api.app - FastAPI Application
=========================================

This module builds the HTTP surface in front of the
:class:`~genstudio.gateway.generation_gateway.GenerationGateway`.

Endpoints
---------
========  ======================  ==========================================
Method    Path                    Purpose
========  ======================  ==========================================
POST      ``/generations``        Run one generation attempt (201 artifact)
GET       ``/generations``        Most recent artifacts, newest first
GET       ``/health``             Liveness probe
========  ======================  ==========================================

Error Mapping
-------------
Every failure is returned as ``{"message", "error_code"[, "errors"]}`` with
a status the client can tell apart:

- ``ValidationError`` → 400 (message verbatim, per-field ``errors``)
- ``AuthError``       → 401
- ``OverloadedError`` → 503 (the only retryable status)
- ``CancelledError``  → 499 (client disconnected before the write)
- anything else       → 500 ``"Internal server error"``

The app is built by :func:`create_app` rather than at import time, so
tests and the facade can inject their own gateway and authenticator.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from genstudio import __version__
from genstudio.api.auth import TokenAuthenticator, require_owner
from genstudio.core.config import ApiConfig
from genstudio.core.exceptions import (
    AuthError,
    CancelledError,
    GenStudioError,
    OverloadedError,
    ValidationError,
)
from genstudio.gateway.generation_gateway import GenerationGateway

logger = structlog.get_logger()

LifecycleHook = Callable[[], Awaitable[None]]


# ---------------------------------------------------------------------------
# Request body.
#
# All fields optional: a missing prompt has to reach the gateway so it comes
# back as "Prompt is required".
# ---------------------------------------------------------------------------


class CreateGenerationBody(BaseModel):
    """JSON body for ``POST /generations``."""

    prompt: Optional[str] = None
    style: Optional[str] = None
    image_ref: Optional[str] = None


# ---------------------------------------------------------------------------
# Error responses.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, exc: GenStudioError, **extra: Any) -> JSONResponse:
    content = {"message": exc.message, "error_code": exc.error_code, **extra}
    return JSONResponse(status_code=status_code, content=content)


def _install_error_handlers(app: FastAPI) -> None:
    """Register the GenStudio exception → HTTP status mapping."""

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(400, exc, errors=exc.errors)

    @app.exception_handler(AuthError)
    async def _auth(request: Request, exc: AuthError) -> JSONResponse:
        return _error_response(401, exc)

    @app.exception_handler(OverloadedError)
    async def _overloaded(request: Request, exc: OverloadedError) -> JSONResponse:
        return _error_response(503, exc)

    @app.exception_handler(CancelledError)
    async def _abandoned(request: Request, exc: CancelledError) -> JSONResponse:
        # Nobody is listening; the status only shows up in access logs.
        return _error_response(499, exc)

    @app.exception_handler(GenStudioError)
    async def _internal(request: Request, exc: GenStudioError) -> JSONResponse:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error_code": exc.error_code},
        )

    @app.exception_handler(RequestValidationError)
    async def _malformed(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "error_code": "VALIDATION_ERROR", "errors": errors},
        )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    gateway: GenerationGateway,
    authenticator: Optional[TokenAuthenticator] = None,
    config: Optional[ApiConfig] = None,
    on_startup: Optional[LifecycleHook] = None,
    on_shutdown: Optional[LifecycleHook] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        gateway: The gateway every route delegates to.
        authenticator: Bearer token resolver. Defaults to one seeded from
            ``config.api_tokens``.
        config: API configuration (CORS origins, static tokens).
        on_startup: Awaited once before the first request is served.
        on_shutdown: Awaited once when the application shuts down.

    Returns:
        A ready-to-serve FastAPI instance.
    """
    api_config = config or ApiConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if on_startup is not None:
            await on_startup()
        logger.info("api_started", version=__version__)
        yield
        if on_shutdown is not None:
            await on_shutdown()
        logger.info("api_stopped")

    app = FastAPI(
        title="GenStudio",
        description="Image generation gateway with simulated overload.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.authenticator = authenticator or TokenAuthenticator(api_config.api_tokens)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization"],
    )
    _install_error_handlers(app)

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.post("/generations", status_code=201)
    async def create_generation(
        request: Request,
        body: CreateGenerationBody,
        owner_id: int = Depends(require_owner),
    ) -> dict[str, Any]:
        """Run one generation attempt for the authenticated owner."""
        artifact = await gateway.create(
            owner_id=owner_id,
            prompt=body.prompt,
            style=body.style,
            image_ref=body.image_ref,
            should_abort=request.is_disconnected,
        )
        return artifact.model_dump(mode="json")

    @app.get("/generations")
    async def list_generations(
        limit: Optional[int] = Query(default=None),
        owner_id: int = Depends(require_owner),
    ) -> list[dict[str, Any]]:
        """Most recent artifacts for the authenticated owner."""
        artifacts = await gateway.list_recent(owner_id, limit)
        return [artifact.model_dump(mode="json") for artifact in artifacts]

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app

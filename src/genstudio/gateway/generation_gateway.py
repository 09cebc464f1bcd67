"""
genstudio.gateway.generation_gateway - Server-Side Generation Gateway
======================================================================

This module implements the GenerationGateway: the server-side half of the
orchestration core. It stands in for a model-serving endpoint that is
deliberately unreliable, and it owns the guarantee that an artifact is
persisted if and only if an attempt truly succeeds.

Architecture Context:

    AttemptController ──(transport)──> GenerationGateway ──> ArtifactStore
                                            │
                                            └── FailurePolicy (overload gate)

Mandatory Ordering of create():

    1. Authenticate  owner_id present?            no  → AuthError
    2. Validate      prompt / style / image_ref   bad → ValidationError
    3. Gate          failure_policy.should_fail() yes → OverloadedError
    4. Process       simulated model latency (cancellable)
                     should_abort() true?         yes → CancelledError
    5. Write         exactly one artifact_store.create()
    6. Respond       artifact with store-assigned id + created_at

    - Validation runs before the gate, so an invalid request fails once,
      deterministically, and never burns retry budget on a coin flip.
    - The gate runs before the write, so a rejected attempt leaves zero
      trace in the store.
    - The write is the last step that can fail. If the call is cancelled
      during step 4 no write happens. Once step 5 starts it runs to
      completion even if the caller is cancelled, and the artifact is
      returned.

Usage:
    >>> gateway = GenerationGateway(InMemoryArtifactStore())
    >>> artifact = await gateway.create(
    ...     owner_id=1,
    ...     prompt="A tweed jacket in autumn light",
    ...     style="formal",
    ...     image_ref="upload-42.png",
    ... )
    >>> recent = await gateway.list_recent(owner_id=1)
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from genstudio.core.config import GatewayConfig
from genstudio.core.exceptions import (
    AuthError,
    CancelledError,
    OverloadedError,
    ValidationError,
)
from genstudio.core.models import ArtifactDraft, GenerationArtifact, GenerationInput
from genstudio.gateway.failure_policy import FailurePolicy, ProbabilisticFailurePolicy
from genstudio.infrastructure.artifact_store import ArtifactStore
from genstudio.orchestration.clock import AsyncioSleeper, Sleeper


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

# Awaited right before the write; True means the caller is gone.
AbortCheck = Callable[[], Awaitable[bool]]


# =============================================================================
# User-Facing Validation Messages
# =============================================================================
# pydantic reports machine-oriented error types; the gateway surfaces these
# fixed messages instead, and the client shows them verbatim.
# =============================================================================
PROMPT_REQUIRED = "Prompt is required"
PROMPT_TOO_LONG = "Prompt too long"
INVALID_STYLE = "Invalid style selected"
IMAGE_REQUIRED = "Image file is required"
INVALID_LIMIT = "Limit must be a positive integer"


def _message_for(field: str, error_type: str) -> str:
    if field == "prompt":
        return PROMPT_TOO_LONG if error_type == "string_too_long" else PROMPT_REQUIRED
    if field == "style":
        return INVALID_STYLE
    if field == "image_ref":
        return IMAGE_REQUIRED
    return f"Invalid value for {field}"


def _translate(exc: PydanticValidationError) -> ValidationError:
    errors: list[dict[str, Any]] = []
    for item in exc.errors():
        field = str(item["loc"][0]) if item.get("loc") else "input"
        errors.append({"field": field, "message": _message_for(field, item["type"])})

    messages: list[str] = []
    for error in errors:
        if error["message"] not in messages:
            messages.append(error["message"])

    return ValidationError(message="; ".join(messages), details={"errors": errors})


# =============================================================================
# GenerationGateway
# =============================================================================
class GenerationGateway:
    """Validates, probabilistically rejects, and persists generation jobs.

    Args:
        artifact_store: Where successful generations are written.
        failure_policy: Overload decision source. Defaults to a
            ProbabilisticFailurePolicy built from ``config``.
        config: Gateway configuration (probability, delays, URL prefix).
        sleeper: Sleep implementation for the simulated processing delay.

    Example:
        >>> gateway = GenerationGateway(
        ...     store,
        ...     failure_policy=ScriptedFailurePolicy([True]),
        ...     config=GatewayConfig(processing_delay_min=0, processing_delay_max=0),
        ... )
    """

    def __init__(
        self,
        artifact_store: ArtifactStore,
        *,
        failure_policy: Optional[FailurePolicy] = None,
        config: Optional[GatewayConfig] = None,
        sleeper: Optional[Sleeper] = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._store = artifact_store
        self._failure_policy = failure_policy or ProbabilisticFailurePolicy(
            probability=self._config.overload_probability,
            seed=self._config.failure_seed,
        )
        self._sleeper = sleeper or AsyncioSleeper()
        self._delay_rng = random.Random(self._config.failure_seed)
        self._logger = logger.bind(component="generation_gateway")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def artifact_store(self) -> ArtifactStore:
        return self._store

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def validate(prompt: Any, style: Any, image_ref: Any) -> GenerationInput:
        """Validate raw input fields.

        Returns:
            The validated GenerationInput.

        Raises:
            ValidationError: With user-facing messages joined by "; " and
                the per-field list in ``details["errors"]``.
        """
        try:
            return GenerationInput.model_validate(
                {"prompt": prompt, "style": style, "image_ref": image_ref}
            )
        except PydanticValidationError as exc:
            raise _translate(exc) from exc

    def image_url_for(self, image_ref: str) -> str:
        """Turn an image reference into the URL stored on the artifact.

        References that are already URLs or absolute paths are kept as-is.
        """
        if image_ref.startswith(("http://", "https://", "/")):
            return image_ref
        return f"{self._config.image_url_prefix}{image_ref}"

    # =========================================================================
    # Create Operation
    # =========================================================================

    async def create(
        self,
        owner_id: Optional[int],
        prompt: Any,
        style: Any,
        image_ref: Any,
        should_abort: Optional[AbortCheck] = None,
    ) -> GenerationArtifact:
        """Run one generation attempt.

        Args:
            owner_id: Pre-authenticated owner. None means unauthenticated.
            prompt: Prompt text (1-500 characters).
            style: One of casual, formal, sporty, elegant.
            image_ref: Opaque handle to the uploaded source image.
            should_abort: Checked once, right before the write. When it
                returns True nothing is written.

        Returns:
            The newly created GenerationArtifact.

        Raises:
            AuthError: ``owner_id`` is missing.
            ValidationError: Input is malformed. The overload gate was not
                evaluated and nothing was written.
            OverloadedError: The overload gate rejected the attempt.
                Nothing was written.
            CancelledError: ``should_abort`` returned True.
            StorageError: The store failed to write.
        """
        # --- Step 1: Authentication ---
        if owner_id is None:
            raise AuthError()

        # --- Step 2: Validation (before the gate) ---
        try:
            data = self.validate(prompt, style, image_ref)
        except ValidationError as exc:
            self._logger.info(
                "generation_rejected_invalid",
                owner_id=owner_id,
                errors=exc.errors,
            )
            raise

        # --- Step 3: Overload gate (before any write) ---
        if self._failure_policy.should_fail():
            self._logger.warning("generation_overloaded", owner_id=owner_id)
            raise OverloadedError(details={"owner_id": owner_id})

        # --- Step 4: Simulated processing ---
        # Cancelling the caller's task here propagates asyncio.CancelledError
        # out of the sleep and skips the write entirely.
        await self._simulate_processing()

        if should_abort is not None and await should_abort():
            self._logger.info("generation_abandoned", owner_id=owner_id)
            raise CancelledError(
                message="Caller went away before the write",
                details={"owner_id": owner_id},
            )

        # --- Step 5: Exactly one durable write ---
        # Once started, the write is not cancellable: a cancel that lands
        # here waits for the row and returns it, so the caller sees the
        # artifact that now exists.
        write = asyncio.ensure_future(
            self._store.create(
                ArtifactDraft(
                    owner_id=owner_id,
                    prompt=data.prompt,
                    style=data.style,
                    image_url=self.image_url_for(data.image_ref),
                )
            )
        )
        try:
            artifact = await asyncio.shield(write)
        except asyncio.CancelledError:
            artifact = await write
            self._logger.info(
                "generation_completed_after_cancel",
                owner_id=owner_id,
                artifact_id=artifact.id,
            )

        # --- Step 6: Respond ---
        self._logger.info(
            "generation_completed",
            owner_id=owner_id,
            artifact_id=artifact.id,
            style=artifact.style.value,
        )
        return artifact

    async def _simulate_processing(self) -> None:
        low = self._config.processing_delay_min
        high = self._config.processing_delay_max
        if high <= 0:
            return
        await self._sleeper.sleep(self._delay_rng.uniform(low, high))

    # =========================================================================
    # Recent-List Operation
    # =========================================================================

    async def list_recent(
        self,
        owner_id: Optional[int],
        limit: Optional[int] = None,
    ) -> list[GenerationArtifact]:
        """Get the owner's most recent artifacts, newest first.

        Args:
            owner_id: Pre-authenticated owner. None means unauthenticated.
            limit: Maximum number of artifacts. Defaults to
                ``config.default_history_limit``.

        Raises:
            AuthError: ``owner_id`` is missing.
            ValidationError: ``limit`` is below 1.
        """
        if owner_id is None:
            raise AuthError()

        if limit is None:
            limit = self._config.default_history_limit
        if limit < 1:
            raise ValidationError(
                message=INVALID_LIMIT,
                details={"errors": [{"field": "limit", "message": INVALID_LIMIT}]},
            )

        return await self._store.list_recent(owner_id, limit)

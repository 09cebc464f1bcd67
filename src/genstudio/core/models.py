"""
genstudio.core.models - Core Data Models
==========================================

This module defines the Pydantic models that flow through GenStudio:

    GenerationRequest   caller → AttemptController → transport
                        (ephemeral, NOT validated; the gateway validates)
    GenerationInput     the gateway's validated view of a request
    ArtifactDraft       gateway → ArtifactStore (everything but id/timestamp)
    GenerationArtifact  ArtifactStore → everyone (persisted, immutable)
    AttemptState        AttemptController → progress callback (snapshots)

GenerationRequest accepts any strings. Validation happens in the gateway,
before the overload gate, so an invalid request fails exactly once.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from genstudio.core.enums import ArtifactStatus, AttemptPhase, Style


# =============================================================================
# Input Limits
# =============================================================================
PROMPT_MIN_LENGTH = 1
PROMPT_MAX_LENGTH = 500


# =============================================================================
# GenerationRequest
# =============================================================================
class GenerationRequest(BaseModel):
    """One generation job as submitted by the caller.

    Constructed at submit time and discarded when the submission reaches a
    terminal state.

    Attributes:
        image_ref: Opaque handle to the already-uploaded source image.
        prompt: Free-text prompt.
        style: Requested style name (validated server-side against Style).

    Example:
        >>> request = GenerationRequest(
        ...     image_ref="upload-1718.png",
        ...     prompt="A linen suit on a beach",
        ...     style="elegant",
        ... )
    """

    model_config = ConfigDict(frozen=True)

    image_ref: str = Field(description="Opaque handle to the uploaded source image")
    prompt: str = Field(description="Free-text generation prompt")
    style: str = Field(description="Style name, one of the Style enum values")


# =============================================================================
# GenerationInput (validated)
# =============================================================================
class GenerationInput(BaseModel):
    """Validated generation input, built by the gateway from raw fields.

    Construction raises ``pydantic.ValidationError`` on bad input; the
    gateway translates that into GenStudio's own ValidationError with
    user-facing messages.
    """

    prompt: str = Field(
        min_length=PROMPT_MIN_LENGTH,
        max_length=PROMPT_MAX_LENGTH,
        description="Generation prompt, 1-500 characters",
    )
    style: Style = Field(description="One of casual, formal, sporty, elegant")
    image_ref: str = Field(
        min_length=1,
        description="Opaque handle to the uploaded source image",
    )


# =============================================================================
# ArtifactDraft
# =============================================================================
class ArtifactDraft(BaseModel):
    """Everything the store needs to create an artifact.

    The store assigns ``id`` and ``created_at`` atomically inside
    ``ArtifactStore.create()``.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: int = Field(description="Owner of the artifact (pre-authenticated)")
    prompt: str = Field(description="Validated prompt")
    style: Style = Field(description="Validated style")
    image_url: str = Field(description="URL of the source image")


# =============================================================================
# GenerationArtifact
# =============================================================================
class GenerationArtifact(BaseModel):
    """A persisted generation result.

    Immutable after creation and created exactly once per successful
    submission. ``status`` is always ``"completed"``: artifacts are only
    written after the overload gate has let an attempt through.

    Attributes:
        id: Store-assigned identifier (monotonically increasing per store).
        owner_id: Owner of the artifact.
        prompt: The prompt used for the generation.
        style: The style used for the generation.
        image_url: URL of the source image.
        status: Always ArtifactStatus.COMPLETED.
        created_at: Store-assigned creation timestamp (UTC).
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Store-assigned artifact id")
    owner_id: int = Field(description="Owner of the artifact")
    prompt: str = Field(description="Generation prompt")
    style: Style = Field(description="Generation style")
    image_url: str = Field(description="URL of the source image")
    status: ArtifactStatus = Field(
        default=ArtifactStatus.COMPLETED,
        description="Always 'completed' once created",
    )
    created_at: datetime = Field(description="Store-assigned creation timestamp (UTC)")


# =============================================================================
# AttemptState
# =============================================================================
# Owned and mutated only by the AttemptController. Callers never receive
# the live object; they get model_copy() snapshots via the progress
# callback and the controller's ``state`` property.
# =============================================================================
class AttemptState(BaseModel):
    """Progress of one submission.

    Attributes:
        phase: Current AttemptPhase.
        error: Last user-facing message. Set while retrying ("Model
            overloaded. Retrying... (1/3)") and on EXHAUSTED / FAILED.
            Always None on SUCCEEDED and ABORTED: cancellation is not an
            error.
        retry_count: Number of overloaded attempts so far. Never exceeds
            max_retries.
        cancelled: True once the caller cancelled this submission.
        max_retries: Attempt budget for this submission.
        attempts: Number of gateway calls issued so far.
        artifact: The created artifact, once SUCCEEDED.

    Example:
        >>> state = AttemptState(max_retries=3)
        >>> state.phase
        <AttemptPhase.IDLE: 'idle'>
        >>> state.is_generating
        False
    """

    phase: AttemptPhase = Field(
        default=AttemptPhase.IDLE,
        description="Current submission phase",
    )
    error: Optional[str] = Field(
        default=None,
        description="Last user-facing error or progress message",
    )
    retry_count: int = Field(
        default=0,
        ge=0,
        description="Overloaded attempts so far",
    )
    cancelled: bool = Field(
        default=False,
        description="Whether the caller cancelled this submission",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Attempt budget for this submission",
    )
    attempts: int = Field(
        default=0,
        ge=0,
        description="Gateway calls issued so far",
    )
    artifact: Optional[GenerationArtifact] = Field(
        default=None,
        description="Created artifact (SUCCEEDED only)",
    )

    @property
    def is_generating(self) -> bool:
        """True while an attempt or a backoff sleep is in progress."""
        return self.phase.is_active

    @property
    def is_terminal(self) -> bool:
        """True once the submission has reached an end state."""
        return self.phase.is_terminal

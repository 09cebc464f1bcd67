"""
genstudio.core - Foundation Layer
=================================

The building blocks every other GenStudio module depends on:

    - config:      Configuration management (GenStudioConfig and sections)
    - enums:       Style, AttemptPhase, AttemptEvent, ArtifactStatus, StorageBackend
    - models:      GenerationRequest, GenerationArtifact, AttemptState, ...
    - exceptions:  The error taxonomy used for retry classification

Dependency Rule:
    core/ depends on NOTHING else in the genstudio package.
"""

from genstudio.core.config import (
    ApiConfig,
    GatewayConfig,
    GenStudioConfig,
    RetryConfig,
    StorageConfig,
    load_config,
)
from genstudio.core.enums import (
    ArtifactStatus,
    AttemptEvent,
    AttemptPhase,
    StorageBackend,
    Style,
)
from genstudio.core.exceptions import (
    AuthError,
    CancelledError,
    ConfigurationError,
    GenStudioError,
    InvalidTransitionError,
    OverloadedError,
    StorageError,
    SubmissionError,
    SubmissionInProgressError,
    UnknownError,
    ValidationError,
)
from genstudio.core.models import (
    ArtifactDraft,
    AttemptState,
    GenerationArtifact,
    GenerationInput,
    GenerationRequest,
)

__all__ = [
    # Config
    "GenStudioConfig",
    "GatewayConfig",
    "RetryConfig",
    "StorageConfig",
    "ApiConfig",
    "load_config",
    # Enums
    "Style",
    "ArtifactStatus",
    "AttemptPhase",
    "AttemptEvent",
    "StorageBackend",
    # Models
    "GenerationRequest",
    "GenerationInput",
    "ArtifactDraft",
    "GenerationArtifact",
    "AttemptState",
    # Exceptions
    "GenStudioError",
    "ConfigurationError",
    "ValidationError",
    "AuthError",
    "OverloadedError",
    "CancelledError",
    "UnknownError",
    "StorageError",
    "InvalidTransitionError",
    "SubmissionError",
    "SubmissionInProgressError",
]

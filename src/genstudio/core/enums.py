"""
genstudio.core.enums - Type-Safe Enumerations
===============================================

This module defines all enumeration types used throughout GenStudio.

All enums inherit from both `str` and `Enum`, which means:
    - They serialize to strings in JSON/YAML (Pydantic-friendly)
    - They can be compared with plain strings: Style.CASUAL == "casual"
    - They have human-readable representations

Architecture Mapping:

    ┌─────────────────────────────────────────────────────────────────┐
    │  ORCHESTRATION LAYER (client side)                              │
    │    AttemptPhase: Submission lifecycle (IDLE → ... → terminal)   │
    │    AttemptEvent: Inputs to the pure transition function         │
    ├─────────────────────────────────────────────────────────────────┤
    │  GATEWAY / STORAGE (server side)                                │
    │    Style: The four supported generation styles                  │
    │    ArtifactStatus: Persisted artifact status                    │
    │    StorageBackend: Which ArtifactStore implementation to use    │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Style Enumeration
# =============================================================================
class Style(str, Enum):
    """The fixed set of generation styles accepted by the gateway.

    Usage:
        >>> Style("formal")
        <Style.FORMAL: 'formal'>
        >>> Style.SPORTY == "sporty"
        True
    """

    CASUAL = "casual"
    FORMAL = "formal"
    SPORTY = "sporty"
    ELEGANT = "elegant"


# =============================================================================
# Artifact Status Enumeration
# =============================================================================
# Artifacts are only ever written on success, so COMPLETED is the only
# status a persisted artifact can carry.
# =============================================================================
class ArtifactStatus(str, Enum):
    """Status of a persisted generation artifact."""

    COMPLETED = "completed"


# =============================================================================
# Attempt Phase Enumeration
# =============================================================================
# The submission state machine driven by the AttemptController:
#
#   IDLE → ATTEMPTING → (RETRYING → ATTEMPTING)* → SUCCEEDED
#                                                → ABORTED
#                                                → EXHAUSTED
#                                                → FAILED
#
# The four end states are terminal: no transition leaves them. The table
# itself lives in orchestration/state_machine.py.
# =============================================================================
class AttemptPhase(str, Enum):
    """Lifecycle phases of a single submission.

    State Transitions:
        IDLE → ATTEMPTING:        submit() called
        ATTEMPTING → RETRYING:    overloaded, attempts remain
        RETRYING → ATTEMPTING:    backoff sleep finished
        ATTEMPTING → SUCCEEDED:   gateway returned an artifact
        ATTEMPTING → EXHAUSTED:   overloaded, no attempts remain
        ATTEMPTING → FAILED:      validation / auth / unknown error
        ATTEMPTING|RETRYING → ABORTED: caller cancelled

    Usage:
        >>> phase = AttemptPhase.RETRYING
        >>> phase.is_terminal
        False
    """

    IDLE = "idle"                   # No submission has started yet
    ATTEMPTING = "attempting"       # A gateway call is in flight
    RETRYING = "retrying"           # Sleeping before the next attempt
    SUCCEEDED = "succeeded"         # Artifact returned (terminal)
    ABORTED = "aborted"             # Cancelled by the caller (terminal)
    EXHAUSTED = "exhausted"         # Overloaded on every attempt (terminal)
    FAILED = "failed"               # Non-retryable error (terminal)

    @property
    def is_terminal(self) -> bool:
        """Whether this phase ends the submission."""
        return self in _TERMINAL_PHASES

    @property
    def is_active(self) -> bool:
        """Whether a submission in this phase is still in flight."""
        return self in (AttemptPhase.ATTEMPTING, AttemptPhase.RETRYING)


_TERMINAL_PHASES = frozenset(
    {
        AttemptPhase.SUCCEEDED,
        AttemptPhase.ABORTED,
        AttemptPhase.EXHAUSTED,
        AttemptPhase.FAILED,
    }
)


# =============================================================================
# Attempt Event Enumeration
# =============================================================================
# Inputs to the pure transition function. The controller never assigns a
# phase directly; it feeds events and takes whatever phase comes back.
# =============================================================================
class AttemptEvent(str, Enum):
    """Events that move a submission through its AttemptPhase machine."""

    START = "start"                     # submit() accepted
    SUCCESS = "success"                 # gateway returned an artifact
    RETRY_SCHEDULED = "retry_scheduled" # overloaded and attempts remain
    RETRY_STARTED = "retry_started"     # backoff elapsed, next attempt begins
    EXHAUSTED = "exhausted"             # overloaded and no attempts remain
    FAILURE = "failure"                 # non-retryable error
    CANCEL = "cancel"                   # caller cancelled the submission


# =============================================================================
# Storage Backend Enumeration
# =============================================================================
class StorageBackend(str, Enum):
    """Which ArtifactStore implementation the facade should build."""

    MEMORY = "memory"       # InMemoryArtifactStore (dev/test)
    SQLITE = "sqlite"       # SQLiteArtifactStore (durable, single file)

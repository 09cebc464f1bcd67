"""
genstudio.orchestration - Client-Side Orchestration Layer
===========================================================

    ┌──────────────────────────────────────────────────────────┐
    │                  ORCHESTRATION LAYER                     │
    │                                                          │
    │  AttemptController ── drives ──> state_machine           │
    │        │                         (transition,            │
    │        │                          classify_outcome)      │
    │        ├── CancellationToken / CancellationScope         │
    │        └── Sleeper (AsyncioSleeper, RecordingSleeper)    │
    └──────────────────────────────────────────────────────────┘

Usage:
    from genstudio.orchestration import AttemptController, BackoffPolicy
"""

from genstudio.orchestration.attempt_controller import (
    EXHAUSTED_MESSAGE,
    RETRYING_MESSAGE,
    AttemptController,
    BackoffPolicy,
)
from genstudio.orchestration.cancellation import (
    CancellationScope,
    CancellationToken,
    ScopeOutcome,
)
from genstudio.orchestration.clock import AsyncioSleeper, RecordingSleeper, Sleeper
from genstudio.orchestration.state_machine import (
    TRANSITIONS,
    allowed_events,
    classify_outcome,
    transition,
)

__all__ = [
    # Controller
    "AttemptController",
    "BackoffPolicy",
    "RETRYING_MESSAGE",
    "EXHAUSTED_MESSAGE",
    # Cancellation
    "CancellationToken",
    "CancellationScope",
    "ScopeOutcome",
    # Clock
    "Sleeper",
    "AsyncioSleeper",
    "RecordingSleeper",
    # State machine
    "TRANSITIONS",
    "transition",
    "allowed_events",
    "classify_outcome",
]

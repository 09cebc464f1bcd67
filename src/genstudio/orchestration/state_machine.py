"""
genstudio.orchestration.state_machine - Submission State Machine
==================================================================

The AttemptController never assigns phases by hand. It classifies each
attempt's outcome into an AttemptEvent with ``classify_outcome()`` and
asks ``transition()`` for the next phase. Both functions are pure: no I/O,
no clock, no controller state, so every branch is unit-testable on its
own.

Transition Table:

    ┌────────────┬──────────────────┬────────────┐
    │ From       │ Event            │ To         │
    ├────────────┼──────────────────┼────────────┤
    │ IDLE       │ START            │ ATTEMPTING │
    │ ATTEMPTING │ SUCCESS          │ SUCCEEDED  │
    │ ATTEMPTING │ RETRY_SCHEDULED  │ RETRYING   │
    │ ATTEMPTING │ EXHAUSTED        │ EXHAUSTED  │
    │ ATTEMPTING │ FAILURE          │ FAILED     │
    │ ATTEMPTING │ CANCEL           │ ABORTED    │
    │ RETRYING   │ RETRY_STARTED    │ ATTEMPTING │
    │ RETRYING   │ CANCEL           │ ABORTED    │
    └────────────┴──────────────────┴────────────┘

    SUCCEEDED, ABORTED, EXHAUSTED and FAILED have no outgoing rows.

Outcome Classification:

    outcome                         retries_used+1 < max   event
    ─────────────────────────────   ────────────────────   ───────────────
    artifact returned               -                      SUCCESS
    cancelled / CancelledError      -                      CANCEL
    OverloadedError                 yes                    RETRY_SCHEDULED
    OverloadedError                 no                     EXHAUSTED
    anything else                   -                      FAILURE
"""

from __future__ import annotations

from typing import Optional

from genstudio.core.enums import AttemptEvent, AttemptPhase
from genstudio.core.exceptions import (
    CancelledError,
    InvalidTransitionError,
    OverloadedError,
)


# =============================================================================
# Transition Table
# =============================================================================
TRANSITIONS: dict[tuple[AttemptPhase, AttemptEvent], AttemptPhase] = {
    (AttemptPhase.IDLE, AttemptEvent.START): AttemptPhase.ATTEMPTING,
    (AttemptPhase.ATTEMPTING, AttemptEvent.SUCCESS): AttemptPhase.SUCCEEDED,
    (AttemptPhase.ATTEMPTING, AttemptEvent.RETRY_SCHEDULED): AttemptPhase.RETRYING,
    (AttemptPhase.ATTEMPTING, AttemptEvent.EXHAUSTED): AttemptPhase.EXHAUSTED,
    (AttemptPhase.ATTEMPTING, AttemptEvent.FAILURE): AttemptPhase.FAILED,
    (AttemptPhase.ATTEMPTING, AttemptEvent.CANCEL): AttemptPhase.ABORTED,
    (AttemptPhase.RETRYING, AttemptEvent.RETRY_STARTED): AttemptPhase.ATTEMPTING,
    (AttemptPhase.RETRYING, AttemptEvent.CANCEL): AttemptPhase.ABORTED,
}


def transition(phase: AttemptPhase, event: AttemptEvent) -> AttemptPhase:
    """Return the phase that ``event`` moves ``phase`` to.

    Raises:
        InvalidTransitionError: If the table has no such move. Terminal
            phases always raise.

    Example:
        >>> transition(AttemptPhase.IDLE, AttemptEvent.START)
        <AttemptPhase.ATTEMPTING: 'attempting'>
    """
    try:
        return TRANSITIONS[(phase, event)]
    except KeyError:
        raise InvalidTransitionError(phase=phase.value, event=event.value) from None


def allowed_events(phase: AttemptPhase) -> frozenset[AttemptEvent]:
    """Events that have a transition out of ``phase`` (empty if terminal)."""
    return frozenset(event for (source, event) in TRANSITIONS if source == phase)


def classify_outcome(
    *,
    cancelled: bool,
    error: Optional[BaseException],
    retry_count: int,
    max_retries: int,
) -> AttemptEvent:
    """Map one attempt's outcome to the event that should follow it.

    Args:
        cancelled: The attempt was stopped by the submission's token.
        error: The exception the attempt raised, if any.
        retry_count: Overloaded attempts BEFORE this one.
        max_retries: The submission's attempt budget.

    Returns:
        The AttemptEvent to feed into ``transition()``.
    """
    if cancelled or isinstance(error, CancelledError):
        return AttemptEvent.CANCEL
    if error is None:
        return AttemptEvent.SUCCESS
    if isinstance(error, OverloadedError):
        if retry_count + 1 < max_retries:
            return AttemptEvent.RETRY_SCHEDULED
        return AttemptEvent.EXHAUSTED
    return AttemptEvent.FAILURE

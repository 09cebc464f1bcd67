"""
genstudio.orchestration.attempt_controller - Retry/Backoff/Cancel Driver
==========================================================================

This module implements the AttemptController: the client-side half of the
orchestration core. It submits one generation job, classifies every
attempt's outcome, retries transient overloads with bounded linear
backoff, honours mid-flight cancellation, and reports progress to its
caller.

Architecture Context:

    caller ──submit()──> AttemptController ──> GatewayTransport ──> GenerationGateway
              <── on_state_change(AttemptState snapshot) ──┘

Submission Flow:

    submit(request, max_retries)
        │
        v
    IDLE ──START──> ATTEMPTING ──────────────────────────────────────┐
                       │                                             │
                       │ transport.create() inside a fresh           │
                       │ CancellationScope                           │
                       v                                             │
                classify_outcome()                                   │
          ┌──────────┬───────────┬─────────────┬─────────────┐       │
        success   cancelled   overloaded    overloaded    other      │
          │          │        (budget left) (exhausted)     │        │
          v          v           │              │           v        │
      SUCCEEDED   ABORTED     RETRYING       EXHAUSTED    FAILED     │
                                 │                                   │
                                 │ sleep(base_delay * retry_count)   │
                                 │ (a cancellation point)            │
                                 └──RETRY_STARTED───────────────────-┘

Retry Budget:
    Attempts run 0..max_retries-1. Only OverloadedError consumes budget;
    validation, auth and unknown errors end the submission on the first
    attempt no matter how large max_retries is. retry_count never exceeds
    max_retries.

Cancellation:
    One CancellationToken per submission. ``cancel()`` fires it, which
    (a) stops the in-flight transport call, (b) wakes a pending backoff
    sleep, (c) prevents a queued retry from starting: the token is
    checked synchronously before every attempt and after every
    suspension point. A call that already completed keeps its real
    outcome. In-process, the gateway finishes a write it has started and
    returns the artifact, so a written artifact is reported as SUCCEEDED.

    Over HTTP the server only sees the client leave. The API checks for a
    disconnect right before the write and skips it, but a client that
    drops the connection while the INSERT is running reports ABORTED for
    an artifact that does exist; it shows up in the recent-list.

Concurrency Policy:
    One submission per controller at a time. A second submit() while one
    is in flight raises SubmissionInProgressError and leaves the active
    submission untouched.

Usage:
    >>> controller = AttemptController(transport, backoff=BackoffPolicy(base_delay=1.0))
    >>> artifact = await controller.submit(
    ...     GenerationRequest(image_ref="a.png", prompt="Denim jacket", style="casual"),
    ...     max_retries=3,
    ...     on_state_change=lambda s: print(s.phase, s.error),
    ... )
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from genstudio.core.config import RetryConfig
from genstudio.core.enums import AttemptEvent, AttemptPhase
from genstudio.core.exceptions import (
    GenStudioError,
    SubmissionError,
    SubmissionInProgressError,
    UnknownError,
)
from genstudio.core.models import AttemptState, GenerationArtifact, GenerationRequest
from genstudio.integrations.transport import GatewayTransport
from genstudio.orchestration.cancellation import CancellationToken
from genstudio.orchestration.clock import AsyncioSleeper, Sleeper
from genstudio.orchestration.state_machine import classify_outcome, transition


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# User-Facing Messages
# =============================================================================
RETRYING_MESSAGE = "Model overloaded. Retrying... ({retry_count}/{max_retries})"
EXHAUSTED_MESSAGE = "Model is currently overloaded. Please try again later."

StateCallback = Callable[[AttemptState], Any]


# =============================================================================
# BackoffPolicy (Pydantic BaseModel)
# =============================================================================
# Linear backoff: the wait before the next attempt grows with the number of
# overloads seen so far.
#
#   delay = min(base_delay * retry_count, max_delay)
#
# With the defaults (base 1.0s, max_retries 3): 1.0s after the first
# overload, 2.0s after the second, then the third overload is terminal.
# =============================================================================
class BackoffPolicy(BaseModel):
    """Retry budget and backoff timing for the AttemptController.

    Attributes:
        max_retries: Default attempt budget when submit() is not given one.
        base_delay: Seconds multiplied by the retry count.
        max_delay: Cap on any single backoff sleep.

    Example:
        >>> policy = BackoffPolicy(base_delay=0.5)
        >>> policy.calculate_delay(3)
        1.5
    """

    max_retries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Default attempt budget per submission",
    )
    base_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Linear backoff base in seconds",
    )
    max_delay: float = Field(
        default=30.0,
        gt=0.0,
        description="Cap on a single backoff sleep in seconds",
    )

    @classmethod
    def from_config(cls, config: RetryConfig) -> "BackoffPolicy":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
        )

    def calculate_delay(self, retry_count: int) -> float:
        """Backoff before the attempt that follows the ``retry_count``-th overload."""
        return min(self.base_delay * retry_count, self.max_delay)


# =============================================================================
# AttemptController
# =============================================================================
class AttemptController:
    """Drives one generation submission through retries and cancellation.

    Args:
        transport: How attempts reach the GenerationGateway.
        backoff: Retry budget and timing. Defaults to BackoffPolicy().
        sleeper: Sleep implementation for backoff. Defaults to
            AsyncioSleeper; tests inject a RecordingSleeper.

    Attributes:
        _state: Current AttemptState. Replaced (never mutated in place) on
            every change, so snapshots handed out stay valid.
        _token: The active submission's CancellationToken, None when idle.
        _busy: True while submit() is running.
    """

    def __init__(
        self,
        transport: GatewayTransport,
        *,
        backoff: Optional[BackoffPolicy] = None,
        sleeper: Optional[Sleeper] = None,
    ) -> None:
        self._transport = transport
        self._backoff = backoff or BackoffPolicy()
        self._sleeper = sleeper or AsyncioSleeper()

        self._state = AttemptState()
        self._token: Optional[CancellationToken] = None
        self._busy = False
        self._on_state_change: Optional[StateCallback] = None

        self._logger = logger.bind(component="attempt_controller")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> AttemptState:
        """Snapshot of the current (or last) submission's state."""
        return self._state.model_copy()

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    # =========================================================================
    # Public Methods
    # =========================================================================

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Cancel the in-flight submission, if any.

        Returns:
            True if an active submission was cancelled by this call, False
            if nothing was in flight or it was already cancelled.
        """
        if self._token is None:
            return False
        return self._token.cancel(reason)

    async def submit(
        self,
        request: GenerationRequest,
        max_retries: Optional[int] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> Optional[GenerationArtifact]:
        """Submit one generation job and drive it to a terminal state.

        Args:
            request: The job to submit.
            max_retries: Attempt budget for this submission. Defaults to
                ``backoff.max_retries``. Must be at least 1.
            on_state_change: Called with an AttemptState snapshot on every
                phase or retry-count change.

        Returns:
            The created artifact on SUCCEEDED, otherwise None. Inspect
            ``state`` for the terminal phase and message.

        Raises:
            SubmissionInProgressError: Another submission is in flight.
            SubmissionError: ``max_retries`` is below 1.
        """
        if self._busy:
            raise SubmissionInProgressError(details={"phase": self._state.phase.value})

        budget = self._backoff.max_retries if max_retries is None else max_retries
        if budget < 1:
            raise SubmissionError(
                message="max_retries must be at least 1",
                error_code="INVALID_MAX_RETRIES",
                details={"max_retries": budget},
            )

        token = CancellationToken()
        self._busy = True
        self._token = token
        self._on_state_change = on_state_change
        self._state = AttemptState(max_retries=budget)
        log = self._logger.bind(submission_id=f"sub-{uuid4().hex[:12]}", max_retries=budget)

        try:
            return await self._run(request, budget, token, log)
        except asyncio.CancelledError:
            # The task running submit() itself was cancelled.
            if self._state.phase.is_active:
                self._advance(AttemptEvent.CANCEL, cancelled=True, error=None)
            log.info("submission_task_cancelled")
            raise
        finally:
            # Terminal: the token is discarded; the next submit() makes a new one.
            self._token = None
            self._on_state_change = None
            self._busy = False

    # =========================================================================
    # Internal: the attempt loop
    # =========================================================================

    async def _run(
        self,
        request: GenerationRequest,
        budget: int,
        token: CancellationToken,
        log: Any,
    ) -> Optional[GenerationArtifact]:
        self._advance(AttemptEvent.START)

        while True:
            # --- Cancellation point: never start a queued attempt ---
            if token.is_cancelled:
                return self._abort(log)

            log.debug(
                "attempt_started",
                attempt=self._state.attempts,
                retry_count=self._state.retry_count,
            )

            with token.scope() as scope:
                outcome = await scope.run(self._transport.create(request))

            error = outcome.error
            if error is not None and not isinstance(error, GenStudioError):
                error = UnknownError(
                    message=str(error) or "An error occurred",
                    details={"error_type": type(error).__name__},
                )

            event = classify_outcome(
                cancelled=outcome.cancelled,
                error=error,
                retry_count=self._state.retry_count,
                max_retries=budget,
            )

            if event is AttemptEvent.SUCCESS:
                artifact: GenerationArtifact = outcome.value
                self._advance(AttemptEvent.SUCCESS, error=None, artifact=artifact)
                log.info(
                    "submission_succeeded",
                    artifact_id=artifact.id,
                    attempts=self._state.attempts,
                    retry_count=self._state.retry_count,
                )
                return artifact

            if event is AttemptEvent.CANCEL:
                return self._abort(log)

            if event is AttemptEvent.FAILURE:
                self._advance(AttemptEvent.FAILURE, error=error.message)
                log.warning(
                    "submission_failed",
                    error_code=error.error_code,
                    error=error.message,
                    attempts=self._state.attempts,
                )
                return None

            retry_count = self._state.retry_count + 1

            if event is AttemptEvent.EXHAUSTED:
                self._advance(
                    AttemptEvent.EXHAUSTED,
                    retry_count=retry_count,
                    error=EXHAUSTED_MESSAGE,
                )
                log.warning(
                    "submission_exhausted",
                    attempts=self._state.attempts,
                    retry_count=retry_count,
                )
                return None

            # --- RETRY_SCHEDULED: report progress, back off, go again ---
            self._advance(
                AttemptEvent.RETRY_SCHEDULED,
                retry_count=retry_count,
                error=RETRYING_MESSAGE.format(retry_count=retry_count, max_retries=budget),
            )
            delay = self._backoff.calculate_delay(retry_count)
            log.info("attempt_overloaded", retry_count=retry_count, backoff_seconds=delay)

            completed = await self._sleeper.sleep(delay, token)
            if not completed or token.is_cancelled:
                return self._abort(log)

            self._advance(AttemptEvent.RETRY_STARTED, error=None)

    def _abort(self, log: Any) -> None:
        self._advance(AttemptEvent.CANCEL, cancelled=True, error=None)
        log.info(
            "submission_aborted",
            attempts=self._state.attempts,
            retry_count=self._state.retry_count,
        )
        return None

    # =========================================================================
    # Internal: state updates
    # =========================================================================

    def _advance(self, event: AttemptEvent, **updates: Any) -> None:
        """Apply one state machine event and notify the caller."""
        phase = transition(self._state.phase, event)
        updates["phase"] = phase
        if phase is AttemptPhase.ATTEMPTING:
            updates["attempts"] = self._state.attempts + 1
        self._state = self._state.model_copy(update=updates)
        self._notify()

    def _notify(self) -> None:
        if self._on_state_change is None:
            return
        snapshot = self._state.model_copy()
        try:
            self._on_state_change(snapshot)
        except Exception as exc:
            # A broken progress callback must not corrupt the submission.
            self._logger.error(
                "state_callback_error",
                phase=snapshot.phase.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )

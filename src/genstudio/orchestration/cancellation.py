"""
genstudio.orchestration.cancellation - Cooperative Cancellation
=================================================================

This module implements the explicit cancellation token that is threaded
through every suspension point of a submission.

Architecture Context:
    One CancellationToken is created per submission when submit() starts,
    and discarded when the submission reaches a terminal state. Each
    attempt runs its gateway call inside a fresh CancellationScope derived
    from that token:

        submit() ──creates──> CancellationToken ──scope()──> CancellationScope (attempt 1)
                                    │           ──scope()──> CancellationScope (attempt 2)
                                    │
        controller.cancel() ────────┘  token.cancel()
                                       ├── aborts the call running in the open scope
                                       ├── wakes a pending backoff sleep (see clock.py)
                                       └── is_cancelled checked before the next attempt

Cooperative, not thrown:
    Cancelling never injects an exception into the controller. The scope
    reports *what happened* as a ScopeOutcome value, and the controller
    checks ``token.is_cancelled`` synchronously after every suspension
    point. asyncio task cancellation is used only internally, to stop the
    in-flight call task once the token fires.

Scope isolation:
    A scope is single-use. Once its attempt ends it is closed, and a
    closed scope refuses to run anything, so a stale scope can never reach
    into a later attempt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

import structlog


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# ScopeOutcome
# =============================================================================
@dataclass(frozen=True)
class ScopeOutcome:
    """What happened to a call run inside a CancellationScope.

    Exactly one of these holds:
        - ``cancelled`` is True: the token fired before the call finished
          and the call was stopped.
        - ``error`` is set: the call raised.
        - otherwise ``value`` is the call's result.
    """

    value: Any = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and self.error is None


# =============================================================================
# CancellationToken
# =============================================================================
class CancellationToken:
    """Submission-level cancellation flag.

    ``cancel()`` is idempotent and may be called from any coroutine on the
    same event loop. Waiters (open scopes, backoff sleeps) are woken
    through an asyncio.Event.

    Example:
        >>> token = CancellationToken()
        >>> token.is_cancelled
        False
        >>> token.cancel()
        True
        >>> token.cancel()  # already cancelled
        False
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        """Synchronous check, safe to call at any point."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Fire the token.

        Returns:
            True if this call cancelled the token, False if it was already
            cancelled.
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        logger.debug("cancellation_requested", reason=reason)
        return True

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def scope(self) -> "CancellationScope":
        """Create a fresh single-use scope tied to this token."""
        return CancellationScope(self)


# =============================================================================
# CancellationScope
# =============================================================================
class CancellationScope:
    """Per-attempt scope for one cancellable call.

    Use as a context manager so the scope is closed when the attempt ends:

        >>> with token.scope() as scope:
        ...     outcome = await scope.run(transport.create(request))
        >>> outcome.cancelled
        False
    """

    def __init__(self, token: CancellationToken) -> None:
        self._token = token
        self._closed = False
        self._used = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "CancellationScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def run(self, awaitable: Awaitable[Any]) -> ScopeOutcome:
        """Run one call, racing it against the token.

        If the token is already cancelled the call is never started. If the
        token fires while the call is in flight, the call's task is
        cancelled and awaited before returning, so nothing it does can
        complete after this method returns. A call that finishes anyway
        with a value reports that value, not a cancellation.

        Raises:
            RuntimeError: If the scope is closed or was already used.
        """
        if self._closed or self._used:
            # Never started: close the coroutine so it is not left pending.
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError("CancellationScope is single-use and already spent")
        self._used = True

        if self._token.is_cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return ScopeOutcome(cancelled=True)

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._token.wait())
        try:
            done, _ = await asyncio.wait(
                {call, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not call.done():
                call.cancel()
                # Drain the call so it cannot finish a write after we return.
                await asyncio.gather(call, return_exceptions=True)

        if call in done:
            if call.cancelled():
                return ScopeOutcome(cancelled=True)
            error = call.exception()
            if error is not None:
                return ScopeOutcome(error=error)
            return ScopeOutcome(value=call.result())

        # The token fired first. A call that still finished with a value
        # (a write that refused to stop) keeps its result.
        if not call.cancelled() and call.exception() is None:
            return ScopeOutcome(value=call.result())
        return ScopeOutcome(cancelled=True)

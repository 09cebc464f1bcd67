"""
genstudio.orchestration.clock - Injectable Sleep Abstraction
==============================================================

Backoff sleeps (and the gateway's simulated processing delay) go through a
Sleeper instead of calling asyncio.sleep() directly. That keeps delays and
cancellation points deterministic in tests: swap in a RecordingSleeper and
no test ever waits on the wall clock.

Contract:
    ``await sleeper.sleep(delay, token)`` returns

        True   the full delay elapsed
        False  the token was (or became) cancelled; the sleep ended early

    A sleep is a cancellation point: a token that fires mid-sleep wakes the
    sleeper immediately.

Implementations:
    - AsyncioSleeper:   real sleeping on the event loop
    - RecordingSleeper: records requested delays and returns at once,
                        with an optional hook that runs "during" the sleep
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from genstudio.orchestration.cancellation import CancellationToken


# =============================================================================
# Abstract Base Class
# =============================================================================
class Sleeper(ABC):
    """Interface for cancellable sleeps."""

    @abstractmethod
    async def sleep(self, delay: float, token: Optional[CancellationToken] = None) -> bool:
        """Sleep for ``delay`` seconds unless ``token`` is cancelled.

        Returns:
            True if the whole delay elapsed, False if cancellation ended it.
        """
        ...


# =============================================================================
# Real Sleeper
# =============================================================================
class AsyncioSleeper(Sleeper):
    """Sleeps on the running event loop, waking early on cancellation."""

    async def sleep(self, delay: float, token: Optional[CancellationToken] = None) -> bool:
        if token is None:
            await asyncio.sleep(max(delay, 0.0))
            return True

        if token.is_cancelled:
            return False

        if delay <= 0:
            await asyncio.sleep(0)
            return not token.is_cancelled

        try:
            await asyncio.wait_for(token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False


# =============================================================================
# Recording Sleeper (tests / simulations)
# =============================================================================
SleepHook = Callable[[float], Any]


class RecordingSleeper(Sleeper):
    """Sleeper that never waits.

    Every requested delay is appended to ``delays``. If an ``on_sleep``
    hook is given it is called with the delay (and awaited if it returns
    an awaitable) before the sleep "ends"; tests use it to cancel a
    submission in the middle of a backoff.

    Example:
        >>> sleeper = RecordingSleeper()
        >>> await sleeper.sleep(2.0)
        True
        >>> sleeper.delays
        [2.0]
    """

    def __init__(self, on_sleep: Optional[SleepHook] = None) -> None:
        self.delays: list[float] = []
        self._on_sleep = on_sleep

    @property
    def total_slept(self) -> float:
        return sum(self.delays)

    async def sleep(self, delay: float, token: Optional[CancellationToken] = None) -> bool:
        self.delays.append(delay)

        if self._on_sleep is not None:
            result = self._on_sleep(delay)
            if inspect.isawaitable(result):
                await result

        # Yield once so other coroutines (e.g. a cancelling task) can run.
        await asyncio.sleep(0)
        return not (token is not None and token.is_cancelled)

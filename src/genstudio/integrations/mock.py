"""
genstudio.integrations.mock - Scripted Gateway Transport for Testing
======================================================================

A GatewayTransport whose outcomes are queued up front, so controller tests
can say "overloaded, overloaded, then success" and assert exactly how many
calls were made.

Why a Mock Transport?
    1. **Deterministic**: every call's outcome is chosen by the test.
    2. **Call tracking**: records every request for assertions.
    3. **Real writes**: successful calls create a real artifact in an
       ArtifactStore, so "exactly one artifact per success" is checkable.
    4. **Hang support**: a queued hang blocks until the call is cancelled,
       which is how in-flight cancellation is exercised.

How It Works:
    Each create() pops the next queued outcome. When the queue is empty
    the default outcome is used (success unless set_default_error() was
    called).

Usage:
    >>> transport = MockGatewayTransport(store)
    >>> transport.queue_overloaded(2)
    >>> transport.queue_success()
    >>> artifact = await transport.create(request)  # raises OverloadedError
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from typing import Any, Callable, Optional, Union

import structlog

from genstudio.core.enums import Style
from genstudio.core.exceptions import OverloadedError
from genstudio.core.models import ArtifactDraft, GenerationArtifact, GenerationRequest
from genstudio.infrastructure.artifact_store import ArtifactStore, InMemoryArtifactStore
from genstudio.integrations.transport import GatewayTransport


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class _Hang:
    """Queue marker: block until cancelled."""


_SUCCESS = None
_HANG = _Hang()

Outcome = Union[None, BaseException, _Hang]
CallHook = Callable[[int, GenerationRequest], Any]


class MockGatewayTransport(GatewayTransport):
    """Scripted GatewayTransport for tests and demos.

    Args:
        artifact_store: Store that successful calls write to. A fresh
            InMemoryArtifactStore is used when omitted.
        owner_id: Owner recorded on created artifacts.
        on_call: Optional hook called as ``on_call(call_number, request)``
            at the start of every call (awaited if it returns an awaitable).

    Attributes:
        _outcomes: FIFO queue of scripted outcomes.
        _call_history: Every request passed to create(), in order.
        _default: Outcome used once the queue is empty.
    """

    def __init__(
        self,
        artifact_store: Optional[ArtifactStore] = None,
        owner_id: int = 1,
        on_call: Optional[CallHook] = None,
    ) -> None:
        self._store = artifact_store or InMemoryArtifactStore()
        self._owner_id = owner_id
        self._on_call = on_call
        self._outcomes: deque[Outcome] = deque()
        self._default: Outcome = _SUCCESS
        self._call_history: list[GenerationRequest] = []
        self._cancelled_calls: int = 0
        self._logger = logger.bind(component="mock_gateway_transport")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def artifact_store(self) -> ArtifactStore:
        return self._store

    @property
    def call_history(self) -> list[GenerationRequest]:
        return list(self._call_history)

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    @property
    def cancelled_calls(self) -> int:
        """Calls that were stopped by task cancellation while in flight."""
        return self._cancelled_calls

    @property
    def queue_size(self) -> int:
        return len(self._outcomes)

    # =========================================================================
    # Scripting
    # =========================================================================

    def queue_success(self, count: int = 1) -> None:
        self._outcomes.extend([_SUCCESS] * count)

    def queue_overloaded(self, count: int = 1) -> None:
        for _ in range(count):
            self._outcomes.append(OverloadedError())

    def queue_error(self, error: BaseException) -> None:
        self._outcomes.append(error)

    def queue_hang(self) -> None:
        """Next call blocks until its task is cancelled."""
        self._outcomes.append(_HANG)

    def set_default_error(self, error: Optional[BaseException]) -> None:
        """Outcome once the queue is empty (None restores success)."""
        self._default = error

    def clear(self) -> None:
        self._outcomes.clear()
        self._call_history.clear()
        self._cancelled_calls = 0

    # =========================================================================
    # GatewayTransport interface
    # =========================================================================

    async def create(self, request: GenerationRequest) -> GenerationArtifact:
        self._call_history.append(request)
        call_number = len(self._call_history)

        if self._on_call is not None:
            result = self._on_call(call_number, request)
            if inspect.isawaitable(result):
                await result

        outcome = self._outcomes.popleft() if self._outcomes else self._default

        try:
            # Yield once so a concurrent cancel can land mid-call.
            await asyncio.sleep(0)
            if isinstance(outcome, _Hang):
                await asyncio.Event().wait()
        except asyncio.CancelledError:
            self._cancelled_calls += 1
            raise

        if isinstance(outcome, BaseException):
            self._logger.debug(
                "mock_call_failed",
                call_number=call_number,
                error=type(outcome).__name__,
            )
            raise outcome

        return await self._store.create(
            ArtifactDraft(
                owner_id=self._owner_id,
                prompt=request.prompt,
                style=Style(request.style),
                image_url=request.image_ref,
            )
        )

    async def list_recent(self, limit: Optional[int] = None) -> list[GenerationArtifact]:
        return await self._store.list_recent(self._owner_id, 5 if limit is None else limit)

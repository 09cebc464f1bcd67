"""
genstudio.gateway.failure_policy - Injectable Overload Decisions
==================================================================

The gateway's "model overloaded" rejection is decided by a FailurePolicy
collaborator rather than a global random call, so tests can force exact
Overloaded/Success sequences and runs can be made reproducible.

Implementations:
    ProbabilisticFailurePolicy  fixed probability p, seeded random.Random
    ScriptedFailurePolicy       plays back a given list of decisions
    NeverFailPolicy             always lets the attempt through

Every policy counts how many times it was consulted (``evaluations``), which
is how tests prove that invalid input never reaches the gate.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, Optional

from genstudio.core.exceptions import ConfigurationError


class FailurePolicy(ABC):
    """Decides whether one attempt is rejected as overloaded."""

    def __init__(self) -> None:
        self.evaluations: int = 0

    def should_fail(self) -> bool:
        """Consult the policy once.

        Returns:
            True if this attempt must be rejected with OverloadedError.
        """
        self.evaluations += 1
        return self._decide()

    @abstractmethod
    def _decide(self) -> bool:
        ...


class ProbabilisticFailurePolicy(FailurePolicy):
    """Fails with a fixed probability.

    Args:
        probability: Chance of failure per evaluation, in [0, 1].
        seed: Optional RNG seed for reproducible sequences.

    Example:
        >>> policy = ProbabilisticFailurePolicy(probability=0.2, seed=7)
        >>> policy.should_fail() in (True, False)
        True
    """

    def __init__(self, probability: float = 0.2, seed: Optional[int] = None) -> None:
        super().__init__()
        if not 0.0 <= probability <= 1.0:
            raise ConfigurationError(
                message=f"Overload probability must be within [0, 1], got {probability}",
                details={"probability": probability},
            )
        self.probability = probability
        self._rng = random.Random(seed)

    def _decide(self) -> bool:
        return self._rng.random() < self.probability


class ScriptedFailurePolicy(FailurePolicy):
    """Plays back a fixed sequence of decisions.

    Once the script runs out, ``default`` is returned for every further
    evaluation.

    Example:
        >>> policy = ScriptedFailurePolicy([True, False])
        >>> [policy.should_fail() for _ in range(3)]
        [True, False, False]
    """

    def __init__(self, outcomes: Iterable[bool] = (), default: bool = False) -> None:
        super().__init__()
        self._script: deque[bool] = deque(outcomes)
        self.default = default

    @property
    def remaining(self) -> int:
        return len(self._script)

    def extend(self, outcomes: Iterable[bool]) -> None:
        """Append more scripted decisions."""
        self._script.extend(outcomes)

    def _decide(self) -> bool:
        if self._script:
            return self._script.popleft()
        return self.default


class NeverFailPolicy(FailurePolicy):
    """Never rejects an attempt."""

    def _decide(self) -> bool:
        return False

"""
genstudio.gateway - Server-Side Generation Gateway
====================================================

    - GenerationGateway:  validate → overload gate → write → respond
    - FailurePolicy:      injectable overload decision source
        ├── ProbabilisticFailurePolicy
        ├── ScriptedFailurePolicy
        └── NeverFailPolicy

Usage:
    from genstudio.gateway import GenerationGateway, ScriptedFailurePolicy
"""

from genstudio.gateway.failure_policy import (
    FailurePolicy,
    NeverFailPolicy,
    ProbabilisticFailurePolicy,
    ScriptedFailurePolicy,
)
from genstudio.gateway.generation_gateway import GenerationGateway

__all__ = [
    "GenerationGateway",
    "FailurePolicy",
    "ProbabilisticFailurePolicy",
    "ScriptedFailurePolicy",
    "NeverFailPolicy",
]

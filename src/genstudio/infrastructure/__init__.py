"""
genstudio.infrastructure - Data & Infrastructure Layer
========================================================

Persistence for generation artifacts.

Architecture:
    ┌─────────────── GATEWAY LAYER ───────────────────────┐
    │  GenerationGateway (validate → gate → write)         │
    └─────────────────────┬───────────────────────────────┘
                          │ one create() per success
                          ▼
    ┌─────────────── INFRASTRUCTURE LAYER ────────────────┐
    │  ArtifactStore (ABC)                                │
    │    ├── InMemoryArtifactStore                        │
    │    └── SQLiteArtifactStore                          │
    └──────────────────────────────────────────────────────┘

Usage:
    from genstudio.infrastructure import InMemoryArtifactStore
"""

from genstudio.infrastructure.artifact_store import (
    ArtifactStore,
    InMemoryArtifactStore,
    SQLiteArtifactStore,
)

__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "SQLiteArtifactStore",
]

"""
genstudio.infrastructure.artifact_store - Artifact Persistence Layer
=====================================================================

This module provides durable keyed storage for generation artifacts.

Architecture Context:
    The ArtifactStore sits behind the GenerationGateway. The gateway only
    ever calls ``create()`` after the overload gate has let an attempt
    through, and calls it exactly once per successful attempt:

    ┌──────────────────────┐   create(draft)    ┌──────────────────┐
    │  GenerationGateway   │ ─────────────────> │  ArtifactStore   │
    │                      │                    │                  │
    │  validate → gate →   │   list_recent()    │  id + created_at │
    │  write → respond     │ ─────────────────> │  assigned here   │
    └──────────────────────┘                    └──────────────────┘

Store Contract:
    - ``create()`` is a single atomic operation: it assigns the id and the
      creation timestamp and inserts the row, or it fails and leaves
      nothing behind. There are no multi-record transactions.
    - ``list_recent()`` only ever returns the given owner's artifacts,
      ordered by created_at DESC with ties broken by id DESC, so repeated
      reads are stable even when two rows share a timestamp.

Storage Implementations:
    - InMemoryArtifactStore: Dict-based, for development/testing
    - SQLiteArtifactStore:   Single-file SQLite database (stdlib sqlite3)

Usage:
    >>> store = InMemoryArtifactStore()
    >>> artifact = await store.create(
    ...     ArtifactDraft(owner_id=1, prompt="p", style="casual", image_url="/uploads/a.png")
    ... )
    >>> recent = await store.list_recent(owner_id=1, limit=5)
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import structlog

from genstudio.core.enums import ArtifactStatus, Style
from genstudio.core.exceptions import StorageError
from genstudio.core.models import ArtifactDraft, GenerationArtifact


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


# =============================================================================
# Helper: Clock
# =============================================================================
# Stores take an injectable clock so tests can force identical timestamps
# and check the id tie-breaker.
# =============================================================================
Clock = Callable[[], datetime]


def _now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


def _utc(value: datetime) -> datetime:
    """Normalise a clock reading to an aware UTC datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _recent_key(artifact: GenerationArtifact) -> tuple[datetime, int]:
    return (artifact.created_at, artifact.id)


# =============================================================================
# Abstract Base Class
# =============================================================================
class ArtifactStore(ABC):
    """Abstract interface for artifact persistence.

    Methods:
        create(draft): Atomically insert a new artifact.
        get(artifact_id): Retrieve a single artifact by id.
        list_recent(owner_id, limit): Most recent artifacts for one owner.
        count(owner_id): Number of stored artifacts (optionally per owner).
        close(): Release any held resources.
    """

    @abstractmethod
    async def create(self, draft: ArtifactDraft) -> GenerationArtifact:
        """Atomically create one artifact.

        Args:
            draft: The artifact fields the caller controls.

        Returns:
            The stored GenerationArtifact, including the store-assigned
            ``id`` and ``created_at``.

        Raises:
            StorageError: If the write failed. Nothing was stored.
        """
        ...

    @abstractmethod
    async def get(self, artifact_id: int) -> Optional[GenerationArtifact]:
        """Retrieve a single artifact by its id.

        Returns:
            The GenerationArtifact if found, None otherwise.
        """
        ...

    @abstractmethod
    async def list_recent(self, owner_id: int, limit: int = 5) -> list[GenerationArtifact]:
        """Get an owner's most recent artifacts.

        Args:
            owner_id: Only this owner's artifacts are returned.
            limit: Maximum number of artifacts. Values below 1 return an
                empty list.

        Returns:
            Artifacts ordered by created_at DESC, then id DESC.
        """
        ...

    @abstractmethod
    async def count(self, owner_id: Optional[int] = None) -> int:
        """Count stored artifacts, across all owners or for one owner."""
        ...

    async def close(self) -> None:
        """Release resources held by the store. No-op by default."""
        return None


# =============================================================================
# In-Memory Implementation
# =============================================================================
class InMemoryArtifactStore(ArtifactStore):
    """In-memory artifact store for development and testing.

    Ids are assigned from a counter starting at 1. The counter bump and
    the insert happen under one asyncio.Lock, so concurrent creates can
    never share an id or leave a gap holding a half-built row.

    Example:
        >>> store = InMemoryArtifactStore()
        >>> await store.count()
        0
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._rows: dict[int, GenerationArtifact] = {}
        self._next_id: int = 1
        self._clock: Clock = clock or _now
        self._lock: asyncio.Lock = asyncio.Lock()
        self._logger = logger.bind(component="in_memory_artifact_store")

    async def create(self, draft: ArtifactDraft) -> GenerationArtifact:
        async with self._lock:
            artifact = GenerationArtifact(
                id=self._next_id,
                owner_id=draft.owner_id,
                prompt=draft.prompt,
                style=draft.style,
                image_url=draft.image_url,
                status=ArtifactStatus.COMPLETED,
                created_at=_utc(self._clock()),
            )
            self._rows[artifact.id] = artifact
            self._next_id += 1

        self._logger.debug(
            "artifact_created",
            artifact_id=artifact.id,
            owner_id=artifact.owner_id,
            style=artifact.style.value,
        )
        return artifact

    async def get(self, artifact_id: int) -> Optional[GenerationArtifact]:
        return self._rows.get(artifact_id)

    async def list_recent(self, owner_id: int, limit: int = 5) -> list[GenerationArtifact]:
        if limit < 1:
            return []
        owned = [a for a in self._rows.values() if a.owner_id == owner_id]
        owned.sort(key=_recent_key, reverse=True)
        return owned[:limit]

    async def count(self, owner_id: Optional[int] = None) -> int:
        if owner_id is None:
            return len(self._rows)
        return sum(1 for a in self._rows.values() if a.owner_id == owner_id)


# =============================================================================
# SQLite Implementation
# =============================================================================
# Mirrors the original service's `generations` table. A single connection
# is shared between calls and serialized by a threading.Lock, because the
# blocking sqlite3 work is pushed onto worker threads with
# asyncio.to_thread().
#
# created_at is stored as a fixed-width ISO-8601 UTC string. Every row is
# normalised to UTC and written in the same format, so lexicographic
# order is chronological order and the index can serve the recent-list
# query.
# =============================================================================
_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS generations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id INTEGER NOT NULL,
        prompt TEXT NOT NULL,
        style TEXT NOT NULL,
        image_url TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'completed',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_generations_owner_created
    ON generations(owner_id, created_at DESC, id DESC)
    """,
)

_COLUMNS = "id, owner_id, prompt, style, image_url, status, created_at"


class SQLiteArtifactStore(ArtifactStore):
    """SQLite-backed artifact store.

    Each ``create()`` is one INSERT committed on its own, which is the
    atomic single-row write the gateway relies on.

    Args:
        database_path: Path to the SQLite file, or ":memory:".
        clock: Optional timestamp source (defaults to UTC now).

    Example:
        >>> store = SQLiteArtifactStore("generations.sqlite")
        >>> artifact = await store.create(draft)
        >>> await store.close()
    """

    def __init__(self, database_path: str | Path, clock: Optional[Clock] = None) -> None:
        self.database_path = str(database_path)
        if self.database_path != ":memory:":
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        self._clock: Clock = clock or _now
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.database_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialize_db()

        self._logger = logger.bind(
            component="sqlite_artifact_store",
            database_path=self.database_path,
        )
        self._logger.info("artifact_store_opened")

    def _initialize_db(self) -> None:
        with self._lock:
            for statement in _SCHEMA:
                self._conn.execute(statement)
            self._conn.commit()

    @staticmethod
    def _row_to_artifact(row: sqlite3.Row) -> GenerationArtifact:
        return GenerationArtifact(
            id=row["id"],
            owner_id=row["owner_id"],
            prompt=row["prompt"],
            style=Style(row["style"]),
            image_url=row["image_url"],
            status=ArtifactStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # -------------------------------------------------------------------------
    # Blocking helpers (run on a worker thread)
    # -------------------------------------------------------------------------
    def _insert(self, draft: ArtifactDraft) -> GenerationArtifact:
        created_at = _utc(self._clock())
        with self._lock:
            try:
                cursor = self._conn.execute(
                    "INSERT INTO generations "
                    "(owner_id, prompt, style, image_url, status, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        draft.owner_id,
                        draft.prompt,
                        draft.style.value,
                        draft.image_url,
                        ArtifactStatus.COMPLETED.value,
                        created_at.isoformat(timespec="microseconds"),
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StorageError(
                    message="Failed to insert generation row",
                    details={"database_path": self.database_path, "reason": str(exc)},
                ) from exc

        return GenerationArtifact(
            id=cursor.lastrowid,
            owner_id=draft.owner_id,
            prompt=draft.prompt,
            style=draft.style,
            image_url=draft.image_url,
            status=ArtifactStatus.COMPLETED,
            created_at=created_at,
        )

    def _query(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(
                    message="Failed to read generations",
                    details={"database_path": self.database_path, "reason": str(exc)},
                ) from exc

    # -------------------------------------------------------------------------
    # ArtifactStore interface
    # -------------------------------------------------------------------------
    async def create(self, draft: ArtifactDraft) -> GenerationArtifact:
        artifact = await asyncio.to_thread(self._insert, draft)
        self._logger.debug(
            "artifact_created",
            artifact_id=artifact.id,
            owner_id=artifact.owner_id,
            style=artifact.style.value,
        )
        return artifact

    async def get(self, artifact_id: int) -> Optional[GenerationArtifact]:
        rows = await asyncio.to_thread(
            self._query,
            f"SELECT {_COLUMNS} FROM generations WHERE id = ?",
            (artifact_id,),
        )
        return self._row_to_artifact(rows[0]) if rows else None

    async def list_recent(self, owner_id: int, limit: int = 5) -> list[GenerationArtifact]:
        # SQLite treats a negative LIMIT as "no limit", so guard it here.
        if limit < 1:
            return []
        rows = await asyncio.to_thread(
            self._query,
            f"SELECT {_COLUMNS} FROM generations WHERE owner_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT ?",
            (owner_id, limit),
        )
        return [self._row_to_artifact(row) for row in rows]

    async def count(self, owner_id: Optional[int] = None) -> int:
        if owner_id is None:
            rows = await asyncio.to_thread(
                self._query, "SELECT COUNT(*) FROM generations", ()
            )
        else:
            rows = await asyncio.to_thread(
                self._query,
                "SELECT COUNT(*) FROM generations WHERE owner_id = ?",
                (owner_id,),
            )
        return int(rows[0][0])

    async def close(self) -> None:
        with self._lock:
            self._conn.close()
        self._logger.info("artifact_store_closed")

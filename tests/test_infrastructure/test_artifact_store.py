"""
Tests for genstudio.infrastructure.artifact_store
====================================================

Both store implementations are run through the same behavioural tests:
    - ids are store-assigned and increasing
    - list_recent is newest first, owner-scoped, limited
    - identical timestamps fall back to id order
    - count / get / close

SQLite tests use a throwaway file under tmp_path.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from genstudio.core.enums import ArtifactStatus, Style
from genstudio.core.models import ArtifactDraft
from genstudio.infrastructure.artifact_store import (
    ArtifactStore,
    InMemoryArtifactStore,
    SQLiteArtifactStore,
)


FIXED_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Helpers
# =============================================================================
def _draft(**overrides) -> ArtifactDraft:
    defaults = {
        "owner_id": 1,
        "prompt": "A wool coat in the snow",
        "style": Style.FORMAL,
        "image_url": "/uploads/coat.png",
    }
    defaults.update(overrides)
    return ArtifactDraft(**defaults)


class _TickingClock:
    """Clock that advances one second per call."""

    def __init__(self) -> None:
        self._ticks = 0

    def __call__(self) -> datetime:
        self._ticks += 1
        return FIXED_TIME.replace(second=self._ticks)


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path: Path):
    """Factory building either backend with an optional clock."""
    created: list[ArtifactStore] = []

    def _make(clock=None) -> ArtifactStore:
        if request.param == "memory":
            store = InMemoryArtifactStore(clock=clock)
        else:
            store = SQLiteArtifactStore(tmp_path / f"store-{len(created)}.sqlite", clock=clock)
        created.append(store)
        return store

    return _make


# =============================================================================
# Tests: Create / Get
# =============================================================================
class TestCreate:
    async def test_assigns_increasing_ids(self, make_store) -> None:
        store = make_store()
        first = await store.create(_draft())
        second = await store.create(_draft())
        assert second.id > first.id

    async def test_artifact_fields(self, make_store) -> None:
        store = make_store(clock=lambda: FIXED_TIME)
        artifact = await store.create(_draft(style=Style.SPORTY))
        assert artifact.owner_id == 1
        assert artifact.style is Style.SPORTY
        assert artifact.status is ArtifactStatus.COMPLETED
        assert artifact.created_at == FIXED_TIME

    async def test_get_round_trip(self, make_store) -> None:
        store = make_store()
        artifact = await store.create(_draft())
        assert await store.get(artifact.id) == artifact

    async def test_get_missing(self, make_store) -> None:
        store = make_store()
        assert await store.get(999) is None

    async def test_count(self, make_store) -> None:
        store = make_store()
        await store.create(_draft(owner_id=1))
        await store.create(_draft(owner_id=1))
        await store.create(_draft(owner_id=2))
        assert await store.count() == 3
        assert await store.count(owner_id=1) == 2
        assert await store.count(owner_id=3) == 0


# =============================================================================
# Tests: Recent List
# =============================================================================
class TestListRecent:
    async def test_newest_first(self, make_store) -> None:
        store = make_store(clock=_TickingClock())
        ids = [(await store.create(_draft(prompt=f"p{i}"))).id for i in range(3)]
        recent = await store.list_recent(1)
        assert [a.id for a in recent] == list(reversed(ids))

    async def test_identical_timestamps_break_ties_by_id(self, make_store) -> None:
        store = make_store(clock=lambda: FIXED_TIME)
        ids = [(await store.create(_draft())).id for _ in range(4)]
        recent = await store.list_recent(1, limit=10)
        assert [a.id for a in recent] == sorted(ids, reverse=True)

    async def test_default_limit_is_five(self, make_store) -> None:
        store = make_store(clock=_TickingClock())
        for _ in range(7):
            await store.create(_draft())
        assert len(await store.list_recent(1)) == 5

    async def test_explicit_limit(self, make_store) -> None:
        store = make_store()
        for _ in range(4):
            await store.create(_draft())
        assert len(await store.list_recent(1, limit=2)) == 2

    async def test_owner_isolation(self, make_store) -> None:
        store = make_store()
        await store.create(_draft(owner_id=1))
        bob = await store.create(_draft(owner_id=2))
        recent = await store.list_recent(2)
        assert [a.id for a in recent] == [bob.id]

    async def test_mixed_timezone_clock_orders_chronologically(self, make_store) -> None:
        readings = iter(
            [
                datetime(2024, 6, 1, 12, 0, 1),
                datetime(2024, 6, 1, 14, 0, 2, tzinfo=timezone(timedelta(hours=2))),
                datetime(2024, 6, 1, 7, 0, 3, tzinfo=timezone(timedelta(hours=-5))),
            ]
        )
        store = make_store(clock=lambda: next(readings))
        ids = [(await store.create(_draft())).id for _ in range(3)]

        recent = await store.list_recent(1)

        assert [a.id for a in recent] == list(reversed(ids))
        assert all(a.created_at.utcoffset() == timedelta(0) for a in recent)
        assert recent[0].created_at == FIXED_TIME.replace(second=3)

    async def test_non_positive_limit_returns_nothing(self, make_store) -> None:
        store = make_store()
        await store.create(_draft())
        assert await store.list_recent(1, limit=0) == []
        assert await store.list_recent(1, limit=-1) == []


# =============================================================================
# Tests: SQLite specifics
# =============================================================================
class TestSQLiteArtifactStore:
    async def test_persists_across_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "gen.sqlite"
        store = SQLiteArtifactStore(path)
        created = await store.create(_draft())
        await store.close()

        reopened = SQLiteArtifactStore(path)
        assert await reopened.get(created.id) == created
        await reopened.close()

    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "gen.sqlite"
        store = SQLiteArtifactStore(path)
        assert path.parent.is_dir()
        await store.close()

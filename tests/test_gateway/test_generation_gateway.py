"""
Tests for genstudio.gateway.generation_gateway
================================================

What's Being Tested:
    - The create() ordering: auth → validate → gate → write
    - Validation messages surfaced to the user
    - An artifact is written if and only if the gate lets the call through
    - Cancellation during processing leaves the store untouched
    - Cancellation during the write still returns the written artifact
    - list_recent defaults, limits and owner scoping
"""

import asyncio

import pytest

from genstudio.core.config import GatewayConfig
from genstudio.core.enums import Style
from genstudio.core.exceptions import (
    AuthError,
    CancelledError,
    OverloadedError,
    ValidationError,
)
from genstudio.core.models import ArtifactDraft, GenerationArtifact
from genstudio.gateway.failure_policy import NeverFailPolicy, ScriptedFailurePolicy
from genstudio.gateway.generation_gateway import (
    IMAGE_REQUIRED,
    INVALID_LIMIT,
    INVALID_STYLE,
    PROMPT_REQUIRED,
    PROMPT_TOO_LONG,
    GenerationGateway,
)
from genstudio.infrastructure.artifact_store import InMemoryArtifactStore
from genstudio.orchestration.clock import AsyncioSleeper


VALID = {"prompt": "A silk scarf", "style": "elegant", "image_ref": "scarf.png"}


# =============================================================================
# Tests: Successful create
# =============================================================================
class TestCreate:
    async def test_creates_one_artifact(self, gateway, artifact_store) -> None:
        artifact = await gateway.create(owner_id=1, **VALID)
        assert artifact.id == 1
        assert artifact.owner_id == 1
        assert artifact.style is Style.ELEGANT
        assert artifact.image_url == "/uploads/scarf.png"
        assert await artifact_store.count() == 1

    @pytest.mark.parametrize(
        "image_ref", ["https://cdn.example.com/a.png", "/static/a.png", "http://x/a.png"]
    )
    def test_image_url_keeps_absolute_references(self, gateway, image_ref: str) -> None:
        assert gateway.image_url_for(image_ref) == image_ref

    async def test_prompt_at_max_length_accepted(self, gateway) -> None:
        artifact = await gateway.create(owner_id=1, prompt="x" * 500, style="casual", image_ref="a.png")
        assert len(artifact.prompt) == 500


# =============================================================================
# Tests: Authentication
# =============================================================================
class TestAuthentication:
    async def test_missing_owner_rejected_before_anything(self, gateway, failure_policy, artifact_store) -> None:
        with pytest.raises(AuthError):
            await gateway.create(owner_id=None, **VALID)
        assert failure_policy.evaluations == 0
        assert await artifact_store.count() == 0


# =============================================================================
# Tests: Validation (before the overload gate)
# =============================================================================
class TestValidation:
    async def test_prompt_too_long_never_reaches_gate(self, artifact_store, gateway_config) -> None:
        policy = ScriptedFailurePolicy(default=True)
        gateway = GenerationGateway(artifact_store, failure_policy=policy, config=gateway_config)

        with pytest.raises(ValidationError) as exc_info:
            await gateway.create(owner_id=1, prompt="x" * 501, style="casual", image_ref="a.png")

        assert exc_info.value.message == PROMPT_TOO_LONG
        assert policy.evaluations == 0
        assert await artifact_store.count() == 0

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"prompt": ""}, PROMPT_REQUIRED),
            ({"prompt": None}, PROMPT_REQUIRED),
            ({"style": "gothic"}, INVALID_STYLE),
            ({"style": None}, INVALID_STYLE),
            ({"image_ref": ""}, IMAGE_REQUIRED),
            ({"image_ref": None}, IMAGE_REQUIRED),
        ],
    )
    async def test_messages(self, gateway, overrides: dict, message: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await gateway.create(owner_id=1, **{**VALID, **overrides})
        assert exc_info.value.message == message
        assert exc_info.value.errors[0]["message"] == message

    async def test_multiple_errors_joined(self, gateway) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await gateway.create(owner_id=1, prompt="", style="gothic", image_ref="a.png")
        assert exc_info.value.message == f"{PROMPT_REQUIRED}; {INVALID_STYLE}"
        assert {e["field"] for e in exc_info.value.errors} == {"prompt", "style"}


# =============================================================================
# Tests: Overload gate
# =============================================================================
class TestOverloadGate:
    async def test_overloaded_writes_nothing(self, artifact_store, gateway_config) -> None:
        gateway = GenerationGateway(
            artifact_store,
            failure_policy=ScriptedFailurePolicy([True]),
            config=gateway_config,
        )
        with pytest.raises(OverloadedError):
            await gateway.create(owner_id=1, **VALID)
        assert await artifact_store.count() == 0

        artifact = await gateway.create(owner_id=1, **VALID)
        assert await artifact_store.count() == 1
        assert artifact.id == 1

    async def test_gate_consulted_once_per_valid_call(self, gateway, failure_policy) -> None:
        await gateway.create(owner_id=1, **VALID)
        await gateway.create(owner_id=1, **VALID)
        assert failure_policy.evaluations == 2

    async def test_default_policy_comes_from_config(self, artifact_store) -> None:
        gateway = GenerationGateway(
            artifact_store,
            config=GatewayConfig(
                overload_probability=1.0,
                processing_delay_min=0.0,
                processing_delay_max=0.0,
            ),
        )
        with pytest.raises(OverloadedError):
            await gateway.create(owner_id=1, **VALID)


# =============================================================================
# Tests: Cancellation during processing and writing
# =============================================================================
class TestProcessingCancellation:
    async def test_cancel_during_processing_writes_nothing(self) -> None:
        store = InMemoryArtifactStore()
        gateway = GenerationGateway(
            store,
            failure_policy=ScriptedFailurePolicy(),
            config=GatewayConfig(processing_delay_min=5.0, processing_delay_max=5.0),
            sleeper=AsyncioSleeper(),
        )
        task = asyncio.create_task(gateway.create(owner_id=1, **VALID))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert await store.count() == 0

    async def test_cancel_during_write_returns_the_artifact(self, gateway_config) -> None:
        write_started = asyncio.Event()
        release = asyncio.Event()

        class _GatedStore(InMemoryArtifactStore):
            async def create(self, draft: ArtifactDraft) -> GenerationArtifact:
                write_started.set()
                await release.wait()
                return await super().create(draft)

        store = _GatedStore()
        gateway = GenerationGateway(store, failure_policy=NeverFailPolicy(), config=gateway_config)
        task = asyncio.create_task(gateway.create(owner_id=1, **VALID))
        await write_started.wait()

        task.cancel()
        await asyncio.sleep(0)
        release.set()
        artifact = await asyncio.wait_for(task, timeout=1.0)

        assert not task.cancelled()
        assert await store.get(artifact.id) == artifact
        assert await store.count() == 1

    async def test_abort_check_skips_the_write(self, gateway, failure_policy, artifact_store) -> None:
        async def caller_gone() -> bool:
            return True

        with pytest.raises(CancelledError):
            await gateway.create(owner_id=1, should_abort=caller_gone, **VALID)

        assert failure_policy.evaluations == 1
        assert await artifact_store.count() == 0

    async def test_abort_check_false_writes(self, gateway, artifact_store) -> None:
        async def still_here() -> bool:
            return False

        artifact = await gateway.create(owner_id=1, should_abort=still_here, **VALID)
        assert await artifact_store.count() == 1
        assert artifact.owner_id == 1


# =============================================================================
# Tests: list_recent
# =============================================================================
class TestListRecent:
    async def test_newest_first_and_default_limit(self, gateway) -> None:
        for i in range(6):
            await gateway.create(owner_id=1, **{**VALID, "prompt": f"look {i}"})
        recent = await gateway.list_recent(1)
        assert len(recent) == 5
        assert recent[0].prompt == "look 5"

    async def test_explicit_limit(self, gateway) -> None:
        for _ in range(3):
            await gateway.create(owner_id=1, **VALID)
        assert len(await gateway.list_recent(1, limit=2)) == 2

    async def test_owner_scoped(self, gateway) -> None:
        await gateway.create(owner_id=1, **VALID)
        assert await gateway.list_recent(2) == []

    async def test_invalid_limit(self, gateway) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await gateway.list_recent(1, limit=0)
        assert exc_info.value.message == INVALID_LIMIT

    async def test_requires_owner(self, gateway) -> None:
        with pytest.raises(AuthError):
            await gateway.list_recent(None)

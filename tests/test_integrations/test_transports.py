"""
Tests for genstudio.integrations (local and mock transports)
==============================================================
"""

import pytest

from genstudio.core.exceptions import AuthError, OverloadedError, ValidationError
from genstudio.gateway.failure_policy import ScriptedFailurePolicy
from genstudio.gateway.generation_gateway import GenerationGateway
from genstudio.integrations.mock import MockGatewayTransport
from genstudio.integrations.transport import LocalGatewayTransport


# =============================================================================
# Tests: LocalGatewayTransport
# =============================================================================
class TestLocalGatewayTransport:
    async def test_create_forwards_owner(self, gateway, gen_request) -> None:
        transport = LocalGatewayTransport(gateway, owner_id=7)
        artifact = await transport.create(gen_request)
        assert artifact.owner_id == 7
        assert artifact.prompt == gen_request.prompt

    async def test_list_recent(self, gateway, gen_request) -> None:
        transport = LocalGatewayTransport(gateway, owner_id=7)
        await transport.create(gen_request)
        assert len(await transport.list_recent()) == 1

    async def test_gateway_errors_propagate(self, artifact_store, gateway_config, gen_request) -> None:
        gateway = GenerationGateway(
            artifact_store,
            failure_policy=ScriptedFailurePolicy([True]),
            config=gateway_config,
        )
        transport = LocalGatewayTransport(gateway, owner_id=1)
        with pytest.raises(OverloadedError):
            await transport.create(gen_request)

    async def test_missing_owner(self, gateway, gen_request) -> None:
        transport = LocalGatewayTransport(gateway, owner_id=None)
        with pytest.raises(AuthError):
            await transport.create(gen_request)

    async def test_aclose_is_noop(self, gateway) -> None:
        await LocalGatewayTransport(gateway, owner_id=1).aclose()


# =============================================================================
# Tests: MockGatewayTransport
# =============================================================================
class TestMockGatewayTransport:
    async def test_success_by_default(self, gen_request) -> None:
        transport = MockGatewayTransport()
        artifact = await transport.create(gen_request)
        assert artifact.id == 1
        assert transport.call_history == [gen_request]

    async def test_queue_is_fifo(self, gen_request) -> None:
        transport = MockGatewayTransport()
        transport.queue_overloaded(1)
        transport.queue_error(ValidationError("Prompt too long"))
        transport.queue_success()

        with pytest.raises(OverloadedError):
            await transport.create(gen_request)
        with pytest.raises(ValidationError):
            await transport.create(gen_request)
        assert (await transport.create(gen_request)).id == 1
        assert transport.queue_size == 0

    async def test_default_error(self, gen_request) -> None:
        transport = MockGatewayTransport()
        transport.set_default_error(OverloadedError())
        for _ in range(3):
            with pytest.raises(OverloadedError):
                await transport.create(gen_request)
        assert transport.call_count == 3

    async def test_on_call_hook(self, gen_request) -> None:
        calls = []
        transport = MockGatewayTransport(on_call=lambda n, req: calls.append((n, req.prompt)))
        await transport.create(gen_request)
        await transport.create(gen_request)
        assert calls == [(1, gen_request.prompt), (2, gen_request.prompt)]

    async def test_clear(self, gen_request) -> None:
        transport = MockGatewayTransport()
        transport.queue_overloaded(2)
        with pytest.raises(OverloadedError):
            await transport.create(gen_request)
        transport.clear()
        assert transport.queue_size == 0
        assert transport.call_count == 0

"""
Shared Test Fixtures for GenStudio
=====================================

This module provides reusable pytest fixtures used across the entire
test suite. Fixtures are organized by layer:

    1. Configuration fixtures
    2. Infrastructure fixtures (ArtifactStore)
    3. Gateway fixtures (FailurePolicy, GenerationGateway)
    4. Orchestration fixtures (Sleeper, transports, AttemptController)
    5. API fixtures (FastAPI TestClient)
    6. Facade fixtures (GenStudio)

Every fixture runs without real sleeps: the gateway's simulated processing
delay is zeroed and backoff goes through a RecordingSleeper.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from genstudio.api.app import create_app
from genstudio.api.auth import TokenAuthenticator
from genstudio.core.config import GatewayConfig, GenStudioConfig, RetryConfig
from genstudio.core.models import GenerationRequest
from genstudio.facade import GenStudio
from genstudio.gateway.failure_policy import ScriptedFailurePolicy
from genstudio.gateway.generation_gateway import GenerationGateway
from genstudio.infrastructure.artifact_store import InMemoryArtifactStore
from genstudio.integrations.mock import MockGatewayTransport
from genstudio.integrations.transport import LocalGatewayTransport
from genstudio.orchestration.attempt_controller import AttemptController, BackoffPolicy
from genstudio.orchestration.clock import RecordingSleeper


ALICE_TOKEN = "tok-alice"
BOB_TOKEN = "tok-bob"


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def gateway_config():
    """Gateway configuration with no simulated processing delay."""
    return GatewayConfig(
        overload_probability=0.0,
        processing_delay_min=0.0,
        processing_delay_max=0.0,
    )


@pytest.fixture
def config(gateway_config):
    """GenStudio configuration with instant gateway responses."""
    return GenStudioConfig(
        gateway=gateway_config,
        retry=RetryConfig(max_retries=3, base_delay=1.0),
    )


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def artifact_store():
    """Fresh InMemoryArtifactStore."""
    return InMemoryArtifactStore()


# =============================================================================
# Gateway
# =============================================================================

@pytest.fixture
def failure_policy():
    """ScriptedFailurePolicy that never fails until told otherwise."""
    return ScriptedFailurePolicy()


@pytest.fixture
def gateway(artifact_store, failure_policy, gateway_config):
    """GenerationGateway over the in-memory store and scripted policy."""
    return GenerationGateway(
        artifact_store,
        failure_policy=failure_policy,
        config=gateway_config,
    )


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
def recording_sleeper():
    """Sleeper that records delays instead of waiting."""
    return RecordingSleeper()


@pytest.fixture
def mock_transport(artifact_store):
    """MockGatewayTransport writing to the shared artifact store."""
    return MockGatewayTransport(artifact_store=artifact_store, owner_id=1)


@pytest.fixture
def controller(mock_transport, recording_sleeper):
    """AttemptController over the mock transport with 1s linear backoff."""
    return AttemptController(
        mock_transport,
        backoff=BackoffPolicy(max_retries=3, base_delay=1.0),
        sleeper=recording_sleeper,
    )


@pytest.fixture
def local_controller(gateway, recording_sleeper):
    """AttemptController wired to a real gateway for owner 1."""
    return AttemptController(
        LocalGatewayTransport(gateway, owner_id=1),
        backoff=BackoffPolicy(max_retries=3, base_delay=1.0),
        sleeper=recording_sleeper,
    )


@pytest.fixture
def gen_request():
    """A valid generation request."""
    return GenerationRequest(
        image_ref="upload-1.png",
        prompt="A denim jacket on a rainy street",
        style="casual",
    )


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def authenticator():
    """TokenAuthenticator knowing Alice (owner 1) and Bob (owner 2)."""
    return TokenAuthenticator({ALICE_TOKEN: 1, BOB_TOKEN: 2})


@pytest.fixture
def app(gateway, authenticator):
    """FastAPI app in front of the scripted gateway."""
    return create_app(gateway, authenticator=authenticator)


@pytest.fixture
def test_client(app):
    """TestClient for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def alice_headers():
    return {"Authorization": f"Bearer {ALICE_TOKEN}"}


@pytest.fixture
def bob_headers():
    return {"Authorization": f"Bearer {BOB_TOKEN}"}


# =============================================================================
# Facade
# =============================================================================

@pytest.fixture
def studio(config, failure_policy, recording_sleeper):
    """GenStudio facade with scripted overloads and recorded backoff."""
    return GenStudio(
        config,
        failure_policy=failure_policy,
        sleeper=recording_sleeper,
    )

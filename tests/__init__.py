"""
GenStudio Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → genstudio.core (config, models, enums, exceptions)
    ├── test_infrastructure/→ genstudio.infrastructure (artifact stores)
    ├── test_gateway/       → genstudio.gateway (failure policies, gateway)
    ├── test_orchestration/ → genstudio.orchestration (state machine, controller)
    ├── test_integrations/  → genstudio.integrations (transports)
    ├── test_api/           → genstudio.api (FastAPI app, auth)
    ├── test_integration/   → End-to-end tests across every layer
    ├── test_facade.py      → genstudio.facade (GenStudio wiring)
    └── conftest.py         → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_orchestration # Run only orchestration tests
"""

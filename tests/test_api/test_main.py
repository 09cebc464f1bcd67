"""Unit tests for genstudio.api.main - the server entry point."""

from __future__ import annotations

import structlog

from genstudio.api import main as server
from genstudio.core.config import ApiConfig, GenStudioConfig


class TestMain:
    def test_runs_uvicorn_with_configured_address(self, monkeypatch):
        captured = {}

        def fake_run(app, host, port):
            captured.update(app=app, host=host, port=port)

        monkeypatch.setattr(server.uvicorn, "run", fake_run)
        server.main(GenStudioConfig(api=ApiConfig(host="0.0.0.0", port=8123)))

        assert captured["host"] == "0.0.0.0"
        assert captured["port"] == 8123
        assert captured["app"].title == "GenStudio"

    def test_configure_logging_accepts_unknown_level(self):
        server.configure_logging("chatty")
        structlog.get_logger().info("still_logging")
        structlog.reset_defaults()

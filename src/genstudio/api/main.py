"""
genstudio.api.main - Server Entry Point
=========================================

Registered as the ``genstudio-server`` console script. Loads configuration
(``genstudio.yaml`` and ``GENSTUDIO_*`` environment variables), configures
structlog, builds the facade and serves its FastAPI app with uvicorn.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog
import uvicorn

from genstudio.core.config import GenStudioConfig, load_config
from genstudio.facade import GenStudio


def configure_logging(log_level: str) -> None:
    """Filter structlog output below ``log_level`` (e.g. "INFO", "DEBUG")."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def main(config: Optional[GenStudioConfig] = None) -> None:
    """Launch the uvicorn ASGI server."""
    config = config or load_config()
    configure_logging(config.log_level)

    studio = GenStudio(config)
    app = studio.create_app()

    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()

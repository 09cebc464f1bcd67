"""
genstudio.api - HTTP Surface
==============================

FastAPI application in front of the GenerationGateway, plus bearer-token
resolution. The server entry point lives in ``genstudio.api.main``.
"""

from genstudio.api.app import CreateGenerationBody, create_app
from genstudio.api.auth import TokenAuthenticator, require_owner

__all__ = [
    "create_app",
    "CreateGenerationBody",
    "TokenAuthenticator",
    "require_owner",
]

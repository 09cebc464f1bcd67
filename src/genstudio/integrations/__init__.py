"""
genstudio.integrations - Gateway Transports
=============================================

How the client-side controller reaches the GenerationGateway:

    - GatewayTransport (ABC)
    - LocalGatewayTransport:  in-process gateway calls
    - HttpGatewayTransport:   httpx client for the FastAPI server
    - MockGatewayTransport:   scripted outcomes for tests
"""

from genstudio.integrations.http_transport import HttpGatewayTransport
from genstudio.integrations.mock import MockGatewayTransport
from genstudio.integrations.transport import GatewayTransport, LocalGatewayTransport

__all__ = [
    "GatewayTransport",
    "LocalGatewayTransport",
    "HttpGatewayTransport",
    "MockGatewayTransport",
]

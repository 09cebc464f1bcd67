"""
genstudio.api.auth - Bearer Token Resolution
==============================================

Token *issuance* (signup, login, JWT signing) lives outside this service.
The API only needs to turn an ``Authorization: Bearer <token>`` header into
a pre-authenticated owner id, which it then hands to the gateway.

    Authorization header ──> TokenAuthenticator.authenticate() ──> owner_id
                                   │
                                   ├── missing / not Bearer → AuthError("Authentication required")
                                   └── unknown token        → AuthError("Invalid or expired token")
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import Header, Request

from genstudio.core.exceptions import AuthError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


class TokenAuthenticator:
    """Resolves bearer tokens against a static token → owner map.

    Example:
        >>> auth = TokenAuthenticator({"tok-alice": 1})
        >>> auth.authenticate("Bearer tok-alice")
        1
    """

    def __init__(self, tokens: Optional[dict[str, int]] = None) -> None:
        self._tokens: dict[str, int] = dict(tokens or {})
        self._logger = logger.bind(component="token_authenticator")

    def register(self, token: str, owner_id: int) -> None:
        self._tokens[token] = owner_id

    def revoke(self, token: str) -> bool:
        return self._tokens.pop(token, None) is not None

    def authenticate(self, authorization: Optional[str]) -> int:
        """Return the owner id for an Authorization header value.

        Raises:
            AuthError: Header missing, not a Bearer header, or unknown token.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthError()

        token = authorization[len(BEARER_PREFIX):].strip()
        owner_id = self._tokens.get(token)
        if owner_id is None:
            self._logger.info("token_rejected")
            raise AuthError(message="Invalid or expired token", error_code="INVALID_TOKEN")
        return owner_id


def require_owner(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> int:
    """FastAPI dependency: the authenticated owner id for this request."""
    authenticator: TokenAuthenticator = request.app.state.authenticator
    return authenticator.authenticate(authorization)

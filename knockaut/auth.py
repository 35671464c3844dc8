"""Credential storage for the three authorization tiers."""

from __future__ import annotations

import base64
from enum import Enum
import logging

from .backend.sanitize import redact_token_fragment

_LOGGER = logging.getLogger(__name__)


class AuthorizationTier(Enum):
    """Independent credential contexts understood by the backend."""

    DEFAULT = "default"
    DASHBOARD = "dashboard"
    ADVANCED_SETTINGS = "advanced_settings"


def encode_basic_auth(username: str, password: str) -> str:
    """Return the Base64 token for ``username:password``."""

    raw = f"{username}:{password}".encode()
    return base64.b64encode(raw).decode("ascii")


def websocket_protocol_token(token: str) -> str:
    """Return ``token`` in a form accepted as a websocket subprotocol."""

    return token.replace("=", "%3D")


class AuthorizationStore:
    """Hold one opaque Basic token per :class:`AuthorizationTier`.

    Tokens never expire; setting credentials replaces the stored token for
    that tier only. A tier without a token is sent unauthenticated.
    """

    def __init__(self) -> None:
        self._tokens: dict[AuthorizationTier, str] = {}

    def set_credentials(
        self, tier: AuthorizationTier, username: str, password: str
    ) -> str:
        """Encode and store credentials for ``tier``; return the new token."""

        token = encode_basic_auth(username, password)
        self._tokens[tier] = token
        _LOGGER.debug(
            "Stored credentials for %s tier (%s)",
            tier.value,
            redact_token_fragment(token),
        )
        return token

    def clear(self, tier: AuthorizationTier) -> None:
        """Forget the token held for ``tier``."""

        self._tokens.pop(tier, None)

    def get_token(self, tier: AuthorizationTier) -> str | None:
        """Return the token for ``tier`` or ``None`` when unset."""

        return self._tokens.get(tier)

    def headers(self, tier: AuthorizationTier) -> dict[str, str]:
        """Return the ``Authorization`` header for ``tier`` (empty when unset)."""

        token = self._tokens.get(tier)
        if not token:
            return {}
        return {"Authorization": f"Basic {token}"}

    def websocket_protocols(self) -> tuple[str, ...]:
        """Return the subprotocol list that authenticates the push channel."""

        token = self._tokens.get(AuthorizationTier.DASHBOARD)
        if not token:
            return ()
        return (websocket_protocol_token(token),)


__all__ = [
    "AuthorizationStore",
    "AuthorizationTier",
    "encode_basic_auth",
    "websocket_protocol_token",
]

"""Facade combining the RPC dispatcher, push channel and credential tiers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import Any

import aiohttp

from .api import RPCClient
from .auth import AuthorizationStore, AuthorizationTier
from .backend.ws_client import StoreSink, WebSocketListener, WebSocketSession
from .codecs.models import Snapshot
from .icons import IconResolver
from .options import ApiOptions, WebSocketOptions

_LOGGER = logging.getLogger(__name__)


class KnockautClient:
    """Client for all communication with a Knockaut backend."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_options: ApiOptions,
        ws_options: WebSocketOptions | Mapping[str, Any] | None = None,
        *,
        listener: WebSocketListener | None = None,
        store: StoreSink | None = None,
    ) -> None:
        """Initialise the client; the push channel stays idle until connected."""

        self._authorization = AuthorizationStore()
        if api_options.username and api_options.password:
            self._authorization.set_credentials(
                AuthorizationTier.DEFAULT, api_options.username, api_options.password
            )
        self.rpc = RPCClient(
            session,
            api_options.host,
            self._authorization,
            request_timeout=api_options.request_timeout,
        )
        if not isinstance(ws_options, WebSocketOptions):
            ws_options = WebSocketOptions.from_mapping(ws_options)
        self.websocket = WebSocketSession(
            session, ws_options, listener=listener, store=store
        )

    @property
    def authorization(self) -> AuthorizationStore:
        """Return the credential store shared by all calls."""

        return self._authorization

    @property
    def configurator_id(self) -> int | None:
        """Return the selected configurator."""

        return self.rpc.configurator_id

    def set_credentials(
        self, tier: AuthorizationTier, username: str, password: str
    ) -> None:
        """Replace the credentials of ``tier``.

        Dashboard credentials also authenticate the push channel, which only
        accepts them as a websocket subprotocol.
        """
        self._authorization.set_credentials(tier, username, password)
        if tier is AuthorizationTier.DASHBOARD:
            self.websocket.protocols = self._authorization.websocket_protocols()

    def set_configurator_id(self, configurator_id: int | None) -> None:
        """Select the configurator for RPC calls and the push channel URL."""

        _LOGGER.debug("Selecting configurator %s", configurator_id)
        self.rpc.set_configurator_id(configurator_id)
        self.websocket.set_configurator_id(configurator_id)

    async def call(self, method: str, params: Iterable[Any] = ()) -> Any:
        """Dispatch a raw JSON-RPC call."""

        return await self.rpc.call(method, params)

    def icon_resolver(
        self, snapshot: Snapshot | Mapping[str, Any], **kwargs: Any
    ) -> IconResolver:
        """Return an :class:`IconResolver` reading from ``snapshot``."""

        if isinstance(snapshot, Snapshot):
            objects, profiles = snapshot.objects, snapshot.profiles
        else:
            objects = snapshot.get("objects") or {}
            profiles = snapshot.get("profiles") or {}
        kwargs.setdefault("host", self.rpc.host)
        return IconResolver(objects, profiles, **kwargs)

    async def close(self) -> None:
        """Close the push channel on purpose."""

        await self.websocket.close()


__all__ = ["KnockautClient"]

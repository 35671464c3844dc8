"""JSON-RPC dispatcher for the Knockaut backend."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
import json
import logging
import time
from typing import Any

import aiohttp
from pydantic import ValidationError

from .auth import AuthorizationStore
from .backend.sanitize import redact_params, redact_text
from .codecs.models import (
    Configurator,
    RpcRequest,
    RpcResponse,
    Snapshot,
    SnapshotObject,
)
from .endpoints import EndpointRoute, resolve_route

_LOGGER = logging.getLogger(__name__)

# Toggle to preview bodies in debug logs (redacted). Leave False by default.
API_LOG_PREVIEW = False


class KnockautError(Exception):
    """Base class for errors raised by the Knockaut client."""


class TransportFailure(KnockautError):
    """The HTTP exchange failed before a JSON-RPC answer could be read."""

    def __init__(
        self, method: str, url: str, detail: str, *, status: int | None = None
    ) -> None:
        super().__init__(f"{method} via {url} failed: {detail}")
        self.method = method
        self.url = url
        self.detail = detail
        self.status = status


class RPCError(KnockautError):
    """The backend answered with a JSON-RPC ``error`` member."""

    def __init__(
        self,
        method: str,
        params: list[Any],
        error: Any,
        message: str,
        *,
        code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.params = params
        self.error = error
        self.message = message
        self.code = code


def _request_id() -> int:
    """Return a wall-clock millisecond id for the RPC envelope."""

    return int(time.time() * 1000)


class RPCClient:
    """Async JSON-RPC client that attaches per-tier credentials."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        authorization: AuthorizationStore,
        *,
        request_timeout: float | None = None,
    ) -> None:
        """Initialise the dispatcher for ``host`` with a shared credential store."""
        self._session = session
        self._host = host.rstrip("/")
        self._auth = authorization
        self._request_timeout = request_timeout
        self._configurator_id: int | None = None

    @property
    def host(self) -> str:
        """Return the backend host the client posts to."""

        return self._host

    @property
    def configurator_id(self) -> int | None:
        """Return the configurator prepended to dashboard and settings calls."""

        return self._configurator_id

    def set_configurator_id(self, configurator_id: int | None) -> None:
        """Select the configurator used by configurator scoped calls."""

        self._configurator_id = configurator_id

    def build_url(self, path: str) -> str:
        """Return the absolute URL for an API ``path``."""

        return f"{self._host}{path}"

    def _prepare(
        self, method: str, params: Iterable[Any]
    ) -> tuple[EndpointRoute, list[Any]]:
        route = resolve_route(method)
        call_params = list(params)
        if route.needs_configurator:
            # Unset configurator is sent as null; callers select one first.
            call_params.insert(0, self._configurator_id)
        return route, call_params

    async def call(self, method: str, params: Iterable[Any] = ()) -> Any:
        """Dispatch ``method`` once and return the JSON-RPC ``result``.

        Raises :class:`RPCError` when the backend reports an error and
        :class:`TransportFailure` when the HTTP exchange itself fails. Both
        are logged with the method and redacted parameters first.
        """
        route, call_params = self._prepare(method, params)
        url = self.build_url(route.path)
        envelope = RpcRequest(method=method, params=call_params, id=_request_id())
        headers = {"Content-Type": "application/json"}
        headers.update(self._auth.headers(route.tier))
        kwargs: dict[str, Any] = {}
        if self._request_timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self._request_timeout)

        _LOGGER.debug("RPC %s -> %s (tier=%s)", method, url, route.tier.value)

        try:
            async with self._session.post(
                url, json=envelope.model_dump(), headers=headers, **kwargs
            ) as resp:
                status = resp.status
                body_text = await resp.text()
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            _LOGGER.error(
                "RPC %s(%s) transport failure: %s",
                method,
                redact_params(method, call_params),
                redact_text(str(err)) or type(err).__name__,
            )
            raise TransportFailure(method, url, str(err) or type(err).__name__) from err

        if API_LOG_PREVIEW:
            _LOGGER.debug(
                "RPC %s -> %s, body[0:200]=%r",
                method,
                status,
                redact_text(body_text)[:200],
            )

        response = self._decode(body_text)
        if response is not None and response.failed:
            message = response.error_message()
            _LOGGER.error(
                "RPC %s(%s) returned error: %s",
                method,
                redact_params(method, call_params),
                redact_text(message),
            )
            raise RPCError(
                method,
                call_params,
                response.error,
                message,
                code=response.error_code(),
            )
        if response is None or not 200 <= status < 300:
            detail = f"HTTP {status}" if response is not None else "unparseable body"
            _LOGGER.error(
                "RPC %s(%s) failed: %s; body=%s",
                method,
                redact_params(method, call_params),
                detail,
                redact_text(body_text)[:200],
            )
            raise TransportFailure(method, url, detail, status=status)
        return response.result

    @staticmethod
    def _decode(body_text: str | None) -> RpcResponse | None:
        """Return the parsed JSON-RPC response, or ``None`` when unreadable."""

        if not body_text:
            return None
        try:
            payload = json.loads(body_text)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return RpcResponse.model_validate(payload)
        except ValidationError:
            return None

    # ----------------- Public API -----------------

    async def get_configurators(self) -> list[Configurator]:
        """Return the configurators (web fronts) known to the backend."""

        data = await self.call("WFC_GetConfigurators")
        if not isinstance(data, list):
            _LOGGER.debug(
                "Unexpected configurator payload (%s); returning empty list",
                type(data).__name__,
            )
            return []
        configurators: list[Configurator] = []
        for item in data:
            try:
                configurators.append(Configurator.model_validate(item))
            except ValidationError:
                _LOGGER.debug("Skipping malformed configurator entry: %r", item)
        return configurators

    async def get_snapshot(self) -> Snapshot:
        """Return objects and profiles visible to the selected configurator."""

        data = await self.call("WFC_GetSnapshot")
        if not isinstance(data, dict):
            _LOGGER.debug(
                "Unexpected snapshot payload (%s); returning empty snapshot",
                type(data).__name__,
            )
            return Snapshot()
        return Snapshot.model_validate(data)

    async def execute(self, action_id: int, target_id: int, value: Any) -> Any:
        """Run ``action_id`` against ``target_id`` with ``value``."""

        return await self.call("WFC_Execute", [action_id, target_id, value])

    async def get_app_info(self) -> Any:
        """Return backend module metadata for the app."""

        return await self.call("KNO_GetAppInfo")

    async def get_snapshot_object(self, object_id: int) -> SnapshotObject | None:
        """Return a single snapshot object, or ``None`` if it is unknown."""

        data = await self.call("KNO_GetSnapshotObject", [object_id])
        if not isinstance(data, dict):
            return None
        try:
            return SnapshotObject.model_validate(data)
        except ValidationError:
            _LOGGER.debug("Malformed snapshot object for %s: %r", object_id, data)
            return None

    async def get_icons(self) -> Any:
        """Return the icon catalogue offered by the backend."""

        return await self.call("KNO_GetIcons")

    async def run_scene(self, scene_id: int | str) -> Any:
        """Trigger a stored scene."""

        return await self.call("KNO_RunScene", [scene_id])

    async def get_alarms(self) -> list[Any]:
        """Return the configured alarms (advanced settings tier)."""

        data = await self.call("KNO_GetAlarms")
        if isinstance(data, list):
            return data
        return []


__all__ = [
    "KnockautError",
    "RPCClient",
    "RPCError",
    "TransportFailure",
]

"""Static classification of RPC methods into authorization tiers."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from .auth import AuthorizationTier
from .const import (
    ADVANCED_SETTINGS_ENDPOINTS,
    API_PATH,
    DASHBOARD_ENDPOINTS,
    EXTENDED_API_PATH,
    WFC_ENDPOINTS,
    WFC_MANAGEMENT_ENDPOINTS,
)


@dataclass(frozen=True, slots=True)
class EndpointRoute:
    """Where and how a method is dispatched."""

    tier: AuthorizationTier
    path: str
    needs_configurator: bool


DEFAULT_ROUTE = EndpointRoute(AuthorizationTier.DEFAULT, API_PATH, False)


def _build_table() -> MappingProxyType[str, EndpointRoute]:
    table: dict[str, EndpointRoute] = {}
    for method in DASHBOARD_ENDPOINTS:
        path = API_PATH if method in WFC_ENDPOINTS else EXTENDED_API_PATH
        table[method] = EndpointRoute(AuthorizationTier.DASHBOARD, path, True)
    for method in ADVANCED_SETTINGS_ENDPOINTS:
        table[method] = EndpointRoute(
            AuthorizationTier.ADVANCED_SETTINGS, EXTENDED_API_PATH, True
        )
    for method in WFC_MANAGEMENT_ENDPOINTS:
        table[method] = DEFAULT_ROUTE
    return MappingProxyType(table)


ENDPOINT_TABLE = _build_table()


def resolve_route(method: str) -> EndpointRoute:
    """Return the route for ``method``; unknown methods use the default tier."""

    return ENDPOINT_TABLE.get(method, DEFAULT_ROUTE)


def classify(method: str) -> AuthorizationTier:
    """Return the authorization tier required by ``method``."""

    return resolve_route(method).tier


__all__ = [
    "DEFAULT_ROUTE",
    "ENDPOINT_TABLE",
    "EndpointRoute",
    "classify",
    "resolve_route",
]

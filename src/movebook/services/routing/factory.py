"""Router selection based on configuration."""

from __future__ import annotations

from ...config import settings
from ...errors import RoutingError
from ..collaborators import Router
from .mapbox_directions import MapboxRouter
from .osrm_client import OSRMRouter


def get_router(provider: str | None = None) -> Router:
    """Build the configured router; a provider without credentials is unavailable."""
    match provider or settings.router_provider:
        case "mapbox":
            router_cls = MapboxRouter
        case "osrm":
            router_cls = OSRMRouter
        case other:
            raise ValueError(f"Unknown router provider '{other}'.")
    try:
        return router_cls()
    except ValueError as e:
        raise RoutingError(str(e), reason="unavailable") from e


def check_router_health(provider: str | None = None) -> bool:
    from .mapbox_directions import check_health as mapbox_health
    from .osrm_client import check_health as osrm_health

    if (provider or settings.router_provider) == "osrm":
        return osrm_health()
    return mapbox_health()

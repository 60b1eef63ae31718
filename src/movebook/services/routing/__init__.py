"""Routing service helpers."""

from .factory import check_router_health, get_router
from .mapbox_directions import MapboxRouter
from .osrm_client import OSRMRouter, decode_polyline

__all__ = ["MapboxRouter", "OSRMRouter", "decode_polyline", "get_router", "check_router_health"]

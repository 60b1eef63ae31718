"""HTTP client for the OSRM route endpoint."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...errors import CollaboratorError, RoutingError
from ...models.domain import Coordinate, RouteEstimate
from ..http_client import get_json

logger = logging.getLogger(__name__)


class OSRMRouter:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.lookup_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backoff_seconds
        self.transport = transport

    def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        """Get the driving route between two coordinates.

        OSRM reports metres and seconds; the estimate carries kilometres and minutes
        plus the decoded polyline geometry.
        """
        # OSRM expects "lon,lat;lon,lat"
        coordinate_str = ";".join(
            f"{point.longitude},{point.latitude}" for point in (origin, destination)
        )
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

        data = get_json(
            url,
            params,
            service="OSRM route",
            error_cls=RoutingError,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            transport=self.transport,
        )
        return parse_osrm_route(data, origin, destination)


def parse_osrm_route(data: object, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
    if not isinstance(data, dict):
        raise RoutingError("OSRM response is not an object.", reason="bad_response")
    if data.get("code") != "Ok":
        error_msg = data.get("message", "Unknown OSRM route error")
        reason = "not_found" if data.get("code") in {"NoRoute", "NoSegment"} else "bad_response"
        raise RoutingError(f"OSRM route request failed: {error_msg}", reason=reason)
    routes = data.get("routes") or []
    if not routes:
        raise RoutingError("OSRM returned no routes.", reason="not_found")
    best = routes[0]
    try:
        distance_km = float(best["distance"]) / 1000.0
        duration_min = float(best["duration"]) / 60.0
    except (KeyError, TypeError, ValueError) as e:
        raise RoutingError("OSRM route is missing distance/duration.", reason="bad_response") from e
    geometry = best.get("geometry")
    polyline = tuple(
        Coordinate(latitude=lat, longitude=lon) for lat, lon in decode_polyline(geometry)
    ) if isinstance(geometry, str) else ()
    return RouteEstimate(
        origin=origin,
        destination=destination,
        distance_km=distance_km,
        duration_min=duration_min,
        polyline=polyline,
    )


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM uses Google's polyline encoding format for route geometry.

    Args:
        polyline: Encoded polyline string

    Returns:
        List of (latitude, longitude) tuples
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    def _next_value() -> int:
        nonlocal index
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        return ~(result >> 1) if (result & 1) else (result >> 1)

    while index < len(polyline):
        lat += _next_value()
        lon += _next_value()
        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by routing between two fixed points."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        # Two points in central Nairobi
        OSRMRouter(base_url=base, max_retries=0).route(
            Coordinate(latitude=-1.2864, longitude=36.8172),
            Coordinate(latitude=-1.2921, longitude=36.8219),
        )
        return True
    except CollaboratorError:
        return False

"""Mapbox Directions client."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...errors import CollaboratorError, RoutingError
from ...models.domain import Coordinate, RouteEstimate
from ..http_client import get_json

logger = logging.getLogger(__name__)


class MapboxRouter:
    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        profile: str = "driving",
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token or settings.mapbox_access_token
        if not self.access_token:
            raise ValueError("Mapbox access token is not configured.")
        self.base_url = base_url or settings.mapbox_directions_url
        self.profile = profile
        self.timeout = timeout if timeout is not None else settings.lookup_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backoff_seconds
        self.transport = transport

    def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        coordinate_str = ";".join(
            f"{point.longitude},{point.latitude}" for point in (origin, destination)
        )
        params = {
            "alternatives": "false",
            "annotations": "distance,duration",
            "geometries": "geojson",
            "language": "en",
            "overview": "full",
            "steps": "false",
            "access_token": self.access_token,
        }
        url = f"{self.base_url}/{self.profile}/{coordinate_str}"
        data = get_json(
            url,
            params,
            service="Mapbox directions",
            error_cls=RoutingError,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            transport=self.transport,
        )
        return parse_directions_response(data, origin, destination)


def parse_directions_response(data: object, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
    """Convert the first Mapbox route (metres, seconds, GeoJSON line) to a RouteEstimate."""

    if not isinstance(data, dict):
        raise RoutingError("Directions response is not an object.", reason="bad_response")
    routes = data.get("routes") or []
    if data.get("code", "Ok") != "Ok" or not routes:
        logger.info(f"No route found: {data.get('code')} {data.get('message', '')}".strip())
        raise RoutingError("No route coordinates found.", reason="not_found")
    best = routes[0]
    try:
        distance_km = float(best["distance"]) / 1000.0
        duration_min = float(best["duration"]) / 60.0
        line = best.get("geometry", {}).get("coordinates", [])
        polyline = tuple(Coordinate(latitude=float(lat), longitude=float(lon)) for lon, lat, *_ in line)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise RoutingError("Directions route is missing distance/duration.", reason="bad_response") from e
    return RouteEstimate(
        origin=origin,
        destination=destination,
        distance_km=distance_km,
        duration_min=duration_min,
        polyline=polyline,
    )


def check_health(access_token: str | None = None) -> bool:
    token = access_token or settings.mapbox_access_token
    if not token:
        return False
    try:
        MapboxRouter(access_token=token, max_retries=0).route(
            Coordinate(latitude=-1.2864, longitude=36.8172),
            Coordinate(latitude=-1.2921, longitude=36.8219),
        )
        return True
    except CollaboratorError:
        return False

"""Mapbox forward geocoding client."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...errors import CollaboratorError, GeocodingError
from ...models.domain import Coordinate
from ..http_client import get_json

logger = logging.getLogger(__name__)


class MapboxGeocoder:
    """Resolve free-text place names to a single coordinate.

    The first feature returned by Mapbox is taken as the best match.
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        country: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token or settings.mapbox_access_token
        if not self.access_token:
            raise ValueError("Mapbox access token is not configured.")
        self.base_url = base_url or settings.mapbox_geocode_url
        self.country = country if country is not None else settings.geocode_country
        self.timeout = timeout if timeout is not None else settings.lookup_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.backoff_seconds
        self.transport = transport

    def resolve(self, place_text: str) -> Coordinate:
        query = (place_text or "").strip()
        if not query:
            raise GeocodingError("Empty place name.", reason="not_found")

        params = {
            "q": query,
            "types": "place",
            "language": "en",
            "access_token": self.access_token,
        }
        if self.country:
            params["country"] = self.country

        data = get_json(
            self.base_url,
            params,
            service="Mapbox geocoding",
            error_cls=GeocodingError,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            transport=self.transport,
        )
        return parse_geocoding_response(data, query)


def parse_geocoding_response(data: object, query: str = "") -> Coordinate:
    """Extract the first feature's coordinate from a GeoJSON FeatureCollection."""

    if not isinstance(data, dict):
        raise GeocodingError("Geocoding response is not an object.", reason="bad_response")
    features = data.get("features") or []
    if not features:
        logger.info(f"No geocoding match for {query!r}")
        raise GeocodingError(f"No coordinates found for {query!r}.", reason="not_found")
    try:
        lon, lat = features[0]["geometry"]["coordinates"][:2]
        return Coordinate(latitude=float(lat), longitude=float(lon))
    except (KeyError, TypeError, ValueError) as e:
        raise GeocodingError("Geocoding feature has no usable coordinates.", reason="bad_response") from e


def check_health(access_token: str | None = None) -> bool:
    """Check Mapbox geocoding by resolving a well-known place."""
    token = access_token or settings.mapbox_access_token
    if not token:
        return False
    try:
        MapboxGeocoder(access_token=token, max_retries=0).resolve("Nairobi")
        return True
    except CollaboratorError:
        return False


def get_geocoder() -> MapboxGeocoder:
    try:
        return MapboxGeocoder()
    except ValueError as e:
        raise GeocodingError(str(e), reason="unavailable") from e

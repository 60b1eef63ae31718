"""Contracts the booking core expects from its external collaborators."""

from __future__ import annotations

from typing import Protocol, Sequence

from ..models.domain import Coordinate, Order, RouteEstimate


class Geocoder(Protocol):
    def resolve(self, place_text: str) -> Coordinate:
        """Return the best matching coordinate or raise GeocodingError."""
        ...


class Router(Protocol):
    def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        """Return distance/duration/polyline or raise RoutingError."""
        ...


class OrderStore(Protocol):
    def create(self, order: Order) -> str:
        """Persist an order and return its identifier, or raise StoreError.

        Writes are idempotent on ``payment_id``.
        """
        ...

    def list_for_user(self, user_id: str) -> Sequence[Order]:
        """Return the user's orders, newest first."""
        ...

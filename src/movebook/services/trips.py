"""Trip resolution and quoting on top of the geocoder and router."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Sequence

from ..config import settings
from ..errors import CollaboratorTimeout
from ..models.domain import CostBreakdown, RouteEstimate
from .collaborators import Geocoder, Router
from .pricing import price_trip

logger = logging.getLogger(__name__)


def _await(future: Future, what: str, timeout: float) -> Any:
    try:
        # Small grace period over the HTTP timeout so the client's own
        # timeout error wins when it fires.
        return future.result(timeout=timeout + 1.0)
    except FutureTimeout as exc:
        future.cancel()
        raise CollaboratorTimeout(f"{what} did not answer within {timeout:.1f}s") from exc


def resolve_route(
    geocoder: Geocoder,
    router: Router,
    origin_text: str,
    destination_text: str,
    *,
    timeout: float | None = None,
    track: Callable[[Sequence[Future]], None] | None = None,
) -> RouteEstimate:
    """Geocode both ends concurrently, then route between them.

    ``track`` receives the in-flight futures so the caller can cancel them.
    Collaborator errors propagate unchanged.
    """
    lookup_timeout = timeout if timeout is not None else settings.lookup_timeout_seconds
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="trip-lookup")
    try:
        origin_future = executor.submit(geocoder.resolve, origin_text)
        destination_future = executor.submit(geocoder.resolve, destination_text)
        if track:
            track([origin_future, destination_future])
        origin = _await(origin_future, "Geocoder (origin)", lookup_timeout)
        destination = _await(destination_future, "Geocoder (destination)", lookup_timeout)

        route_future = executor.submit(router.route, origin, destination)
        if track:
            track([route_future])
        return _await(route_future, "Router", lookup_timeout)
    finally:
        if track:
            track([])
        executor.shutdown(wait=False, cancel_futures=True)


def quote_trip(
    vehicle: Any,
    origin_text: str,
    destination_text: str,
    *,
    geocoder: Geocoder,
    router: Router,
) -> tuple[RouteEstimate, CostBreakdown]:
    """Price preview for a trip; creates nothing."""

    route = resolve_route(geocoder, router, origin_text, destination_text)
    return route, price_trip(vehicle, route)

"""Trip pricing: vehicle class + route estimate -> cost breakdown."""

from __future__ import annotations

import logging
import math
from typing import Any

from ...config import settings
from ...errors import InvalidRouteEstimate, InvariantViolation
from ...models.domain import CostBreakdown, RouteEstimate
from .catalog import get_vehicle_profile
from .shipping import ShippingPolicy, get_shipping_policy, scale_minor_units

logger = logging.getLogger(__name__)

BASIS_POINTS = 10_000


def _validate_route(route: RouteEstimate) -> None:
    for label, value in (("distance_km", route.distance_km), ("duration_min", route.duration_min)):
        if value is None:
            raise InvalidRouteEstimate(f"Route {label} is missing.")
        if not math.isfinite(value):
            raise InvalidRouteEstimate(f"Route {label} must be finite, got {value}.")
        if value < 0:
            raise InvalidRouteEstimate(f"Route {label} must be non-negative, got {value}.")


def compute_tax(taxable: int, tax_rate_bps: int) -> int:
    """Tax on an integer minor-unit amount, rounded half up."""

    return (taxable * tax_rate_bps + BASIS_POINTS // 2) // BASIS_POINTS


def price_trip(
    vehicle: Any,
    route: RouteEstimate,
    *,
    shipping_policy: ShippingPolicy | None = None,
    tax_rate_bps: int | None = None,
    currency: str | None = None,
) -> CostBreakdown:
    """Price a trip in integer minor units.

    subtotal = base fee + labor rate * duration minutes
    shipping = shipping policy(distance km)
    tax      = (subtotal + shipping) * tax rate
    total    = subtotal + shipping + tax

    Raises:
        InvalidVehicleClass: vehicle is not one of the catalogue classes.
        InvalidRouteEstimate: distance or duration is negative or missing.
    """
    profile = get_vehicle_profile(vehicle)
    _validate_route(route)

    policy = shipping_policy or get_shipping_policy(settings.shipping_policy, settings.shipping_tiers)
    rate_bps = settings.tax_rate_bps if tax_rate_bps is None else tax_rate_bps

    subtotal = profile.base_fee + scale_minor_units(profile.labor_rate_per_min, route.duration_min)
    shipping = policy.fee(profile, route.distance_km)
    tax = compute_tax(subtotal + shipping, rate_bps)
    total = subtotal + shipping + tax

    if min(subtotal, shipping, tax) < 0:
        logger.error(
            f"Negative price component for {profile.vehicle.value}: "
            f"subtotal={subtotal} shipping={shipping} tax={tax}"
        )
        raise InvariantViolation("Computed a negative price component.")

    return CostBreakdown(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        total=total,
        currency=currency or settings.currency,
    )


def format_minor_units(amount: int, currency: str | None = None) -> str:
    """Render minor units for display, e.g. 126500 -> 'KES 1,265.00'."""

    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), 100)
    return f"{sign}{currency or settings.currency} {major:,}.{minor:02d}"

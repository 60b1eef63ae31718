"""Shipping fee policies keyed on trip distance."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from ...models.domain import VehicleProfile


def scale_minor_units(rate: int, quantity: float) -> int:
    """Multiply an integer rate by a fractional quantity, rounding half up once."""

    amount = Decimal(rate) * Decimal(str(quantity))
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ShippingPolicy(ABC):
    """Contract for shipping fee implementations.

    Implementations must be pure and monotonically non-decreasing in distance.
    """

    name: str = "base"

    @abstractmethod
    def fee(self, profile: VehicleProfile, distance_km: float) -> int:
        raise NotImplementedError


class LinearShipping(ShippingPolicy):
    """Charge the vehicle's per-kilometre rate for every kilometre travelled."""

    name = "linear"

    def fee(self, profile: VehicleProfile, distance_km: float) -> int:
        return scale_minor_units(profile.distance_rate_per_km, distance_km)


class TieredShipping(ShippingPolicy):
    """Flat fee per distance band, falling back to linear pricing past the last band.

    Past the last band the fee never drops below the last flat amount.
    """

    name = "tiered"

    def __init__(self, tiers: Sequence[tuple[float, int]], fallback: ShippingPolicy | None = None) -> None:
        bounds = [float(km) for km, _ in tiers]
        fees = [int(fee) for _, fee in tiers]
        if bounds != sorted(bounds) or fees != sorted(fees):
            raise ValueError("Shipping tiers must be ascending in both distance and fee.")
        if any(fee < 0 for fee in fees):
            raise ValueError("Shipping tier fees must be non-negative.")
        self.tiers = tuple(zip(bounds, fees))
        self.fallback = fallback or LinearShipping()

    def fee(self, profile: VehicleProfile, distance_km: float) -> int:
        for upper_km, flat_fee in self.tiers:
            if distance_km <= upper_km:
                return flat_fee
        beyond = self.fallback.fee(profile, distance_km)
        if self.tiers:
            return max(beyond, self.tiers[-1][1])
        return beyond


def get_shipping_policy(name: str, tiers: Sequence[tuple[float, int]] = ()) -> ShippingPolicy:
    match name:
        case "linear":
            return LinearShipping()
        case "tiered":
            return TieredShipping(tiers)
        case _:
            raise ValueError(f"Unknown shipping policy '{name}'.")

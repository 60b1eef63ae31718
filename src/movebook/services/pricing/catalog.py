"""Vehicle reference data used for pricing and display."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from ...errors import InvalidVehicleClass
from ...models.domain import VehicleClass, VehicleProfile

# All money amounts are minor units (cents) of settings.currency.
_PROFILES = (
    VehicleProfile(
        vehicle=VehicleClass.PICKUP_TRUCK,
        base_fee=12000,
        labor_rate_per_min=1200,
        distance_rate_per_km=1500,
        name="Pick up Truck",
        type="Full Size Truck",
        description=(
            "Perfect for small to medium moves and deliveries. "
            "A versatile and powerful truck suitable for heavy-duty tasks."
        ),
        capacity="907 kg",
        year="2020",
        hourly_price="KES 14,240/hour",
        labor_price="KES 4,800/hour per worker",
        rating=4.5,
        availability="Available Now",
        features=(
            "Spacious cargo bed",
            "Heavy-duty capacity",
            "Construction materials",
            "Large furniture",
            "Safety features",
            "GPS tracking",
        ),
    ),
    VehicleProfile(
        vehicle=VehicleClass.VAN,
        base_fee=15000,
        labor_rate_per_min=1500,
        distance_rate_per_km=2000,
        name="Van",
        type="Standard Van",
        description="Ideal for moving apartments and small homes. Perfect balance of space and maneuverability.",
        capacity="1.36 tonnes",
        year="2022",
        hourly_price="KES 15,840/hour",
        labor_price="KES 4,800/hour per worker",
        rating=4.7,
        availability="Available Tomorrow",
        features=(
            "Enclosed cargo space",
            "Weather protection",
            "Easy loading",
            "Fuel efficient",
            "Security features",
            "Climate control",
        ),
    ),
    VehicleProfile(
        vehicle=VehicleClass.TRUCK,
        base_fee=20000,
        labor_rate_per_min=2000,
        distance_rate_per_km=2500,
        name="Truck",
        type="Standard Truck",
        description=(
            "Great for moving homes and large items. "
            "Ideal for full home moves and commercial transportation needs."
        ),
        capacity="2.27 tonnes",
        year="2021",
        hourly_price="KES 20,640/hour",
        labor_price="KES 4,800/hour per worker",
        rating=4.6,
        availability="Available in 2 days",
        features=(
            "Massive cargo space",
            "Hydraulic lift",
            "Professional grade",
            "Long distance ready",
            "Advanced safety",
            "Load securing system",
        ),
    ),
    VehicleProfile(
        vehicle=VehicleClass.TRUCK_XL,
        base_fee=25000,
        labor_rate_per_min=2500,
        distance_rate_per_km=3000,
        name="Truck XL",
        type="Extra Large Truck",
        description="Largest option for big moves and commercial use. Perfect for full home and office relocations.",
        capacity="3.63 tonnes",
        year="2021",
        hourly_price="KES 25,440/hour",
        labor_price="KES 4,800/hour per worker",
        rating=4.8,
        availability="Available Next Week",
        features=(
            "Maximum cargo space",
            "Heavy duty hydraulic lift",
            "Commercial grade",
            "Cross-country capable",
            "Advanced safety systems",
            "Professional load management",
        ),
    ),
)

VEHICLE_CATALOG: Mapping[VehicleClass, VehicleProfile] = MappingProxyType(
    {profile.vehicle: profile for profile in _PROFILES}
)


def parse_vehicle_class(value: Any) -> VehicleClass:
    """Coerce user input ("van", "truck-xl", VehicleClass.VAN) into a VehicleClass."""

    if isinstance(value, VehicleClass):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return VehicleClass(normalized)
        except ValueError:
            pass
    raise InvalidVehicleClass(f"Unknown vehicle class {value!r}.")


def get_vehicle_profile(vehicle: Any) -> VehicleProfile:
    vehicle_class = parse_vehicle_class(vehicle)
    try:
        return VEHICLE_CATALOG[vehicle_class]
    except KeyError as exc:
        raise InvalidVehicleClass(f"No pricing profile for {vehicle_class.value!r}.") from exc


def list_vehicle_profiles() -> list[VehicleProfile]:
    return list(VEHICLE_CATALOG.values())

"""Pricing service helpers."""

from .catalog import VEHICLE_CATALOG, get_vehicle_profile, list_vehicle_profiles, parse_vehicle_class
from .engine import compute_tax, format_minor_units, price_trip
from .shipping import LinearShipping, ShippingPolicy, TieredShipping, get_shipping_policy

__all__ = [
    "VEHICLE_CATALOG",
    "get_vehicle_profile",
    "list_vehicle_profiles",
    "parse_vehicle_class",
    "price_trip",
    "compute_tax",
    "format_minor_units",
    "ShippingPolicy",
    "LinearShipping",
    "TieredShipping",
    "get_shipping_policy",
]

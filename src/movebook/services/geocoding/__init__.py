"""Geocoding service helpers."""

from .mapbox_client import MapboxGeocoder, check_health, get_geocoder, parse_geocoding_response

__all__ = ["MapboxGeocoder", "check_health", "get_geocoder", "parse_geocoding_response"]

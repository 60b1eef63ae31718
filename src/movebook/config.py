"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="MOVEBOOK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Movebook Booking API"
    api_prefix: str = "/api"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Geocoding / routing collaborators
    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for geocoding and directions.",
    )
    mapbox_geocode_url: str = Field(
        default="https://api.mapbox.com/search/geocode/v6/forward",
        description="Mapbox forward geocoding endpoint.",
    )
    mapbox_directions_url: str = Field(
        default="https://api.mapbox.com/directions/v5/mapbox",
        description="Mapbox directions endpoint (profile is appended).",
    )
    geocode_country: Optional[str] = Field(
        default="ke",
        description="ISO country filter applied to place searches.",
    )
    router_provider: Literal["mapbox", "osrm"] = Field(
        default="mapbox",
        description="Which routing service resolves trip distance and duration.",
    )
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    lookup_timeout_seconds: float = Field(default=5.0, gt=0.0)
    store_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Pricing policy
    currency: str = Field(default="KES", description="ISO currency code for all amounts.")
    tax_rate_bps: int = Field(
        default=1000,
        ge=0,
        le=10000,
        description="Tax rate in basis points applied to subtotal + shipping (1000 = 10%).",
    )
    shipping_policy: Literal["linear", "tiered"] = Field(default="linear")
    shipping_tiers: tuple[tuple[float, int], ...] = Field(
        default=((10.0, 10000), (50.0, 40000), (200.0, 120000)),
        description="(upper bound km, flat fee in minor units) bands for tiered shipping.",
    )

    # Scheduling
    time_slots: tuple[str, ...] = Field(
        default=(
            "9:00 AM - 10:00 AM",
            "10:00 AM - 11:00 AM",
            "1:00 PM - 2:00 PM",
            "3:00 PM - 4:00 PM",
        ),
    )
    time_slot_policy: Literal["single", "multiple"] = Field(
        default="single",
        description="Whether a booking may hold more than one selected time slot.",
    )
    booking_timezone: str = Field(
        default="Africa/Nairobi",
        description="Time zone the calendar dates and time slots are expressed in.",
    )
    session_ttl_seconds: float = Field(
        default=3600.0,
        gt=0.0,
        description="Idle time after which an unfinished booking session is dropped.",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    orders_table: str = Field(default="payments", description="Table holding finalized orders.")

    @field_validator("frontend_allowed_origins", "time_slots", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (JSON array or comma-separated)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("shipping_tiers", mode="before")
    @classmethod
    def _parse_tiers_from_env(cls, value: Any) -> tuple[tuple[float, int], ...]:
        """Parse shipping bands from a JSON array of [km, fee] pairs or "km:fee,km:fee"."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                pairs = [item.split(":", 1) for item in value.split(",") if item.strip()]
                value = [(float(km), int(fee)) for km, fee in pairs]
        if isinstance(value, (list, tuple)):
            tiers = tuple((float(km), int(fee)) for km, fee in value)
            bounds = [km for km, _ in tiers]
            fees = [fee for _, fee in tiers]
            if bounds != sorted(bounds) or fees != sorted(fees):
                raise ValueError("Shipping tiers must be ascending in both distance and fee.")
            return tiers
        return tuple()


settings = Settings()

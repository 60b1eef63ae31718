"""Vehicle catalogue and trip quote endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings
from ...schemas.vehicles import QuoteRequest, QuoteResponse, VehicleModel
from ...services.geocoding import get_geocoder
from ...services.pricing import get_vehicle_profile, list_vehicle_profiles
from ...services.routing import get_router
from ...services.trips import quote_trip
from ..errors import translate_errors
from ..serializers import cost_model, route_model, vehicle_model

router = APIRouter(tags=["vehicles"])


@router.get("/vehicles", response_model=list[VehicleModel], status_code=status.HTTP_200_OK)
def list_vehicles() -> list[VehicleModel]:
    return [vehicle_model(profile) for profile in list_vehicle_profiles()]


@router.get("/vehicles/{vehicle_id}", response_model=VehicleModel, status_code=status.HTTP_200_OK)
def get_vehicle(vehicle_id: str) -> VehicleModel:
    with translate_errors("load vehicle"):
        return vehicle_model(get_vehicle_profile(vehicle_id))


@router.post("/vehicles/{vehicle_id}/quote", response_model=QuoteResponse, status_code=status.HTTP_200_OK)
def quote(vehicle_id: str, payload: QuoteRequest) -> QuoteResponse:
    """Price preview for a trip without opening a booking."""
    with translate_errors("quote trip"):
        profile = get_vehicle_profile(vehicle_id)
        route, cost = quote_trip(
            profile.vehicle,
            payload.origin,
            payload.destination,
            geocoder=get_geocoder(),
            router=get_router(),
        )
        return QuoteResponse(vehicle=profile.vehicle.value, route=route_model(route), cost=cost_model(cost))


@router.get("/time-slots", status_code=status.HTTP_200_OK)
def time_slots() -> dict:
    return {"policy": settings.time_slot_policy, "slots": list(settings.time_slots)}

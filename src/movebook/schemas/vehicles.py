"""Vehicle catalogue and quote schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class VehicleModel(BaseModel):
    id: str
    name: str
    type: str
    description: str
    capacity: str
    year: str
    price: str
    labor_price: str
    rating: float
    availability: str
    insurance_included: bool
    features: List[str]
    base_fee: int = Field(..., description="Flat fee in minor units.")
    labor_rate_per_min: int = Field(..., description="Labor rate per minute in minor units.")
    distance_rate_per_km: int = Field(..., description="Distance rate per km in minor units.")


class QuoteRequest(BaseModel):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)


class CoordinateModel(BaseModel):
    latitude: float
    longitude: float


class RouteModel(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel
    distance_km: float
    duration_min: float
    polyline: List[CoordinateModel] = Field(default_factory=list)


class CostBreakdownModel(BaseModel):
    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str
    display: dict[str, str] = Field(default_factory=dict)


class QuoteResponse(BaseModel):
    vehicle: str
    route: RouteModel
    cost: CostBreakdownModel

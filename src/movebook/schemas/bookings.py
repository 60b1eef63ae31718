"""Booking session request/response schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .vehicles import CostBreakdownModel, RouteModel


class StartBookingRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    user_name: Optional[str] = None


class VehicleSelection(BaseModel):
    vehicle: str


class DateSelection(BaseModel):
    selected_date: date


class LocationsRequest(BaseModel):
    origin: str
    destination: str


class ChecklistItemRequest(BaseModel):
    name: str
    priority: Literal["high", "medium", "low"] = "medium"
    category: Literal["packing", "moving", "cleaning"] = "packing"


class BackRequest(BaseModel):
    target: Optional[str] = Field(default=None, description="Earlier step to return to; defaults to the previous one.")


class FinalizeRequest(BaseModel):
    payment_id: str = Field(..., min_length=1, description="Reference issued by the payment provider.")
    confirmed: bool = True


class ChecklistItemModel(BaseModel):
    id: str
    name: str
    checked: bool
    priority: str
    category: str


class TimeSlotModel(BaseModel):
    label: str
    selected: bool


class BookingResponse(BaseModel):
    session_id: str
    step: str
    user_id: str
    vehicle: Optional[str] = None
    selected_date: Optional[date] = None
    time_slots: List[TimeSlotModel]
    origin: Optional[str] = None
    destination: Optional[str] = None
    checklist: List[ChecklistItemModel]
    checklist_completed: int = 0
    route: Optional[RouteModel] = None
    cost: Optional[CostBreakdownModel] = None
    order_id: Optional[str] = None

"""Booking session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from ...errors import InvariantViolation, SessionNotFound
from ...models.domain import PaymentConfirmation
from ...schemas.bookings import (
    BackRequest,
    BookingResponse,
    ChecklistItemRequest,
    DateSelection,
    FinalizeRequest,
    LocationsRequest,
    StartBookingRequest,
    VehicleSelection,
)
from ...schemas.orders import OrderModel
from ...services.booking import get_session_registry
from ..errors import translate_errors
from ..serializers import booking_response, order_model

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def start_booking(payload: StartBookingRequest) -> BookingResponse:
    with translate_errors("start booking"):
        session_id, machine = get_session_registry().start(payload.user_id, payload.user_name)
        return booking_response(session_id, machine)


@router.get("/{session_id}", response_model=BookingResponse)
def get_booking(session_id: str) -> BookingResponse:
    with translate_errors("load booking"):
        return booking_response(session_id, get_session_registry().get(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def abandon_booking(session_id: str) -> Response:
    with translate_errors("abandon booking"):
        get_session_registry().discard(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{session_id}/vehicle", response_model=BookingResponse)
def select_vehicle(session_id: str, payload: VehicleSelection) -> BookingResponse:
    with translate_errors("select vehicle"):
        machine = get_session_registry().get(session_id)
        machine.select_vehicle(payload.vehicle)
        return booking_response(session_id, machine)


@router.put("/{session_id}/schedule", response_model=BookingResponse)
def select_date(session_id: str, payload: DateSelection) -> BookingResponse:
    with translate_errors("select date"):
        machine = get_session_registry().get(session_id)
        machine.select_date(payload.selected_date)
        return booking_response(session_id, machine)


@router.post("/{session_id}/time-slots/toggle", response_model=BookingResponse)
def toggle_time_slot(session_id: str, label: str) -> BookingResponse:
    with translate_errors("toggle time slot"):
        machine = get_session_registry().get(session_id)
        machine.toggle_time_slot(label)
        return booking_response(session_id, machine)


@router.put("/{session_id}/locations", response_model=BookingResponse)
def set_locations(session_id: str, payload: LocationsRequest) -> BookingResponse:
    with translate_errors("set locations"):
        machine = get_session_registry().get(session_id)
        machine.set_locations(payload.origin, payload.destination)
        return booking_response(session_id, machine)


@router.post("/{session_id}/checklist", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def add_checklist_item(session_id: str, payload: ChecklistItemRequest) -> BookingResponse:
    with translate_errors("add checklist item"):
        machine = get_session_registry().get(session_id)
        machine.add_checklist_item(payload.name, priority=payload.priority, category=payload.category)
        return booking_response(session_id, machine)


@router.post("/{session_id}/checklist/{item_id}/toggle", response_model=BookingResponse)
def toggle_checklist_item(session_id: str, item_id: str) -> BookingResponse:
    with translate_errors("toggle checklist item"):
        machine = get_session_registry().get(session_id)
        machine.toggle_checklist_item(item_id)
        return booking_response(session_id, machine)


@router.delete("/{session_id}/checklist/{item_id}", response_model=BookingResponse)
def remove_checklist_item(session_id: str, item_id: str) -> BookingResponse:
    with translate_errors("remove checklist item"):
        machine = get_session_registry().get(session_id)
        machine.remove_checklist_item(item_id)
        return booking_response(session_id, machine)


@router.post("/{session_id}/advance", response_model=BookingResponse)
def advance(session_id: str) -> BookingResponse:
    with translate_errors("advance booking"):
        machine = get_session_registry().get(session_id)
        machine.advance()
        return booking_response(session_id, machine)


@router.post("/{session_id}/back", response_model=BookingResponse)
def back(session_id: str, payload: BackRequest | None = None) -> BookingResponse:
    with translate_errors("go back"):
        machine = get_session_registry().get(session_id)
        machine.back(payload.target if payload else None)
        return booking_response(session_id, machine)


@router.post("/{session_id}/finalize", response_model=OrderModel, status_code=status.HTTP_201_CREATED)
def finalize(session_id: str, payload: FinalizeRequest) -> OrderModel:
    registry = get_session_registry()
    with translate_errors("finalize booking"):
        machine = registry.get(session_id)
        try:
            order = machine.finalize(PaymentConfirmation(payment_id=payload.payment_id, confirmed=payload.confirmed))
        except InvariantViolation:
            try:
                registry.discard(session_id)
            except SessionNotFound:
                pass
            raise
        registry.release(session_id)
        return order_model(order)

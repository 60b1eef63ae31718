"""Conversions from domain objects to API schemas."""

from __future__ import annotations

from ..models.domain import ChecklistItem, CostBreakdown, Order, RouteEstimate, VehicleProfile
from ..schemas.bookings import BookingResponse, ChecklistItemModel, TimeSlotModel
from ..schemas.orders import OrderModel
from ..schemas.vehicles import CoordinateModel, CostBreakdownModel, RouteModel, VehicleModel
from ..services.booking import BookingStateMachine
from ..services.outputs.order_formatter import order_to_display
from ..services.pricing import format_minor_units


def vehicle_model(profile: VehicleProfile) -> VehicleModel:
    return VehicleModel(
        id=profile.vehicle.value,
        name=profile.name,
        type=profile.type,
        description=profile.description,
        capacity=profile.capacity,
        year=profile.year,
        price=profile.hourly_price,
        labor_price=profile.labor_price,
        rating=profile.rating,
        availability=profile.availability,
        insurance_included=profile.insurance_included,
        features=list(profile.features),
        base_fee=profile.base_fee,
        labor_rate_per_min=profile.labor_rate_per_min,
        distance_rate_per_km=profile.distance_rate_per_km,
    )


def route_model(route: RouteEstimate) -> RouteModel:
    return RouteModel(
        origin=CoordinateModel(latitude=route.origin.latitude, longitude=route.origin.longitude),
        destination=CoordinateModel(latitude=route.destination.latitude, longitude=route.destination.longitude),
        distance_km=route.distance_km,
        duration_min=route.duration_min,
        polyline=[CoordinateModel(latitude=p.latitude, longitude=p.longitude) for p in route.polyline],
    )


def cost_model(cost: CostBreakdown) -> CostBreakdownModel:
    return CostBreakdownModel(
        subtotal=cost.subtotal,
        shipping=cost.shipping,
        tax=cost.tax,
        total=cost.total,
        currency=cost.currency,
        display={
            name: format_minor_units(getattr(cost, name), cost.currency)
            for name in ("subtotal", "shipping", "tax", "total")
        },
    )


def checklist_item_model(item: ChecklistItem) -> ChecklistItemModel:
    return ChecklistItemModel(
        id=item.id,
        name=item.name,
        checked=item.checked,
        priority=item.priority,
        category=item.category,
    )


def booking_response(session_id: str, machine: BookingStateMachine) -> BookingResponse:
    draft = machine.draft
    order = machine.order
    return BookingResponse(
        session_id=session_id,
        step=machine.step.value,
        user_id=draft.user_id,
        vehicle=draft.vehicle.value if draft.vehicle else None,
        selected_date=draft.selected_date,
        time_slots=[TimeSlotModel(label=slot.label, selected=slot.selected) for slot in draft.time_slots],
        origin=draft.origin_text,
        destination=draft.destination_text,
        checklist=[checklist_item_model(item) for item in draft.checklist],
        checklist_completed=sum(1 for item in draft.checklist if item.checked),
        route=route_model(draft.route) if draft.route else None,
        cost=cost_model(draft.cost) if draft.cost else None,
        order_id=order.order_id if order else None,
    )


def order_model(order: Order) -> OrderModel:
    return OrderModel(
        order_id=order.order_id,
        payment_id=order.payment_id,
        user_id=order.user_id,
        user_name=order.user_name,
        origin=order.origin,
        destination=order.destination,
        distance_km=order.distance_km,
        duration_min=order.duration_min,
        vehicle=order.vehicle.value,
        date_time=order.date_time,
        time_slots=list(order.time_slots),
        checklist=[checklist_item_model(item) for item in order.checklist],
        subtotal=order.subtotal,
        shipping=order.shipping,
        tax=order.tax,
        total=order.total,
        currency=order.currency,
        created_at=order.created_at,
        status=order.status.value,
        display=order_to_display(order),
    )

"""Serializers for order history outputs."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...models.domain import Order
from ..pricing import VEHICLE_CATALOG, format_minor_units


def order_to_display(order: Order) -> dict:
    """Display strings for the order history screen."""

    profile = VEHICLE_CATALOG.get(order.vehicle)
    return {
        "order_number": f"Order #{order.order_id or order.payment_id}",
        "created": order.created_at.strftime("%b %d, %Y %H:%M"),
        "scheduled": order.date_time.strftime("%b %d, %Y %I:%M %p"),
        "distance": f"{order.distance_km:.1f} km",
        "duration": f"{round(order.duration_min)} min",
        "vehicle": profile.name if profile else order.vehicle.value,
        "subtotal": format_minor_units(order.subtotal, order.currency),
        "shipping": format_minor_units(order.shipping, order.currency),
        "tax": format_minor_units(order.tax, order.currency),
        "total": format_minor_units(order.total, order.currency),
        "status": order.status.value,
    }


def orders_to_csv(orders: Sequence[Order]) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "order_id",
        "payment_id",
        "created_at",
        "date_time",
        "origin",
        "destination",
        "vehicle",
        "distance_km",
        "duration_min",
        "subtotal",
        "shipping",
        "tax",
        "total",
        "currency",
        "status",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for order in orders:
        writer.writerow(
            {
                "order_id": order.order_id or "",
                "payment_id": order.payment_id,
                "created_at": order.created_at.isoformat(),
                "date_time": order.date_time.isoformat(),
                "origin": order.origin,
                "destination": order.destination,
                "vehicle": order.vehicle.value,
                "distance_km": f"{order.distance_km:.3f}",
                "duration_min": f"{order.duration_min:.1f}",
                "subtotal": order.subtotal,
                "shipping": order.shipping,
                "tax": order.tax,
                "total": order.total,
                "currency": order.currency,
                "status": order.status.value,
            }
        )
    return buffer.getvalue()

"""Order persistence: Supabase table with an in-memory fallback."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Sequence

import httpx

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import CollaboratorTimeout, StoreError
from ..models.domain import ChecklistItem, Order, OrderStatus, VehicleClass

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def order_to_row(order: Order) -> dict[str, Any]:
    """Serialize an order into a `payments` table row."""

    return {
        "payment_id": order.payment_id,
        "user_id": order.user_id,
        "user_name": order.user_name,
        "origin": order.origin,
        "destination": order.destination,
        "distance": order.distance_km,
        "duration": order.duration_min,
        "vehicle": order.vehicle.value,
        "date_time": order.date_time.isoformat(),
        "time_slots": list(order.time_slots),
        "checklist": [
            {
                "id": item.id,
                "name": item.name,
                "checked": item.checked,
                "priority": item.priority,
                "category": item.category,
            }
            for item in order.checklist
        ],
        "subtotal": order.subtotal,
        "shipping": order.shipping,
        "tax": order.tax,
        "total_price": order.total,
        "currency": order.currency,
        "created_at": order.created_at.isoformat(),
        "status": order.status.value,
    }


def row_to_order(row: dict[str, Any]) -> Order:
    """Rebuild an order from a stored row."""

    order_id = row.get("id")
    return Order(
        payment_id=str(row["payment_id"]),
        user_id=str(row["user_id"]),
        user_name=row.get("user_name"),
        origin=row["origin"],
        destination=row["destination"],
        distance_km=float(row["distance"]),
        duration_min=float(row["duration"]),
        vehicle=VehicleClass(row["vehicle"]),
        date_time=_parse_datetime(row["date_time"]),
        time_slots=tuple(row.get("time_slots") or ()),
        checklist=tuple(
            ChecklistItem(
                id=str(item["id"]),
                name=item["name"],
                checked=bool(item.get("checked", False)),
                priority=item.get("priority", "medium"),
                category=item.get("category", "packing"),
            )
            for item in (row.get("checklist") or ())
        ),
        subtotal=int(row["subtotal"]),
        shipping=int(row["shipping"]),
        tax=int(row["tax"]),
        total=int(row["total_price"]),
        currency=row.get("currency") or settings.currency,
        created_at=_parse_datetime(row["created_at"]),
        status=OrderStatus(row.get("status") or OrderStatus.PENDING.value),
        order_id=str(order_id) if order_id is not None else None,
    )


class SupabaseOrderStore:
    """Orders kept in the Supabase `payments` table.

    ``payment_id`` is the idempotency key: a retried write for a payment that
    already has a row returns that row's id instead of inserting again.
    """

    def __init__(self, client: Any, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.orders_table

    def _existing_id(self, payment_id: str) -> str | None:
        response = (
            self.client.table(self.table)
            .select("id")
            .eq("payment_id", payment_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return str(rows[0]["id"]) if rows else None

    def create(self, order: Order) -> str:
        row = order_to_row(order)
        try:
            existing = self._existing_id(order.payment_id)
            if existing is not None:
                logger.info(f"Order for payment {order.payment_id} already stored as {existing}")
                return existing
            response = self.client.table(self.table).insert(row).execute()
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout(f"Order store write timed out: {e}") from e
        except Exception as e:
            logger.warning(f"Failed to insert order {order.payment_id}: {e}")
            raise StoreError(f"Order store write failed: {e}") from e

        inserted = (response.data or [{}])[0]
        order_id = inserted.get("id", order.payment_id)
        logger.info(f"Stored order {order_id} for user {order.user_id}")
        return str(order_id)

    def list_for_user(self, user_id: str) -> list[Order]:
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout(f"Order store read timed out: {e}") from e
        except Exception as e:
            logger.warning(f"Failed to load orders for user {user_id}: {e}")
            raise StoreError(f"Order store read failed: {e}") from e

        orders: list[Order] = []
        for row in response.data or []:
            try:
                orders.append(row_to_order(row))
            except (KeyError, TypeError, ValueError) as e:
                # Skip invalid rows but continue processing
                logger.warning(f"Skipping invalid order row {row.get('id')}: {e}")
        return orders


class InMemoryOrderStore:
    """Process-local order store used when Supabase is not configured."""

    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def create(self, order: Order) -> str:
        row = order_to_row(order)
        with self._lock:
            for stored in self._rows:
                if stored["payment_id"] == order.payment_id:
                    logger.info(f"Order for payment {order.payment_id} already stored as {stored['id']}")
                    return stored["id"]
            order_id = uuid.uuid4().hex
            self._rows.append({**row, "id": order_id})
        logger.info(f"Stored order {order_id} for user {order.user_id} (in memory)")
        return order_id

    def list_for_user(self, user_id: str) -> list[Order]:
        with self._lock:
            rows = [dict(row) for row in self._rows if row["user_id"] == user_id]
        orders = [row_to_order(row) for row in rows]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


@lru_cache()
def get_order_store() -> SupabaseOrderStore | InMemoryOrderStore:
    client = get_supabase_client()
    if client is None:
        logger.info("Supabase not configured - orders will only be kept in memory")
        return InMemoryOrderStore()
    return SupabaseOrderStore(client)


def list_orders_for_user(user_id: str, store: Any | None = None) -> Sequence[Order]:
    return (store or get_order_store()).list_for_user(user_id)

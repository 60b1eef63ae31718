"""Order history schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .bookings import ChecklistItemModel


class OrderModel(BaseModel):
    order_id: Optional[str] = None
    payment_id: str
    user_id: str
    user_name: Optional[str] = None
    origin: str
    destination: str
    distance_km: float
    duration_min: float
    vehicle: str
    date_time: datetime
    time_slots: List[str]
    checklist: List[ChecklistItemModel]
    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str
    created_at: datetime
    status: str
    display: dict[str, str]


class OrderListResponse(BaseModel):
    user_id: str
    total: int
    items: List[OrderModel]

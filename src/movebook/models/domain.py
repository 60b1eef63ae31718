"""Domain models for vehicles, routes, prices and orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class VehicleClass(str, Enum):
    PICKUP_TRUCK = "pickup_truck"
    VAN = "van"
    TRUCK = "truck"
    TRUCK_XL = "truck_xl"


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingStep(str, Enum):
    """Ordered steps of the booking flow."""

    SELECTING_VEHICLE = "selecting_vehicle"
    SELECTING_SCHEDULE = "selecting_schedule"
    BUILDING_CHECKLIST = "building_checklist"
    AWAITING_PAYMENT = "awaiting_payment"
    FINALIZED = "finalized"

    @property
    def index(self) -> int:
        return list(BookingStep).index(self)


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class VehicleProfile:
    """Pricing and display reference data for one vehicle class."""

    vehicle: VehicleClass
    base_fee: int
    labor_rate_per_min: int
    distance_rate_per_km: int
    name: str
    type: str
    description: str
    capacity: str
    year: str
    hourly_price: str
    labor_price: str
    rating: float
    availability: str
    insurance_included: bool = True
    features: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RouteEstimate:
    origin: Coordinate
    destination: Coordinate
    distance_km: float
    duration_min: float
    polyline: tuple[Coordinate, ...] = ()


@dataclass(frozen=True, slots=True)
class CostBreakdown:
    """Price components in integer minor currency units."""

    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str


@dataclass(slots=True)
class ChecklistItem:
    id: str
    name: str
    checked: bool = False
    priority: str = "medium"
    category: str = "packing"


@dataclass(slots=True)
class TimeSlot:
    label: str
    selected: bool = False


@dataclass(slots=True)
class BookingDraft:
    """In-progress booking, owned by a single state machine."""

    user_id: str
    user_name: Optional[str] = None
    vehicle: Optional[VehicleClass] = None
    selected_date: Optional[date] = None
    time_slots: list[TimeSlot] = field(default_factory=list)
    origin_text: Optional[str] = None
    destination_text: Optional[str] = None
    route: Optional[RouteEstimate] = None
    checklist: list[ChecklistItem] = field(default_factory=list)
    cost: Optional[CostBreakdown] = None

    @property
    def selected_slots(self) -> list[TimeSlot]:
        return [slot for slot in self.time_slots if slot.selected]


@dataclass(frozen=True, slots=True)
class Order:
    """Finalized booking as written to the order store."""

    payment_id: str
    user_id: str
    user_name: Optional[str]
    origin: str
    destination: str
    distance_km: float
    duration_min: float
    vehicle: VehicleClass
    date_time: datetime
    time_slots: tuple[str, ...]
    checklist: tuple[ChecklistItem, ...]
    subtotal: int
    shipping: int
    tax: int
    total: int
    currency: str
    created_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    order_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PaymentConfirmation:
    """Outcome of the external payment step."""

    payment_id: str
    confirmed: bool = True

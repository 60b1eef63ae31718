"""Booking flow state machine.

One machine owns one BookingDraft for the lifetime of a booking session and
walks it through::

    selecting_vehicle -> selecting_schedule -> building_checklist
        -> awaiting_payment -> finalized

Forward moves are one step at a time and guarded; backward moves may jump to
any earlier step. Only the finalize edge performs I/O (geocoder, router,
order store). Every public method either applies its whole change or raises
without touching the draft.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import replace
from datetime import date, datetime, time, timezone
from itertools import count
from typing import Any, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from ...config import settings
from ...errors import (
    CollaboratorError,
    IncompleteSchedule,
    IncompleteVehicleSelection,
    InvalidChecklistItem,
    InvalidRouteEstimate,
    InvalidTimeSlot,
    InvalidTransition,
    InvariantViolation,
    MissingLocations,
    OrderSubmissionError,
    PaymentNotConfirmed,
    RouteResolutionError,
    SessionAbandoned,
    SubmissionInProgress,
)
from ...models.domain import (
    BookingDraft,
    BookingStep,
    ChecklistItem,
    CostBreakdown,
    Order,
    OrderStatus,
    PaymentConfirmation,
    RouteEstimate,
    TimeSlot,
    VehicleClass,
)
from ..collaborators import Geocoder, OrderStore, Router
from ..pricing import parse_vehicle_class, price_trip
from ..trips import resolve_route

logger = logging.getLogger(__name__)

CHECKLIST_PRIORITIES = ("high", "medium", "low")
CHECKLIST_CATEGORIES = ("packing", "moving", "cleaning")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slot_start_time(label: str) -> time:
    """Start time of a slot label such as '9:00 AM - 10:00 AM'."""

    start = label.split("-", 1)[0].strip()
    try:
        return datetime.strptime(start, "%I:%M %p").time()
    except ValueError as exc:
        raise InvalidTimeSlot(f"Cannot read a start time from slot {label!r}.") from exc


class BookingStateMachine:
    def __init__(
        self,
        user_id: str,
        user_name: str | None = None,
        *,
        geocoder: Geocoder | None = None,
        router: Router | None = None,
        order_store: OrderStore | None = None,
        time_slots: Iterable[str] | None = None,
        slot_policy: str | None = None,
        lookup_timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
        tz: str | None = None,
        session_id: str | None = None,
    ) -> None:
        if not user_id:
            raise ValueError("A booking session needs a user id.")
        labels = list(time_slots if time_slots is not None else settings.time_slots)
        if len(set(labels)) != len(labels):
            raise ValueError("Time slot labels must be unique.")
        for label in labels:
            slot_start_time(label)

        self.session_id = session_id
        self.slot_policy = slot_policy or settings.time_slot_policy
        if self.slot_policy not in {"single", "multiple"}:
            raise ValueError(f"Unknown time slot policy '{self.slot_policy}'.")
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else settings.lookup_timeout_seconds
        self.tz = ZoneInfo(tz or settings.booking_timezone)
        self._clock = clock
        self._geocoder = geocoder
        self._router = router
        self._order_store = order_store

        self._draft: BookingDraft | None = BookingDraft(
            user_id=user_id,
            user_name=user_name,
            time_slots=[TimeSlot(label=label) for label in labels],
        )
        self._step = BookingStep.SELECTING_VEHICLE
        self._order: Order | None = None
        self._item_ids = count(1)
        self._lock = threading.RLock()
        self._submitting = False
        self._abandoned = False
        self._pending: list[Future] = []

    # ------------------------------------------------------------------
    # Read access

    @property
    def step(self) -> BookingStep:
        return self._step

    @property
    def draft(self) -> BookingDraft:
        """Copy of the current draft; edits go through the machine's methods."""
        with self._lock:
            draft = self._require_draft()
            return replace(
                draft,
                time_slots=[replace(slot) for slot in draft.time_slots],
                checklist=[replace(item) for item in draft.checklist],
            )

    @property
    def order(self) -> Optional[Order]:
        return self._order

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    @property
    def submitting(self) -> bool:
        return self._submitting

    def _require_draft(self) -> BookingDraft:
        if self._abandoned or self._draft is None:
            raise SessionAbandoned("Booking session was abandoned.")
        return self._draft

    def _require_editable(self, *steps: BookingStep) -> BookingDraft:
        draft = self._require_draft()
        if self._submitting:
            raise SubmissionInProgress("An order submission is in flight.")
        if steps and self._step not in steps:
            allowed = ", ".join(step.value for step in steps)
            raise InvalidTransition(f"Action requires step {allowed}, current step is {self._step.value}.")
        return draft

    # ------------------------------------------------------------------
    # Vehicle

    def select_vehicle(self, vehicle: Any) -> VehicleClass:
        with self._lock:
            draft = self._require_editable(BookingStep.SELECTING_VEHICLE)
            vehicle_class = parse_vehicle_class(vehicle)
            draft.vehicle = vehicle_class
            draft.cost = None
            return vehicle_class

    # ------------------------------------------------------------------
    # Schedule

    def select_date(self, value: date | str) -> date:
        with self._lock:
            draft = self._require_editable(BookingStep.SELECTING_SCHEDULE)
            if isinstance(value, datetime):
                selected = value.date()
            elif isinstance(value, date):
                selected = value
            else:
                try:
                    selected = date.fromisoformat(str(value).strip())
                except ValueError as exc:
                    raise IncompleteSchedule(f"Invalid date {value!r}.") from exc
            today = self._clock().astimezone(self.tz).date()
            if selected < today:
                raise IncompleteSchedule(f"Date {selected.isoformat()} is in the past.")
            draft.selected_date = selected
            return selected

    def toggle_time_slot(self, label: str) -> list[TimeSlot]:
        """Flip one slot; under the 'single' policy every other slot is cleared."""

        with self._lock:
            draft = self._require_editable(BookingStep.SELECTING_SCHEDULE)
            target = next((slot for slot in draft.time_slots if slot.label == label), None)
            if target is None:
                raise InvalidTimeSlot(f"Unknown time slot {label!r}.")
            new_state = not target.selected
            if self.slot_policy == "single":
                for slot in draft.time_slots:
                    slot.selected = False
            target.selected = new_state
            return [replace(slot) for slot in draft.selected_slots]

    # ------------------------------------------------------------------
    # Locations

    def set_locations(self, origin: str, destination: str) -> None:
        with self._lock:
            draft = self._require_editable(
                BookingStep.SELECTING_VEHICLE,
                BookingStep.SELECTING_SCHEDULE,
                BookingStep.BUILDING_CHECKLIST,
                BookingStep.AWAITING_PAYMENT,
            )
            origin_text = (origin or "").strip()
            destination_text = (destination or "").strip()
            if not origin_text or not destination_text:
                raise MissingLocations("Origin and destination are required.")
            draft.origin_text = origin_text
            draft.destination_text = destination_text
            draft.route = None
            draft.cost = None

    # ------------------------------------------------------------------
    # Checklist

    def add_checklist_item(
        self,
        name: str,
        *,
        priority: str = "medium",
        category: str = "packing",
        item_id: str | None = None,
    ) -> ChecklistItem:
        with self._lock:
            draft = self._require_editable(BookingStep.BUILDING_CHECKLIST)
            clean_name = (name or "").strip()
            if not clean_name:
                raise InvalidChecklistItem("Checklist item name is empty.")
            if priority not in CHECKLIST_PRIORITIES:
                raise InvalidChecklistItem(f"Unknown priority {priority!r}.")
            if category not in CHECKLIST_CATEGORIES:
                raise InvalidChecklistItem(f"Unknown category {category!r}.")
            existing = {item.id for item in draft.checklist}
            if item_id is not None and item_id in existing:
                raise InvalidChecklistItem(f"Checklist item id {item_id!r} already exists.")
            new_id = item_id
            while new_id is None or new_id in existing:
                new_id = str(next(self._item_ids))
            item = ChecklistItem(id=new_id, name=clean_name, priority=priority, category=category)
            draft.checklist.append(item)
            return replace(item)

    def _find_item(self, draft: BookingDraft, item_id: str) -> ChecklistItem:
        for item in draft.checklist:
            if item.id == item_id:
                return item
        raise InvalidChecklistItem(f"Unknown checklist item {item_id!r}.")

    def toggle_checklist_item(self, item_id: str) -> ChecklistItem:
        with self._lock:
            draft = self._require_editable(BookingStep.BUILDING_CHECKLIST)
            item = self._find_item(draft, item_id)
            item.checked = not item.checked
            return replace(item)

    def remove_checklist_item(self, item_id: str) -> None:
        with self._lock:
            draft = self._require_editable(BookingStep.BUILDING_CHECKLIST)
            item = self._find_item(draft, item_id)
            draft.checklist.remove(item)

    # ------------------------------------------------------------------
    # Navigation

    def advance(self) -> BookingStep:
        """Move one step forward if the current step's guard passes."""

        with self._lock:
            draft = self._require_editable()
            match self._step:
                case BookingStep.SELECTING_VEHICLE:
                    if draft.vehicle is None:
                        raise IncompleteVehicleSelection("No vehicle selected.")
                    self._step = BookingStep.SELECTING_SCHEDULE
                case BookingStep.SELECTING_SCHEDULE:
                    if draft.selected_date is None or not draft.selected_slots:
                        raise IncompleteSchedule("A date and at least one time slot are required.")
                    self._step = BookingStep.BUILDING_CHECKLIST
                case BookingStep.BUILDING_CHECKLIST:
                    # An empty checklist is allowed.
                    self._step = BookingStep.AWAITING_PAYMENT
                case BookingStep.AWAITING_PAYMENT:
                    raise InvalidTransition("Payment step completes through finalize().")
                case BookingStep.FINALIZED:
                    raise InvalidTransition("Booking is already finalized.")
            return self._step

    def back(self, target: BookingStep | str | None = None) -> BookingStep:
        with self._lock:
            self._require_editable()
            if self._step is BookingStep.FINALIZED:
                raise InvalidTransition("A finalized booking cannot be edited.")
            if target is None:
                if self._step is BookingStep.SELECTING_VEHICLE:
                    raise InvalidTransition("Already at the first step.")
                destination = list(BookingStep)[self._step.index - 1]
            else:
                try:
                    destination = BookingStep(target)
                except ValueError as exc:
                    raise InvalidTransition(f"Unknown step {target!r}.") from exc
                if destination.index >= self._step.index:
                    raise InvalidTransition(
                        f"Cannot go back from {self._step.value} to {destination.value}."
                    )
            self._step = destination
            return self._step

    # ------------------------------------------------------------------
    # Finalize

    def finalize(self, payment: PaymentConfirmation) -> Order:
        """Resolve the route, price the trip and submit exactly one order.

        Raises:
            SubmissionInProgress: another finalize call is in flight.
            RouteResolutionError: geocoding or routing failed; still awaiting payment.
            OrderSubmissionError: the store write failed; still awaiting payment.
            InvariantViolation: pricing produced an impossible result; session discarded.
        """
        with self._lock:
            draft = self._require_draft()
            if self._step is BookingStep.FINALIZED:
                raise InvalidTransition("Booking is already finalized.")
            if self._submitting:
                raise SubmissionInProgress("An order submission is in flight.")
            if self._step is not BookingStep.AWAITING_PAYMENT:
                raise InvalidTransition(f"Cannot finalize from {self._step.value}.")
            if not payment.confirmed or not payment.payment_id:
                raise PaymentNotConfirmed("Payment was not confirmed.")
            if not draft.origin_text or not draft.destination_text:
                raise MissingLocations("Origin and destination are required.")
            if draft.vehicle is None:
                raise IncompleteVehicleSelection("No vehicle selected.")
            if draft.selected_date is None or not draft.selected_slots:
                raise IncompleteSchedule("A date and at least one time slot are required.")

            vehicle = draft.vehicle
            origin_text = draft.origin_text
            destination_text = draft.destination_text
            slot_labels = tuple(slot.label for slot in draft.selected_slots)
            date_time = self._scheduled_datetime(draft.selected_date, slot_labels)
            checklist = tuple(replace(item) for item in draft.checklist)
            self._submitting = True

        try:
            route = self._resolve_route(origin_text, destination_text)
            self._ensure_not_abandoned()
            cost = self._price(vehicle, route)
            order = Order(
                payment_id=payment.payment_id,
                user_id=draft.user_id,
                user_name=draft.user_name,
                origin=origin_text,
                destination=destination_text,
                distance_km=route.distance_km,
                duration_min=route.duration_min,
                vehicle=vehicle,
                date_time=date_time,
                time_slots=slot_labels,
                checklist=checklist,
                subtotal=cost.subtotal,
                shipping=cost.shipping,
                tax=cost.tax,
                total=cost.total,
                currency=cost.currency,
                created_at=self._clock(),
                status=OrderStatus.PENDING,
            )
            self._ensure_not_abandoned()
            order_id = self._submit(order)
            stored = replace(order, order_id=order_id)

            with self._lock:
                self._order = stored
                if not self._abandoned and self._draft is not None:
                    self._draft.route = route
                    self._draft.cost = cost
                    self._step = BookingStep.FINALIZED
            logger.info(
                f"Finalized booking session {self.session_id} as order {order_id} "
                f"({vehicle.value}, total {cost.total} {cost.currency})"
            )
            return stored
        finally:
            with self._lock:
                self._submitting = False

    def _ensure_not_abandoned(self) -> None:
        if self._abandoned:
            raise SessionAbandoned("Booking session was abandoned during finalize.")

    def _scheduled_datetime(self, selected_date: date, slot_labels: tuple[str, ...]) -> datetime:
        start = min(slot_start_time(label) for label in slot_labels)
        return datetime.combine(selected_date, start, tzinfo=self.tz)

    def _collaborator(self, name: str) -> Any:
        from ..geocoding import get_geocoder
        from ..routing import get_router

        if name == "geocoder":
            if self._geocoder is None:
                self._geocoder = get_geocoder()
            return self._geocoder
        if self._router is None:
            self._router = get_router()
        return self._router

    def _track_pending(self, futures: Iterable[Future]) -> None:
        with self._lock:
            self._pending = list(futures)

    def _resolve_route(self, origin_text: str, destination_text: str) -> RouteEstimate:
        """Geocode both ends concurrently, then route between them."""

        try:
            return resolve_route(
                self._collaborator("geocoder"),
                self._collaborator("router"),
                origin_text,
                destination_text,
                timeout=self.lookup_timeout,
                track=self._track_pending,
            )
        except Exception as exc:
            if self._abandoned:
                raise SessionAbandoned("Booking session was abandoned during route lookup.") from exc
            if isinstance(exc, CollaboratorError):
                logger.warning(f"Route resolution failed ({exc.reason}): {exc.detail}")
                raise RouteResolutionError(exc.detail, reason=exc.reason) from exc
            logger.exception(f"Unexpected error while resolving route: {exc}")
            raise RouteResolutionError(str(exc)) from exc

    def _price(self, vehicle: VehicleClass, route: RouteEstimate) -> CostBreakdown:
        try:
            return price_trip(vehicle, route)
        except InvalidRouteEstimate as exc:
            # The router produced the estimate, so this is a collaborator fault.
            raise RouteResolutionError(exc.detail, reason="bad_response") from exc
        except InvariantViolation:
            logger.exception("Pricing invariant violated; discarding booking session")
            self.abandon()
            raise

    def _submit(self, order: Order) -> str:
        if self._order_store is None:
            from ...persistence.orders import get_order_store

            self._order_store = get_order_store()
        try:
            return self._order_store.create(order)
        except CollaboratorError as exc:
            logger.warning(f"Order submission failed ({exc.reason}): {exc.detail}")
            raise OrderSubmissionError(exc.detail, reason=exc.reason) from exc

    # ------------------------------------------------------------------
    # Lifecycle

    def abandon(self) -> None:
        """Discard the draft and cancel outstanding lookups (best effort)."""

        with self._lock:
            if self._abandoned:
                return
            self._abandoned = True
            self._draft = None
            pending, self._pending = self._pending, []
        for future in pending:
            future.cancel()
        logger.info(f"Booking session {self.session_id} abandoned")

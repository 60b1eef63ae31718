import threading
from datetime import date, datetime, timezone

import pytest

from movebook.errors import (
    CollaboratorTimeout,
    GeocodingError,
    IncompleteSchedule,
    IncompleteVehicleSelection,
    InvalidChecklistItem,
    InvalidTimeSlot,
    InvalidTransition,
    InvariantViolation,
    MissingLocations,
    OrderSubmissionError,
    PaymentNotConfirmed,
    RouteResolutionError,
    SessionAbandoned,
    StoreError,
    SubmissionInProgress,
)
from movebook.models.domain import (
    BookingStep,
    Coordinate,
    OrderStatus,
    PaymentConfirmation,
    RouteEstimate,
    VehicleClass,
)
from movebook.persistence.orders import InMemoryOrderStore
from movebook.services.booking import BookingStateMachine
from movebook.services.booking import state_machine as state_machine_module

SLOTS = ("9:00 AM - 10:00 AM", "10:00 AM - 11:00 AM", "1:00 PM - 2:00 PM", "3:00 PM - 4:00 PM")
NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
MOVE_DATE = date(2026, 3, 10)

PLACES = {
    "Nairobi": Coordinate(latitude=-1.2864, longitude=36.8172),
    "Thika": Coordinate(latitude=-1.0333, longitude=37.0693),
}


class DummyGeocoder:
    def __init__(self, places=None):
        self.places = places if places is not None else PLACES
        self.calls = []

    def resolve(self, place_text):
        self.calls.append(place_text)
        if place_text not in self.places:
            raise GeocodingError(f"No coordinates found for {place_text!r}.", reason="not_found")
        return self.places[place_text]


class DummyRouter:
    def __init__(self, distance_km=20.0, duration_min=40.0):
        self.distance_km = distance_km
        self.duration_min = duration_min
        self.calls = 0

    def route(self, origin, destination):
        self.calls += 1
        return RouteEstimate(
            origin=origin,
            destination=destination,
            distance_km=self.distance_km,
            duration_min=self.duration_min,
            polyline=(origin, destination),
        )


class CountingStore(InMemoryOrderStore):
    def __init__(self, fail_times=0):
        super().__init__()
        self.create_calls = 0
        self.fail_times = fail_times

    def create(self, order):
        self.create_calls += 1
        if self.fail_times > 0:
            self.fail_times -= 1
            raise StoreError("insert failed")
        return super().create(order)


def _machine(policy="multiple", geocoder=None, router=None, store=None):
    return BookingStateMachine(
        "user_123",
        "Wanjiru",
        geocoder=geocoder or DummyGeocoder(),
        router=router or DummyRouter(),
        order_store=store if store is not None else CountingStore(),
        time_slots=SLOTS,
        slot_policy=policy,
        clock=lambda: NOW,
        tz="Africa/Nairobi",
        session_id="session-1",
    )


def _to_payment(machine, vehicle=VehicleClass.VAN, slots=(SLOTS[0],)):
    machine.select_vehicle(vehicle)
    machine.advance()
    machine.select_date(MOVE_DATE)
    for label in slots:
        machine.toggle_time_slot(label)
    machine.advance()
    machine.advance()
    machine.set_locations("Nairobi", "Thika")
    assert machine.step is BookingStep.AWAITING_PAYMENT
    return machine


def test_vehicle_is_required_before_scheduling():
    machine = _machine()

    with pytest.raises(IncompleteVehicleSelection):
        machine.advance()
    assert machine.step is BookingStep.SELECTING_VEHICLE

    machine.select_vehicle("truck")
    assert machine.advance() is BookingStep.SELECTING_SCHEDULE


@pytest.mark.parametrize("with_date", [True, False])
@pytest.mark.parametrize("slot_count", [0, 1, 2])
def test_schedule_guard_requires_date_and_slot(with_date, slot_count):
    machine = _machine(policy="multiple")
    machine.select_vehicle(VehicleClass.VAN)
    machine.advance()
    if with_date:
        machine.select_date(MOVE_DATE)
    for label in SLOTS[:slot_count]:
        machine.toggle_time_slot(label)

    if with_date and slot_count >= 1:
        assert machine.advance() is BookingStep.BUILDING_CHECKLIST
    else:
        with pytest.raises(IncompleteSchedule):
            machine.advance()
        assert machine.step is BookingStep.SELECTING_SCHEDULE


def test_single_slot_policy_keeps_one_selection():
    machine = _machine(policy="single")
    machine.select_vehicle("van")
    machine.advance()

    machine.toggle_time_slot(SLOTS[0])
    selected = machine.toggle_time_slot(SLOTS[2])
    assert [slot.label for slot in selected] == [SLOTS[2]]

    assert machine.toggle_time_slot(SLOTS[2]) == []


def test_unknown_slot_and_past_date_are_rejected():
    machine = _machine()
    machine.select_vehicle("van")
    machine.advance()

    with pytest.raises(InvalidTimeSlot):
        machine.toggle_time_slot("11:00 PM - 12:00 AM")
    with pytest.raises(IncompleteSchedule):
        machine.select_date(date(2026, 2, 28))
    with pytest.raises(IncompleteSchedule):
        machine.select_date("not-a-date")
    assert machine.draft.selected_date is None
    assert machine.select_date("2026-03-01") == date(2026, 3, 1)


def test_empty_checklist_can_move_to_payment():
    machine = _machine()
    machine.select_vehicle("van")
    machine.advance()
    machine.select_date(MOVE_DATE)
    machine.toggle_time_slot(SLOTS[1])
    machine.advance()

    assert machine.draft.checklist == []
    assert machine.advance() is BookingStep.AWAITING_PAYMENT


def test_checklist_items_are_validated_and_unique():
    machine = _machine()
    machine.select_vehicle("van")
    machine.advance()
    machine.select_date(MOVE_DATE)
    machine.toggle_time_slot(SLOTS[1])
    machine.advance()

    with pytest.raises(InvalidChecklistItem):
        machine.add_checklist_item("   ")
    with pytest.raises(InvalidChecklistItem):
        machine.add_checklist_item("Boxes", priority="urgent")

    boxes = machine.add_checklist_item("  Packing Boxes ", priority="high")
    wrap = machine.add_checklist_item("Bubble Wrap")
    machine.remove_checklist_item(boxes.id)
    tape = machine.add_checklist_item("Tape", category="moving")

    ids = [item.id for item in machine.draft.checklist]
    assert len(ids) == len(set(ids)) == 2
    assert boxes.name == "Packing Boxes"
    assert tape.id != wrap.id

    assert machine.toggle_checklist_item(wrap.id).checked is True
    with pytest.raises(InvalidChecklistItem):
        machine.toggle_checklist_item("missing")
    with pytest.raises(InvalidChecklistItem):
        machine.add_checklist_item("Duplicate", item_id=wrap.id)


def test_checklist_is_only_editable_on_its_step():
    machine = _machine()

    with pytest.raises(InvalidTransition):
        machine.add_checklist_item("Boxes")


def test_back_navigation_to_any_earlier_step():
    machine = _to_payment(_machine())

    assert machine.back(BookingStep.SELECTING_VEHICLE) is BookingStep.SELECTING_VEHICLE
    machine.select_vehicle("truck_xl")
    assert machine.advance() is BookingStep.SELECTING_SCHEDULE
    assert machine.back() is BookingStep.SELECTING_VEHICLE

    with pytest.raises(InvalidTransition):
        machine.back()
    with pytest.raises(InvalidTransition):
        machine.back("awaiting_payment")


def test_payment_step_only_leaves_through_finalize():
    machine = _to_payment(_machine())

    with pytest.raises(InvalidTransition):
        machine.advance()


def test_finalize_creates_priced_pending_order():
    store = CountingStore()
    machine = _to_payment(_machine(store=store), slots=(SLOTS[2],))
    machine.back(BookingStep.BUILDING_CHECKLIST)
    machine.add_checklist_item("Packing Boxes")
    machine.advance()

    order = machine.finalize(PaymentConfirmation(payment_id="pay_001"))

    assert machine.step is BookingStep.FINALIZED
    assert order.order_id
    assert order.status is OrderStatus.PENDING
    assert order.payment_id == "pay_001"
    assert order.user_id == "user_123"
    assert order.vehicle is VehicleClass.VAN
    assert (order.subtotal, order.shipping, order.tax, order.total) == (75000, 40000, 11500, 126500)
    assert order.created_at == NOW
    assert order.date_time.isoformat() == "2026-03-10T13:00:00+03:00"
    assert order.time_slots == (SLOTS[2],)
    assert [item.name for item in order.checklist] == ["Packing Boxes"]
    assert machine.draft.cost.total == 126500
    assert store.create_calls == 1
    assert store.list_for_user("user_123")[0].payment_id == "pay_001"

    with pytest.raises(InvalidTransition):
        machine.finalize(PaymentConfirmation(payment_id="pay_002"))
    assert store.create_calls == 1


def test_order_time_uses_earliest_selected_slot():
    machine = _to_payment(_machine(policy="multiple"), slots=(SLOTS[3], SLOTS[1]))

    order = machine.finalize(PaymentConfirmation(payment_id="pay_001"))

    assert order.date_time.hour == 10
    assert order.time_slots == (SLOTS[1], SLOTS[3])


def test_finalize_requires_confirmed_payment():
    store = CountingStore()
    machine = _to_payment(_machine(store=store))

    with pytest.raises(PaymentNotConfirmed):
        machine.finalize(PaymentConfirmation(payment_id="pay_001", confirmed=False))
    assert machine.step is BookingStep.AWAITING_PAYMENT
    assert store.create_calls == 0


def test_finalize_requires_locations():
    machine = _machine()
    machine.select_vehicle("van")
    machine.advance()
    machine.select_date(MOVE_DATE)
    machine.toggle_time_slot(SLOTS[0])
    machine.advance()
    machine.advance()

    with pytest.raises(MissingLocations):
        machine.finalize(PaymentConfirmation(payment_id="pay_001"))
    with pytest.raises(MissingLocations):
        machine.set_locations("Nairobi", "  ")


def test_destination_not_found_keeps_awaiting_payment():
    store = CountingStore()
    geocoder = DummyGeocoder(places={"Nairobi": PLACES["Nairobi"]})
    router = DummyRouter()
    machine = _to_payment(_machine(geocoder=geocoder, router=router, store=store))

    with pytest.raises(RouteResolutionError) as excinfo:
        machine.finalize(PaymentConfirmation(payment_id="pay_001"))

    assert excinfo.value.reason == "not_found"
    assert excinfo.value.retryable
    assert machine.step is BookingStep.AWAITING_PAYMENT
    assert machine.draft.route is None
    assert machine.draft.cost is None
    assert router.calls == 0
    assert store.create_calls == 0
    assert store.list_for_user("user_123") == []

    # retry after the place becomes resolvable
    geocoder.places["Thika"] = PLACES["Thika"]
    order = machine.finalize(PaymentConfirmation(payment_id="pay_001"))
    assert order.total == 126500


def test_store_failure_is_retryable():
    store = CountingStore(fail_times=1)
    machine = _to_payment(_machine(store=store))

    with pytest.raises(OrderSubmissionError):
        machine.finalize(PaymentConfirmation(payment_id="pay_001"))
    assert machine.step is BookingStep.AWAITING_PAYMENT
    assert machine.submitting is False

    order = machine.finalize(PaymentConfirmation(payment_id="pay_001"))
    assert machine.step is BookingStep.FINALIZED
    assert store.create_calls == 2
    assert len(store) == 1
    assert order.order_id


class BlockingGeocoder(DummyGeocoder):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def resolve(self, place_text):
        self.entered.set()
        self.release.wait(timeout=3)
        return super().resolve(place_text)


def test_concurrent_finalize_creates_exactly_one_order():
    store = CountingStore()
    geocoder = BlockingGeocoder()
    machine = _to_payment(_machine(geocoder=geocoder, store=store))
    barrier = threading.Barrier(2)
    results = []
    errors = []
    rejected = threading.Event()

    def submit(payment_id):
        barrier.wait()
        try:
            results.append(machine.finalize(PaymentConfirmation(payment_id=payment_id)))
        except SubmissionInProgress as exc:
            errors.append(exc)
            rejected.set()

    threads = [threading.Thread(target=submit, args=(f"pay_{i}",)) for i in range(2)]
    for thread in threads:
        thread.start()

    assert rejected.wait(timeout=3)
    geocoder.release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert len(results) == 1
    assert len(errors) == 1
    assert store.create_calls == 1
    assert len(store.list_for_user("user_123")) == 1


def test_edits_are_rejected_while_submitting():
    geocoder = BlockingGeocoder()
    machine = _to_payment(_machine(geocoder=geocoder))
    worker = threading.Thread(target=machine.finalize, args=(PaymentConfirmation(payment_id="pay_1"),))
    worker.start()
    assert geocoder.entered.wait(timeout=3)

    with pytest.raises(SubmissionInProgress):
        machine.back()
    with pytest.raises(SubmissionInProgress):
        machine.set_locations("Thika", "Nairobi")

    geocoder.release.set()
    worker.join(timeout=5)
    assert machine.step is BookingStep.FINALIZED


def test_abandon_during_lookup_leaves_no_order():
    store = CountingStore()
    geocoder = BlockingGeocoder()
    machine = _to_payment(_machine(geocoder=geocoder, store=store))
    outcome = []

    def submit():
        try:
            machine.finalize(PaymentConfirmation(payment_id="pay_1"))
        except SessionAbandoned as exc:
            outcome.append(exc)

    worker = threading.Thread(target=submit)
    worker.start()
    assert geocoder.entered.wait(timeout=3)
    machine.abandon()
    geocoder.release.set()
    worker.join(timeout=5)

    assert len(outcome) == 1
    assert store.create_calls == 0
    with pytest.raises(SessionAbandoned):
        machine.draft


def test_invariant_violation_discards_session(monkeypatch):
    store = CountingStore()
    machine = _to_payment(_machine(store=store))

    def broken_pricing(vehicle, route):
        raise InvariantViolation("Computed a negative price component.")

    monkeypatch.setattr(state_machine_module, "price_trip", broken_pricing)

    with pytest.raises(InvariantViolation):
        machine.finalize(PaymentConfirmation(payment_id="pay_1"))
    assert machine.abandoned
    assert store.create_calls == 0


class CommitThenTimeoutStore(CountingStore):
    """Stores the order, then reports a timeout once as if the reply was lost."""

    def __init__(self):
        super().__init__()
        self.lost_replies = 1

    def create(self, order):
        order_id = super().create(order)
        if self.lost_replies:
            self.lost_replies -= 1
            raise CollaboratorTimeout("Order store write timed out")
        return order_id


def test_retry_after_lost_store_reply_keeps_one_order():
    store = CommitThenTimeoutStore()
    machine = _to_payment(_machine(store=store))

    with pytest.raises(OrderSubmissionError) as excinfo:
        machine.finalize(PaymentConfirmation(payment_id="pay_1"))
    assert excinfo.value.reason == "timeout"
    assert machine.step is BookingStep.AWAITING_PAYMENT

    order = machine.finalize(PaymentConfirmation(payment_id="pay_1"))

    stored = store.list_for_user("user_123")
    assert [item.payment_id for item in stored] == ["pay_1"]
    assert order.order_id == stored[0].order_id
    assert len(store) == 1


class InfiniteRouter(DummyRouter):
    def __init__(self):
        super().__init__(distance_km=float("inf"))


def test_non_finite_route_is_a_route_resolution_error():
    store = CountingStore()
    machine = _to_payment(_machine(router=InfiniteRouter(), store=store))

    with pytest.raises(RouteResolutionError) as excinfo:
        machine.finalize(PaymentConfirmation(payment_id="pay_1"))

    assert excinfo.value.reason == "bad_response"
    assert machine.step is BookingStep.AWAITING_PAYMENT
    assert store.create_calls == 0


def test_draft_is_a_snapshot():
    machine = _machine()
    machine.select_vehicle("van")
    machine.advance()
    machine.select_date(MOVE_DATE)
    machine.toggle_time_slot(SLOTS[0])
    machine.advance()
    item = machine.add_checklist_item("Boxes")

    snapshot = machine.draft
    snapshot.vehicle = None
    snapshot.checklist.clear()
    snapshot.time_slots[0].selected = False
    item.checked = True

    current = machine.draft
    assert current.vehicle is VehicleClass.VAN
    assert [entry.name for entry in current.checklist] == ["Boxes"]
    assert current.checklist[0].checked is False
    assert [slot.label for slot in current.selected_slots] == [SLOTS[0]]

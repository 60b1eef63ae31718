from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from movebook.errors import GeocodingError
from movebook.main import create_app
from movebook.models.domain import Coordinate, RouteEstimate
from movebook.persistence.orders import InMemoryOrderStore
from movebook.services.booking import SessionRegistry

SLOTS = ("9:00 AM - 10:00 AM", "10:00 AM - 11:00 AM", "1:00 PM - 2:00 PM", "3:00 PM - 4:00 PM")
MOVE_DATE = (date.today() + timedelta(days=7)).isoformat()


class DummyGeocoder:
    places = {
        "Nairobi": Coordinate(latitude=-1.2864, longitude=36.8172),
        "Thika": Coordinate(latitude=-1.0333, longitude=37.0693),
    }

    def resolve(self, place_text):
        if place_text not in self.places:
            raise GeocodingError(f"No coordinates found for {place_text!r}.", reason="not_found")
        return self.places[place_text]


class DummyRouter:
    def route(self, origin, destination):
        return RouteEstimate(origin=origin, destination=destination, distance_km=20.0, duration_min=40.0)


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def registry(order_store: InMemoryOrderStore) -> SessionRegistry:
    return SessionRegistry(
        geocoder=DummyGeocoder(),
        router=DummyRouter(),
        order_store=order_store,
        time_slots=SLOTS,
        slot_policy="single",
    )


@pytest.fixture
def api_client(
    monkeypatch: pytest.MonkeyPatch, order_store: InMemoryOrderStore, registry: SessionRegistry
) -> TestClient:
    from movebook.api.routes import bookings as booking_routes
    from movebook.api.routes import orders as order_routes
    from movebook.api.routes import vehicles as vehicle_routes

    monkeypatch.setattr(booking_routes, "get_session_registry", lambda: registry)
    monkeypatch.setattr(order_routes, "list_orders_for_user", lambda user_id: order_store.list_for_user(user_id))
    monkeypatch.setattr(vehicle_routes, "get_geocoder", DummyGeocoder)
    monkeypatch.setattr(vehicle_routes, "get_router", DummyRouter)

    return TestClient(create_app())


def _ready_for_payment(api_client: TestClient) -> str:
    response = api_client.post("/api/bookings", json={"user_id": "user_123", "user_name": "Wanjiru"})
    assert response.status_code == 201
    session_id = response.json()["session_id"]
    base = f"/api/bookings/{session_id}"

    assert api_client.put(f"{base}/vehicle", json={"vehicle": "van"}).status_code == 200
    assert api_client.post(f"{base}/advance").json()["step"] == "selecting_schedule"
    assert api_client.put(f"{base}/schedule", json={"selected_date": MOVE_DATE}).status_code == 200
    assert api_client.post(f"{base}/time-slots/toggle", params={"label": SLOTS[1]}).status_code == 200
    assert api_client.post(f"{base}/advance").json()["step"] == "building_checklist"

    response = api_client.post(f"{base}/checklist", json={"name": "Packing Boxes", "priority": "high"})
    assert response.status_code == 201
    item_id = response.json()["checklist"][0]["id"]
    response = api_client.post(f"{base}/checklist/{item_id}/toggle")
    assert response.json()["checklist_completed"] == 1

    assert api_client.post(f"{base}/advance").json()["step"] == "awaiting_payment"
    response = api_client.put(f"{base}/locations", json={"origin": "Nairobi", "destination": "Thika"})
    assert response.status_code == 200
    return session_id


def test_vehicle_catalogue(api_client: TestClient):
    response = api_client.get("/api/vehicles")

    assert response.status_code == 200
    ids = [vehicle["id"] for vehicle in response.json()]
    assert ids == ["pickup_truck", "van", "truck", "truck_xl"]

    van = api_client.get("/api/vehicles/van").json()
    assert (van["base_fee"], van["labor_rate_per_min"], van["distance_rate_per_km"]) == (15000, 1500, 2000)

    missing = api_client.get("/api/vehicles/hovercraft")
    assert missing.status_code == 400
    assert missing.json()["detail"]["code"] == "InvalidVehicleClass"


def test_quote_endpoint_prices_without_booking(api_client: TestClient, order_store: InMemoryOrderStore):
    response = api_client.post("/api/vehicles/van/quote", json={"origin": "Nairobi", "destination": "Thika"})

    assert response.status_code == 200
    cost = response.json()["cost"]
    assert (cost["subtotal"], cost["shipping"], cost["tax"], cost["total"]) == (75000, 40000, 11500, 126500)
    assert cost["display"]["total"] == "KES 1,265.00"
    assert len(order_store) == 0


def test_booking_flow_creates_order(
    api_client: TestClient, order_store: InMemoryOrderStore, registry: SessionRegistry
):
    session_id = _ready_for_payment(api_client)

    response = api_client.post(f"/api/bookings/{session_id}/finalize", json={"payment_id": "pay_001"})

    assert response.status_code == 201
    order = response.json()
    assert order["total"] == 126500
    assert order["status"] == "pending"
    assert order["time_slots"] == [SLOTS[1]]
    assert order["checklist"][0]["checked"] is True

    assert order["order_id"]
    assert len(registry) == 0
    assert api_client.get(f"/api/bookings/{session_id}").status_code == 404

    history = api_client.get("/api/orders", params={"user_id": "user_123"}).json()
    assert history["total"] == 1
    assert history["items"][0]["payment_id"] == "pay_001"

    export = api_client.get("/api/orders/export", params={"user_id": "user_123"})
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert "pay_001" in export.text

    again = api_client.post(f"/api/bookings/{session_id}/finalize", json={"payment_id": "pay_002"})
    assert again.status_code == 404
    assert len(order_store) == 1


def test_schedule_guard_error_is_user_facing(api_client: TestClient):
    session_id = api_client.post("/api/bookings", json={"user_id": "user_123"}).json()["session_id"]
    base = f"/api/bookings/{session_id}"
    api_client.put(f"{base}/vehicle", json={"vehicle": "truck"})
    api_client.post(f"{base}/advance")

    response = api_client.post(f"{base}/advance")

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "code": "IncompleteSchedule",
        "message": "Please select both a date and time slot.",
        "retryable": False,
    }


def test_unknown_destination_keeps_booking_open(api_client: TestClient, order_store: InMemoryOrderStore):
    session_id = _ready_for_payment(api_client)
    base = f"/api/bookings/{session_id}"
    api_client.put(f"{base}/locations", json={"origin": "Nairobi", "destination": "Atlantis"})

    response = api_client.post(f"{base}/finalize", json={"payment_id": "pay_001"})

    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "RouteResolutionError"
    assert response.json()["detail"]["retryable"] is True
    assert api_client.get(base).json()["step"] == "awaiting_payment"
    assert len(order_store) == 0


def test_back_navigation_and_abandon(api_client: TestClient):
    session_id = _ready_for_payment(api_client)
    base = f"/api/bookings/{session_id}"

    response = api_client.post(f"{base}/back", json={"target": "selecting_vehicle"})
    assert response.json()["step"] == "selecting_vehicle"

    assert api_client.delete(base).status_code == 204
    gone = api_client.get(base)
    assert gone.status_code == 404
    assert gone.json()["detail"]["code"] == "SessionNotFound"


def test_time_slots_endpoint(api_client: TestClient):
    payload = api_client.get("/api/time-slots").json()

    assert payload["policy"] in {"single", "multiple"}
    assert len(payload["slots"]) == 4


def test_finalized_sessions_do_not_accumulate(api_client: TestClient, registry: SessionRegistry):
    for index in range(5):
        session_id = _ready_for_payment(api_client)
        response = api_client.post(f"/api/bookings/{session_id}/finalize", json={"payment_id": f"pay_{index}"})
        assert response.status_code == 201

    assert len(registry) == 0


def test_quote_without_mapbox_token_is_a_gateway_error(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from movebook.api.routes import vehicles as vehicle_routes
    from movebook.config import settings
    from movebook.services.geocoding import get_geocoder

    monkeypatch.setattr(settings, "mapbox_access_token", None)
    monkeypatch.setattr(vehicle_routes, "get_geocoder", get_geocoder)

    response = api_client.post("/api/vehicles/van/quote", json={"origin": "Nairobi", "destination": "Thika"})

    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "GeocodingError"
    assert response.json()["detail"]["retryable"] is True


@pytest.fixture
def unconfigured(monkeypatch: pytest.MonkeyPatch):
    from movebook.config import settings
    from movebook.db.supabase import get_supabase_client

    for name in ("mapbox_access_token", "osrm_base_url", "supabase_url", "supabase_key"):
        monkeypatch.setattr(settings, name, None)
    get_supabase_client.cache_clear()
    yield settings
    get_supabase_client.cache_clear()


def test_health_endpoints_without_configuration(unconfigured):
    client = TestClient(create_app())

    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/api/health/geocoder").json() == {"service": "geocoder", "healthy": False}

    router = client.get("/api/health/router").json()
    assert router["healthy"] is False
    assert router["provider"] == unconfigured.router_provider

    database = client.get("/api/health/database").json()
    assert database["configured"] is False

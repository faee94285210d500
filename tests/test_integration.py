import pytest
from fastapi.testclient import TestClient

from jitprep.config import settings
from jitprep.main import create_app
from jitprep.persistence.orders import InMemoryOrderRepository
from jitprep.services.engine import EngineTunables
from jitprep.services.eta.base import TravelEstimate


class DummyProvider:
    def __init__(self, seconds: float):
        self.seconds = seconds
        self.calls = 0

    def travel_time(self, origin, destination):
        self.calls += 1
        return TravelEstimate(self.seconds, traffic_aware=True, source="dummy")

    def check_health(self):
        return True


ORDER_PAYLOAD = {
    "customerName": "Dana",
    "shopLocation": {"lat": 21.5, "lng": 39.2, "address": "12 Harbour Rd"},
    "prepTime": 10,
}


def _client(seconds: float) -> tuple[TestClient, DummyProvider]:
    provider = DummyProvider(seconds)
    app = create_app(repository=InMemoryOrderRepository(), provider=provider, tunables=EngineTunables())
    return TestClient(app), provider


@pytest.fixture
def slow_trip():
    client, provider = _client(seconds=1200)
    with client:
        yield client, provider


@pytest.fixture
def arriving_soon():
    client, provider = _client(seconds=540)
    with client:
        yield client, provider


def _create_order(client: TestClient) -> str:
    response = client.post("/api/orders", json=ORDER_PAYLOAD)
    assert response.status_code == 201
    return response.json()["id"]


def _location(order_id: str, lat: float = 21.52, lng: float = 39.21) -> dict:
    return {"event": "update_location", "data": {"orderId": order_id, "latitude": lat, "longitude": lng}}


def test_create_and_read_order(slow_trip):
    client, _ = slow_trip

    created = client.post("/api/orders", json=ORDER_PAYLOAD)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "TRACKING"
    assert body["customerName"] == "Dana"
    assert body["prepTime"] == 10
    assert body["lastProviderCheck"] is None

    fetched = client.get(f"/api/orders/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["shopLocation"]["address"] == "12 Harbour Rd"


def test_create_route_alias(slow_trip):
    client, _ = slow_trip

    created = client.post("/api/orders/create", json=ORDER_PAYLOAD)

    assert created.status_code == 201
    assert client.get(f"/api/orders/{created.json()['id']}").json()["status"] == "TRACKING"


@pytest.mark.parametrize(
    "payload",
    [
        {**ORDER_PAYLOAD, "prepTime": 0},
        {**ORDER_PAYLOAD, "shopLocation": {"lat": 120.0, "lng": 39.2}},
        {"customerName": "Dana"},
    ],
)
def test_invalid_orders_are_rejected(slow_trip, payload):
    client, _ = slow_trip
    assert client.post("/api/orders", json=payload).status_code == 422


def test_unknown_order_returns_404(slow_trip):
    client, _ = slow_trip
    assert client.get("/api/orders/does-not-exist").status_code == 404


def test_http_location_publishes_eta_update_to_room(slow_trip):
    client, provider = slow_trip
    order_id = _create_order(client)

    with client.websocket_connect(f"/ws/orders/{order_id}") as listener:
        response = client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.52, "longitude": 39.21})
        assert response.status_code == 202
        assert response.json() == {"order_id": order_id, "outcome": "eta_updated"}

        message = listener.receive_json()

    assert message == {"event": "eta_update", "data": {"orderId": order_id, "eta": 20, "slack": 10, "degraded": False}}
    assert provider.calls == 1
    assert client.get(f"/api/orders/{order_id}").json()["status"] == "TRACKING"


def test_second_http_sample_is_throttled(slow_trip):
    client, provider = slow_trip
    order_id = _create_order(client)

    client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.52, "longitude": 39.21})
    second = client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.51, "longitude": 39.21})

    assert second.json()["outcome"] == "throttled"
    assert provider.calls == 1


def test_socket_update_triggers_preparation(arriving_soon):
    client, _ = arriving_soon
    order_id = _create_order(client)

    with client.websocket_connect(f"/ws/orders/{order_id}") as websocket:
        websocket.send_json(_location(order_id))
        message = websocket.receive_json()

    assert message["event"] == "prep_started"
    assert message["data"]["orderId"] == order_id
    assert "9 min" in message["data"]["message"]
    assert client.get(f"/api/orders/{order_id}").json()["status"] == "PREPARING"


def test_socket_rejects_malformed_frames(slow_trip):
    client, provider = slow_trip
    order_id = _create_order(client)

    with client.websocket_connect(f"/ws/orders/{order_id}") as websocket:
        websocket.send_text("not json")
        assert websocket.receive_json()["event"] == "error"

        websocket.send_json(_location(order_id, lat=123.0))
        assert websocket.receive_json()["event"] == "error"

        websocket.send_json(_location("someone-else"))
        assert websocket.receive_json()["event"] == "error"

    assert provider.calls == 0


def test_invalid_http_location_is_rejected(slow_trip):
    client, provider = slow_trip
    order_id = _create_order(client)

    response = client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.5, "longitude": 200.0})

    assert response.status_code == 422
    assert provider.calls == 0


def test_kitchen_status_flow(arriving_soon):
    client, _ = arriving_soon
    order_id = _create_order(client)

    early = client.post(f"/api/orders/{order_id}/status", json={"status": "READY"})
    assert early.status_code == 409

    client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.52, "longitude": 39.21})

    ready = client.post(f"/api/orders/{order_id}/status", json={"status": "READY"})
    assert ready.status_code == 200
    assert ready.json()["status"] == "READY"
    assert client.post(f"/api/orders/{order_id}/status", json={"status": "READY"}).status_code == 409
    assert client.post(f"/api/orders/{order_id}/status", json={"status": "PREPARING"}).status_code == 422
    assert client.post("/api/orders/missing/status", json={"status": "READY"}).status_code == 404

    late = client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.5, "longitude": 39.2})
    assert late.json()["outcome"] == "inactive"


def test_location_without_provider_is_unavailable(monkeypatch):
    monkeypatch.setattr(settings, "eta_provider", "google")
    monkeypatch.setattr(settings, "google_maps_key", None)
    app = create_app(repository=InMemoryOrderRepository())

    with TestClient(app) as client:
        order_id = _create_order(client)
        response = client.post(f"/api/orders/{order_id}/location", json={"latitude": 21.5, "longitude": 39.2})
        provider_health = client.get("/api/health/provider").json()

    assert response.status_code == 503
    assert provider_health == {"service": "eta_provider", "configured": False, "healthy": False}


def test_health_endpoints(slow_trip):
    client, _ = slow_trip

    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/api/health/provider").json()["healthy"] is True
    assert client.get("/api/health/database").json() == {"backend": "InMemoryOrderRepository", "healthy": True}

"""Tests for Shipment API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from wellnesstree.api.shipping import get_courier_factory
from wellnesstree.infrastructure.courier_client import (
    CourierClientFactory,
    CourierConfig,
    CourierRegistry,
)
from wellnesstree.main import app

ADDRESS_FROM = {"street_address": "1 Long Street", "city": "Cape Town", "code": "8001"}
ADDRESS_TO = {"street_address": "5 Main Road", "city": "Johannesburg", "code": "2001"}
PARCEL = {"length_cm": 20, "width_cm": 15, "height_cm": 10, "weight_kg": 1}


@pytest.fixture
def courier_calls() -> list[httpx.Request]:
    """Stub the courier API and record the calls made to it."""
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/v2/shipments":
            return httpx.Response(200, json={"id": 501, "short_tracking_reference": "WT501"})
        return httpx.Response(200, json={"url": "https://labels.test/501.pdf"})

    registry = CourierRegistry()
    registry.register(
        CourierConfig(id="shiplogic", url="https://courier.test", api_key="k", enabled=True)
    )
    app.dependency_overrides[get_courier_factory] = lambda: CourierClientFactory(
        registry=registry, transport=httpx.MockTransport(handler)
    )
    return calls


def create_shipment(client: TestClient, provider: str = "in_house", order_id: str = "WT-1001") -> dict:
    response = client.post(
        "/shipments",
        json={"order_id": order_id, "dispensary_id": "disp-1", "provider": provider},
    )
    assert response.status_code == 201
    return response.json()


def set_status(client: TestClient, shipment_id: str, status: str, **extra: object):
    return client.post(f"/shipments/{shipment_id}/status", json={"status": status, **extra})


class TestShipmentStatuses:
    """Tests for GET /shipments/statuses."""

    def test_lists_every_status(self, auth_client: TestClient) -> None:
        response = auth_client.get("/shipments/statuses")

        assert response.status_code == 200
        items = {item["status"]: item for item in response.json()["items"]}
        assert len(items) == 15
        assert items["delivered"]["is_terminal"] is True
        assert items["delivered"]["requires_confirmation"] is True
        assert items["claimed_by_driver"]["delivery_mode"] == "driver"
        assert items["ready_for_pickup"]["allowed_next"] == ["claimed_by_driver", "cancelled"]


class TestCreateShipment:
    """Tests for POST /shipments."""

    def test_create(self, auth_client: TestClient) -> None:
        data = create_shipment(auth_client)

        assert data["status"] == "pending"
        assert data["status_label"] == "Pending"
        assert data["delivery_mode"] == "driver"
        assert data["allowed_transitions"] == ["ready_for_pickup", "cancelled"]
        assert len(data["status_history"]) == 1

    def test_courier_provider_gets_courier_mode(self, auth_client: TestClient) -> None:
        data = create_shipment(auth_client, provider="shiplogic")

        assert data["delivery_mode"] == "courier"
        assert data["allowed_transitions"] == ["ready_for_shipping", "cancelled"]

    def test_missing_order_rejected(self, auth_client: TestClient) -> None:
        response = auth_client.post(
            "/shipments",
            json={"order_id": "", "dispensary_id": "disp-1", "provider": "pudo"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_ARGUMENT"

    def test_requires_auth(self, client: TestClient) -> None:
        response = client.post(
            "/shipments",
            json={"order_id": "WT-1", "dispensary_id": "disp-1", "provider": "pudo"},
        )
        assert response.status_code == 401


class TestGetShipment:
    """Tests for GET /shipments and /shipments/{id}."""

    def test_get(self, auth_client: TestClient) -> None:
        created = create_shipment(auth_client)

        response = auth_client.get(f"/shipments/{created['id']}")
        assert response.status_code == 200
        assert response.json()["order_id"] == "WT-1001"

    def test_not_found(self, auth_client: TestClient) -> None:
        response = auth_client.get("/shipments/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SHIPMENT_NOT_FOUND"

    def test_list_with_filters(self, auth_client: TestClient) -> None:
        create_shipment(auth_client, order_id="WT-1")
        create_shipment(auth_client, order_id="WT-2", provider="pudo")

        response = auth_client.get("/shipments", params={"order_id": "WT-2"})
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["provider"] == "pudo"
        assert data["has_more"] is False

        response = auth_client.get("/shipments", params={"page_size": 1})
        data = response.json()
        assert data["total"] == 2
        assert len(data["items"]) == 1
        assert data["has_more"] is True

    def test_transitions(self, auth_client: TestClient) -> None:
        created = create_shipment(auth_client)

        response = auth_client.get(f"/shipments/{created['id']}/transitions")

        assert response.status_code == 200
        data = response.json()
        assert data["current_status"] == "pending"
        assert data["is_terminal"] is False
        assert [t["status"] for t in data["allowed_transitions"]] == [
            "ready_for_pickup",
            "cancelled",
        ]
        assert data["allowed_transitions"][1]["requires_confirmation"] is True


class TestUpdateStatus:
    """Tests for POST /shipments/{id}/status."""

    def test_driver_flow(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client)["id"]

        for status in (
            "ready_for_pickup",
            "claimed_by_driver",
            "picked_up",
            "en_route",
            "nearby",
            "arrived",
        ):
            response = set_status(auth_client, shipment_id, status, actor="driver-7")
            assert response.status_code == 200, response.json()

        response = set_status(auth_client, shipment_id, "delivered", confirmed=True)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "delivered"
        assert data["delivered_at"] is not None
        assert data["allowed_transitions"] == []

    def test_invalid_transition_conflict(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client)["id"]
        set_status(auth_client, shipment_id, "ready_for_pickup")

        response = set_status(auth_client, shipment_id, "delivered", confirmed=True)

        assert response.status_code == 409
        data = response.json()
        assert data["error_code"] == "INVALID_TRANSITION"
        assert data["details"]["current_status"] == "ready_for_pickup"
        assert data["details"]["attempted_status"] == "delivered"
        assert set(data["details"]["allowed_next"]) == {"claimed_by_driver", "cancelled"}
        assert data["request_id"]

    def test_mode_mismatch_conflict(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client, provider="pudo")["id"]

        response = set_status(auth_client, shipment_id, "ready_for_pickup")

        assert response.status_code == 409
        assert response.json()["error_code"] == "DELIVERY_MODE_MISMATCH"

    def test_confirmation_required(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client)["id"]

        response = set_status(auth_client, shipment_id, "cancelled")

        assert response.status_code == 428
        data = response.json()
        assert data["error_code"] == "CONFIRMATION_REQUIRED"
        assert data["details"]["prompt"]["title"] == "Cancel Shipment"

        response = set_status(auth_client, shipment_id, "cancelled", confirmed=True)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_same_status_is_noop(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client)["id"]

        response = set_status(auth_client, shipment_id, "pending")

        assert response.status_code == 200
        assert len(response.json()["status_history"]) == 1

    def test_unknown_status_rejected(self, auth_client: TestClient) -> None:
        shipment_id = create_shipment(auth_client)["id"]

        response = set_status(auth_client, shipment_id, "teleported")
        assert response.status_code == 400


class TestGenerateLabel:
    """Tests for POST /shipments/{id}/label."""

    def label_body(self) -> dict:
        return {
            "collection_address": ADDRESS_FROM,
            "delivery_address": ADDRESS_TO,
            "collection_contact": {"name": "Dispensary", "mobile_number": "0210000000"},
            "delivery_contact": {"name": "Customer", "mobile_number": "0820000000"},
            "parcels": [PARCEL],
            "service_level_code": "ECO",
        }

    def test_label_generated(
        self, auth_client: TestClient, courier_calls: list[httpx.Request]
    ) -> None:
        shipment_id = create_shipment(auth_client, provider="shiplogic")["id"]
        set_status(auth_client, shipment_id, "ready_for_shipping")

        response = auth_client.post(f"/shipments/{shipment_id}/label", json=self.label_body())

        assert response.status_code == 200, response.json()
        data = response.json()
        assert data["status"] == "label_generated"
        assert data["tracking_number"] == "WT501"
        assert data["label_url"] == "https://labels.test/501.pdf"
        assert len(courier_calls) == 2

    def test_label_before_ready_conflicts(
        self, auth_client: TestClient, courier_calls: list[httpx.Request]
    ) -> None:
        shipment_id = create_shipment(auth_client, provider="shiplogic")["id"]

        response = auth_client.post(f"/shipments/{shipment_id}/label", json=self.label_body())

        assert response.status_code == 409
        assert courier_calls == []

    def test_second_label_is_invalid_transition(
        self, auth_client: TestClient, courier_calls: list[httpx.Request]
    ) -> None:
        shipment_id = create_shipment(auth_client, provider="shiplogic")["id"]
        set_status(auth_client, shipment_id, "ready_for_shipping")
        auth_client.post(f"/shipments/{shipment_id}/label", json=self.label_body())

        response = auth_client.post(f"/shipments/{shipment_id}/label", json=self.label_body())

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"
        assert len(courier_calls) == 2

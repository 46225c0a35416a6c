"""Tests for the courier HTTP client."""

import json
from decimal import Decimal

import httpx
import pytest

from wellnesstree.infrastructure.courier_client import (
    CourierAddress,
    CourierClient,
    CourierClientError,
    CourierClientFactory,
    CourierConfig,
    CourierContact,
    CourierNotFoundError,
    CourierRegistry,
    Parcel,
    ShipmentRequest,
)

COURIER = CourierConfig(
    id="shiplogic",
    url="https://courier.test",
    api_key="test-key",
    enabled=True,
    name="ShipLogic",
)

RATES_RESPONSE = {
    "rates": [
        {
            "rate": 99.5,
            "rate_excluding_vat": 86.52,
            "service_level": {
                "code": "ECO",
                "name": "Economy",
                "delivery_date_from": "2026-10-21",
                "delivery_date_to": "2026-10-23",
            },
        },
        {
            "rate": "149.00",
            "service_level": {"code": "ONX", "name": "Overnight"},
        },
    ]
}


def make_request(**overrides: object) -> ShipmentRequest:
    """Create a test shipment request."""
    values: dict[str, object] = {
        "collection_address": CourierAddress(
            street_address="1 Long Street", city="Cape Town", code="8001"
        ),
        "delivery_address": CourierAddress(
            street_address="5 Main Road", city="Johannesburg", code="2001", zone="Gauteng"
        ),
        "parcels": [
            Parcel(
                length_cm=Decimal("20"),
                width_cm=Decimal("15"),
                height_cm=Decimal("10"),
                weight_kg=Decimal("1.5"),
            )
        ],
        "declared_value": Decimal("402.50"),
    }
    values.update(overrides)
    return ShipmentRequest(**values)  # type: ignore[arg-type]


def make_client(handler) -> CourierClient:
    return CourierClient(COURIER, request_id="req-1", transport=httpx.MockTransport(handler))


class TestGetRates:
    """Tests for CourierClient.get_rates."""

    async def test_returns_rates_unchanged(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=RATES_RESPONSE)

        async with make_client(handler) as client:
            rates = await client.get_rates(make_request())

        assert [r.service_level_code for r in rates] == ["ECO", "ONX"]
        assert rates[0].rate == Decimal("99.5")
        assert rates[0].rate_excluding_vat == Decimal("86.52")
        assert rates[0].delivery_date_to == "2026-10-23"
        assert rates[1].rate == Decimal("149.00")
        assert rates[1].rate_excluding_vat is None

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v2/rates"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert request.headers["X-Request-ID"] == "req-1"

        body = json.loads(request.content)
        assert body["delivery_address"]["city"] == "Johannesburg"
        assert body["delivery_address"]["zone"] == "Gauteng"
        assert body["parcels"][0]["submitted_weight_kg"] == 1.5
        assert body["declared_value"] == 402.5

    async def test_requires_parcels(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("courier must not be called")

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError):
                await client.get_rates(make_request(parcels=[]))

    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "Invalid delivery code"})

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError) as exc_info:
                await client.get_rates(make_request())

        error = exc_info.value
        assert error.status_code == 422
        assert error.error_code == "COURIER_ERROR"
        assert error.retryable is True
        assert "Invalid delivery code" in error.message
        assert error.details["courier_id"] == "shiplogic"

    async def test_plain_text_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="Service Unavailable")

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError) as exc_info:
                await client.get_rates(make_request())

        assert "Service Unavailable" in exc_info.value.message

    async def test_network_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError) as exc_info:
                await client.get_rates(make_request())

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.message

    async def test_non_json_success_body_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError) as exc_info:
                await client.get_rates(make_request())

        assert exc_info.value.error_code == "COURIER_ERROR"
        assert exc_info.value.status_code == 200
        assert "not valid JSON" in exc_info.value.message


class TestCreateLabel:
    """Tests for CourierClient.create_label."""

    async def test_books_shipment_and_fetches_label(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/v2/shipments":
                return httpx.Response(
                    200, json={"id": 4321, "short_tracking_reference": "WT4321"}
                )
            return httpx.Response(200, json={"url": "https://labels.test/4321.pdf"})

        request = make_request(
            collection_contact=CourierContact(name="Dispensary", mobile_number="0210000000"),
            delivery_contact=CourierContact(
                name="Customer", mobile_number="0820000000", email="c@example.com"
            ),
            service_level_code="ECO",
            customer_reference="WT-1001",
        )
        async with make_client(handler) as client:
            label = await client.create_label(request)

        assert label.courier_shipment_id == "4321"
        assert label.tracking_reference == "WT4321"
        assert label.label_url == "https://labels.test/4321.pdf"

        booking = json.loads(seen[0].content)
        assert booking["service_level_code"] == "ECO"
        assert booking["customer_reference"] == "WT-1001"
        assert booking["delivery_contact"]["email"] == "c@example.com"
        assert "email" not in booking["collection_contact"]
        assert seen[1].method == "GET"
        assert seen[1].url.params["id"] == "4321"

    async def test_tracking_falls_back_to_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v2/shipments":
                return httpx.Response(200, json={"id": 77})
            return httpx.Response(200, json={})

        request = make_request(
            collection_contact=CourierContact(name="A", mobile_number="1"),
            delivery_contact=CourierContact(name="B", mobile_number="2"),
            service_level_code="ECO",
        )
        async with make_client(handler) as client:
            label = await client.create_label(request)

        assert label.tracking_reference == "77"
        assert label.label_url is None

    async def test_incomplete_request_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("courier must not be called")

        async with make_client(handler) as client:
            with pytest.raises(CourierClientError) as exc_info:
                await client.create_label(make_request(service_level_code="ECO"))

        assert "collection_contact" in exc_info.value.message


class TestCourierRegistry:
    """Tests for courier discovery and the client factory."""

    def test_registered_courier_overrides_discovered(self) -> None:
        registry = CourierRegistry()
        registry.register(COURIER)

        assert registry.get_courier("shiplogic") is COURIER
        assert COURIER.display_name == "ShipLogic"

    def test_disabled_courier_hidden(self) -> None:
        registry = CourierRegistry()
        registry.register(
            CourierConfig(id="pudo", url="https://pudo.test", api_key="", enabled=False)
        )

        assert registry.get_courier("pudo") is None
        assert "pudo" not in [c.id for c in registry.list_couriers()]

    def test_factory_unknown_courier(self) -> None:
        factory = CourierClientFactory(registry=CourierRegistry())

        with pytest.raises(CourierNotFoundError) as exc_info:
            factory.get_client("fastway")
        assert exc_info.value.error_code == "COURIER_NOT_FOUND"

    def test_factory_builds_client(self) -> None:
        registry = CourierRegistry()
        registry.register(COURIER)
        client = CourierClientFactory(registry=registry, request_id="req-9").get_client(
            "shiplogic"
        )

        assert client.courier is COURIER
        assert client.request_id == "req-9"

"""Tests for the shipment application service."""

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from wellnesstree.application.shipment_service import ShipmentRepository, ShipmentService
from wellnesstree.domain import (
    ConfirmationRequiredError,
    DeliveryModeMismatchError,
    InvalidTransitionError,
    ShipmentNotFoundError,
    ShipmentStatus,
    ShippingProvider,
)
from wellnesstree.infrastructure.courier_client import (
    CourierAddress,
    CourierClientError,
    CourierClientFactory,
    CourierConfig,
    CourierContact,
    CourierRegistry,
    Parcel,
    ShipmentRequest,
)


def make_factory(handler) -> CourierClientFactory:
    registry = CourierRegistry()
    registry.register(
        CourierConfig(id="shiplogic", url="https://courier.test", api_key="k", enabled=True)
    )
    return CourierClientFactory(registry=registry, transport=httpx.MockTransport(handler))


def label_request() -> ShipmentRequest:
    return ShipmentRequest(
        collection_address=CourierAddress(
            street_address="1 Long Street", city="Cape Town", code="8001"
        ),
        delivery_address=CourierAddress(
            street_address="5 Main Road", city="Johannesburg", code="2001"
        ),
        parcels=[
            Parcel(
                length_cm=Decimal("20"),
                width_cm=Decimal("15"),
                height_cm=Decimal("10"),
                weight_kg=Decimal("1"),
            )
        ],
        collection_contact=CourierContact(name="Dispensary", mobile_number="0210000000"),
        delivery_contact=CourierContact(name="Customer", mobile_number="0820000000"),
        service_level_code="ECO",
    )


def courier_handler(calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/v2/shipments":
            return httpx.Response(200, json={"id": 99, "short_tracking_reference": "WT99"})
        return httpx.Response(200, json={"url": "https://labels.test/99.pdf"})

    return handler


@pytest.fixture
def service() -> ShipmentService:
    return ShipmentService(repository=ShipmentRepository(), request_id="req-test")


class TestCreateShipment:
    """Tests for ShipmentService.create_shipment."""

    async def test_create_and_get(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.PUDO)

        loaded = await service.get_shipment(str(shipment.id))
        assert loaded is shipment
        assert loaded.status == ShipmentStatus.PENDING

    async def test_get_unknown(self, service: ShipmentService) -> None:
        with pytest.raises(ShipmentNotFoundError):
            await service.get_shipment("missing")

    async def test_list_filters(self, service: ShipmentService) -> None:
        first = await service.create_shipment("WT-1", "disp-1", ShippingProvider.PUDO)
        await service.create_shipment("WT-2", "disp-2", ShippingProvider.IN_HOUSE)
        await service.update_status(str(first.id), ShipmentStatus.READY_FOR_SHIPPING)

        shipments, total = await service.list_shipments(dispensary_id="disp-1")
        assert total == 1
        assert shipments[0].order_id == "WT-1"

        shipments, total = await service.list_shipments(status=ShipmentStatus.PENDING)
        assert [s.order_id for s in shipments] == ["WT-2"]

    async def test_list_paginates(self, service: ShipmentService) -> None:
        for i in range(5):
            await service.create_shipment(f"WT-{i}", "disp-1", ShippingProvider.IN_HOUSE)

        shipments, total = await service.list_shipments(page=2, page_size=2)
        assert total == 5
        assert len(shipments) == 2


class TestUpdateStatus:
    """Tests for ShipmentService.update_status."""

    async def test_valid_transition(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.IN_HOUSE)

        updated = await service.update_status(
            str(shipment.id), ShipmentStatus.READY_FOR_PICKUP, actor="ops"
        )

        assert updated.status == ShipmentStatus.READY_FOR_PICKUP
        assert updated.status_history[-1].actor == "ops"

    async def test_invalid_transition_leaves_shipment(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.IN_HOUSE)

        with pytest.raises(InvalidTransitionError):
            await service.update_status(str(shipment.id), ShipmentStatus.ARRIVED)
        assert shipment.status == ShipmentStatus.PENDING

    async def test_mode_mismatch(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.SHIPLOGIC)

        with pytest.raises(DeliveryModeMismatchError):
            await service.update_status(str(shipment.id), ShipmentStatus.READY_FOR_PICKUP)

    async def test_confirmation_required(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.IN_HOUSE)

        with pytest.raises(ConfirmationRequiredError):
            await service.update_status(str(shipment.id), ShipmentStatus.CANCELLED)

        updated = await service.update_status(
            str(shipment.id), ShipmentStatus.CANCELLED, confirmed=True
        )
        assert updated.status == ShipmentStatus.CANCELLED
        assert updated.cancelled_at is not None

    async def test_same_status_is_noop(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.IN_HOUSE)

        updated = await service.update_status(str(shipment.id), ShipmentStatus.PENDING)
        assert updated.version == 1
        assert len(updated.status_history) == 1

    async def test_allowed_transitions(self, service: ShipmentService) -> None:
        shipment = await service.create_shipment("WT-1", "disp-1", ShippingProvider.IN_HOUSE)

        assert await service.allowed_transitions(str(shipment.id)) == [
            ShipmentStatus.READY_FOR_PICKUP,
            ShipmentStatus.CANCELLED,
        ]


class TestGenerateLabel:
    """Tests for ShipmentService.generate_label."""

    async def test_label_attached(self) -> None:
        calls: list[httpx.Request] = []
        service = ShipmentService(
            repository=ShipmentRepository(),
            courier_factory=make_factory(courier_handler(calls)),
        )
        shipment = await service.create_shipment("WT-7", "disp-1", ShippingProvider.SHIPLOGIC)
        await service.update_status(str(shipment.id), ShipmentStatus.READY_FOR_SHIPPING)

        updated = await service.generate_label(str(shipment.id), label_request())

        assert updated.status == ShipmentStatus.LABEL_GENERATED
        assert updated.tracking_number == "WT99"
        assert updated.label_url == "https://labels.test/99.pdf"
        assert updated.courier_shipment_id == "99"
        assert json.loads(calls[0].content)["customer_reference"] == "WT-7"

    async def test_wrong_state_never_calls_courier(self) -> None:
        calls: list[httpx.Request] = []
        service = ShipmentService(
            repository=ShipmentRepository(),
            courier_factory=make_factory(courier_handler(calls)),
        )
        shipment = await service.create_shipment("WT-7", "disp-1", ShippingProvider.SHIPLOGIC)

        with pytest.raises(InvalidTransitionError):
            await service.generate_label(str(shipment.id), label_request())
        assert calls == []

    async def test_driver_shipment_has_no_label(self) -> None:
        calls: list[httpx.Request] = []
        service = ShipmentService(
            repository=ShipmentRepository(),
            courier_factory=make_factory(courier_handler(calls)),
        )
        shipment = await service.create_shipment("WT-7", "disp-1", ShippingProvider.IN_HOUSE)

        with pytest.raises(InvalidTransitionError):
            await service.generate_label(str(shipment.id), label_request())
        assert calls == []

    async def test_courier_failure_keeps_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "down"})

        service = ShipmentService(
            repository=ShipmentRepository(),
            courier_factory=make_factory(handler),
        )
        shipment = await service.create_shipment("WT-7", "disp-1", ShippingProvider.SHIPLOGIC)
        await service.update_status(str(shipment.id), ShipmentStatus.READY_FOR_SHIPPING)

        with pytest.raises(CourierClientError):
            await service.generate_label(str(shipment.id), label_request())

        assert shipment.status == ShipmentStatus.READY_FOR_SHIPPING
        assert shipment.tracking_number is None

    async def test_second_label_rejected_without_booking(self) -> None:
        calls: list[httpx.Request] = []
        service = ShipmentService(
            repository=ShipmentRepository(),
            courier_factory=make_factory(courier_handler(calls)),
        )
        shipment = await service.create_shipment("WT-7", "disp-1", ShippingProvider.SHIPLOGIC)
        await service.update_status(str(shipment.id), ShipmentStatus.READY_FOR_SHIPPING)
        await service.generate_label(str(shipment.id), label_request())
        booked = len(calls)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.generate_label(str(shipment.id), label_request())

        assert exc_info.value.error_code == "INVALID_TRANSITION"
        assert len(calls) == booked
        assert shipment.tracking_number == "WT99"

    async def test_concurrent_requests_book_once(self) -> None:
        bookings: list[int] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.01)
            if request.url.path == "/v2/shipments":
                bookings.append(len(bookings) + 1)
                number = bookings[-1]
                return httpx.Response(
                    200, json={"id": number, "short_tracking_reference": f"T{number}"}
                )
            return httpx.Response(200, json={"url": "https://labels.test/label.pdf"})

        repository = ShipmentRepository()
        first = ShipmentService(repository=repository, courier_factory=make_factory(handler))
        second = ShipmentService(repository=repository, courier_factory=make_factory(handler))
        shipment = await first.create_shipment("WT-7", "disp-1", ShippingProvider.SHIPLOGIC)
        await first.update_status(str(shipment.id), ShipmentStatus.READY_FOR_SHIPPING)

        results = await asyncio.gather(
            first.generate_label(str(shipment.id), label_request()),
            second.generate_label(str(shipment.id), label_request()),
            return_exceptions=True,
        )

        assert bookings == [1]
        assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1
        assert shipment.tracking_number == "T1"
        assert shipment.status == ShipmentStatus.LABEL_GENERATED

"""Shipment application service.

Orchestrates the shipment lifecycle:
- Creating shipments for orders
- Applying status changes through the delivery state machine
- Generating courier labels
"""

import asyncio

import structlog

from wellnesstree.domain.entities import Shipment, ShippingProvider
from wellnesstree.domain.exceptions import DomainError, ShipmentNotFoundError
from wellnesstree.domain.state_machines import ShipmentStatus
from wellnesstree.domain.value_objects import ShipmentId
from wellnesstree.infrastructure.courier_client import (
    CourierClientFactory,
    ShipmentRequest,
)

logger = structlog.get_logger()


# ============================================================================
# In-Memory Shipment Repository
# ============================================================================


class ShipmentRepository:
    """In-memory repository for shipments.

    In production, this would be replaced with database persistence.
    """

    def __init__(self) -> None:
        self._shipments: dict[str, Shipment] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, shipment_id: str) -> asyncio.Lock:
        """Lock serializing courier bookings for one shipment."""
        return self._locks.setdefault(shipment_id, asyncio.Lock())

    def save(self, shipment: Shipment) -> None:
        """Save a shipment."""
        self._shipments[str(shipment.id)] = shipment

    def get(self, shipment_id: str) -> Shipment | None:
        """Get shipment by ID."""
        return self._shipments.get(shipment_id)

    def list_all(
        self,
        page: int = 1,
        page_size: int = 20,
        status: ShipmentStatus | None = None,
        order_id: str | None = None,
        dispensary_id: str | None = None,
    ) -> tuple[list[Shipment], int]:
        """List shipments with pagination and filtering."""
        shipments = list(self._shipments.values())

        if status:
            shipments = [s for s in shipments if s.status == status]
        if order_id:
            shipments = [s for s in shipments if s.order_id == order_id]
        if dispensary_id:
            shipments = [s for s in shipments if s.dispensary_id == dispensary_id]

        shipments.sort(key=lambda s: s.created_at, reverse=True)

        total = len(shipments)
        start = (page - 1) * page_size
        return shipments[start : start + page_size], total


# Global repository instance
_shipment_repo: ShipmentRepository | None = None


def get_shipment_repository() -> ShipmentRepository:
    """Get shipment repository singleton."""
    global _shipment_repo
    if _shipment_repo is None:
        _shipment_repo = ShipmentRepository()
    return _shipment_repo


def reset_shipment_repository() -> None:
    """Reset shipment repository (for testing)."""
    global _shipment_repo
    _shipment_repo = ShipmentRepository()


# ============================================================================
# Shipment Service
# ============================================================================


class ShipmentService:
    """Application service for managing shipments.

    Status changes always go through ``Shipment.transition_to``; the
    service only loads, saves and logs.
    """

    def __init__(
        self,
        repository: ShipmentRepository | None = None,
        courier_factory: CourierClientFactory | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repository: Shipment repository.
            courier_factory: Courier client factory for label generation.
            request_id: Request ID for correlation.
        """
        self.repository = repository or get_shipment_repository()
        self.courier_factory = courier_factory
        self.request_id = request_id

    def _load(self, shipment_id: str) -> Shipment:
        shipment = self.repository.get(shipment_id)
        if shipment is None:
            raise ShipmentNotFoundError(shipment_id)
        return shipment

    def _publish(self, shipment: Shipment) -> None:
        for event in shipment.collect_events():
            logger.info(
                "Shipment event",
                event_type=event.event_type,
                shipment_id=str(shipment.id),
                payload=event.payload(),
                request_id=self.request_id,
            )

    async def create_shipment(
        self,
        order_id: str,
        dispensary_id: str,
        provider: ShippingProvider,
    ) -> Shipment:
        """Create a pending shipment for an order.

        Args:
            order_id: Order the shipment belongs to.
            dispensary_id: Dispensary shipping the order.
            provider: Shipping provider.

        Returns:
            The created shipment.
        """
        shipment = Shipment.create(
            order_id=order_id,
            dispensary_id=dispensary_id,
            provider=provider,
            shipment_id=ShipmentId.generate(),
        )
        self.repository.save(shipment)

        logger.info(
            "Shipment created",
            shipment_id=str(shipment.id),
            order_id=order_id,
            provider=provider.value,
            request_id=self.request_id,
        )
        self._publish(shipment)
        return shipment

    async def get_shipment(self, shipment_id: str) -> Shipment:
        """Get a shipment by ID.

        Raises:
            ShipmentNotFoundError: If the shipment does not exist.
        """
        return self._load(shipment_id)

    async def list_shipments(
        self,
        page: int = 1,
        page_size: int = 20,
        status: ShipmentStatus | None = None,
        order_id: str | None = None,
        dispensary_id: str | None = None,
    ) -> tuple[list[Shipment], int]:
        """List shipments with pagination and filtering."""
        return self.repository.list_all(
            page=page,
            page_size=page_size,
            status=status,
            order_id=order_id,
            dispensary_id=dispensary_id,
        )

    async def allowed_transitions(self, shipment_id: str) -> list[ShipmentStatus]:
        """Statuses the shipment can move to next, for its delivery mode."""
        return self._load(shipment_id).allowed_transitions()

    async def update_status(
        self,
        shipment_id: str,
        status: ShipmentStatus,
        actor: str = "system",
        confirmed: bool = False,
        message: str | None = None,
        location: str | None = None,
    ) -> Shipment:
        """Apply a status change to a shipment.

        Args:
            shipment_id: Shipment identifier.
            status: Requested status.
            actor: Who requested the change.
            confirmed: Whether a high-impact change was confirmed.
            message: Optional history note.
            location: Optional location for the history entry.

        Returns:
            The shipment after the change. A same-status request leaves it untouched.

        Raises:
            ShipmentNotFoundError: If the shipment does not exist.
            InvalidTransitionError: If the transition is not allowed.
            DeliveryModeMismatchError: If the status belongs to the other delivery mode.
            ConfirmationRequiredError: If confirmation is required and missing.
        """
        shipment = self._load(shipment_id)
        previous = shipment.status

        try:
            changed = shipment.transition_to(
                status,
                actor=actor,
                confirmed=confirmed,
                message=message,
                location=location,
            )
        except DomainError as e:
            logger.warning(
                "Shipment status change rejected",
                shipment_id=shipment_id,
                current_status=previous.value,
                attempted_status=status.value,
                error=str(e),
                request_id=self.request_id,
            )
            raise

        if changed:
            self.repository.save(shipment)
            logger.info(
                "Shipment status updated",
                shipment_id=shipment_id,
                from_status=previous.value,
                to_status=status.value,
                actor=actor,
                request_id=self.request_id,
            )
            self._publish(shipment)
        return shipment

    async def generate_label(self, shipment_id: str, request: ShipmentRequest) -> Shipment:
        """Book the shipment with its courier and attach the label.

        The transition is checked before the courier is called, so a
        shipment in the wrong state never creates a courier booking.
        Check, booking and attach run under the shipment's lock, so
        concurrent requests book the courier at most once.

        Raises:
            ShipmentNotFoundError: If the shipment does not exist.
            InvalidTransitionError: If the shipment is not ready for shipping.
            CourierClientError: If the courier call fails.
        """
        shipment = self._load(shipment_id)

        async with self.repository.lock(shipment_id):
            shipment.check_transition(ShipmentStatus.LABEL_GENERATED)

            factory = self.courier_factory or CourierClientFactory(request_id=self.request_id)
            if request.customer_reference is None:
                request.customer_reference = shipment.order_id

            async with factory.get_client(shipment.provider.value) as client:
                label = await client.create_label(request)

            shipment.attach_label(
                tracking_number=label.tracking_reference,
                label_url=label.label_url,
                courier_shipment_id=label.courier_shipment_id,
            )
            self.repository.save(shipment)
        self._publish(shipment)
        return shipment


def get_shipment_service(
    request_id: str | None = None,
    courier_factory: CourierClientFactory | None = None,
) -> ShipmentService:
    """Get shipment service bound to the shared repository."""
    return ShipmentService(courier_factory=courier_factory, request_id=request_id)

"""Domain entities.

- **Shipment**: the delivery sub-record of an order, moved through
  its delivery-mode chain by validated transitions only.
- **CreditAccount**: a user's credit balance as read inside a
  ledger transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from wellnesstree.domain.base import AggregateRoot
from wellnesstree.domain.events import (
    ShipmentCreated,
    ShipmentLabelGenerated,
    ShipmentStatusChanged,
)
from wellnesstree.domain.exceptions import (
    ConfirmationRequiredError,
    DeliveryModeMismatchError,
    InvalidArgumentError,
    InvalidTransitionError,
)
from wellnesstree.domain.state_machines import (
    DeliveryMode,
    ShipmentStatus,
    confirmation_prompt,
    transition_error_message,
)
from wellnesstree.domain.value_objects import ShipmentId


class ShippingProvider(str, Enum):
    """Who carries the parcel."""

    SHIPLOGIC = "shiplogic"
    PUDO = "pudo"
    IN_HOUSE = "in_house"

    @property
    def delivery_mode(self) -> DeliveryMode:
        if self == ShippingProvider.IN_HOUSE:
            return DeliveryMode.DRIVER
        return DeliveryMode.COURIER


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One applied status change."""

    from_status: ShipmentStatus | None
    to_status: ShipmentStatus
    actor: str | None = None
    message: str | None = None
    location: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Shipment Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class Shipment(AggregateRoot[ShipmentId]):
    """Shipment aggregate root.

    Belongs to exactly one order. Created ``pending``, never deleted;
    it ends in ``delivered``, ``cancelled`` or ``returned``.

    Attributes:
        id: Unique shipment identifier.
        order_id: Order this shipment delivers.
        dispensary_id: Dispensary shipping the order.
        provider: Shipping provider; fixes the delivery mode.
        status: Current shipment status.
        status_history: Applied status changes, oldest first.
        tracking_number: Courier tracking reference.
        label_url: Courier label download URL.
        courier_shipment_id: Courier-side shipment identifier.
    """

    id: ShipmentId
    order_id: str
    dispensary_id: str
    provider: ShippingProvider
    status: ShipmentStatus = ShipmentStatus.PENDING
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    tracking_number: str | None = None
    label_url: str | None = None
    courier_shipment_id: str | None = None
    delivered_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
    returned_at: datetime | None = None

    @classmethod
    def create(
        cls,
        order_id: str,
        dispensary_id: str,
        provider: ShippingProvider,
        shipment_id: ShipmentId | None = None,
    ) -> "Shipment":
        """Create a pending shipment for an order.

        Args:
            order_id: Order the shipment belongs to.
            dispensary_id: Dispensary shipping the order.
            provider: Shipping provider.
            shipment_id: Optional pre-generated shipment ID.

        Returns:
            New Shipment in ``pending``.
        """
        if not order_id or not order_id.strip():
            raise InvalidArgumentError("order_id", order_id, "shipment must belong to an order")

        shipment = cls(
            id=shipment_id or ShipmentId.generate(),
            order_id=order_id,
            dispensary_id=dispensary_id,
            provider=provider,
        )
        shipment.status_history.append(
            StatusHistoryEntry(
                from_status=None,
                to_status=ShipmentStatus.PENDING,
                actor="system",
                message="Shipment created",
            )
        )
        shipment._record_event(
            ShipmentCreated(
                aggregate_id=str(shipment.id),
                aggregate_type="Shipment",
                shipment_id=str(shipment.id),
                order_id=order_id,
                dispensary_id=dispensary_id,
                provider=provider.value,
            )
        )
        return shipment

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def delivery_mode(self) -> DeliveryMode:
        return self.provider.delivery_mode

    def allowed_transitions(self) -> list[ShipmentStatus]:
        """Statuses this shipment can move to, restricted to its delivery mode."""
        return [
            status
            for status in self.status.allowed_transitions()
            if status.delivery_mode in (None, self.delivery_mode)
        ]

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def check_transition(self, target: ShipmentStatus) -> None:
        """Raise if this shipment cannot move to ``target``.

        The current status is not a valid target here; only
        ``transition_to`` treats it as a no-op.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
            DeliveryModeMismatchError: If target belongs to the other delivery mode.
        """
        allowed = self.allowed_transitions()
        if target in allowed:
            return

        allowed_values = [s.value for s in allowed]
        if target != self.status and self.status.can_transition_to(target):
            raise DeliveryModeMismatchError(
                shipment_id=str(self.id),
                delivery_mode=self.delivery_mode.value,
                current_status=self.status.value,
                attempted_status=target.value,
                allowed_next=allowed_values,
            )
        raise InvalidTransitionError(
            current_status=self.status.value,
            attempted_status=target.value,
            allowed_next=allowed_values,
            message=transition_error_message(self.status, target),
            shipment_id=str(self.id),
        )

    def transition_to(
        self,
        target: ShipmentStatus,
        actor: str = "system",
        confirmed: bool = False,
        message: str | None = None,
        location: str | None = None,
    ) -> bool:
        """Move the shipment to a new status.

        Args:
            target: Requested status.
            actor: Who requested the change.
            confirmed: Whether an operator confirmed a high-impact change.
            message: Optional note stored in the history.
            location: Optional location stored in the history.

        Returns:
            True if the status changed, False for a same-status no-op.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
            DeliveryModeMismatchError: If target belongs to the other delivery mode.
            ConfirmationRequiredError: If target needs confirmation and none was given.
        """
        if target == self.status:
            return False

        self.check_transition(target)

        if target.requires_confirmation() and not confirmed:
            raise ConfirmationRequiredError(
                shipment_id=str(self.id),
                attempted_status=target.value,
                prompt=confirmation_prompt(self.status, target, self.order_id),
            )

        previous = self.status
        now = datetime.now(timezone.utc)
        self.status = target

        if target == ShipmentStatus.DELIVERED:
            self.delivered_at = now
        elif target == ShipmentStatus.FAILED:
            self.failed_at = now
        elif target == ShipmentStatus.CANCELLED:
            self.cancelled_at = now
        elif target == ShipmentStatus.RETURNED:
            self.returned_at = now

        self.status_history.append(
            StatusHistoryEntry(
                from_status=previous,
                to_status=target,
                actor=actor,
                message=message,
                location=location,
                created_at=now,
            )
        )
        self._touch()
        self._record_event(
            ShipmentStatusChanged(
                aggregate_id=str(self.id),
                aggregate_type="Shipment",
                shipment_id=str(self.id),
                from_status=previous.value,
                to_status=target.value,
                actor=actor,
                confirmed=confirmed,
            )
        )
        return True

    def attach_label(
        self,
        tracking_number: str,
        label_url: str | None,
        courier_shipment_id: str | None = None,
        actor: str = "system",
    ) -> None:
        """Store courier label details and move to ``label_generated``.

        An already-labelled shipment is rejected and keeps its label.

        Raises:
            InvalidTransitionError: If the shipment is not ready for shipping.
        """
        self.check_transition(ShipmentStatus.LABEL_GENERATED)
        self.transition_to(
            ShipmentStatus.LABEL_GENERATED,
            actor=actor,
            message=f"Label generated, tracking {tracking_number}",
        )
        self.tracking_number = tracking_number
        self.label_url = label_url
        self.courier_shipment_id = courier_shipment_id
        self._record_event(
            ShipmentLabelGenerated(
                aggregate_id=str(self.id),
                aggregate_type="Shipment",
                shipment_id=str(self.id),
                tracking_number=tracking_number,
                label_url=label_url,
            )
        )


# ============================================================================
# Credit Account
# ============================================================================


@dataclass
class CreditAccount:
    """A user's credit balance.

    Only read and written through a ledger transaction.

    Attributes:
        user_id: Owning user.
        balance: Current credit balance.
        dispensary_id: Dispensary the user belongs to, if any.
    """

    user_id: str
    balance: int
    dispensary_id: str | None = None

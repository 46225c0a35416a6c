"""Shipment status state machine.

Defines which shipment status transitions are legal for the two
delivery modes (third-party courier and in-house driver), which
statuses need operator confirmation, and the labels shown for each
status. Status values are persisted and consumed downstream, so
renaming one is a breaking change.
"""

from enum import Enum

from wellnesstree.domain.exceptions import InvalidArgumentError, InvalidTransitionError


class DeliveryMode(str, Enum):
    """How a shipment reaches the customer."""

    COURIER = "courier"
    DRIVER = "driver"


class ShipmentStatus(str, Enum):
    """Shipment lifecycle states.

    State diagram::

                           ┌──► READY_FOR_SHIPPING ─► LABEL_GENERATED ─► IN_TRANSIT ─┐
                           │      (courier)                                 │        │
        PENDING ───────────┤                                   OUT_FOR_DELIVERY      │
          ▲                │                                        │                │
          │                └──► READY_FOR_PICKUP ─► CLAIMED_BY_DRIVER ─► PICKED_UP   │
          │ retry                 (driver)                              │            │
          │                                     EN_ROUTE ─► NEARBY ─► ARRIVED        │
          │                                                             │            ▼
        FAILED ◄──── (in_transit, out_for_delivery, en_route,      DELIVERED ◄───────┘
          │           nearby, arrived)
          ▼
        RETURNED            CANCELLED ◄── pre-dispatch states

    DELIVERED, CANCELLED and RETURNED are terminal.
    """

    PENDING = "pending"

    # Courier chain
    READY_FOR_SHIPPING = "ready_for_shipping"
    LABEL_GENERATED = "label_generated"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"

    # Driver chain
    READY_FOR_PICKUP = "ready_for_pickup"
    CLAIMED_BY_DRIVER = "claimed_by_driver"
    PICKED_UP = "picked_up"
    EN_ROUTE = "en_route"
    NEARBY = "nearby"
    ARRIVED = "arrived"

    # Shared outcomes
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RETURNED = "returned"

    def can_transition_to(self, target: "ShipmentStatus") -> bool:
        """Check if transition to target state is valid.

        A transition to the current status is always valid; it is a
        no-op rather than an error.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        if target == self:
            return True
        return target in _SHIPMENT_TRANSITIONS[self]

    def allowed_transitions(self) -> list["ShipmentStatus"]:
        """Get valid target states in declaration order.

        Returns:
            Statuses reachable in one step; empty for terminal states.
        """
        allowed = _SHIPMENT_TRANSITIONS[self]
        return [status for status in ShipmentStatus if status in allowed]

    def is_terminal(self) -> bool:
        return not _SHIPMENT_TRANSITIONS[self]

    def requires_confirmation(self) -> bool:
        """Check if moving into this status must be confirmed by an operator.

        These statuses are never applied automatically from background
        tracking sync.
        """
        return self in _CONFIRMATION_REQUIRED

    @property
    def delivery_mode(self) -> DeliveryMode | None:
        """Delivery mode this status belongs to, None for shared statuses."""
        if self in _COURIER_CHAIN:
            return DeliveryMode.COURIER
        if self in _DRIVER_CHAIN:
            return DeliveryMode.DRIVER
        return None

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]


# Shipment state transitions (defined outside enum to avoid Enum restrictions)
_SHIPMENT_TRANSITIONS: dict[ShipmentStatus, frozenset[ShipmentStatus]] = {
    ShipmentStatus.PENDING: frozenset({
        ShipmentStatus.READY_FOR_SHIPPING,
        ShipmentStatus.READY_FOR_PICKUP,
        ShipmentStatus.CANCELLED,
    }),
    # Courier
    ShipmentStatus.READY_FOR_SHIPPING: frozenset({
        ShipmentStatus.LABEL_GENERATED,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.LABEL_GENERATED: frozenset({
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.IN_TRANSIT: frozenset({
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.DELIVERED,  # courier scans can skip out_for_delivery
        ShipmentStatus.FAILED,
    }),
    ShipmentStatus.OUT_FOR_DELIVERY: frozenset({
        ShipmentStatus.DELIVERED,
        ShipmentStatus.FAILED,
    }),
    # Driver
    ShipmentStatus.READY_FOR_PICKUP: frozenset({
        ShipmentStatus.CLAIMED_BY_DRIVER,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.CLAIMED_BY_DRIVER: frozenset({
        ShipmentStatus.PICKED_UP,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.PICKED_UP: frozenset({
        ShipmentStatus.EN_ROUTE,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.EN_ROUTE: frozenset({ShipmentStatus.NEARBY, ShipmentStatus.FAILED}),
    ShipmentStatus.NEARBY: frozenset({ShipmentStatus.ARRIVED, ShipmentStatus.FAILED}),
    ShipmentStatus.ARRIVED: frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.FAILED}),
    # Shared
    ShipmentStatus.FAILED: frozenset({
        ShipmentStatus.RETURNED,
        ShipmentStatus.PENDING,  # retry delivery
    }),
    ShipmentStatus.DELIVERED: frozenset(),  # Terminal state
    ShipmentStatus.CANCELLED: frozenset(),  # Terminal state
    ShipmentStatus.RETURNED: frozenset(),  # Terminal state
}

_COURIER_CHAIN = frozenset({
    ShipmentStatus.READY_FOR_SHIPPING,
    ShipmentStatus.LABEL_GENERATED,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.OUT_FOR_DELIVERY,
})

_DRIVER_CHAIN = frozenset({
    ShipmentStatus.READY_FOR_PICKUP,
    ShipmentStatus.CLAIMED_BY_DRIVER,
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.EN_ROUTE,
    ShipmentStatus.NEARBY,
    ShipmentStatus.ARRIVED,
})

_CONFIRMATION_REQUIRED = frozenset({
    ShipmentStatus.DELIVERED,
    ShipmentStatus.FAILED,
    ShipmentStatus.CANCELLED,
    ShipmentStatus.RETURNED,
})

_STATUS_LABELS: dict[ShipmentStatus, str] = {
    ShipmentStatus.PENDING: "Pending",
    ShipmentStatus.READY_FOR_SHIPPING: "Ready for Shipping",
    ShipmentStatus.LABEL_GENERATED: "Label Generated",
    ShipmentStatus.IN_TRANSIT: "In Transit",
    ShipmentStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    ShipmentStatus.READY_FOR_PICKUP: "Ready for Pickup",
    ShipmentStatus.CLAIMED_BY_DRIVER: "Claimed by Driver",
    ShipmentStatus.PICKED_UP: "Picked Up",
    ShipmentStatus.EN_ROUTE: "En Route",
    ShipmentStatus.NEARBY: "Nearby",
    ShipmentStatus.ARRIVED: "Arrived",
    ShipmentStatus.DELIVERED: "Delivered",
    ShipmentStatus.FAILED: "Failed",
    ShipmentStatus.CANCELLED: "Cancelled",
    ShipmentStatus.RETURNED: "Returned",
}

_STATUS_DESCRIPTIONS: dict[ShipmentStatus, str] = {
    ShipmentStatus.PENDING: "Order is awaiting processing",
    ShipmentStatus.READY_FOR_SHIPPING: "Order is ready to ship - generate labels to proceed",
    ShipmentStatus.LABEL_GENERATED: "Shipping label created - waiting for courier collection",
    ShipmentStatus.IN_TRANSIT: "Package is with the courier and on its way",
    ShipmentStatus.OUT_FOR_DELIVERY: "Package is out for delivery today",
    ShipmentStatus.READY_FOR_PICKUP: "Order is packed and waiting for a driver",
    ShipmentStatus.CLAIMED_BY_DRIVER: "A driver has accepted this delivery",
    ShipmentStatus.PICKED_UP: "Driver has collected the order from the dispensary",
    ShipmentStatus.EN_ROUTE: "Driver is on the way to the customer",
    ShipmentStatus.NEARBY: "Driver is within 1km of the customer",
    ShipmentStatus.ARRIVED: "Driver has arrived at the delivery address",
    ShipmentStatus.DELIVERED: "Package has been successfully delivered",
    ShipmentStatus.FAILED: "Delivery attempt failed - requires attention",
    ShipmentStatus.CANCELLED: "Shipment was cancelled before dispatch",
    ShipmentStatus.RETURNED: "Package has been returned to sender",
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def parse_status(value: ShipmentStatus | str, argument: str = "status") -> ShipmentStatus:
    """Convert a wire status string to ``ShipmentStatus``.

    Raises:
        InvalidArgumentError: If the value is not a known status.
    """
    try:
        return ShipmentStatus(value)
    except ValueError as e:
        raise InvalidArgumentError(
            argument, value, f"must be one of {[s.value for s in ShipmentStatus]}"
        ) from e


def is_valid_transition(current: ShipmentStatus | str, target: ShipmentStatus | str) -> bool:
    """Check a transition against the adjacency table."""
    return parse_status(current, "current").can_transition_to(parse_status(target, "target"))


def get_allowed_next(current: ShipmentStatus | str) -> frozenset[ShipmentStatus]:
    """Get the statuses reachable from ``current`` in one step.

    Never None; terminal states give an empty set.
    """
    return _SHIPMENT_TRANSITIONS[parse_status(current, "current")]


def requires_confirmation(status: ShipmentStatus | str) -> bool:
    return parse_status(status).requires_confirmation()


def transition_error_message(current: ShipmentStatus, target: ShipmentStatus) -> str:
    """Build an operator-facing message for a rejected transition.

    Args:
        current: Current status.
        target: Attempted status.

    Returns:
        Message naming what was wrong and what would have been allowed.
    """
    if current == target:
        return "Status is already set to this value"

    allowed = current.allowed_transitions()
    if not allowed:
        return f"Cannot change status from {current.label} - this is a terminal state"

    allowed_labels = ", ".join(status.label for status in allowed)
    return (
        f"Cannot transition from {current.label} to {target.label}. "
        f"Allowed transitions: {allowed_labels}"
    )


def confirmation_prompt(
    current: ShipmentStatus,
    target: ShipmentStatus,
    order_number: str,
) -> dict[str, str]:
    """Build the confirmation dialog text for a status change.

    Args:
        current: Current status.
        target: Status being confirmed.
        order_number: Order reference shown to the operator.

    Returns:
        Dict with ``title``, ``description`` and ``confirm_text``.
    """
    if target == ShipmentStatus.DELIVERED:
        return {
            "title": "Confirm Delivery",
            "description": (
                f"Are you sure order {order_number} has been delivered? "
                "This action should only be taken when delivery is confirmed."
            ),
            "confirm_text": "Confirm Delivery",
        }
    if target == ShipmentStatus.FAILED:
        return {
            "title": "Mark as Failed",
            "description": (
                f"Mark order {order_number} as failed? "
                "You may need to follow up with the customer or retry delivery."
            ),
            "confirm_text": "Mark Failed",
        }
    if target == ShipmentStatus.RETURNED:
        return {
            "title": "Mark as Returned",
            "description": f"Confirm that order {order_number} has been returned to sender?",
            "confirm_text": "Confirm Return",
        }
    if target == ShipmentStatus.CANCELLED:
        return {
            "title": "Cancel Shipment",
            "description": (
                f"Cancel the shipment for order {order_number}? "
                f"It is currently {current.label} and cannot be reopened."
            ),
            "confirm_text": "Cancel Shipment",
        }
    return {
        "title": f"Update to {target.label}",
        "description": f"Update order {order_number} status to {target.label}?",
        "confirm_text": "Confirm",
    }


def validate_shipment_transition(
    shipment_id: str | None,
    current_status: ShipmentStatus | str,
    target_status: ShipmentStatus | str,
) -> None:
    """Validate and raise if a shipment status transition is invalid.

    Args:
        shipment_id: Shipment identifier for the error payload.
        current_status: Current shipment status.
        target_status: Target shipment status.

    Raises:
        InvalidTransitionError: If the transition is not in the table.
    """
    current_status = parse_status(current_status, "current_status")
    target_status = parse_status(target_status, "target_status")
    if not current_status.can_transition_to(target_status):
        raise InvalidTransitionError(
            current_status=current_status.value,
            attempted_status=target_status.value,
            allowed_next=[s.value for s in current_status.allowed_transitions()],
            message=transition_error_message(current_status, target_status),
            shipment_id=shipment_id,
        )

"""Domain events.

Emitted by shipments and the credit ledger and written to the
structured log as an audit trail. Push notifications and analytics
consume them downstream.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from wellnesstree.domain.base import DomainEvent


# ============================================================================
# Shipment Events
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class ShipmentCreated(DomainEvent):
    """A shipment was created for an order."""

    event_type: ClassVar[str] = "shipment.created"

    shipment_id: str
    order_id: str
    dispensary_id: str
    provider: str


@dataclass(frozen=True, kw_only=True)
class ShipmentStatusChanged(DomainEvent):
    """A shipment moved to a new status."""

    event_type: ClassVar[str] = "shipment.status_changed"

    shipment_id: str
    from_status: str
    to_status: str
    actor: str | None = None
    confirmed: bool = False


@dataclass(frozen=True, kw_only=True)
class ShipmentLabelGenerated(DomainEvent):
    """A courier label was attached to a shipment."""

    event_type: ClassVar[str] = "shipment.label_generated"

    shipment_id: str
    tracking_number: str
    label_url: str | None = None


# ============================================================================
# Credit Events
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class CreditsDeducted(DomainEvent):
    """A credit deduction committed.

    Free interactions are recorded with ``amount == 0``.
    """

    event_type: ClassVar[str] = "credits.deducted"

    user_id: str
    log_entry_id: str
    amount: int
    was_free: bool
    new_balance: int
    metadata: dict[str, Any] = field(default_factory=dict)

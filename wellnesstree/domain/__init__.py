"""Domain layer - pricing, shipment state machine, entities, events.

This module exports the core domain building blocks:

- **Pricing**: seller price → base, commission, tax, customer price
- **State Machines**: shipment delivery status transitions
- **Entities**: Shipment, CreditAccount
- **Value Objects**: Money, commission tiers and rates, typed IDs
- **Exceptions**: typed failures with stable error codes

Example usage:
    from wellnesstree.domain import CommissionTier, calculate_price_breakdown

    breakdown = calculate_price_breakdown(115, tax_rate=15, tier=CommissionTier.STANDARD)
    breakdown.base_price == 100                  # True
    breakdown.final_price == Decimal("143.75")  # True
"""

# Base classes
from wellnesstree.domain.base import AggregateRoot, DomainEvent, ValueObject

# Entities
from wellnesstree.domain.entities import (
    CreditAccount,
    Shipment,
    ShippingProvider,
    StatusHistoryEntry,
)

# Domain Events
from wellnesstree.domain.events import (
    CreditsDeducted,
    ShipmentCreated,
    ShipmentLabelGenerated,
    ShipmentStatusChanged,
)

# Exceptions
from wellnesstree.domain.exceptions import (
    ConfirmationRequiredError,
    DeliveryModeMismatchError,
    DomainError,
    InsufficientBalanceError,
    InvalidArgumentError,
    InvalidTransitionError,
    ShipmentNotFoundError,
    TransactionAbortedError,
    UserNotFoundError,
)

# Pricing
from wellnesstree.domain.pricing import (
    CartItem,
    CheckoutLineItem,
    CheckoutSummary,
    PriceBreakdown,
    calculate_checkout_summary,
    calculate_commission,
    calculate_price_breakdown,
    calculate_tax,
    extract_base_price,
    format_price,
    format_tax_rate,
    get_display_price,
    round_money,
)

# State Machines
from wellnesstree.domain.state_machines import (
    DeliveryMode,
    ShipmentStatus,
    confirmation_prompt,
    get_allowed_next,
    is_valid_transition,
    parse_status,
    requires_confirmation,
    transition_error_message,
    validate_shipment_transition,
)

# Value Objects
from wellnesstree.domain.value_objects import (
    DEFAULT_COMMISSION_RATES,
    CommissionRates,
    CommissionTier,
    InteractionLogEntry,
    Money,
    ShipmentId,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "ValueObject",
    # Entities
    "CreditAccount",
    "Shipment",
    "ShippingProvider",
    "StatusHistoryEntry",
    # Events
    "CreditsDeducted",
    "ShipmentCreated",
    "ShipmentLabelGenerated",
    "ShipmentStatusChanged",
    # Exceptions
    "ConfirmationRequiredError",
    "DeliveryModeMismatchError",
    "DomainError",
    "InsufficientBalanceError",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "ShipmentNotFoundError",
    "TransactionAbortedError",
    "UserNotFoundError",
    # Pricing
    "CartItem",
    "CheckoutLineItem",
    "CheckoutSummary",
    "PriceBreakdown",
    "calculate_checkout_summary",
    "calculate_commission",
    "calculate_price_breakdown",
    "calculate_tax",
    "extract_base_price",
    "format_price",
    "format_tax_rate",
    "get_display_price",
    "round_money",
    # State Machines
    "DeliveryMode",
    "ShipmentStatus",
    "confirmation_prompt",
    "get_allowed_next",
    "is_valid_transition",
    "parse_status",
    "requires_confirmation",
    "transition_error_message",
    "validate_shipment_transition",
    # Value Objects
    "DEFAULT_COMMISSION_RATES",
    "CommissionRates",
    "CommissionTier",
    "InteractionLogEntry",
    "Money",
    "ShipmentId",
]

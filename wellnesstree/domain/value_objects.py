"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Self
from uuid import UUID, uuid4

from wellnesstree.domain.base import ValueObject
from wellnesstree.domain.exceptions import InvalidArgumentError


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class ShipmentId(ValueObject):
    """Strongly-typed shipment identifier."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new shipment ID.

        Returns:
            New ShipmentId with random UUID.
        """
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


# ============================================================================
# Money Value Object
# ============================================================================


CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {"ZAR": "R", "USD": "$", "EUR": "€", "GBP": "£"}


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents a display-ready monetary value.

    Pricing math runs on unrounded ``Decimal`` values; ``Money`` is
    what those values become once they cross the display boundary.
    Stored in the smallest currency unit (cents).

    Attributes:
        amount_cents: Amount in smallest currency unit (e.g., cents).
        currency: ISO 4217 currency code (e.g., 'ZAR').
    """

    amount_cents: int
    currency: str = "ZAR"

    def __post_init__(self) -> None:
        if self.amount_cents < 0:
            raise InvalidArgumentError("amount_cents", self.amount_cents, "must not be negative")
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def from_decimal(cls, amount: Decimal, currency: str = "ZAR") -> Self:
        """Create money from a decimal amount, rounding half up to cents.

        Args:
            amount: Decimal amount in major units (e.g., rand).
            currency: Currency code.

        Returns:
            Money instance.
        """
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return cls(amount_cents=cents, currency=currency)

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units."""
        return (Decimal(self.amount_cents) / 100).quantize(CENT)

    def __str__(self) -> str:
        """Return formatted string representation (e.g. 'R143.75')."""
        symbol = CURRENCY_SYMBOLS.get(self.currency, "")
        return f"{symbol}{self.to_decimal():.2f}"


# ============================================================================
# Commission
# ============================================================================


class CommissionTier(str, Enum):
    """Platform commission tier applied to a sale.

    STANDARD is the default marketplace sale; POOL is an inter-seller
    product-pool transfer.
    """

    STANDARD = "standard"
    POOL = "pool"


@dataclass(frozen=True)
class CommissionRates(ValueObject):
    """Commission rate per tier, as fractions of the base price.

    Passed into the calculator explicitly so the rate used for every
    breakdown can be audited by the caller.

    Attributes:
        standard: Rate for standard marketplace sales.
        pool: Rate for product-pool transfers.
    """

    standard: Decimal = Decimal("0.25")
    pool: Decimal = Decimal("0.05")

    def __post_init__(self) -> None:
        for name in ("standard", "pool"):
            rate = Decimal(str(getattr(self, name)))
            if not rate.is_finite() or rate < 0:
                raise InvalidArgumentError(
                    f"{name} commission rate", rate, "must be a non-negative fraction"
                )
            object.__setattr__(self, name, rate)

    def rate_for(self, tier: CommissionTier) -> Decimal:
        """Get the rate for a commission tier.

        Args:
            tier: Commission tier.

        Returns:
            Commission rate as a fraction (0.25 means 25%).
        """
        if tier == CommissionTier.POOL:
            return self.pool
        return self.standard

    def as_dict(self) -> dict[str, Decimal]:
        return {CommissionTier.STANDARD.value: self.standard, CommissionTier.POOL.value: self.pool}


DEFAULT_COMMISSION_RATES = CommissionRates()


# ============================================================================
# Interaction Log Entry
# ============================================================================


@dataclass(frozen=True)
class InteractionLogEntry(ValueObject):
    """Immutable record of a credit-consuming interaction.

    Written in the same transaction as the balance change it
    describes. Free interactions are logged with ``amount == 0``.

    Attributes:
        id: Log entry identifier.
        user_id: User the interaction belongs to.
        amount: Credits actually deducted.
        was_free: Whether the interaction was free of charge.
        metadata: Caller-supplied context (e.g. advisor slug).
        dispensary_id: Dispensary the user belongs to, if any.
        timestamp: When the entry was written.
    """

    user_id: str
    amount: int
    was_free: bool
    metadata: dict[str, Any] = field(default_factory=dict)
    dispensary_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

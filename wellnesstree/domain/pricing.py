"""Price breakdown calculator.

A seller enters a price that already includes their tax. The platform
extracts the pre-tax base, adds its commission on that base, then
re-applies tax to get what the customer pays::

    seller_set_price ──extract tax──► base_price
                                        │ + commission (base * tier rate)
                                        ▼
                                  subtotal_before_tax
                                        │ + tax (subtotal * tax_rate / 100)
                                        ▼
                                    final_price

All arithmetic is ``Decimal`` and nothing is rounded along the chain,
so ``subtotal_before_tax == base_price + commission`` and
``final_price == subtotal_before_tax + tax`` hold exactly. Rounding to
cents happens only in ``round_money``/``format_price`` at the display
boundary.

Tax rates are always plain percentages: ``15`` means 15%.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from wellnesstree.domain.base import ValueObject
from wellnesstree.domain.exceptions import InvalidArgumentError
from wellnesstree.domain.value_objects import (
    CENT,
    DEFAULT_COMMISSION_RATES,
    CommissionRates,
    CommissionTier,
    Money,
)

Amount = Decimal | int | float | str

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MAX_TAX_RATE = Decimal("100")


# ============================================================================
# Input Normalization
# ============================================================================


def _to_decimal(value: Amount, argument: str) -> Decimal:
    """Convert an input amount to Decimal, going through str() for floats."""
    if isinstance(value, bool):
        raise InvalidArgumentError(argument, value, "must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidArgumentError(argument, value, "must be a number") from None
    if not result.is_finite():
        raise InvalidArgumentError(argument, value, "must be a finite number")
    return result


def _non_negative(value: Amount, argument: str) -> Decimal:
    result = _to_decimal(value, argument)
    if result < 0:
        raise InvalidArgumentError(argument, value, "must not be negative")
    return result


def _tax_rate(value: Amount) -> Decimal:
    rate = _non_negative(value, "tax_rate")
    if rate > MAX_TAX_RATE:
        raise InvalidArgumentError("tax_rate", value, "must be a percentage between 0 and 100")
    return rate


def _tier(value: CommissionTier | str) -> CommissionTier:
    try:
        return CommissionTier(value)
    except ValueError:
        allowed = [t.value for t in CommissionTier]
        raise InvalidArgumentError("tier", value, f"must be one of {allowed}") from None


# ============================================================================
# Result Types
# ============================================================================


@dataclass(frozen=True)
class PriceBreakdown(ValueObject):
    """Decomposition of one seller-set price.

    Attributes:
        seller_set_price: Tax-inclusive price the seller entered.
        base_price: Tax-exclusive price; what the seller earns.
        commission: Platform commission on the base price.
        commission_rate: Rate used for the commission (0.25 means 25%).
        subtotal_before_tax: base_price + commission.
        tax: Tax on the subtotal.
        tax_rate: Tax percentage (15 means 15%).
        final_price: subtotal_before_tax + tax; what the customer pays.
        tier: Commission tier applied.
    """

    seller_set_price: Decimal
    base_price: Decimal
    commission: Decimal
    commission_rate: Decimal
    subtotal_before_tax: Decimal
    tax: Decimal
    tax_rate: Decimal
    final_price: Decimal
    tier: CommissionTier = CommissionTier.STANDARD


@dataclass(frozen=True)
class CartItem(ValueObject):
    """A cart entry to be priced at checkout."""

    product_id: str
    product_name: str
    seller_set_price: Amount
    quantity: int = 1
    tier: CommissionTier = CommissionTier.STANDARD


@dataclass(frozen=True)
class CheckoutLineItem(ValueObject):
    """Priced cart entry.

    ``line_total`` is before tax; tax is applied once on the summary.
    """

    product_id: str
    product_name: str
    quantity: int
    seller_set_price: Decimal
    base_price: Decimal
    commission: Decimal
    subtotal_before_tax: Decimal
    line_total: Decimal
    tier: CommissionTier = CommissionTier.STANDARD


@dataclass(frozen=True)
class CheckoutSummary(ValueObject):
    """Checkout totals for a cart.

    The seller-earnings and platform-commission totals are internal
    bookkeeping and are left out of ``customer_view``.
    """

    items: tuple[CheckoutLineItem, ...]
    items_total: Decimal
    shipping: Decimal
    subtotal: Decimal
    tax: Decimal
    tax_rate: Decimal
    total: Decimal
    total_seller_earnings: Decimal = field(default=ZERO)
    total_platform_commission: Decimal = field(default=ZERO)

    def customer_view(self, currency: str = "ZAR") -> dict[str, Any]:
        """Render the customer-facing totals, rounded for display.

        Args:
            currency: Currency code used for formatting.

        Returns:
            Line items and totals without the commission split.
        """
        return {
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "unit_price": round_money(item.subtotal_before_tax),
                    "line_total": round_money(item.line_total),
                }
                for item in self.items
            ],
            "items_total": round_money(self.items_total),
            "shipping": round_money(self.shipping),
            "subtotal": round_money(self.subtotal),
            "tax": round_money(self.tax),
            "tax_rate": self.tax_rate,
            "total": round_money(self.total),
            "display_total": format_price(self.total, currency),
        }


# ============================================================================
# Calculator
# ============================================================================


def extract_base_price(seller_set_price: Amount, tax_rate: Amount) -> Decimal:
    """Strip tax out of a tax-inclusive seller price.

    Args:
        seller_set_price: Price entered by the seller, tax included.
        tax_rate: Tax percentage (15 means 15%).

    Returns:
        Tax-exclusive base price. Unchanged when the rate is zero.

    Raises:
        InvalidArgumentError: If price or rate is negative.
    """
    price = _non_negative(seller_set_price, "seller_set_price")
    rate = _tax_rate(tax_rate)
    if rate == 0:
        return price
    return price / (1 + rate / HUNDRED)


def calculate_commission(
    base_price: Amount,
    tier: CommissionTier | str = CommissionTier.STANDARD,
    rates: CommissionRates = DEFAULT_COMMISSION_RATES,
) -> Decimal:
    """Calculate platform commission on a base price.

    Args:
        base_price: Tax-exclusive price.
        tier: Commission tier.
        rates: Commission rate table.

    Returns:
        Unrounded commission amount.
    """
    base = _non_negative(base_price, "base_price")
    return base * rates.rate_for(_tier(tier))


def calculate_tax(amount: Amount, tax_rate: Amount) -> Decimal:
    """Calculate tax on an amount at a percentage rate."""
    value = _non_negative(amount, "amount")
    return value * (_tax_rate(tax_rate) / HUNDRED)


def calculate_price_breakdown(
    seller_set_price: Amount,
    tax_rate: Amount = 0,
    tier: CommissionTier | str = CommissionTier.STANDARD,
    rates: CommissionRates = DEFAULT_COMMISSION_RATES,
) -> PriceBreakdown:
    """Decompose a seller-set price into base, commission and tax.

    Same inputs always give the same breakdown.

    Args:
        seller_set_price: Price entered by the seller, tax included.
        tax_rate: Tax percentage (15 means 15%).
        tier: Commission tier (standard or pool).
        rates: Commission rate table.

    Returns:
        Full price breakdown.

    Raises:
        InvalidArgumentError: On negative or non-numeric input.
    """
    price = _non_negative(seller_set_price, "seller_set_price")
    rate = _tax_rate(tax_rate)
    commission_tier = _tier(tier)

    base_price = extract_base_price(price, rate)
    commission_rate = rates.rate_for(commission_tier)
    commission = calculate_commission(base_price, commission_tier, rates)
    subtotal_before_tax = base_price + commission
    tax = calculate_tax(subtotal_before_tax, rate)
    final_price = subtotal_before_tax + tax

    return PriceBreakdown(
        seller_set_price=price,
        base_price=base_price,
        commission=commission,
        commission_rate=commission_rate,
        subtotal_before_tax=subtotal_before_tax,
        tax=tax,
        tax_rate=rate,
        final_price=final_price,
        tier=commission_tier,
    )


def get_display_price(
    seller_set_price: Amount,
    tax_rate: Amount = 0,
    tier: CommissionTier | str = CommissionTier.STANDARD,
    rates: CommissionRates = DEFAULT_COMMISSION_RATES,
) -> Decimal:
    """Price shown on product cards, rounded to cents."""
    return round_money(calculate_price_breakdown(seller_set_price, tax_rate, tier, rates).final_price)


def calculate_checkout_summary(
    items: Iterable[CartItem],
    shipping_cost: Amount,
    tax_rate: Amount,
    rates: CommissionRates = DEFAULT_COMMISSION_RATES,
) -> CheckoutSummary:
    """Aggregate a cart into checkout totals.

    Each item is priced with its own tier. Tax is applied once to the
    aggregate subtotal (items + shipping), not summed from per-line
    taxes: ``total = subtotal * (1 + tax_rate / 100)``.

    Args:
        items: Cart items.
        shipping_cost: Shipping fee.
        tax_rate: Tax percentage (15 means 15%).
        rates: Commission rate table.

    Returns:
        Checkout summary.

    Raises:
        InvalidArgumentError: On negative amounts or non-positive quantities.
    """
    shipping = _non_negative(shipping_cost, "shipping_cost")
    rate = _tax_rate(tax_rate)

    line_items: list[CheckoutLineItem] = []
    items_total = ZERO
    total_seller_earnings = ZERO
    total_platform_commission = ZERO

    for item in items:
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidArgumentError("quantity", quantity, "must be a positive integer")

        breakdown = calculate_price_breakdown(item.seller_set_price, rate, item.tier, rates)
        line_total = breakdown.subtotal_before_tax * quantity

        line_items.append(
            CheckoutLineItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=quantity,
                seller_set_price=breakdown.seller_set_price,
                base_price=breakdown.base_price,
                commission=breakdown.commission,
                subtotal_before_tax=breakdown.subtotal_before_tax,
                line_total=line_total,
                tier=breakdown.tier,
            )
        )
        items_total += line_total
        total_seller_earnings += breakdown.base_price * quantity
        total_platform_commission += breakdown.commission * quantity

    subtotal = items_total + shipping
    total = subtotal * (1 + rate / HUNDRED)

    return CheckoutSummary(
        items=tuple(line_items),
        items_total=items_total,
        shipping=shipping,
        subtotal=subtotal,
        tax=total - subtotal,
        tax_rate=rate,
        total=total,
        total_seller_earnings=total_seller_earnings,
        total_platform_commission=total_platform_commission,
    )


# ============================================================================
# Display Boundary
# ============================================================================


def round_money(value: Amount) -> Decimal:
    """Round an amount to cents, half up. The only rounding in pricing."""
    return _to_decimal(value, "amount").quantize(CENT, rounding=ROUND_HALF_UP)


def format_price(value: Amount, currency: str = "ZAR") -> str:
    """Format an amount for display, e.g. ``R143.75``."""
    return str(Money.from_decimal(_non_negative(value, "amount"), currency))


def format_tax_rate(tax_rate: Amount) -> str:
    """Format a tax percentage for display, e.g. ``15%``."""
    return f"{_tax_rate(tax_rate).normalize():f}%"

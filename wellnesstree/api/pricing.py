"""Pricing API endpoints.

Provides endpoints for price decomposition and checkout totals:
- GET /pricing/commission-tiers - configured commission rates
- POST /pricing/breakdown - decompose a seller-set price
- POST /pricing/checkout-summary - total a cart
"""

from fastapi import APIRouter

from wellnesstree.api.errors import to_http_exception
from wellnesstree.api.schemas import (
    CheckoutInternalSchema,
    CheckoutLineSchema,
    CheckoutSummaryRequest,
    CheckoutSummaryResponse,
    CommissionTierEnum,
    CommissionTierSchema,
    CommissionTiersResponse,
    ErrorResponse,
    PriceBreakdownRequest,
    PriceBreakdownResponse,
)
from wellnesstree.domain.exceptions import DomainError
from wellnesstree.domain.pricing import (
    CartItem,
    calculate_checkout_summary,
    calculate_price_breakdown,
    format_price,
    format_tax_rate,
    round_money,
)
from wellnesstree.domain.value_objects import CommissionTier
from wellnesstree.infrastructure.config import settings

router = APIRouter(prefix="/pricing", tags=["Pricing"])


@router.get(
    "/commission-tiers",
    response_model=CommissionTiersResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List commission tiers",
)
async def list_commission_tiers() -> CommissionTiersResponse:
    """List the commission tiers and their configured rates."""
    rates = settings.commission_rates
    return CommissionTiersResponse(
        currency=settings.currency,
        default_tax_rate=settings.default_tax_rate,
        tiers=[
            CommissionTierSchema(
                tier=CommissionTierEnum(tier.value),
                rate=rates.rate_for(tier),
                percentage=f"{(rates.rate_for(tier) * 100).normalize():f}%",
            )
            for tier in CommissionTier
        ],
    )


@router.post(
    "/breakdown",
    response_model=PriceBreakdownResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Price breakdown",
    description="Decompose a tax-inclusive seller price into base, commission and tax.",
)
async def price_breakdown(request: PriceBreakdownRequest) -> PriceBreakdownResponse:
    """Decompose a seller-set price.

    Args:
        request: Seller price, tax rate and commission tier.

    Returns:
        Breakdown rounded to cents.

    Raises:
        HTTPException: On invalid input.
    """
    tax_rate = settings.default_tax_rate if request.tax_rate is None else request.tax_rate
    try:
        breakdown = calculate_price_breakdown(
            request.seller_set_price,
            tax_rate,
            CommissionTier(request.tier.value),
            settings.commission_rates,
        )
        display_tax_rate = format_tax_rate(breakdown.tax_rate)
        display_price = format_price(breakdown.final_price, settings.currency)
    except DomainError as e:
        raise to_http_exception(e) from e

    return PriceBreakdownResponse(
        seller_set_price=round_money(breakdown.seller_set_price),
        base_price=round_money(breakdown.base_price),
        commission=round_money(breakdown.commission),
        commission_rate=breakdown.commission_rate,
        subtotal_before_tax=round_money(breakdown.subtotal_before_tax),
        tax=round_money(breakdown.tax),
        tax_rate=breakdown.tax_rate,
        final_price=round_money(breakdown.final_price),
        tier=CommissionTierEnum(breakdown.tier.value),
        display_price=display_price,
        display_tax_rate=display_tax_rate,
    )


@router.post(
    "/checkout-summary",
    response_model=CheckoutSummaryResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Checkout summary",
    description=(
        "Total a cart. Tax is applied once to items plus shipping. "
        "The seller-earnings split is only returned with include_internal."
    ),
)
async def checkout_summary(request: CheckoutSummaryRequest) -> CheckoutSummaryResponse:
    """Total a cart for checkout."""
    tax_rate = settings.default_tax_rate if request.tax_rate is None else request.tax_rate
    items = [
        CartItem(
            product_id=item.product_id,
            product_name=item.product_name,
            seller_set_price=item.seller_set_price,
            quantity=item.quantity,
            tier=CommissionTier(item.tier.value),
        )
        for item in request.items
    ]

    try:
        summary = calculate_checkout_summary(
            items, request.shipping_cost, tax_rate, settings.commission_rates
        )
        view = summary.customer_view(settings.currency)
    except DomainError as e:
        raise to_http_exception(e) from e

    internal = None
    if request.include_internal:
        internal = CheckoutInternalSchema(
            total_seller_earnings=round_money(summary.total_seller_earnings),
            total_platform_commission=round_money(summary.total_platform_commission),
        )

    return CheckoutSummaryResponse(
        items=[CheckoutLineSchema(**line) for line in view["items"]],
        items_total=view["items_total"],
        shipping=view["shipping"],
        subtotal=view["subtotal"],
        tax=view["tax"],
        tax_rate=view["tax_rate"],
        total=view["total"],
        display_total=view["display_total"],
        internal=internal,
    )

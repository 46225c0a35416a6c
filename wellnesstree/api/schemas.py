"""API schemas for the Wellness Tree API.

Pydantic models for request/response validation and serialization.
Money values are decimals rounded to cents; display strings carry
the currency symbol.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


# ============================================================================
# Pricing Schemas
# ============================================================================


class CommissionTierEnum(str, Enum):
    """Commission tier."""

    STANDARD = "standard"
    POOL = "pool"


class CommissionTierSchema(BaseModel):
    """A commission tier and its rate."""

    tier: CommissionTierEnum
    rate: Decimal = Field(..., description="Commission rate (0.25 means 25%)")
    percentage: str = Field(..., description="Rate formatted for display")


class CommissionTiersResponse(BaseModel):
    """Configured commission tiers."""

    currency: str
    default_tax_rate: Decimal
    tiers: list[CommissionTierSchema]


class PriceBreakdownRequest(BaseModel):
    """Request to decompose a seller-set price."""

    seller_set_price: Decimal = Field(..., description="Tax-inclusive price set by the seller")
    tax_rate: Decimal | None = Field(
        default=None, description="Tax percentage; defaults to the configured rate"
    )
    tier: CommissionTierEnum = Field(default=CommissionTierEnum.STANDARD)


class PriceBreakdownResponse(BaseModel):
    """Price decomposition rounded for display."""

    seller_set_price: Decimal
    base_price: Decimal = Field(..., description="Seller earnings per unit")
    commission: Decimal
    commission_rate: Decimal
    subtotal_before_tax: Decimal
    tax: Decimal
    tax_rate: Decimal
    final_price: Decimal = Field(..., description="Price the customer pays")
    tier: CommissionTierEnum
    display_price: str = Field(..., description="Final price formatted with currency")
    display_tax_rate: str


class CheckoutItemSchema(BaseModel):
    """Cart entry to price."""

    product_id: str
    product_name: str
    seller_set_price: Decimal
    quantity: int = Field(default=1)
    tier: CommissionTierEnum = Field(default=CommissionTierEnum.STANDARD)


class CheckoutSummaryRequest(BaseModel):
    """Request to total a cart."""

    items: list[CheckoutItemSchema] = Field(default_factory=list)
    shipping_cost: Decimal = Field(default=Decimal("0"))
    tax_rate: Decimal | None = Field(
        default=None, description="Tax percentage; defaults to the configured rate"
    )
    include_internal: bool = Field(
        default=False,
        description="Include the seller-earnings / commission split (internal use)",
    )


class CheckoutLineSchema(BaseModel):
    """Priced cart line as the customer sees it."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CheckoutInternalSchema(BaseModel):
    """Seller earnings and platform commission for a cart."""

    total_seller_earnings: Decimal
    total_platform_commission: Decimal


class CheckoutSummaryResponse(BaseModel):
    """Checkout totals."""

    items: list[CheckoutLineSchema]
    items_total: Decimal
    shipping: Decimal
    subtotal: Decimal
    tax: Decimal
    tax_rate: Decimal
    total: Decimal
    display_total: str
    internal: CheckoutInternalSchema | None = None


# ============================================================================
# Shipment Schemas
# ============================================================================


class ShipmentStatusEnum(str, Enum):
    """Shipment status."""

    PENDING = "pending"
    READY_FOR_SHIPPING = "ready_for_shipping"
    LABEL_GENERATED = "label_generated"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    READY_FOR_PICKUP = "ready_for_pickup"
    CLAIMED_BY_DRIVER = "claimed_by_driver"
    PICKED_UP = "picked_up"
    EN_ROUTE = "en_route"
    NEARBY = "nearby"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class ShippingProviderEnum(str, Enum):
    """Shipping provider."""

    SHIPLOGIC = "shiplogic"
    PUDO = "pudo"
    IN_HOUSE = "in_house"


class StatusInfoSchema(BaseModel):
    """Display metadata for a shipment status."""

    status: ShipmentStatusEnum
    label: str
    description: str
    delivery_mode: str | None = Field(
        default=None, description="courier, driver, or null for shared statuses"
    )
    is_terminal: bool
    requires_confirmation: bool
    allowed_next: list[ShipmentStatusEnum]


class ShipmentStatusesResponse(BaseModel):
    """All shipment statuses."""

    items: list[StatusInfoSchema]


class ShipmentCreateRequest(BaseModel):
    """Request to create a shipment."""

    order_id: str = Field(..., min_length=1, description="Order the shipment delivers")
    dispensary_id: str = Field(..., min_length=1)
    provider: ShippingProviderEnum


class StatusHistorySchema(BaseModel):
    """Shipment status history entry."""

    from_status: ShipmentStatusEnum | None = None
    to_status: ShipmentStatusEnum
    actor: str | None = None
    message: str | None = None
    location: str | None = None
    created_at: datetime


class ShipmentResponse(BaseModel):
    """Shipment details."""

    id: str
    order_id: str
    dispensary_id: str
    provider: ShippingProviderEnum
    delivery_mode: str
    status: ShipmentStatusEnum
    status_label: str
    allowed_transitions: list[ShipmentStatusEnum]
    tracking_number: str | None = None
    label_url: str | None = None
    courier_shipment_id: str | None = None
    status_history: list[StatusHistorySchema] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    delivered_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
    returned_at: datetime | None = None


class ShipmentsListResponse(PaginatedResponse):
    """Paginated list of shipments."""

    items: list[ShipmentResponse]


class ShipmentTransitionsResponse(BaseModel):
    """Statuses a shipment can move to next."""

    shipment_id: str
    current_status: ShipmentStatusEnum
    is_terminal: bool
    allowed_transitions: list[StatusInfoSchema]


class ShipmentStatusUpdateRequest(BaseModel):
    """Request to change a shipment's status."""

    status: ShipmentStatusEnum
    actor: str = Field(default="operator", description="Who is making the change")
    confirmed: bool = Field(
        default=False,
        description="Required for delivered, failed, cancelled and returned",
    )
    message: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=200)


# ============================================================================
# Courier Schemas
# ============================================================================


class AddressSchema(BaseModel):
    """Street address."""

    street_address: str
    city: str
    code: str = Field(..., description="Postal code")
    local_area: str | None = None
    zone: str | None = Field(default=None, description="Province")
    country: str = Field(default="ZA")
    company: str | None = None


class ContactSchema(BaseModel):
    """Contact person."""

    name: str
    mobile_number: str
    email: str | None = None


class ParcelSchema(BaseModel):
    """Parcel dimensions."""

    length_cm: Decimal = Field(..., gt=0)
    width_cm: Decimal = Field(..., gt=0)
    height_cm: Decimal = Field(..., gt=0)
    weight_kg: Decimal = Field(..., gt=0)
    description: str | None = None


class ShippingRatesRequest(BaseModel):
    """Request for courier rates."""

    courier_id: str = Field(default="shiplogic", description="Courier to quote")
    collection_address: AddressSchema
    delivery_address: AddressSchema
    parcels: list[ParcelSchema] = Field(..., min_length=1)
    declared_value: Decimal = Field(default=Decimal("0"), ge=0)


class CourierRateSchema(BaseModel):
    """A courier quote."""

    service_level_code: str
    service_level_name: str
    rate: Decimal
    rate_excluding_vat: Decimal | None = None
    delivery_date_from: str | None = None
    delivery_date_to: str | None = None


class ShippingRatesResponse(BaseModel):
    """Courier quotes, passed through unchanged."""

    courier_id: str
    rates: list[CourierRateSchema]


class LabelRequest(BaseModel):
    """Request to book a courier and generate a label."""

    collection_address: AddressSchema
    delivery_address: AddressSchema
    collection_contact: ContactSchema
    delivery_contact: ContactSchema
    parcels: list[ParcelSchema] = Field(..., min_length=1)
    service_level_code: str
    declared_value: Decimal = Field(default=Decimal("0"), ge=0)
    customer_reference: str | None = None


# ============================================================================
# Credit Schemas
# ============================================================================


class CreditBalanceResponse(BaseModel):
    """A user's credit balance."""

    user_id: str
    balance: int


class CreditDeductRequest(BaseModel):
    """Request to charge an AI interaction."""

    amount: int = Field(..., description="Credits the interaction costs")
    was_free: bool = Field(default=False, description="Log without charging")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Interaction context stored on the log entry"
    )


class CreditDeductResponse(BaseModel):
    """Result of a credit deduction."""

    user_id: str
    amount_charged: int
    was_free: bool
    new_balance: int

"""Shipping rate endpoints.

- POST /shipping/rates - quote a parcel with a courier

Courier rates are returned as quoted; no markup is applied.
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from wellnesstree.api.errors import to_http_exception
from wellnesstree.api.schemas import (
    AddressSchema,
    ContactSchema,
    CourierRateSchema,
    ErrorResponse,
    ParcelSchema,
    ShippingRatesRequest,
    ShippingRatesResponse,
)
from wellnesstree.domain.exceptions import DomainError
from wellnesstree.infrastructure.courier_client import (
    CourierAddress,
    CourierClientFactory,
    CourierContact,
    Parcel,
    ShipmentRequest,
)

router = APIRouter(prefix="/shipping", tags=["Shipping"])


# ============================================================================
# Dependencies
# ============================================================================


def get_courier_factory(request: Request) -> CourierClientFactory:
    """Get courier client factory with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return CourierClientFactory(request_id=request_id)


# ============================================================================
# Converters
# ============================================================================


def address_from_schema(address: AddressSchema) -> CourierAddress:
    return CourierAddress(
        street_address=address.street_address,
        city=address.city,
        code=address.code,
        local_area=address.local_area,
        zone=address.zone,
        country=address.country,
        company=address.company,
    )


def contact_from_schema(contact: ContactSchema) -> CourierContact:
    return CourierContact(
        name=contact.name,
        mobile_number=contact.mobile_number,
        email=contact.email,
    )


def courier_request_from_schema(
    collection_address: AddressSchema,
    delivery_address: AddressSchema,
    parcels: list[ParcelSchema],
    declared_value: Decimal,
) -> ShipmentRequest:
    """Build a courier request from API address and parcel schemas."""
    return ShipmentRequest(
        collection_address=address_from_schema(collection_address),
        delivery_address=address_from_schema(delivery_address),
        parcels=[
            Parcel(
                length_cm=p.length_cm,
                width_cm=p.width_cm,
                height_cm=p.height_cm,
                weight_kg=p.weight_kg,
                description=p.description,
            )
            for p in parcels
        ],
        declared_value=declared_value,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/rates",
    response_model=ShippingRatesResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Get shipping rates",
)
async def get_shipping_rates(
    request: ShippingRatesRequest,
    factory: Annotated[CourierClientFactory, Depends(get_courier_factory)],
) -> ShippingRatesResponse:
    """Quote a shipment with the requested courier.

    Raises:
        HTTPException: 404 for an unknown courier, 502 if the courier fails.
    """
    courier_request = courier_request_from_schema(
        collection_address=request.collection_address,
        delivery_address=request.delivery_address,
        parcels=request.parcels,
        declared_value=request.declared_value,
    )

    try:
        async with factory.get_client(request.courier_id) as client:
            rates = await client.get_rates(courier_request)
    except DomainError as e:
        raise to_http_exception(e) from e

    return ShippingRatesResponse(
        courier_id=request.courier_id,
        rates=[
            CourierRateSchema(
                service_level_code=rate.service_level_code,
                service_level_name=rate.service_level_name,
                rate=rate.rate,
                rate_excluding_vat=rate.rate_excluding_vat,
                delivery_date_from=rate.delivery_date_from,
                delivery_date_to=rate.delivery_date_to,
            )
            for rate in rates
        ],
    )

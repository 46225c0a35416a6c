"""Shipment API endpoints.

Provides endpoints for the shipment lifecycle:
- GET /shipments/statuses - status labels and transition table
- POST /shipments - create a shipment for an order
- GET /shipments - list shipments (paginated)
- GET /shipments/{id} - shipment details and history
- GET /shipments/{id}/transitions - statuses allowed next
- POST /shipments/{id}/status - change status
- POST /shipments/{id}/label - book courier and generate label
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from wellnesstree.api.errors import to_http_exception
from wellnesstree.api.schemas import (
    ErrorResponse,
    LabelRequest,
    ShipmentCreateRequest,
    ShipmentResponse,
    ShipmentsListResponse,
    ShipmentStatusEnum,
    ShipmentStatusesResponse,
    ShipmentStatusUpdateRequest,
    ShipmentTransitionsResponse,
    ShippingProviderEnum,
    StatusHistorySchema,
    StatusInfoSchema,
)
from wellnesstree.api.shipping import (
    contact_from_schema,
    courier_request_from_schema,
    get_courier_factory,
)
from wellnesstree.application.shipment_service import (
    ShipmentService,
    get_shipment_service,
)
from wellnesstree.domain.entities import Shipment, ShippingProvider
from wellnesstree.domain.exceptions import DomainError
from wellnesstree.domain.state_machines import ShipmentStatus
from wellnesstree.infrastructure.courier_client import CourierClientFactory

router = APIRouter(prefix="/shipments", tags=["Shipments"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(
    request: Request,
    courier_factory: Annotated[CourierClientFactory, Depends(get_courier_factory)],
) -> ShipmentService:
    """Get shipment service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_shipment_service(request_id=request_id, courier_factory=courier_factory)


# ============================================================================
# Converters
# ============================================================================


def status_info(shipment_status: ShipmentStatus) -> StatusInfoSchema:
    """Convert a ShipmentStatus to its display metadata."""
    mode = shipment_status.delivery_mode
    return StatusInfoSchema(
        status=ShipmentStatusEnum(shipment_status.value),
        label=shipment_status.label,
        description=shipment_status.description,
        delivery_mode=mode.value if mode else None,
        is_terminal=shipment_status.is_terminal(),
        requires_confirmation=shipment_status.requires_confirmation(),
        allowed_next=[ShipmentStatusEnum(s.value) for s in shipment_status.allowed_transitions()],
    )


def shipment_to_response(shipment: Shipment) -> ShipmentResponse:
    """Convert Shipment to ShipmentResponse."""
    return ShipmentResponse(
        id=str(shipment.id),
        order_id=shipment.order_id,
        dispensary_id=shipment.dispensary_id,
        provider=ShippingProviderEnum(shipment.provider.value),
        delivery_mode=shipment.delivery_mode.value,
        status=ShipmentStatusEnum(shipment.status.value),
        status_label=shipment.status.label,
        allowed_transitions=[
            ShipmentStatusEnum(s.value) for s in shipment.allowed_transitions()
        ],
        tracking_number=shipment.tracking_number,
        label_url=shipment.label_url,
        courier_shipment_id=shipment.courier_shipment_id,
        status_history=[
            StatusHistorySchema(
                from_status=ShipmentStatusEnum(entry.from_status.value) if entry.from_status else None,
                to_status=ShipmentStatusEnum(entry.to_status.value),
                actor=entry.actor,
                message=entry.message,
                location=entry.location,
                created_at=entry.created_at,
            )
            for entry in shipment.status_history
        ],
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
        delivered_at=shipment.delivered_at,
        failed_at=shipment.failed_at,
        cancelled_at=shipment.cancelled_at,
        returned_at=shipment.returned_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/statuses",
    response_model=ShipmentStatusesResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List shipment statuses",
    description="Labels, descriptions and allowed next statuses for every shipment status.",
)
async def list_statuses() -> ShipmentStatusesResponse:
    """List all shipment statuses with their metadata."""
    return ShipmentStatusesResponse(items=[status_info(s) for s in ShipmentStatus])


@router.post(
    "",
    response_model=ShipmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Create shipment",
)
async def create_shipment(
    request: ShipmentCreateRequest,
    service: Annotated[ShipmentService, Depends(get_service)],
) -> ShipmentResponse:
    """Create a pending shipment for an order.

    Args:
        request: Order, dispensary and provider.
        service: Shipment service.

    Returns:
        The created shipment.
    """
    try:
        shipment = await service.create_shipment(
            order_id=request.order_id,
            dispensary_id=request.dispensary_id,
            provider=ShippingProvider(request.provider.value),
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return shipment_to_response(shipment)


@router.get(
    "",
    response_model=ShipmentsListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List shipments",
)
async def list_shipments(
    service: Annotated[ShipmentService, Depends(get_service)],
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status: ShipmentStatusEnum | None = Query(default=None, description="Filter by status"),
    order_id: str | None = Query(default=None, description="Filter by order"),
    dispensary_id: str | None = Query(default=None, description="Filter by dispensary"),
) -> ShipmentsListResponse:
    """List shipments with pagination and filtering."""
    shipments, total = await service.list_shipments(
        page=page,
        page_size=page_size,
        status=ShipmentStatus(status.value) if status else None,
        order_id=order_id,
        dispensary_id=dispensary_id,
    )
    return ShipmentsListResponse(
        items=[shipment_to_response(s) for s in shipments],
        total=total,
        page=page,
        page_size=page_size,
        has_more=(page * page_size) < total,
    )


@router.get(
    "/{shipment_id}",
    response_model=ShipmentResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get shipment",
)
async def get_shipment(
    shipment_id: str,
    service: Annotated[ShipmentService, Depends(get_service)],
) -> ShipmentResponse:
    """Get a shipment with its status history."""
    try:
        shipment = await service.get_shipment(shipment_id)
    except DomainError as e:
        raise to_http_exception(e) from e
    return shipment_to_response(shipment)


@router.get(
    "/{shipment_id}/transitions",
    response_model=ShipmentTransitionsResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Allowed transitions",
    description="Statuses the shipment can move to next, restricted to its delivery mode.",
)
async def get_transitions(
    shipment_id: str,
    service: Annotated[ShipmentService, Depends(get_service)],
) -> ShipmentTransitionsResponse:
    """List the statuses a shipment can move to next."""
    try:
        shipment = await service.get_shipment(shipment_id)
        allowed = await service.allowed_transitions(shipment_id)
    except DomainError as e:
        raise to_http_exception(e) from e

    return ShipmentTransitionsResponse(
        shipment_id=shipment_id,
        current_status=ShipmentStatusEnum(shipment.status.value),
        is_terminal=shipment.status.is_terminal(),
        allowed_transitions=[status_info(s) for s in allowed],
    )


@router.post(
    "/{shipment_id}/status",
    response_model=ShipmentResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        428: {"model": ErrorResponse},
    },
    summary="Update shipment status",
    description=(
        "Move a shipment to a new status. Delivered, failed, cancelled and "
        "returned require confirmed=true. Same-status updates are no-ops."
    ),
)
async def update_status(
    shipment_id: str,
    request: ShipmentStatusUpdateRequest,
    service: Annotated[ShipmentService, Depends(get_service)],
) -> ShipmentResponse:
    """Apply a status change.

    Args:
        shipment_id: Shipment identifier.
        request: Target status and confirmation.
        service: Shipment service.

    Returns:
        Updated shipment.

    Raises:
        HTTPException: 404 if not found, 409 if the transition is invalid,
            428 if confirmation is required.
    """
    try:
        shipment = await service.update_status(
            shipment_id,
            ShipmentStatus(request.status.value),
            actor=request.actor,
            confirmed=request.confirmed,
            message=request.message,
            location=request.location,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return shipment_to_response(shipment)


@router.post(
    "/{shipment_id}/label",
    response_model=ShipmentResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Generate courier label",
    description="Book the shipment with its courier and move it to label_generated.",
)
async def generate_label(
    shipment_id: str,
    request: LabelRequest,
    service: Annotated[ShipmentService, Depends(get_service)],
) -> ShipmentResponse:
    """Book a courier and attach the label to the shipment."""
    courier_request = courier_request_from_schema(
        collection_address=request.collection_address,
        delivery_address=request.delivery_address,
        parcels=request.parcels,
        declared_value=request.declared_value,
    )
    courier_request.collection_contact = contact_from_schema(request.collection_contact)
    courier_request.delivery_contact = contact_from_schema(request.delivery_contact)
    courier_request.service_level_code = request.service_level_code
    courier_request.customer_reference = request.customer_reference

    try:
        shipment = await service.generate_label(shipment_id, courier_request)
    except DomainError as e:
        raise to_http_exception(e) from e
    return shipment_to_response(shipment)

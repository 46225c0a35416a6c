"""Courier HTTP client for shipping rates and labels.

Both configured couriers (ShipLogic and PUDO) expose the same v2
REST shape: ``POST /v2/rates``, ``POST /v2/shipments`` and
``GET /v2/shipments/label``. Rates are passed through unchanged; the
platform does not re-price them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx
import structlog

from wellnesstree.domain.exceptions import DomainError
from wellnesstree.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Errors
# ============================================================================


class CourierClientError(DomainError):
    """Error from a courier API call."""

    error_code = "COURIER_ERROR"
    retryable = True

    def __init__(
        self, courier_id: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(
            f"[{courier_id}] {message}",
            details={"courier_id": courier_id, "status_code": status_code},
        )
        self.courier_id = courier_id
        self.status_code = status_code


class CourierNotFoundError(DomainError):
    """Raised when a courier is unknown or disabled."""

    error_code = "COURIER_NOT_FOUND"

    def __init__(self, courier_id: str) -> None:
        super().__init__(
            f"Courier not found or disabled: {courier_id}",
            details={"courier_id": courier_id},
        )


# ============================================================================
# Courier Configuration
# ============================================================================


@dataclass
class CourierConfig:
    """Configuration for a courier."""

    id: str
    url: str
    api_key: str
    enabled: bool
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.id.replace("-", " ").title()


class CourierRegistry:
    """Registry of available couriers, discovered from settings."""

    def __init__(self) -> None:
        self._couriers: dict[str, CourierConfig] = {}
        self._discover_couriers()

    def _discover_couriers(self) -> None:
        if settings.shiplogic_enabled:
            self.register(
                CourierConfig(
                    id="shiplogic",
                    url=settings.shiplogic_url,
                    api_key=settings.shiplogic_api_key,
                    enabled=True,
                    name="ShipLogic",
                )
            )

        if settings.pudo_enabled:
            self.register(
                CourierConfig(
                    id="pudo",
                    url=settings.pudo_url,
                    api_key=settings.pudo_api_key,
                    enabled=True,
                    name="PUDO",
                )
            )

    def register(self, courier: CourierConfig) -> None:
        self._couriers[courier.id] = courier
        logger.info("Discovered courier", courier_id=courier.id, url=courier.url)

    def get_courier(self, courier_id: str) -> CourierConfig | None:
        """Get courier by ID.

        Args:
            courier_id: Courier identifier.

        Returns:
            CourierConfig if found and enabled, None otherwise.
        """
        courier = self._couriers.get(courier_id)
        if courier and courier.enabled:
            return courier
        return None

    def list_couriers(self) -> list[CourierConfig]:
        return [c for c in self._couriers.values() if c.enabled]


# Global registry instance
_courier_registry: CourierRegistry | None = None


def get_courier_registry() -> CourierRegistry:
    """Get the courier registry singleton."""
    global _courier_registry
    if _courier_registry is None:
        _courier_registry = CourierRegistry()
    return _courier_registry


# ============================================================================
# Request / Response Types
# ============================================================================


@dataclass
class CourierAddress:
    """Street address in the courier's format."""

    street_address: str
    city: str
    code: str
    local_area: str | None = None
    zone: str | None = None
    country: str = "ZA"
    company: str | None = None
    type: str = "residential"

    def to_api(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "company": self.company or "",
            "street_address": self.street_address,
            "local_area": self.local_area or "",
            "city": self.city,
            "zone": self.zone or "",
            "country": self.country,
            "code": self.code,
        }


@dataclass
class CourierContact:
    """Person the courier calls at collection or delivery."""

    name: str
    mobile_number: str
    email: str | None = None

    def to_api(self) -> dict[str, Any]:
        contact = {"name": self.name, "mobile_number": self.mobile_number}
        if self.email:
            contact["email"] = self.email
        return contact


@dataclass
class Parcel:
    """A parcel with submitted dimensions."""

    length_cm: Decimal
    width_cm: Decimal
    height_cm: Decimal
    weight_kg: Decimal
    description: str | None = None

    def to_api(self) -> dict[str, Any]:
        return {
            "parcel_description": self.description or "",
            "submitted_length_cm": float(self.length_cm),
            "submitted_width_cm": float(self.width_cm),
            "submitted_height_cm": float(self.height_cm),
            "submitted_weight_kg": float(self.weight_kg),
        }


@dataclass
class ShipmentRequest:
    """Origin, destination and parcels for a rate or label request."""

    collection_address: CourierAddress
    delivery_address: CourierAddress
    parcels: list[Parcel]
    declared_value: Decimal = Decimal("0")
    collection_contact: CourierContact | None = None
    delivery_contact: CourierContact | None = None
    service_level_code: str | None = None
    customer_reference: str | None = None

    def rates_payload(self) -> dict[str, Any]:
        return {
            "collection_address": self.collection_address.to_api(),
            "delivery_address": self.delivery_address.to_api(),
            "parcels": [p.to_api() for p in self.parcels],
            "declared_value": float(self.declared_value),
        }

    def shipment_payload(self) -> dict[str, Any]:
        payload = self.rates_payload()
        payload.update(
            {
                "collection_contact": self.collection_contact.to_api() if self.collection_contact else None,
                "delivery_contact": self.delivery_contact.to_api() if self.delivery_contact else None,
                "service_level_code": self.service_level_code,
                "customer_reference": self.customer_reference or "",
            }
        )
        return payload


@dataclass
class CourierRate:
    """A quoted service level and its price."""

    service_level_code: str
    service_level_name: str
    rate: Decimal
    rate_excluding_vat: Decimal | None = None
    delivery_date_from: str | None = None
    delivery_date_to: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "CourierRate":
        """Create from courier API response data."""
        service_level = data.get("service_level", {})
        excl_vat = data.get("rate_excluding_vat")
        return cls(
            service_level_code=service_level.get("code", ""),
            service_level_name=service_level.get("name", ""),
            rate=Decimal(str(data.get("rate", 0))),
            rate_excluding_vat=Decimal(str(excl_vat)) if excl_vat is not None else None,
            delivery_date_from=service_level.get("delivery_date_from"),
            delivery_date_to=service_level.get("delivery_date_to"),
            raw=data,
        )


@dataclass
class CourierLabel:
    """Booked courier shipment and its printable label."""

    courier_shipment_id: str
    tracking_reference: str
    label_url: str | None


# ============================================================================
# Courier HTTP Client
# ============================================================================


class CourierClient:
    """HTTP client for a single courier."""

    def __init__(
        self,
        courier: CourierConfig,
        timeout: float | None = None,
        request_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize courier client.

        Args:
            courier: Courier configuration.
            timeout: Request timeout in seconds.
            request_id: Optional request ID for correlation.
            transport: Optional transport override.
        """
        self.courier = courier
        self.timeout = timeout if timeout is not None else settings.courier_timeout_seconds
        self.request_id = request_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.courier.api_key}"}
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.courier.url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CourierClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            client = await self._get_client()
            response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                "Courier API request failed",
                courier_id=self.courier.id,
                action=action,
                error=str(e),
            )
            raise CourierClientError(
                self.courier.id, f"Request failed: {str(e)}"
            ) from e

        if not response.is_success:
            logger.error(
                "Courier API returned an error",
                courier_id=self.courier.id,
                action=action,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise CourierClientError(
                self.courier.id,
                f"Failed to {action}: {_error_message(response)}",
                response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(
                "Courier API returned a non-JSON body",
                courier_id=self.courier.id,
                action=action,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise CourierClientError(
                self.courier.id,
                f"Failed to {action}: response was not valid JSON",
                response.status_code,
            ) from e

    async def get_rates(self, request: ShipmentRequest) -> list[CourierRate]:
        """Request shipping rates.

        Args:
            request: Origin, destination and parcels.

        Returns:
            Rates quoted by the courier, as returned.

        Raises:
            CourierClientError: On API error.
        """
        if not request.parcels:
            raise CourierClientError(self.courier.id, "At least one parcel is required")

        logger.info(
            "Requesting courier rates",
            courier_id=self.courier.id,
            city=request.delivery_address.city,
            parcel_count=len(request.parcels),
        )
        data = await self._request("POST", "/v2/rates", "get rates", json=request.rates_payload())
        rates = [CourierRate.from_api_response(r) for r in data.get("rates", [])]
        logger.info("Received courier rates", courier_id=self.courier.id, rate_count=len(rates))
        return rates

    async def create_label(self, request: ShipmentRequest) -> CourierLabel:
        """Book a shipment with the courier and fetch its label.

        Args:
            request: Shipment details; contacts and service level are required.

        Returns:
            Booked shipment reference and label URL.

        Raises:
            CourierClientError: On missing details or API error.
        """
        missing = [
            name
            for name in ("collection_contact", "delivery_contact", "service_level_code")
            if not getattr(request, name)
        ]
        if missing or not request.parcels:
            raise CourierClientError(
                self.courier.id,
                f"Incomplete label request, missing: {missing or ['parcels']}",
            )

        shipment = await self._request(
            "POST", "/v2/shipments", "create shipment", json=request.shipment_payload()
        )
        courier_shipment_id = str(shipment.get("id", ""))
        tracking_reference = (
            shipment.get("short_tracking_reference")
            or shipment.get("tracking_reference")
            or courier_shipment_id
        )

        label = await self._request(
            "GET", "/v2/shipments/label", "fetch label", params={"id": courier_shipment_id}
        )

        logger.info(
            "Courier label created",
            courier_id=self.courier.id,
            courier_shipment_id=courier_shipment_id,
            tracking_reference=tracking_reference,
        )
        return CourierLabel(
            courier_shipment_id=courier_shipment_id,
            tracking_reference=tracking_reference,
            label_url=label.get("url"),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


# ============================================================================
# Client Factory
# ============================================================================


class CourierClientFactory:
    """Creates courier clients from the registry."""

    def __init__(
        self,
        registry: CourierRegistry | None = None,
        request_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize factory.

        Args:
            registry: Courier registry (uses global if not provided).
            request_id: Request ID for correlation.
            transport: Transport override passed to every client.
        """
        self.registry = registry or get_courier_registry()
        self.request_id = request_id
        self.transport = transport

    def get_client(self, courier_id: str) -> CourierClient:
        """Get a client for a courier.

        Raises:
            CourierNotFoundError: If the courier is unknown or disabled.
        """
        courier = self.registry.get_courier(courier_id)
        if not courier:
            raise CourierNotFoundError(courier_id)
        return CourierClient(courier, request_id=self.request_id, transport=self.transport)

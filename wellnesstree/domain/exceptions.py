"""Domain exceptions.

Every failure the core can report derives from ``DomainError`` and
carries a stable ``error_code``. The API layer maps those codes to
HTTP statuses; callers should branch on the code, never on the
message text.
"""

from typing import Any, ClassVar


class DomainError(Exception):
    """Base class for all domain exceptions.

    Attributes:
        error_code: Stable machine-readable code, set per subclass.
        retryable: Whether the caller may safely retry the same request.
        message: Human-readable error message.
        details: Structured context for rendering a helpful response.
    """

    error_code: ClassVar[str] = "DOMAIN_ERROR"
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Validation Errors
# ============================================================================


class InvalidArgumentError(DomainError):
    """Raised when an input is malformed or out of range.

    Rejected before any computation takes place.
    """

    error_code = "INVALID_ARGUMENT"

    def __init__(self, argument: str, value: Any, reason: str) -> None:
        """Initialize invalid argument error.

        Args:
            argument: Name of the offending argument.
            value: The rejected value.
            reason: What a valid value looks like.
        """
        super().__init__(
            f"Invalid {argument} {value!r}: {reason}",
            details={"argument": argument, "value": str(value), "reason": reason},
        )


# ============================================================================
# Shipment State Errors
# ============================================================================


class InvalidTransitionError(DomainError):
    """Raised when a shipment status transition is not in the adjacency table."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        current_status: str,
        attempted_status: str,
        allowed_next: list[str],
        message: str | None = None,
        shipment_id: str | None = None,
    ) -> None:
        """Initialize invalid transition error.

        Args:
            current_status: Status the shipment is in.
            attempted_status: Status the caller asked for.
            allowed_next: Statuses reachable from the current one.
            message: Pre-rendered message; a generic one is built if omitted.
            shipment_id: Shipment the transition was attempted on.
        """
        if message is None:
            message = (
                f"Cannot transition from '{current_status}' to '{attempted_status}'. "
                f"Allowed transitions: {allowed_next}"
            )
        super().__init__(
            message,
            details={
                "shipment_id": shipment_id,
                "current_status": current_status,
                "attempted_status": attempted_status,
                "allowed_next": allowed_next,
            },
        )
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.allowed_next = allowed_next


class DeliveryModeMismatchError(InvalidTransitionError):
    """Raised when a shipment is moved into the other delivery mode's chain."""

    error_code = "DELIVERY_MODE_MISMATCH"

    def __init__(
        self,
        shipment_id: str,
        delivery_mode: str,
        current_status: str,
        attempted_status: str,
        allowed_next: list[str],
    ) -> None:
        super().__init__(
            current_status=current_status,
            attempted_status=attempted_status,
            allowed_next=allowed_next,
            message=(
                f"Shipment {shipment_id} is delivered by {delivery_mode}; "
                f"'{attempted_status}' belongs to a different delivery mode"
            ),
            shipment_id=shipment_id,
        )
        self.details["delivery_mode"] = delivery_mode


class ConfirmationRequiredError(DomainError):
    """Raised when a high-impact status is applied without operator confirmation."""

    error_code = "CONFIRMATION_REQUIRED"

    def __init__(
        self,
        shipment_id: str,
        attempted_status: str,
        prompt: dict[str, str],
    ) -> None:
        """Initialize confirmation required error.

        Args:
            shipment_id: Shipment being updated.
            attempted_status: High-impact status requested.
            prompt: Title, description and confirm text to show the operator.
        """
        super().__init__(
            f"Changing shipment {shipment_id} to '{attempted_status}' requires confirmation",
            details={
                "shipment_id": shipment_id,
                "attempted_status": attempted_status,
                "prompt": prompt,
            },
        )


class ShipmentNotFoundError(DomainError):
    """Raised when a shipment does not exist."""

    error_code = "SHIPMENT_NOT_FOUND"

    def __init__(self, shipment_id: str) -> None:
        super().__init__(
            f"Shipment not found: {shipment_id}",
            details={"shipment_id": shipment_id},
        )


# ============================================================================
# Credit Ledger Errors
# ============================================================================


class InsufficientBalanceError(DomainError):
    """Raised when a paid interaction costs more than the user's balance.

    Detected inside the atomic transaction against a freshly read
    balance; nothing is written.
    """

    error_code = "INSUFFICIENT_BALANCE"

    def __init__(self, user_id: str, balance: int, requested: int) -> None:
        super().__init__(
            f"Not enough credits: balance is {balance}, {requested} required",
            details={"user_id": user_id, "balance": balance, "requested": requested},
        )
        self.balance = balance
        self.requested = requested


class UserNotFoundError(DomainError):
    """Raised when the credit account for a user does not exist."""

    error_code = "USER_NOT_FOUND"

    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"User not found: {user_id}",
            details={"user_id": user_id},
        )


class TransactionAbortedError(DomainError):
    """Raised when the store aborts a transaction, e.g. under contention.

    No partial write survives. The caller decides whether to retry.
    """

    error_code = "TRANSACTION_ABORTED"
    retryable = True

    def __init__(self, scope: str, reason: str) -> None:
        super().__init__(
            f"Transaction on {scope} was aborted, please try again",
            details={"scope": scope, "reason": reason},
        )

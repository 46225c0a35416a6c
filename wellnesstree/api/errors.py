"""Domain error to HTTP mapping.

Routers catch ``DomainError`` and re-raise it as an ``HTTPException``
whose detail is rendered as the standard error envelope in ``main``.
"""

from fastapi import HTTPException, status

from wellnesstree.domain.exceptions import DomainError

ERROR_STATUS_CODES: dict[str, int] = {
    "INVALID_ARGUMENT": status.HTTP_400_BAD_REQUEST,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SHIPMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "COURIER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "DELIVERY_MODE_MISMATCH": status.HTTP_409_CONFLICT,
    "INSUFFICIENT_BALANCE": status.HTTP_412_PRECONDITION_FAILED,
    "CONFIRMATION_REQUIRED": status.HTTP_428_PRECONDITION_REQUIRED,
    "COURIER_ERROR": status.HTTP_502_BAD_GATEWAY,
    "TRANSACTION_ABORTED": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(error: DomainError) -> HTTPException:
    """Convert a domain error to an HTTP exception.

    Unknown codes map to 400.
    """
    return HTTPException(
        status_code=ERROR_STATUS_CODES.get(error.error_code, status.HTTP_400_BAD_REQUEST),
        detail={
            "error_code": error.error_code,
            "message": error.message,
            "details": {**error.details, "retryable": error.retryable},
        },
    )


def forbidden(message: str) -> HTTPException:
    """Build a 403 for a caller acting on someone else's resource."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error_code": "FORBIDDEN", "message": message, "details": {}},
    )

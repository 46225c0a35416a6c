"""Credit API endpoints.

- GET /credits/{user_id} - current balance
- POST /credits/{user_id}/deduct - charge an AI interaction

Callers act for one user, named in the ``X-User-Id`` header; it must
match the user in the path.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request

from wellnesstree.api.errors import forbidden, to_http_exception
from wellnesstree.api.schemas import (
    CreditBalanceResponse,
    CreditDeductRequest,
    CreditDeductResponse,
    ErrorResponse,
)
from wellnesstree.application.ledger_service import CreditLedger, get_credit_ledger
from wellnesstree.domain.exceptions import DomainError

router = APIRouter(prefix="/credits", tags=["Credits"])


# ============================================================================
# Dependencies
# ============================================================================


def get_ledger(request: Request) -> CreditLedger:
    """Get credit ledger with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_credit_ledger(request_id=request_id)


def require_same_user(
    user_id: str,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Reject callers acting on another user's credits."""
    if not x_user_id or x_user_id != user_id:
        raise forbidden("Cannot act on another user's credits")
    return user_id


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/{user_id}",
    response_model=CreditBalanceResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get credit balance",
)
async def get_balance(
    user_id: Annotated[str, Depends(require_same_user)],
    ledger: Annotated[CreditLedger, Depends(get_ledger)],
) -> CreditBalanceResponse:
    """Get a user's credit balance."""
    try:
        balance = await ledger.get_balance(user_id)
    except DomainError as e:
        raise to_http_exception(e) from e
    return CreditBalanceResponse(user_id=user_id, balance=balance)


@router.post(
    "/{user_id}/deduct",
    response_model=CreditDeductResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        412: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Deduct credits",
    description=(
        "Charge an interaction and append it to the interaction log in one "
        "transaction. Free interactions are logged with amount 0. "
        "A 503 TRANSACTION_ABORTED may be retried."
    ),
)
async def deduct_credits(
    request: CreditDeductRequest,
    user_id: Annotated[str, Depends(require_same_user)],
    ledger: Annotated[CreditLedger, Depends(get_ledger)],
) -> CreditDeductResponse:
    """Deduct credits for an interaction.

    Args:
        request: Amount, free flag and interaction metadata.
        user_id: User being charged.
        ledger: Credit ledger.

    Returns:
        Charged amount and the new balance.

    Raises:
        HTTPException: 404 unknown user, 412 insufficient balance,
            503 transaction aborted.
    """
    try:
        new_balance = await ledger.deduct_and_log(
            user_id,
            request.amount,
            was_free=request.was_free,
            metadata=request.metadata,
        )
    except DomainError as e:
        raise to_http_exception(e) from e

    return CreditDeductResponse(
        user_id=user_id,
        amount_charged=0 if request.was_free else request.amount,
        was_free=request.was_free,
        new_balance=new_balance,
    )

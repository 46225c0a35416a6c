"""Credit ledger application service.

The only code path that changes a user's credit balance. Every
deduction reads the balance, checks it and writes both the new
balance and an interaction log entry inside one store transaction,
so concurrent deductions against the same user are linearized and a
log entry never exists without its balance change.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol

import structlog

from wellnesstree.domain.entities import CreditAccount
from wellnesstree.domain.events import CreditsDeducted
from wellnesstree.domain.exceptions import (
    InsufficientBalanceError,
    InvalidArgumentError,
    TransactionAbortedError,
    UserNotFoundError,
)
from wellnesstree.domain.value_objects import InteractionLogEntry
from wellnesstree.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Store Ports
# ============================================================================


class CreditTransaction(Protocol):
    """Operations available inside a credit store transaction.

    Reads see committed state; writes become visible only when the
    transaction commits.
    """

    async def get_account(self) -> CreditAccount | None: ...

    def set_balance(self, balance: int) -> None: ...

    def append_log(self, entry: InteractionLogEntry) -> None: ...


class CreditStore(Protocol):
    """Transactional storage for credit balances and the interaction log.

    ``transaction(user_id)`` must be serializable for that user's
    balance: commit on clean exit, discard every write if the body
    raises, and raise ``TransactionAbortedError`` if the store gives up
    under contention.
    """

    def transaction(self, user_id: str) -> AbstractAsyncContextManager[CreditTransaction]: ...


# ============================================================================
# In-Memory Store
# ============================================================================


class _InMemoryCreditTransaction:
    def __init__(self, store: "InMemoryCreditStore", user_id: str) -> None:
        self._store = store
        self._user_id = user_id
        self._pending_balance: int | None = None
        self._pending_log: list[InteractionLogEntry] = []

    async def get_account(self) -> CreditAccount | None:
        # Yield to the loop the way a store round-trip would.
        await asyncio.sleep(0)
        account = self._store._accounts.get(self._user_id)
        if account is None:
            return None
        return CreditAccount(
            user_id=account.user_id,
            balance=account.balance,
            dispensary_id=account.dispensary_id,
        )

    def set_balance(self, balance: int) -> None:
        self._pending_balance = balance

    def append_log(self, entry: InteractionLogEntry) -> None:
        self._pending_log.append(entry)

    def commit(self) -> None:
        if self._pending_balance is not None:
            self._store._accounts[self._user_id].balance = self._pending_balance
        self._store._log.extend(self._pending_log)


class InMemoryCreditStore:
    """In-memory credit store.

    Transactions on the same user are serialized by a per-user lock;
    writes are staged and applied only on commit.
    In production, this is replaced by ``SqlCreditStore``.

    One lock is kept for every user ID ever seen and none is evicted,
    so memory grows with the number of distinct users. Fine for
    development and tests, not for a long-running process.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, CreditAccount] = {}
        self._log: list[InteractionLogEntry] = []
        self._locks: dict[str, asyncio.Lock] = {}

    def add_account(self, user_id: str, balance: int, dispensary_id: str | None = None) -> None:
        """Register a user account (provisioning, not a ledger mutation)."""
        self._accounts[user_id] = CreditAccount(
            user_id=user_id,
            balance=balance,
            dispensary_id=dispensary_id,
        )

    def get_log(self, user_id: str | None = None) -> list[InteractionLogEntry]:
        """Get committed log entries, optionally for a single user."""
        if user_id is None:
            return list(self._log)
        return [entry for entry in self._log if entry.user_id == user_id]

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncIterator[_InMemoryCreditTransaction]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            txn = _InMemoryCreditTransaction(self, user_id)
            yield txn
            txn.commit()


# ============================================================================
# Credit Ledger
# ============================================================================


class CreditLedger:
    """Application service for credit deductions.

    Errors are raised to the caller and never retried here; retrying
    a ``TransactionAbortedError`` is the caller's decision and re-reads
    fresh state.
    """

    def __init__(self, store: CreditStore, request_id: str | None = None) -> None:
        """Initialize ledger.

        Args:
            store: Transactional credit store.
            request_id: Request ID for correlation.
        """
        self.store = store
        self.request_id = request_id

    async def deduct_and_log(
        self,
        user_id: str,
        amount: int,
        was_free: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Deduct credits and append an interaction log entry atomically.

        Free interactions are logged with amount 0 and leave the balance
        untouched.

        Args:
            user_id: User being charged.
            amount: Credits the interaction costs.
            was_free: Whether this interaction is free of charge.
            metadata: Context stored on the log entry (e.g. advisor slug).

        Returns:
            Balance after the deduction.

        Raises:
            InvalidArgumentError: If user ID is empty or amount is not a non-negative integer.
            UserNotFoundError: If the user has no credit account.
            InsufficientBalanceError: If a paid interaction exceeds the balance.
            TransactionAbortedError: If the store aborted the transaction.
        """
        if not user_id or not user_id.strip():
            raise InvalidArgumentError("user_id", user_id, "must not be empty")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidArgumentError("amount", amount, "must be a non-negative integer")

        metadata = dict(metadata or {})

        try:
            async with self.store.transaction(user_id) as txn:
                account = await txn.get_account()
                if account is None:
                    raise UserNotFoundError(user_id)

                if was_free:
                    new_balance = account.balance
                else:
                    if account.balance < amount:
                        logger.warning(
                            "Insufficient credits",
                            user_id=user_id,
                            balance=account.balance,
                            requested=amount,
                            request_id=self.request_id,
                        )
                        raise InsufficientBalanceError(user_id, account.balance, amount)
                    new_balance = account.balance - amount
                    txn.set_balance(new_balance)

                entry = InteractionLogEntry(
                    user_id=user_id,
                    amount=0 if was_free else amount,
                    was_free=was_free,
                    metadata=metadata,
                    dispensary_id=account.dispensary_id,
                )
                txn.append_log(entry)
        except TransactionAbortedError as e:
            logger.warning(
                "Credit transaction aborted",
                user_id=user_id,
                reason=e.details.get("reason"),
                request_id=self.request_id,
            )
            raise

        event = CreditsDeducted(
            aggregate_id=user_id,
            aggregate_type="CreditAccount",
            user_id=user_id,
            log_entry_id=entry.id,
            amount=entry.amount,
            was_free=was_free,
            new_balance=new_balance,
            metadata=metadata,
        )
        logger.info(
            "Free interaction logged" if was_free else "Credits deducted",
            event_type=event.event_type,
            user_id=user_id,
            amount=entry.amount,
            new_balance=new_balance,
            log_entry_id=entry.id,
            request_id=self.request_id,
        )
        return new_balance

    async def get_balance(self, user_id: str) -> int:
        """Read a user's current balance.

        Raises:
            UserNotFoundError: If the user has no credit account.
        """
        async with self.store.transaction(user_id) as txn:
            account = await txn.get_account()
        if account is None:
            raise UserNotFoundError(user_id)
        return account.balance


# ============================================================================
# Wiring
# ============================================================================


_credit_store: CreditStore | None = None


def get_credit_store() -> CreditStore:
    """Get the configured credit store singleton."""
    global _credit_store
    if _credit_store is None:
        if settings.credit_store_backend == "sql":
            from wellnesstree.infrastructure.credit_store import SqlCreditStore
            from wellnesstree.infrastructure.database import get_session_factory

            _credit_store = SqlCreditStore(get_session_factory())
        else:
            _credit_store = InMemoryCreditStore()
    return _credit_store


def set_credit_store(store: CreditStore | None) -> None:
    """Replace the credit store singleton (for testing)."""
    global _credit_store
    _credit_store = store


def get_credit_ledger(request_id: str | None = None) -> CreditLedger:
    """Get credit ledger bound to the configured store.

    Args:
        request_id: Request ID for correlation.

    Returns:
        CreditLedger instance.
    """
    return CreditLedger(store=get_credit_store(), request_id=request_id)

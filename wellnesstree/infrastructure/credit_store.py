"""SQL-backed credit store.

Each ledger transaction runs in one database transaction. The user
row is read with ``SELECT ... FOR UPDATE`` so concurrent deductions
for the same user queue behind each other; the balance update and
the log insert commit together or not at all.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wellnesstree.domain.entities import CreditAccount
from wellnesstree.domain.exceptions import TransactionAbortedError
from wellnesstree.domain.value_objects import InteractionLogEntry
from wellnesstree.infrastructure.models import InteractionLogModel, UserCreditModel

logger = structlog.get_logger()

# serialization_failure, deadlock_detected, lock_not_available
CONTENTION_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def _is_contention(error: DBAPIError) -> bool:
    if isinstance(error, OperationalError):
        return True
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    return sqlstate in CONTENTION_SQLSTATES


class SqlCreditTransaction:
    """Credit operations bound to an open session transaction."""

    def __init__(self, session: AsyncSession, user_id: str) -> None:
        self._session = session
        self._user_id = user_id
        self._row: UserCreditModel | None = None

    async def get_account(self) -> CreditAccount | None:
        result = await self._session.execute(
            select(UserCreditModel)
            .where(UserCreditModel.id == self._user_id)
            .with_for_update()
        )
        self._row = result.scalar_one_or_none()
        if self._row is None:
            return None
        return CreditAccount(
            user_id=self._row.id,
            balance=self._row.credits,
            dispensary_id=self._row.dispensary_id,
        )

    def set_balance(self, balance: int) -> None:
        if self._row is None:
            raise RuntimeError("get_account() must be called before set_balance()")
        self._row.credits = balance

    def append_log(self, entry: InteractionLogEntry) -> None:
        self._session.add(
            InteractionLogModel(
                id=entry.id,
                user_id=entry.user_id,
                dispensary_id=entry.dispensary_id,
                credits_used=entry.amount,
                was_free_interaction=entry.was_free,
                interaction_metadata=entry.metadata,
                created_at=entry.timestamp,
            )
        )


class SqlCreditStore:
    """Credit store on top of an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self, user_id: str) -> AsyncIterator[SqlCreditTransaction]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield SqlCreditTransaction(session, user_id)
        except DBAPIError as e:
            if not _is_contention(e):
                raise
            logger.warning(
                "Credit store transaction failed",
                user_id=user_id,
                error=str(e.orig),
            )
            raise TransactionAbortedError(f"user {user_id}", str(e.orig)) from e

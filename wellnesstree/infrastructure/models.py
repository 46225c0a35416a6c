"""SQLAlchemy models for database tables.

Provides ORM models for user credit balances and the AI interaction log.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)

from wellnesstree.infrastructure.database import Base


class UserCreditModel(Base):
    """User credit balance.

    ``credits`` is written only by the credit ledger, inside the same
    transaction that appends the matching interaction log row.
    """

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    credits = Column(Integer, nullable=False, default=0)
    dispensary_id = Column(String(128), nullable=True, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class InteractionLogModel(Base):
    """Immutable AI interaction log row."""

    __tablename__ = "ai_interaction_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    dispensary_id = Column(String(128), nullable=True)
    credits_used = Column(Integer, nullable=False)
    was_free_interaction = Column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative models
    interaction_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

"""Base classes for the domain layer.

Shared building blocks for shipments, pricing values and the events
they emit.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID, uuid4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject:
    """Immutable value compared by its attributes.

    A price breakdown computed twice from the same inputs is the
    same value.
    """


# ============================================================================
# Domain Events
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Something that happened to an aggregate.

    Subclasses set ``event_type`` and declare their payload as
    ordinary dataclass fields.

    Attributes:
        event_id: Unique identifier for this event instance.
        occurred_at: When the event happened.
        aggregate_id: ID of the aggregate that emitted the event.
        aggregate_type: Type name of that aggregate.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: str = ""
    aggregate_type: str = ""

    def payload(self) -> dict[str, Any]:
        """Event-specific fields, without the envelope."""
        envelope = {f.name for f in fields(DomainEvent)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in envelope}


# ============================================================================
# Aggregate Root
# ============================================================================


IdT = TypeVar("IdT")


@dataclass(kw_only=True, eq=False)
class AggregateRoot(Generic[IdT]):
    """Versioned domain object with identity that records events.

    Two aggregates with the same id are the same aggregate, whatever
    state each copy is in. Events recorded during a mutation are
    collected by the application service after it saves the aggregate.

    Attributes:
        id: Unique identifier.
        version: Incremented on every mutation.
        created_at: When the aggregate was created.
        updated_at: When it was last changed.
    """

    id: IdT
    version: int = 1
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    _events: list[DomainEvent] = field(default_factory=list, init=False, repr=False)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, type(self)) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def _record_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    def collect_events(self) -> list[DomainEvent]:
        """Return and clear the events recorded since the last call."""
        events, self._events = self._events, []
        return events

    def _touch(self) -> None:
        self.updated_at = utc_now()
        self.version += 1

"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in tickets/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from tickets.domain.value_objects import Capacity, EventId, Money, TicketCode, TicketId


class TicketState(Enum):
    PENDING = "pending"
    VALID = "valid"
    USED = "used"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class CasResult(Enum):
    """Outcome of a compare-and-swap on a ticket's state."""

    SUCCESS = "success"
    CONFLICT_STATE_CHANGED = "conflict_state_changed"
    NOT_FOUND = "not_found"


class CheckInOutcome(Enum):
    SUCCESS = "success"
    ALREADY_USED = "already_used"
    INVALID = "invalid"
    WRONG_EVENT = "wrong_event"
    TRANSIENT_ERROR = "transient_error"


class LiveUpdateType(Enum):
    CHECKIN_SUCCESS = "checkin_success"
    COUNTER_UPDATE = "counter_update"


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    event_id: EventId
    ticket_code: TicketCode
    holder_id: str | None
    ticket_type: str
    price: Money
    state: TicketState
    purchased_at: datetime
    checked_in_at: datetime | None
    updated_at: datetime


@dataclass(frozen=True)
class TransitionMetadata:
    """Fields written alongside a state change."""

    changed_at: datetime
    checked_in_at: datetime | None = None


@dataclass(frozen=True)
class EventAggregate:
    """Per-event counters kept in step with ticket transitions."""

    event_id: EventId
    capacity: Capacity
    sold_count: int
    checked_in_count: int
    revenue: Decimal
    ticket_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class EventSnapshot:
    """Read view of an event's counters."""

    event_id: EventId
    capacity: int
    sold: int
    checked_in: int
    revenue: Decimal

    @property
    def remaining(self) -> int:
        return self.capacity - self.sold

    @property
    def rate(self) -> float:
        if self.sold == 0:
            return 0.0
        return round(self.checked_in / self.sold, 4)

    @classmethod
    def of(cls, aggregate: EventAggregate) -> "EventSnapshot":
        return cls(
            event_id=aggregate.event_id,
            capacity=aggregate.capacity.value,
            sold=aggregate.sold_count,
            checked_in=aggregate.checked_in_count,
            revenue=aggregate.revenue,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "eventId": str(self.event_id),
            "capacity": self.capacity,
            "sold": self.sold,
            "checkedIn": self.checked_in,
            "remaining": self.remaining,
            "rate": self.rate,
            "revenue": f"{self.revenue:.2f}",
        }


@dataclass(frozen=True)
class TicketFilter:
    state: TicketState | None = None
    ticket_type: str | None = None
    holder_id: str | None = None

    def matches(self, ticket: Ticket) -> bool:
        if self.state is not None and ticket.state is not self.state:
            return False
        if self.ticket_type is not None and ticket.ticket_type != self.ticket_type:
            return False
        if self.holder_id is not None and ticket.holder_id != self.holder_id:
            return False
        return True


@dataclass(frozen=True)
class TicketPage:
    """One page of tickets; pass next_cursor back to resume after the last item."""

    items: tuple[Ticket, ...]
    next_cursor: str | None


@dataclass(frozen=True)
class CheckInResult:
    outcome: CheckInOutcome
    message: str
    ticket: Ticket | None = None

    @property
    def retryable(self) -> bool:
        return self.outcome is CheckInOutcome.TRANSIENT_ERROR


@dataclass(frozen=True)
class CheckInAttempt:
    """Audit record of one scan. Never read back by the check-in path."""

    ticket_code: str
    event_id: str
    outcome: CheckInOutcome
    message: str
    attempted_at: datetime
    operator_id: str | None = None


@dataclass(frozen=True)
class LiveUpdate:
    type: LiveUpdateType
    event_id: EventId
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    def as_message(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "eventId": str(self.event_id),
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def checkin_success(cls, ticket: Ticket, timestamp: datetime) -> "LiveUpdate":
        return cls(
            type=LiveUpdateType.CHECKIN_SUCCESS,
            event_id=ticket.event_id,
            timestamp=timestamp,
            payload={
                "ticketId": str(ticket.id),
                "ticketCode": str(ticket.ticket_code),
                "ticketType": ticket.ticket_type,
                "checkInTimestamp": ticket.checked_in_at.isoformat() if ticket.checked_in_at else None,
            },
        )

    @classmethod
    def counter_update(cls, snapshot: EventSnapshot, timestamp: datetime) -> "LiveUpdate":
        return cls(
            type=LiveUpdateType.COUNTER_UPDATE,
            event_id=snapshot.event_id,
            timestamp=timestamp,
            payload=snapshot.as_dict(),
        )


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a lifecycle action. ``changed`` is False for an idempotent repeat."""

    ticket: Ticket
    changed: bool

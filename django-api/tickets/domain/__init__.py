from tickets.domain.aggregates import CounterField, RefundPolicy
from tickets.domain.models import (
    CasResult,
    CheckInAttempt,
    CheckInOutcome,
    CheckInResult,
    EventAggregate,
    EventSnapshot,
    LiveUpdate,
    LiveUpdateType,
    Ticket,
    TicketFilter,
    TicketPage,
    TicketState,
    TransitionMetadata,
    TransitionOutcome,
)
from tickets.domain.state_machine import TicketAction
from tickets.domain.value_objects import (
    CallerContext,
    Capacity,
    EventId,
    Money,
    TicketCode,
    TicketId,
)

__all__ = [
    "CasResult",
    "CheckInAttempt",
    "CheckInOutcome",
    "CheckInResult",
    "EventAggregate",
    "EventSnapshot",
    "LiveUpdate",
    "LiveUpdateType",
    "Ticket",
    "TicketFilter",
    "TicketPage",
    "TicketState",
    "TransitionMetadata",
    "TransitionOutcome",
    "TicketAction",
    "CounterField",
    "RefundPolicy",
    "CallerContext",
    "Capacity",
    "EventId",
    "Money",
    "TicketCode",
    "TicketId",
]

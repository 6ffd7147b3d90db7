"""Per-event counters (sold, checked in, revenue).

Deltas are written through the store inside the same atomic unit as the
ticket transition that caused them, so a ticket is never ``used`` without
its check-in being counted.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from tickets.domain import (
    Capacity,
    CounterField,
    EventAggregate,
    EventId,
    EventSnapshot,
    RefundPolicy,
    Ticket,
    TicketState,
)
from tickets.domain.aggregates import Delta, counter_deltas, expected_counters
from tickets.domain.errors import EventNotFoundError, MalformedInputError
from tickets.services.parsing import parse_event_id
from tickets.signals import aggregate_changed
from tickets.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)

DEFAULT_TICKET_TYPES = ("Early Bird", "Regular", "VIP")


class EventAggregateCounter:
    """Maintains and reads event aggregates."""

    def __init__(
        self,
        store: TicketStore,
        refund_policy: RefundPolicy = RefundPolicy.RETAIN_ATTENDANCE,
    ) -> None:
        self._store = store
        self.refund_policy = refund_policy

    def open_event(
        self,
        event_id: str,
        capacity: int,
        ticket_types: Iterable[str] = DEFAULT_TICKET_TYPES,
    ) -> EventSnapshot:
        """Start tracking an event.

        Raises:
            InvalidIdError: If the event_id is malformed.
            MalformedInputError: If capacity is negative or no ticket type is given.
            EventAlreadyExistsError: If the event is already tracked.
        """
        eid = parse_event_id(event_id)
        try:
            cap = Capacity(value=int(capacity))
        except (TypeError, ValueError) as exc:
            raise MalformedInputError("invalid capacity") from exc
        types = tuple(dict.fromkeys(t.strip() for t in ticket_types if t and t.strip()))
        if not types:
            raise MalformedInputError("at least one ticket type is required")

        aggregate = self._store.create_aggregate(
            EventAggregate(
                event_id=eid,
                capacity=cap,
                sold_count=0,
                checked_in_count=0,
                revenue=Decimal("0"),
                ticket_types=types,
            )
        )
        logger.info("Opened event %s with capacity %d", eid, cap.value)
        return EventSnapshot.of(aggregate)

    def get(self, event_id: str | EventId) -> EventAggregate:
        eid = parse_event_id(event_id)
        aggregate = self._store.get_aggregate(eid)
        if aggregate is None:
            raise EventNotFoundError(eid.value)
        return aggregate

    def snapshot(self, event_id: str | EventId) -> EventSnapshot:
        """Return current counters for an event.

        Raises:
            InvalidIdError: If the event_id is malformed.
            EventNotFoundError: If the event is not tracked.
        """
        return EventSnapshot.of(self.get(event_id))

    def apply_delta(self, event_id: EventId, field: CounterField, delta: Delta) -> None:
        """Apply one counter delta. Call inside the store's atomic unit."""
        self._store.apply_delta(event_id, field, delta)

    def apply_transition(
        self, ticket: Ticket, from_state: TicketState | None, to_state: TicketState
    ) -> None:
        """Apply every delta a ticket transition implies. Call inside the store's atomic unit."""
        for field, delta in counter_deltas(ticket, from_state, to_state, self.refund_policy).items():
            self.apply_delta(ticket.event_id, field, delta)

    def changed(self, event_id: EventId) -> EventSnapshot:
        """Announce committed counter changes and return the fresh snapshot."""
        snapshot = self.snapshot(event_id)
        aggregate_changed.send(sender=self.__class__, event_id=event_id.value, snapshot=snapshot)
        return snapshot

    def recount(self, event_id: str | EventId) -> EventSnapshot:
        """Recompute an event's counters from its tickets and store them."""
        eid = parse_event_id(event_id)
        with self._store.atomic():
            before = self.get(eid)
            sold, checked_in, revenue = expected_counters(
                self._store.list_by_event(eid), self.refund_policy
            )
            self._store.set_counters(eid, sold, checked_in, revenue)

        if (before.sold_count, before.checked_in_count, before.revenue) != (sold, checked_in, revenue):
            logger.warning(
                "Recount corrected event %s: sold %d->%d, checked in %d->%d, revenue %s->%s",
                eid,
                before.sold_count,
                sold,
                before.checked_in_count,
                checked_in,
                before.revenue,
                revenue,
            )
        return self.changed(eid)

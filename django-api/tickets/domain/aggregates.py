"""Counter bookkeeping for event aggregates.

Every ticket transition maps to a fixed set of counter deltas. The deltas are
ordered so that applying them one at a time never breaks
``checked_in <= sold <= capacity``.
"""

from collections.abc import Iterable
from decimal import Decimal
from enum import Enum

from tickets.domain.models import Ticket, TicketState

Delta = int | Decimal


class CounterField(Enum):
    SOLD = "sold"
    CHECKED_IN = "checked_in"
    REVENUE = "revenue"


class RefundPolicy(Enum):
    """What refunding an already checked-in ticket does to the counters.

    RETAIN_ATTENDANCE keeps the seat sold and attended and only gives the
    money back. RELEASE takes the ticket out of every counter.
    """

    RETAIN_ATTENDANCE = "retain_attendance"
    RELEASE = "release"


_HOLDS_SEAT = frozenset({TicketState.PENDING, TicketState.VALID, TicketState.USED})
_PAID = frozenset({TicketState.VALID, TicketState.USED})


def counter_deltas(
    ticket: Ticket,
    from_state: TicketState | None,
    to_state: TicketState,
    policy: RefundPolicy = RefundPolicy.RETAIN_ATTENDANCE,
) -> dict[CounterField, Delta]:
    """Return the counter deltas for moving ``ticket`` from ``from_state`` to ``to_state``.

    ``from_state`` is None when the ticket is being issued.
    """
    price = ticket.price.amount
    if from_state is None:
        return {CounterField.SOLD: 1}

    match (from_state, to_state):
        case (TicketState.PENDING, TicketState.VALID):
            return {CounterField.REVENUE: price}
        case (TicketState.PENDING, TicketState.CANCELLED):
            return {CounterField.SOLD: -1}
        case (TicketState.VALID, TicketState.USED):
            return {CounterField.CHECKED_IN: 1}
        case (TicketState.VALID, TicketState.CANCELLED | TicketState.REFUNDED):
            return {CounterField.SOLD: -1, CounterField.REVENUE: -price}
        case (TicketState.USED, TicketState.REFUNDED):
            if policy is RefundPolicy.RELEASE:
                return {
                    CounterField.CHECKED_IN: -1,
                    CounterField.SOLD: -1,
                    CounterField.REVENUE: -price,
                }
            return {CounterField.REVENUE: -price}
    return {}


def expected_counters(
    tickets: Iterable[Ticket],
    policy: RefundPolicy = RefundPolicy.RETAIN_ATTENDANCE,
) -> tuple[int, int, Decimal]:
    """Recompute ``(sold, checked_in, revenue)`` from ticket states alone."""
    sold = 0
    checked_in = 0
    revenue = Decimal("0")
    for ticket in tickets:
        attended_refund = (
            ticket.state is TicketState.REFUNDED
            and ticket.checked_in_at is not None
            and policy is RefundPolicy.RETAIN_ATTENDANCE
        )
        if ticket.state in _HOLDS_SEAT or attended_refund:
            sold += 1
        if ticket.state is TicketState.USED or attended_refund:
            checked_in += 1
        if ticket.state in _PAID:
            revenue += ticket.price.amount
    return sold, checked_in, revenue

"""Ticket lifecycle rules.

Pure decision functions: no I/O, no hidden state. The store applies the
result with a compare-and-swap keyed on the state read here.
"""

from enum import Enum

from tickets.domain.errors import AlreadyInTargetStateError, IllegalTransitionError
from tickets.domain.models import TicketState


class TicketAction(Enum):
    CONFIRM_PAYMENT = "confirm_payment"
    CANCEL = "cancel"
    CHECK_IN = "check_in"
    REFUND = "refund"

    @property
    def target(self) -> TicketState:
        return _TARGETS[self]


_TARGETS = {
    TicketAction.CONFIRM_PAYMENT: TicketState.VALID,
    TicketAction.CANCEL: TicketState.CANCELLED,
    TicketAction.CHECK_IN: TicketState.USED,
    TicketAction.REFUND: TicketState.REFUNDED,
}

LEGAL_TRANSITIONS: frozenset[tuple[TicketState, TicketState]] = frozenset(
    {
        (TicketState.PENDING, TicketState.VALID),
        (TicketState.PENDING, TicketState.CANCELLED),
        (TicketState.VALID, TicketState.USED),
        (TicketState.VALID, TicketState.CANCELLED),
        (TicketState.VALID, TicketState.REFUNDED),
        (TicketState.USED, TicketState.REFUNDED),
    }
)

TERMINAL_STATES = frozenset({TicketState.CANCELLED, TicketState.REFUNDED})


def transition(current: TicketState, action: TicketAction) -> TicketState:
    """Return the state reached by applying ``action`` to a ticket in ``current``.

    Raises:
        AlreadyInTargetStateError: The ticket is already where ``action`` leads.
        IllegalTransitionError: No edge leads from ``current`` via ``action``.
    """
    target = action.target
    if current is target:
        raise AlreadyInTargetStateError(current.value)
    if (current, target) not in LEGAL_TRANSITIONS:
        raise IllegalTransitionError(current.value, action.value)
    return target


def can_transition(current: TicketState, action: TicketAction) -> bool:
    return (current, action.target) in LEGAL_TRANSITIONS

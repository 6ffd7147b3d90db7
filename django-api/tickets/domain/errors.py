"""Domain error codes for the tickets module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    MALFORMED_INPUT = "MALFORMED_INPUT"
    INVALID_ID = "INVALID_ID"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    WRONG_EVENT = "WRONG_EVENT"
    ALREADY_IN_TARGET_STATE = "ALREADY_IN_TARGET_STATE"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    CONFLICT_STATE_CHANGED = "CONFLICT_STATE_CHANGED"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_ALREADY_EXISTS = "EVENT_ALREADY_EXISTS"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    COUNTER_INVARIANT = "COUNTER_INVARIANT"
    INVALID_TICKET_TYPE = "INVALID_TICKET_TYPE"
    DUPLICATE_TICKET_CODE = "DUPLICATE_TICKET_CODE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    retryable = False

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class MalformedInputError(DomainError):
    """Raised when a scanned payload cannot be parsed."""

    def __init__(self, detail: str = "malformed code") -> None:
        super().__init__(code=ErrorCode.MALFORMED_INPUT, message=detail)


class InvalidIdError(DomainError):
    """Raised when an identifier has an invalid format."""

    def __init__(self, kind: str = "ID") -> None:
        super().__init__(code=ErrorCode.INVALID_ID, message=f"Invalid {kind} format")


class TicketNotFoundError(DomainError):
    """Raised when a ticket does not exist."""

    def __init__(self, ticket_ref: str) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")
        self.ticket_ref = ticket_ref


class WrongEventError(DomainError):
    """Raised when a ticket exists but belongs to another event."""

    def __init__(self, ticket_event_id: str, expected_event_id: str) -> None:
        super().__init__(
            code=ErrorCode.WRONG_EVENT,
            message="Ticket is not valid for this event",
        )
        self.ticket_event_id = ticket_event_id
        self.expected_event_id = expected_event_id


class AlreadyInTargetStateError(DomainError):
    """Raised when an action is re-applied to a ticket already in its target state.

    Callers treat this as an idempotent no-op, not as a failure.
    """

    def __init__(self, state: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_IN_TARGET_STATE,
            message=f"Ticket is already {state}",
        )
        self.state = state


class IllegalTransitionError(DomainError):
    """Raised when the state machine has no edge for the requested action."""

    def __init__(self, current: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.ILLEGAL_TRANSITION,
            message=f"Ticket in state {current} does not allow {action.replace('_', ' ')}",
        )
        self.current = current
        self.action = action


class ConflictStateChangedError(DomainError):
    """Raised when a ticket kept changing underneath repeated compare-and-swap attempts."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT_STATE_CHANGED,
            message="Ticket was modified concurrently",
        )
        self.ticket_id = ticket_id


class TransientStoreError(DomainError):
    """Raised when the store is unreachable or timed out. Safe to retry."""

    retryable = True

    def __init__(self, operation: str) -> None:
        super().__init__(
            code=ErrorCode.TRANSIENT_STORE_ERROR,
            message="Ticket store temporarily unavailable",
        )
        self.operation = operation


class EventNotFoundError(DomainError):
    """Raised when an event has no aggregate record."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        self.event_id = event_id


class EventAlreadyExistsError(DomainError):
    """Raised when opening an event that is already open."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_ALREADY_EXISTS, message="Event already exists")
        self.event_id = event_id


class CapacityExceededError(DomainError):
    """Raised when selling another ticket would exceed event capacity."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.CAPACITY_EXCEEDED, message="Not enough tickets available")
        self.event_id = event_id


class CounterInvariantError(DomainError):
    """Raised when a counter delta would break an aggregate invariant."""

    def __init__(self, event_id: str, field: str) -> None:
        super().__init__(
            code=ErrorCode.COUNTER_INVARIANT,
            message=f"Counter update rejected for {field}",
        )
        self.event_id = event_id
        self.field = field


class InvalidTicketTypeError(DomainError):
    """Raised when a ticket type is not offered by the event."""

    def __init__(self, ticket_type: str) -> None:
        super().__init__(code=ErrorCode.INVALID_TICKET_TYPE, message="Unknown ticket type")
        self.ticket_type = ticket_type


class DuplicateTicketCodeError(DomainError):
    """Raised when a ticket code is already taken."""

    def __init__(self, ticket_code: str) -> None:
        super().__init__(code=ErrorCode.DUPLICATE_TICKET_CODE, message="Ticket code already exists")
        self.ticket_code = ticket_code

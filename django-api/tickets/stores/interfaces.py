"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. A store is the only writer
of persisted ticket state; every call is bounded and reports backend failures
as TransientStoreError.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
from decimal import Decimal

from tickets.domain import (
    CasResult,
    CheckInAttempt,
    CounterField,
    EventAggregate,
    EventId,
    Ticket,
    TicketCode,
    TicketFilter,
    TicketId,
    TicketPage,
    TicketState,
    TransitionMetadata,
)
from tickets.domain.aggregates import Delta

DEFAULT_PAGE_SIZE = 100


class TicketStore(ABC):
    """Interface for ticket and event-aggregate persistence."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Return a context manager grouping writes into one unit.

        Everything done inside either commits together or is rolled back when
        the block raises. Units nest.
        """
        ...

    @abstractmethod
    def get_by_code(self, code: TicketCode) -> Ticket | None:
        """Return the ticket with this code, or None if not found."""
        ...

    @abstractmethod
    def get_by_id(self, ticket_id: TicketId) -> Ticket | None:
        """Return a ticket by ID, or None if not found."""
        ...

    @abstractmethod
    def create_ticket(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket.

        Raises:
            DuplicateTicketCodeError: If the code is already taken.
        """
        ...

    @abstractmethod
    def compare_and_swap_state(
        self,
        ticket_id: TicketId,
        expected: TicketState,
        new: TicketState,
        metadata: TransitionMetadata,
    ) -> CasResult:
        """Move a ticket to ``new`` only if it is currently in ``expected``.

        Atomic per ticket: of several callers racing from the same expected
        state exactly one gets SUCCESS, the rest CONFLICT_STATE_CHANGED.
        """
        ...

    @abstractmethod
    def list_page(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        """Return up to ``limit`` tickets of an event ordered by id, after ``cursor``."""
        ...

    @abstractmethod
    def list_by_holder(
        self,
        holder_id: str,
        state: TicketState | None,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        """Return up to ``limit`` of a holder's tickets across all events, ordered by id."""
        ...

    def list_by_event(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter | None = None,
        cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[Ticket]:
        """Lazily yield every matching ticket of an event.

        Pages are fetched on demand. To resume an interrupted walk, pass the
        id of the last ticket seen as ``cursor``.
        """
        ticket_filter = ticket_filter or TicketFilter()
        while True:
            page = self.list_page(event_id, ticket_filter, cursor, page_size)
            yield from page.items
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    @abstractmethod
    def create_aggregate(self, aggregate: EventAggregate) -> EventAggregate:
        """Persist a new event aggregate.

        Raises:
            EventAlreadyExistsError: If the event already has one.
        """
        ...

    @abstractmethod
    def get_aggregate(self, event_id: EventId) -> EventAggregate | None:
        """Return an event's aggregate, or None if not found."""
        ...

    @abstractmethod
    def apply_delta(self, event_id: EventId, field: CounterField, delta: Delta) -> None:
        """Add ``delta`` to one counter, refusing updates that break an invariant.

        Raises:
            EventNotFoundError: If the event has no aggregate.
            CapacityExceededError: If sold would exceed capacity.
            CounterInvariantError: If any other bound would be crossed.
        """
        ...

    @abstractmethod
    def set_counters(
        self, event_id: EventId, sold: int, checked_in: int, revenue: Decimal
    ) -> None:
        """Overwrite an event's counters (reconciliation only)."""
        ...

    @abstractmethod
    def record_attempt(self, attempt: CheckInAttempt) -> None:
        """Append a scan to the audit log."""
        ...

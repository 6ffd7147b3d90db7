"""In-process TicketStore.

Holds everything in dicts behind one re-entrant lock. Lock acquisition is
bounded by ``timeout`` so a wedged caller turns into TransientStoreError
rather than a hang.
"""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from uuid import UUID

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
from tickets.domain.errors import (
    CapacityExceededError,
    CounterInvariantError,
    DuplicateTicketCodeError,
    EventAlreadyExistsError,
    EventNotFoundError,
    InvalidIdError,
    TransientStoreError,
)
from tickets.stores.interfaces import TicketStore


class InMemoryTicketStore(TicketStore):
    """Dict-backed store; suitable for a single process and for tests."""

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout
        self._lock = threading.RLock()
        self._depth = 0
        self._tickets: dict[UUID, Ticket] = {}
        self._codes: dict[str, UUID] = {}
        self._aggregates: dict[str, EventAggregate] = {}
        self.attempts: list[CheckInAttempt] = []

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._timeout):
            raise TransientStoreError(operation)
        try:
            yield
        finally:
            self._lock.release()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._locked("atomic"):
            outermost = self._depth == 0
            if outermost:
                saved = (dict(self._tickets), dict(self._codes), dict(self._aggregates))
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost:
                    self._tickets, self._codes, self._aggregates = saved
                raise
            finally:
                self._depth -= 1

    def get_by_code(self, code: TicketCode) -> Ticket | None:
        with self._locked("get_by_code"):
            ticket_id = self._codes.get(code.value)
            return self._tickets.get(ticket_id) if ticket_id else None

    def get_by_id(self, ticket_id: TicketId) -> Ticket | None:
        with self._locked("get_by_id"):
            return self._tickets.get(ticket_id.value)

    def create_ticket(self, ticket: Ticket) -> Ticket:
        with self._locked("create_ticket"):
            if ticket.ticket_code.value in self._codes:
                raise DuplicateTicketCodeError(ticket.ticket_code.value)
            self._tickets[ticket.id.value] = ticket
            self._codes[ticket.ticket_code.value] = ticket.id.value
            return ticket

    def compare_and_swap_state(
        self,
        ticket_id: TicketId,
        expected: TicketState,
        new: TicketState,
        metadata: TransitionMetadata,
    ) -> CasResult:
        with self._locked("compare_and_swap_state"):
            current = self._tickets.get(ticket_id.value)
            if current is None:
                return CasResult.NOT_FOUND
            if current.state is not expected:
                return CasResult.CONFLICT_STATE_CHANGED
            self._tickets[ticket_id.value] = replace(
                current,
                state=new,
                updated_at=metadata.changed_at,
                checked_in_at=metadata.checked_in_at or current.checked_in_at,
            )
            return CasResult.SUCCESS

    def list_page(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        return self._page(
            "list_page",
            lambda t: t.event_id == event_id and ticket_filter.matches(t),
            cursor,
            limit,
        )

    def list_by_holder(
        self,
        holder_id: str,
        state: TicketState | None,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        ticket_filter = TicketFilter(state=state, holder_id=holder_id)
        return self._page("list_by_holder", ticket_filter.matches, cursor, limit)

    def _page(
        self,
        operation: str,
        predicate: Callable[[Ticket], bool],
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        after = None
        if cursor:
            try:
                after = UUID(cursor)
            except ValueError as exc:
                raise InvalidIdError("cursor") from exc

        with self._locked(operation):
            matching = sorted(
                (
                    t
                    for t in self._tickets.values()
                    if predicate(t) and (after is None or t.id.value > after)
                ),
                key=lambda t: t.id.value,
            )
        items = tuple(matching[:limit])
        next_cursor = str(items[-1].id) if len(matching) > limit else None
        return TicketPage(items=items, next_cursor=next_cursor)

    def create_aggregate(self, aggregate: EventAggregate) -> EventAggregate:
        with self._locked("create_aggregate"):
            if aggregate.event_id.value in self._aggregates:
                raise EventAlreadyExistsError(aggregate.event_id.value)
            self._aggregates[aggregate.event_id.value] = aggregate
            return aggregate

    def get_aggregate(self, event_id: EventId) -> EventAggregate | None:
        with self._locked("get_aggregate"):
            return self._aggregates.get(event_id.value)

    def apply_delta(self, event_id: EventId, field: CounterField, delta: Delta) -> None:
        if not delta:
            return
        with self._locked("apply_delta"):
            aggregate = self._aggregates.get(event_id.value)
            if aggregate is None:
                raise EventNotFoundError(event_id.value)

            sold = aggregate.sold_count
            checked_in = aggregate.checked_in_count
            revenue = aggregate.revenue
            if field is CounterField.SOLD:
                sold += delta
            elif field is CounterField.CHECKED_IN:
                checked_in += delta
            else:
                revenue += delta

            if sold > aggregate.capacity.value:
                raise CapacityExceededError(event_id.value)
            if not (0 <= checked_in <= sold) or revenue < 0:
                raise CounterInvariantError(event_id.value, field.value)

            self._aggregates[event_id.value] = replace(
                aggregate, sold_count=sold, checked_in_count=checked_in, revenue=revenue
            )

    def set_counters(
        self, event_id: EventId, sold: int, checked_in: int, revenue: Decimal
    ) -> None:
        with self._locked("set_counters"):
            aggregate = self._aggregates.get(event_id.value)
            if aggregate is None:
                raise EventNotFoundError(event_id.value)
            self._aggregates[event_id.value] = replace(
                aggregate, sold_count=sold, checked_in_count=checked_in, revenue=revenue
            )

    def record_attempt(self, attempt: CheckInAttempt) -> None:
        with self._locked("record_attempt"):
            self.attempts.append(attempt)

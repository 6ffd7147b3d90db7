"""Ticket service - issuing tickets and the non-scan lifecycle actions.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from tickets.domain import (
    CasResult,
    LiveUpdate,
    Money,
    Ticket,
    TicketAction,
    TicketCode,
    TicketFilter,
    TicketId,
    TicketPage,
    TicketState,
    TransitionMetadata,
    TransitionOutcome,
)
from tickets.domain.errors import (
    AlreadyInTargetStateError,
    ConflictStateChangedError,
    DuplicateTicketCodeError,
    InvalidTicketTypeError,
    MalformedInputError,
    TicketNotFoundError,
)
from tickets.domain.state_machine import transition
from tickets.services.aggregate_service import EventAggregateCounter
from tickets.services.checkin_service import utcnow
from tickets.services.parsing import parse_event_id, parse_ticket_id
from tickets.services.publisher import LiveUpdatePublisher
from tickets.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)

GENERATED_CODE_ATTEMPTS = 3
MAX_PAGE_SIZE = 100
HOLDER_ID_MAX_LENGTH = 64


class TicketService:
    """Service for ticket lifecycle operations."""

    def __init__(
        self,
        store: TicketStore,
        counter: EventAggregateCounter,
        publisher: LiveUpdatePublisher,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = 5,
    ) -> None:
        self._store = store
        self._counter = counter
        self._publisher = publisher
        self._clock = clock
        self._max_attempts = max_attempts

    def issue_ticket(
        self,
        event_id: str,
        ticket_type: str,
        price: Any,
        holder_id: str | None = None,
        ticket_code: str | None = None,
    ) -> Ticket:
        """Create a pending ticket and count it as sold.

        Raises:
            InvalidIdError: If the event_id is malformed.
            EventNotFoundError: If the event is not tracked.
            InvalidTicketTypeError: If the event does not offer ``ticket_type``.
            MalformedInputError: If the price or a given code is invalid.
            CapacityExceededError: If the event is sold out.
            DuplicateTicketCodeError: If a given code is already taken.
        """
        aggregate = self._counter.get(event_id)
        if ticket_type not in aggregate.ticket_types:
            raise InvalidTicketTypeError(ticket_type)
        try:
            money = Money(amount=Decimal(str(price)))
        except (InvalidOperation, ValueError) as exc:
            raise MalformedInputError("invalid price") from exc
        fixed_code = None
        if ticket_code is not None:
            try:
                fixed_code = TicketCode.from_string(ticket_code)
            except ValueError as exc:
                raise MalformedInputError("invalid ticket code") from exc

        attempts = 1 if fixed_code else GENERATED_CODE_ATTEMPTS
        for attempt in range(1, attempts + 1):
            now = self._clock()
            ticket = Ticket(
                id=TicketId.new(),
                event_id=aggregate.event_id,
                ticket_code=fixed_code or TicketCode.generate(now),
                holder_id=holder_id,
                ticket_type=ticket_type,
                price=money,
                state=TicketState.PENDING,
                purchased_at=now,
                checked_in_at=None,
                updated_at=now,
            )
            try:
                with self._store.atomic():
                    created = self._store.create_ticket(ticket)
                    self._counter.apply_transition(created, None, TicketState.PENDING)
            except DuplicateTicketCodeError:
                if attempt == attempts:
                    raise
                logger.warning("Generated ticket code %s collided, retrying", ticket.ticket_code)
                continue

            logger.info(
                "Issued ticket %s (%s) for event %s", created.ticket_code, ticket_type, created.event_id
            )
            self._announce(created)
            return created

    def confirm_payment(self, ticket_id: str) -> TransitionOutcome:
        """Mark a pending ticket as paid. Driven by the payment collaborator."""
        return self._apply(ticket_id, TicketAction.CONFIRM_PAYMENT)

    def cancel(self, ticket_id: str) -> TransitionOutcome:
        return self._apply(ticket_id, TicketAction.CANCEL)

    def refund(self, ticket_id: str) -> TransitionOutcome:
        return self._apply(ticket_id, TicketAction.REFUND)

    def get_ticket(self, ticket_id: str) -> Ticket:
        """Return a ticket by ID.

        Raises:
            InvalidIdError: If the ticket_id is not a valid UUID.
            TicketNotFoundError: If the ticket does not exist.
        """
        tid = parse_ticket_id(ticket_id)
        ticket = self._store.get_by_id(tid)
        if ticket is None:
            raise TicketNotFoundError(str(tid))
        return ticket

    def get_by_code(self, code: str) -> Ticket:
        """Return the ticket printed with ``code``.

        Raises:
            MalformedInputError: If the code has an invalid format.
            TicketNotFoundError: If no ticket carries the code.
        """
        try:
            ticket_code = TicketCode.from_string(code)
        except ValueError as exc:
            raise MalformedInputError("invalid ticket code") from exc
        ticket = self._store.get_by_code(ticket_code)
        if ticket is None:
            raise TicketNotFoundError(ticket_code.value)
        return ticket

    def list_tickets(
        self,
        event_id: str,
        state: str | None = None,
        ticket_type: str | None = None,
        holder_id: str | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> TicketPage:
        """Return one page of an event's tickets.

        Raises:
            InvalidIdError: If the event_id or cursor is malformed.
            EventNotFoundError: If the event is not tracked.
            MalformedInputError: If the state filter or limit is invalid.
        """
        aggregate = self._counter.get(event_id)
        ticket_state, limit = self._page_arguments(state, limit)

        ticket_filter = TicketFilter(state=ticket_state, ticket_type=ticket_type, holder_id=holder_id)
        return self._store.list_page(aggregate.event_id, ticket_filter, cursor, limit)

    def list_holder_tickets(
        self,
        holder_id: str,
        state: str | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> TicketPage:
        """Return one page of a holder's tickets across every event.

        Raises:
            InvalidIdError: If the cursor is malformed.
            MalformedInputError: If the holder id, state filter or limit is invalid.
        """
        holder = (holder_id or "").strip()
        if not holder or len(holder) > HOLDER_ID_MAX_LENGTH:
            raise MalformedInputError("invalid holder id")
        ticket_state, limit = self._page_arguments(state, limit)
        return self._store.list_by_holder(holder, ticket_state, cursor, limit)

    def _page_arguments(self, state: str | None, limit: int) -> tuple[TicketState | None, int]:
        try:
            ticket_state = TicketState(state) if state else None
        except ValueError as exc:
            raise MalformedInputError("unknown ticket state") from exc
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise MalformedInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        return ticket_state, limit

    def _apply(self, ticket_id: str, action: TicketAction) -> TransitionOutcome:
        tid = parse_ticket_id(ticket_id)
        for _ in range(self._max_attempts):
            ticket = self._store.get_by_id(tid)
            if ticket is None:
                raise TicketNotFoundError(str(tid))
            try:
                new_state = transition(ticket.state, action)
            except AlreadyInTargetStateError:
                return TransitionOutcome(ticket=ticket, changed=False)

            now = self._clock()
            with self._store.atomic():
                cas = self._store.compare_and_swap_state(
                    ticket.id, ticket.state, new_state, TransitionMetadata(changed_at=now)
                )
                if cas is CasResult.SUCCESS:
                    self._counter.apply_transition(ticket, ticket.state, new_state)

            if cas is CasResult.SUCCESS:
                logger.info(
                    "Ticket %s moved %s -> %s", ticket.id, ticket.state.value, new_state.value
                )
                updated = replace(ticket, state=new_state, updated_at=now)
                self._announce(updated)
                return TransitionOutcome(ticket=updated, changed=True)
            if cas is CasResult.NOT_FOUND:
                raise TicketNotFoundError(str(tid))
            logger.info("Ticket %s changed during %s, re-reading", ticket.id, action.value)

        raise ConflictStateChangedError(str(tid))

    def _announce(self, ticket: Ticket) -> None:
        try:
            snapshot = self._counter.changed(ticket.event_id)
            self._publisher.publish(ticket.event_id, LiveUpdate.counter_update(snapshot, self._clock()))
        except Exception:
            logger.exception("Failed to publish counters for event %s", ticket.event_id)

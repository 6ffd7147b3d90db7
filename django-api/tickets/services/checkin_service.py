"""Check-in validation - the single entry point for scanning workflows.

A scan is resolved to exactly one terminal outcome. The only write is a
compare-and-swap from ``valid`` to ``used`` made in the same atomic unit as
the check-in counter increment, so repeated or concurrent scans of one ticket
yield one ``success`` and the counter moves by exactly one.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from tickets.domain import (
    CallerContext,
    CasResult,
    CheckInAttempt,
    CheckInOutcome,
    CheckInResult,
    EventId,
    LiveUpdate,
    Ticket,
    TicketAction,
    TicketState,
    TransitionMetadata,
)
from tickets.domain.errors import (
    AlreadyInTargetStateError,
    IllegalTransitionError,
    InvalidIdError,
    MalformedInputError,
    TransientStoreError,
)
from tickets.domain.state_machine import transition
from tickets.services.aggregate_service import EventAggregateCounter
from tickets.services.parsing import ScanPayload, parse_event_id, parse_scan_payload
from tickets.services.publisher import LiveUpdatePublisher
from tickets.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)

_STATE_MESSAGES = {
    TicketState.PENDING: "Ticket payment is pending",
    TicketState.CANCELLED: "Ticket has been cancelled",
    TicketState.REFUNDED: "Ticket has been refunded",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _already_used(ticket: Ticket) -> CheckInResult:
    when = ticket.checked_in_at.isoformat() if ticket.checked_in_at else "unknown time"
    return CheckInResult(
        outcome=CheckInOutcome.ALREADY_USED,
        message=f"Ticket has already been used (checked in at {when})",
        ticket=ticket,
    )


def _not_admissible(ticket: Ticket) -> CheckInResult:
    return CheckInResult(
        outcome=CheckInOutcome.INVALID,
        message=_STATE_MESSAGES.get(ticket.state, "Ticket is not valid"),
        ticket=ticket,
    )


class CheckInService:
    """Validates scanned tickets against an event."""

    def __init__(
        self,
        store: TicketStore,
        counter: EventAggregateCounter,
        publisher: LiveUpdatePublisher,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._counter = counter
        self._publisher = publisher
        self._clock = clock

    def validate(
        self,
        payload: Any,
        expected_event_id: Any,
        caller: CallerContext | None = None,
    ) -> CheckInResult:
        """Check a scanned ticket in for ``expected_event_id``.

        Never raises for per-scan outcomes. A store outage is returned as
        ``transient_error`` (the only retryable outcome); it is never reported
        as ``invalid``.
        """
        caller = caller or CallerContext.anonymous()
        try:
            scan = parse_scan_payload(payload)
        except MalformedInputError:
            logger.info("Rejected malformed scan for event %r", expected_event_id)
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="malformed code")
        try:
            event_id = parse_event_id(expected_event_id)
        except InvalidIdError:
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="malformed event id")

        try:
            result = self._check_in(scan, event_id)
        except TransientStoreError as exc:
            logger.warning(
                "Check-in of %s for event %s hit a store failure in %s",
                scan.ticket_code,
                event_id,
                exc.operation,
            )
            return CheckInResult(
                outcome=CheckInOutcome.TRANSIENT_ERROR,
                message="Ticket store temporarily unavailable, please retry",
            )

        logger.info(
            "Check-in of %s for event %s by %s: %s",
            scan.ticket_code,
            event_id,
            caller.operator_id or "anonymous",
            result.outcome.value,
        )
        self._audit(scan, event_id, result, caller)
        if result.outcome is CheckInOutcome.SUCCESS:
            self._announce(result.ticket)
        return result

    def _check_in(self, scan: ScanPayload, event_id: EventId) -> CheckInResult:
        ticket = self._store.get_by_code(scan.ticket_code)
        if ticket is None:
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="Invalid ticket code")

        if (scan.ticket_id and scan.ticket_id != str(ticket.id)) or (
            scan.event_id and scan.event_id != ticket.event_id.value
        ):
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="Code does not match ticket")

        if ticket.event_id != event_id:
            return CheckInResult(
                outcome=CheckInOutcome.WRONG_EVENT,
                message="Ticket is not valid for this event",
                ticket=ticket,
            )

        try:
            new_state = transition(ticket.state, TicketAction.CHECK_IN)
        except AlreadyInTargetStateError:
            return _already_used(ticket)
        except IllegalTransitionError:
            return _not_admissible(ticket)

        now = self._clock()
        with self._store.atomic():
            cas = self._store.compare_and_swap_state(
                ticket.id,
                ticket.state,
                new_state,
                TransitionMetadata(changed_at=now, checked_in_at=now),
            )
            if cas is CasResult.SUCCESS:
                self._counter.apply_transition(ticket, ticket.state, new_state)

        if cas is CasResult.SUCCESS:
            checked_in = replace(ticket, state=new_state, checked_in_at=now, updated_at=now)
            return CheckInResult(
                outcome=CheckInOutcome.SUCCESS,
                message="Ticket verified successfully",
                ticket=checked_in,
            )
        if cas is CasResult.NOT_FOUND:
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="Invalid ticket code")

        # Another scan moved the ticket first; report what it is now.
        logger.info("Lost check-in race for ticket %s", ticket.id)
        current = self._store.get_by_id(ticket.id)
        if current is None:
            return CheckInResult(outcome=CheckInOutcome.INVALID, message="Invalid ticket code")
        if current.state is TicketState.USED:
            return _already_used(current)
        return _not_admissible(current)

    def _audit(
        self, scan: ScanPayload, event_id: EventId, result: CheckInResult, caller: CallerContext
    ) -> None:
        attempt = CheckInAttempt(
            ticket_code=scan.ticket_code.value,
            event_id=event_id.value,
            outcome=result.outcome,
            message=result.message,
            attempted_at=self._clock(),
            operator_id=caller.operator_id,
        )
        try:
            self._store.record_attempt(attempt)
        except TransientStoreError:
            logger.warning("Could not record check-in attempt for %s", scan.ticket_code)

    def _announce(self, ticket: Ticket) -> None:
        try:
            self._publisher.publish(ticket.event_id, LiveUpdate.checkin_success(ticket, self._clock()))
        except Exception:
            logger.exception("Failed to publish check-in of ticket %s", ticket.id)
        try:
            snapshot = self._counter.changed(ticket.event_id)
            self._publisher.publish(ticket.event_id, LiveUpdate.counter_update(snapshot, self._clock()))
        except Exception:
            logger.exception("Failed to publish counters for event %s", ticket.event_id)

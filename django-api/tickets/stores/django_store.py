"""Django ORM implementation of the TicketStore.

State changes are conditional UPDATEs keyed on the expected state, and counter
changes are guarded UPDATEs with F() expressions, so no row is ever read and
written back across a round trip. Statement timeouts are configured on the
database connection (see settings.DATABASES).
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from functools import wraps
from typing import ParamSpec, TypeVar
from uuid import UUID

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from tickets import models as orm
from tickets.domain import (
    CasResult,
    CheckInAttempt,
    CounterField,
    EventAggregate,
    EventId,
    Capacity,
    Money,
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

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_COUNTER_COLUMNS = {
    CounterField.SOLD: "sold_count",
    CounterField.CHECKED_IN: "checked_in_count",
    CounterField.REVENUE: "revenue",
}


def _translate_db_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Report backend failures (timeouts, lost connections) as TransientStoreError."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except IntegrityError:
            raise
        except DatabaseError as exc:
            logger.warning("Ticket store %s failed: %s", func.__name__, exc)
            raise TransientStoreError(func.__name__) from exc

    return wrapper


def _counter_guard(field: CounterField, delta: Delta) -> Q:
    if field is CounterField.SOLD:
        if delta > 0:
            return Q(sold_count__lte=F("capacity") - delta)
        return Q(sold_count__gte=F("checked_in_count") - delta)
    if field is CounterField.CHECKED_IN:
        if delta > 0:
            return Q(checked_in_count__lte=F("sold_count") - delta)
        return Q(checked_in_count__gte=-delta)
    if delta < 0:
        return Q(revenue__gte=-delta)
    return Q()


def _to_ticket(record: orm.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(value=record.id),
        event_id=EventId(value=record.event_id),
        ticket_code=TicketCode(value=record.ticket_code),
        holder_id=record.holder_id,
        ticket_type=record.ticket_type,
        price=Money(amount=Decimal(record.price)),
        state=TicketState(record.state),
        purchased_at=record.purchased_at,
        checked_in_at=record.checked_in_at,
        updated_at=record.updated_at,
    )


def _to_aggregate(record: orm.EventAggregate) -> EventAggregate:
    return EventAggregate(
        event_id=EventId(value=record.event_id),
        capacity=Capacity(value=record.capacity),
        sold_count=record.sold_count,
        checked_in_count=record.checked_in_count,
        revenue=Decimal(record.revenue),
        ticket_types=tuple(record.ticket_types or ()),
    )


def _parse_cursor(cursor: str) -> UUID:
    try:
        return UUID(cursor)
    except ValueError as exc:
        raise InvalidIdError("cursor") from exc


def _page(queryset, cursor: str | None, limit: int) -> TicketPage:
    if cursor:
        queryset = queryset.filter(id__gt=_parse_cursor(cursor))
    records = list(queryset.order_by("id")[: limit + 1])
    items = tuple(_to_ticket(r) for r in records[:limit])
    next_cursor = str(items[-1].id) if len(records) > limit else None
    return TicketPage(items=items, next_cursor=next_cursor)


class DjangoTicketStore(TicketStore):
    """Relational ticket store using the Django ORM."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            with transaction.atomic():
                yield
        except IntegrityError:
            raise
        except DatabaseError as exc:
            logger.warning("Ticket store transaction failed: %s", exc)
            raise TransientStoreError("atomic") from exc

    @_translate_db_errors
    def get_by_code(self, code: TicketCode) -> Ticket | None:
        record = orm.Ticket.objects.filter(ticket_code=code.value).first()
        return _to_ticket(record) if record else None

    @_translate_db_errors
    def get_by_id(self, ticket_id: TicketId) -> Ticket | None:
        record = orm.Ticket.objects.filter(pk=ticket_id.value).first()
        return _to_ticket(record) if record else None

    @_translate_db_errors
    def create_ticket(self, ticket: Ticket) -> Ticket:
        try:
            with transaction.atomic():
                record = orm.Ticket.objects.create(
                    id=ticket.id.value,
                    event_id=ticket.event_id.value,
                    ticket_code=ticket.ticket_code.value,
                    holder_id=ticket.holder_id,
                    ticket_type=ticket.ticket_type,
                    price=ticket.price.amount,
                    state=ticket.state.value,
                    purchased_at=ticket.purchased_at,
                    checked_in_at=ticket.checked_in_at,
                    updated_at=ticket.updated_at,
                )
        except IntegrityError as exc:
            raise DuplicateTicketCodeError(ticket.ticket_code.value) from exc
        return _to_ticket(record)

    @_translate_db_errors
    def compare_and_swap_state(
        self,
        ticket_id: TicketId,
        expected: TicketState,
        new: TicketState,
        metadata: TransitionMetadata,
    ) -> CasResult:
        changes = {"state": new.value, "updated_at": metadata.changed_at}
        if metadata.checked_in_at is not None:
            changes["checked_in_at"] = metadata.checked_in_at

        rows = orm.Ticket.objects.filter(pk=ticket_id.value, state=expected.value).update(**changes)
        if rows == 1:
            return CasResult.SUCCESS
        if orm.Ticket.objects.filter(pk=ticket_id.value).exists():
            return CasResult.CONFLICT_STATE_CHANGED
        return CasResult.NOT_FOUND

    @_translate_db_errors
    def list_page(
        self,
        event_id: EventId,
        ticket_filter: TicketFilter,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        queryset = orm.Ticket.objects.filter(event_id=event_id.value)
        if ticket_filter.state is not None:
            queryset = queryset.filter(state=ticket_filter.state.value)
        if ticket_filter.ticket_type is not None:
            queryset = queryset.filter(ticket_type=ticket_filter.ticket_type)
        if ticket_filter.holder_id is not None:
            queryset = queryset.filter(holder_id=ticket_filter.holder_id)
        return _page(queryset, cursor, limit)

    @_translate_db_errors
    def list_by_holder(
        self,
        holder_id: str,
        state: TicketState | None,
        cursor: str | None,
        limit: int,
    ) -> TicketPage:
        queryset = orm.Ticket.objects.filter(holder_id=holder_id)
        if state is not None:
            queryset = queryset.filter(state=state.value)
        return _page(queryset, cursor, limit)

    @_translate_db_errors
    def create_aggregate(self, aggregate: EventAggregate) -> EventAggregate:
        try:
            with transaction.atomic():
                record = orm.EventAggregate.objects.create(
                    event_id=aggregate.event_id.value,
                    capacity=aggregate.capacity.value,
                    sold_count=aggregate.sold_count,
                    checked_in_count=aggregate.checked_in_count,
                    revenue=aggregate.revenue,
                    ticket_types=list(aggregate.ticket_types),
                )
        except IntegrityError as exc:
            raise EventAlreadyExistsError(aggregate.event_id.value) from exc
        return _to_aggregate(record)

    @_translate_db_errors
    def get_aggregate(self, event_id: EventId) -> EventAggregate | None:
        record = orm.EventAggregate.objects.filter(pk=event_id.value).first()
        return _to_aggregate(record) if record else None

    @_translate_db_errors
    def apply_delta(self, event_id: EventId, field: CounterField, delta: Delta) -> None:
        if not delta:
            return
        column = _COUNTER_COLUMNS[field]
        rows = (
            orm.EventAggregate.objects.filter(_counter_guard(field, delta), pk=event_id.value)
            .update(**{column: F(column) + delta, "updated_at": timezone.now()})
        )
        if rows == 1:
            return
        if not orm.EventAggregate.objects.filter(pk=event_id.value).exists():
            raise EventNotFoundError(event_id.value)
        if field is CounterField.SOLD and delta > 0:
            raise CapacityExceededError(event_id.value)
        raise CounterInvariantError(event_id.value, field.value)

    @_translate_db_errors
    def set_counters(
        self, event_id: EventId, sold: int, checked_in: int, revenue: Decimal
    ) -> None:
        rows = orm.EventAggregate.objects.filter(pk=event_id.value).update(
            sold_count=sold,
            checked_in_count=checked_in,
            revenue=revenue,
            updated_at=timezone.now(),
        )
        if rows == 0:
            raise EventNotFoundError(event_id.value)

    @_translate_db_errors
    def record_attempt(self, attempt: CheckInAttempt) -> None:
        orm.CheckInAttempt.objects.create(
            ticket_code=attempt.ticket_code[:255],
            event_id=attempt.event_id[:64],
            outcome=attempt.outcome.value,
            message=attempt.message[:255],
            operator_id=attempt.operator_id,
            attempted_at=attempt.attempted_at,
        )

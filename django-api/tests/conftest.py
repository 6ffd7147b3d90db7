"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from tickets.domain import EventId, Ticket, TicketState
from tickets.stores import DjangoTicketStore, InMemoryTicketStore
from tickets.wiring import Services, build_services, get_services

START = datetime(2026, 5, 1, 18, 0, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def seed_ticket(
    services: Services,
    event_id: str = "E1",
    code: str = "ABC123",
    state: TicketState = TicketState.VALID,
    ticket_type: str = "Regular",
    price: str = "50.00",
    capacity: int = 100,
) -> Ticket:
    """Open the event if needed and drive a new ticket to ``state``."""
    if services.store.get_aggregate(EventId(event_id)) is None:
        services.counter.open_event(event_id, capacity)
    ticket = services.tickets.issue_ticket(event_id, ticket_type, Decimal(price), ticket_code=code)
    if state is TicketState.PENDING:
        return ticket
    if state is TicketState.CANCELLED:
        return services.tickets.cancel(str(ticket.id)).ticket
    ticket = services.tickets.confirm_payment(str(ticket.id)).ticket
    if state is TicketState.USED:
        services.checkin.validate(code, event_id)
    elif state is TicketState.REFUNDED:
        services.tickets.refund(str(ticket.id))
    return services.store.get_by_id(ticket.id)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def fresh_services():
    get_services.cache_clear()
    yield
    get_services.cache_clear()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def memory_services(clock) -> Services:
    return build_services({"STORE_BACKEND": "memory"}, store=InMemoryTicketStore(), clock=clock)


@pytest.fixture
def django_services(db, clock) -> Services:
    return build_services({"STORE_BACKEND": "django"}, store=DjangoTicketStore(), clock=clock)


@pytest.fixture(params=["memory", "django"])
def services(request, clock) -> Services:
    """Service graph over each store implementation."""
    if request.param == "django":
        request.getfixturevalue("db")
        store = DjangoTicketStore()
    else:
        store = InMemoryTicketStore()
    return build_services({"STORE_BACKEND": request.param}, store=store, clock=clock)


@pytest.fixture
def seed():
    return seed_ticket

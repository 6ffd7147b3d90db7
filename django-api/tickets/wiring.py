"""Builds the per-process service graph from settings.TICKETGATE."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from django.conf import settings

from tickets.domain import RefundPolicy
from tickets.services import (
    CheckInService,
    EventAggregateCounter,
    LiveUpdatePublisher,
    TicketService,
)
from tickets.services.checkin_service import utcnow
from tickets.stores import DjangoTicketStore, InMemoryTicketStore, TicketStore


@dataclass(frozen=True)
class Services:
    store: TicketStore
    counter: EventAggregateCounter
    publisher: LiveUpdatePublisher
    checkin: CheckInService
    tickets: TicketService


def build_store(config: dict) -> TicketStore:
    backend = config.get("STORE_BACKEND", "django")
    if backend == "memory":
        return InMemoryTicketStore(timeout=config.get("STORE_TIMEOUT_SECONDS", 5.0))
    if backend == "django":
        return DjangoTicketStore()
    raise ValueError(f"Unknown TICKETGATE STORE_BACKEND: {backend!r}")


def build_services(
    config: dict,
    store: TicketStore | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    store = store or build_store(config)
    counter = EventAggregateCounter(
        store, refund_policy=RefundPolicy(config.get("REFUND_POLICY", "retain_attendance"))
    )
    publisher = LiveUpdatePublisher(queue_size=config.get("SUBSCRIBER_QUEUE_SIZE", 256))
    return Services(
        store=store,
        counter=counter,
        publisher=publisher,
        checkin=CheckInService(store, counter, publisher, clock=clock),
        tickets=TicketService(
            store,
            counter,
            publisher,
            clock=clock,
            max_attempts=config.get("CAS_MAX_ATTEMPTS", 5),
        ),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(settings.TICKETGATE)

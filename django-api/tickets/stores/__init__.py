from tickets.stores.django_store import DjangoTicketStore
from tickets.stores.interfaces import TicketStore
from tickets.stores.memory_store import InMemoryTicketStore

__all__ = ["TicketStore", "DjangoTicketStore", "InMemoryTicketStore"]

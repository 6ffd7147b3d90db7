from tickets.services.aggregate_service import EventAggregateCounter
from tickets.services.checkin_service import CheckInService
from tickets.services.publisher import LiveUpdatePublisher, Subscription
from tickets.services.ticket_service import TicketService

__all__ = [
    "CheckInService",
    "EventAggregateCounter",
    "LiveUpdatePublisher",
    "Subscription",
    "TicketService",
]

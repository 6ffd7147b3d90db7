from tickets.handlers.views import (
    EventListView,
    EventSnapshotView,
    EventTicketListView,
    EventUpdatesView,
    HolderTicketListView,
    TicketDetailView,
    TicketIssueView,
    TicketQRCodeView,
    TicketTransitionView,
    ValidateCheckInView,
)

__all__ = [
    "EventListView",
    "EventSnapshotView",
    "EventTicketListView",
    "EventUpdatesView",
    "HolderTicketListView",
    "TicketDetailView",
    "TicketIssueView",
    "TicketQRCodeView",
    "TicketTransitionView",
    "ValidateCheckInView",
]

from django.urls import path

from tickets.handlers import (
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

urlpatterns = [
    path("validate-checkin", ValidateCheckInView.as_view(), name="validate-checkin"),
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:event_id>/snapshot", EventSnapshotView.as_view(), name="event-snapshot"),
    path("events/<str:event_id>/updates", EventUpdatesView.as_view(), name="event-updates"),
    path("events/<str:event_id>/tickets", EventTicketListView.as_view(), name="event-tickets"),
    path(
        "holders/<str:holder_id>/tickets", HolderTicketListView.as_view(), name="holder-tickets"
    ),
    path("tickets", TicketIssueView.as_view(), name="ticket-issue"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path("tickets/<str:ticket_id>/qr", TicketQRCodeView.as_view(), name="ticket-qr"),
    path(
        "tickets/<str:ticket_id>/confirm",
        TicketTransitionView.as_view(lifecycle_action="confirm"),
        name="ticket-confirm",
    ),
    path(
        "tickets/<str:ticket_id>/cancel",
        TicketTransitionView.as_view(lifecycle_action="cancel"),
        name="ticket-cancel",
    ),
    path(
        "tickets/<str:ticket_id>/refund",
        TicketTransitionView.as_view(lifecycle_action="refund"),
        name="ticket-refund",
    ),
]

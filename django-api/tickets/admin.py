from django.contrib import admin

from tickets.models import CheckInAttempt, EventAggregate, Ticket


@admin.register(EventAggregate)
class EventAggregateAdmin(admin.ModelAdmin):
    list_display = ["event_id", "capacity", "sold_count", "checked_in_count", "revenue"]
    search_fields = ["event_id"]
    readonly_fields = ["sold_count", "checked_in_count", "revenue", "created_at", "updated_at"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["ticket_code", "event_id", "ticket_type", "state", "price", "checked_in_at"]
    list_filter = ["state", "ticket_type"]
    search_fields = ["ticket_code", "event_id", "holder_id"]
    # State only moves through the lifecycle services.
    readonly_fields = ["id", "ticket_code", "state", "price", "purchased_at", "checked_in_at", "updated_at"]


@admin.register(CheckInAttempt)
class CheckInAttemptAdmin(admin.ModelAdmin):
    list_display = ["ticket_code", "event_id", "outcome", "operator_id", "attempted_at"]
    list_filter = ["outcome", "event_id"]
    search_fields = ["ticket_code"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

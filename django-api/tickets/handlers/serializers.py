"""Serializers for request validation and for rendering domain models."""

from rest_framework import serializers

from tickets.domain import TicketState


class ValidateCheckInSerializer(serializers.Serializer):
    """Body of POST /api/validate-checkin. ``payload`` is a bare code or a structured object."""

    payload = serializers.JSONField()
    eventId = serializers.CharField(max_length=64)


class OpenEventSerializer(serializers.Serializer):
    eventId = serializers.CharField(max_length=64)
    capacity = serializers.IntegerField(min_value=0)
    ticketTypes = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False, allow_empty=False
    )


class IssueTicketSerializer(serializers.Serializer):
    eventId = serializers.CharField(max_length=64)
    ticketType = serializers.CharField(max_length=50)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    holderId = serializers.CharField(max_length=64, required=False, allow_null=True)
    ticketCode = serializers.CharField(max_length=64, required=False)


class TicketListQuerySerializer(serializers.Serializer):
    state = serializers.ChoiceField(choices=[s.value for s in TicketState], required=False)
    ticketType = serializers.CharField(max_length=50, required=False)
    holderId = serializers.CharField(max_length=64, required=False)
    cursor = serializers.CharField(max_length=64, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=50)


class HolderTicketListQuerySerializer(serializers.Serializer):
    state = serializers.ChoiceField(choices=[s.value for s in TicketState], required=False)
    cursor = serializers.CharField(max_length=64, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=50)


class TicketLookupQuerySerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    id = serializers.CharField()
    eventId = serializers.CharField(source="event_id")
    ticketCode = serializers.CharField(source="ticket_code")
    holderId = serializers.CharField(source="holder_id", allow_null=True)
    ticketType = serializers.CharField(source="ticket_type")
    price = serializers.DecimalField(source="price.amount", max_digits=10, decimal_places=2)
    state = serializers.CharField(source="state.value")
    purchaseTimestamp = serializers.DateTimeField(source="purchased_at")
    checkInTimestamp = serializers.DateTimeField(source="checked_in_at", allow_null=True)
    lastModifiedTimestamp = serializers.DateTimeField(source="updated_at")


class TicketPageSerializer(serializers.Serializer):
    results = TicketSerializer(source="items", many=True)
    nextCursor = serializers.CharField(source="next_cursor", allow_null=True)


class SnapshotSerializer(serializers.Serializer):
    """Serializer for EventSnapshot domain model."""

    eventId = serializers.CharField(source="event_id")
    capacity = serializers.IntegerField()
    sold = serializers.IntegerField()
    checkedIn = serializers.IntegerField(source="checked_in")
    remaining = serializers.IntegerField()
    rate = serializers.FloatField()
    revenue = serializers.DecimalField(max_digits=12, decimal_places=2)


class CheckInResultSerializer(serializers.Serializer):
    outcome = serializers.CharField(source="outcome.value")
    message = serializers.CharField()
    ticket = TicketSerializer(allow_null=True)


class TransitionOutcomeSerializer(serializers.Serializer):
    changed = serializers.BooleanField()
    ticket = TicketSerializer()

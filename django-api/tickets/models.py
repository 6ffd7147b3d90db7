"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class TicketStatus(models.TextChoices):
    PENDING = "pending"
    VALID = "valid"
    USED = "used"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class CheckInOutcomeChoice(models.TextChoices):
    SUCCESS = "success"
    ALREADY_USED = "already_used"
    INVALID = "invalid"
    WRONG_EVENT = "wrong_event"


def default_ticket_types() -> list[str]:
    return ["Early Bird", "Regular", "VIP"]


class EventAggregate(models.Model):
    """Persistence model for per-event counters."""

    event_id = models.CharField(primary_key=True, max_length=64)
    capacity = models.PositiveIntegerField()
    sold_count = models.PositiveIntegerField(default=0)
    checked_in_count = models.PositiveIntegerField(default=0)
    revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    ticket_types = models.JSONField(default=default_ticket_types)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(sold_count__lte=F("capacity")),
                name="aggregate_sold_within_capacity",
            ),
            models.CheckConstraint(
                condition=Q(checked_in_count__lte=F("sold_count")),
                name="aggregate_checked_in_within_sold",
            ),
            models.CheckConstraint(
                condition=Q(revenue__gte=0),
                name="aggregate_revenue_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event_id} ({self.sold_count}/{self.capacity})"


class Ticket(models.Model):
    """Persistence model for tickets."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_id = models.CharField(max_length=64)
    ticket_code = models.CharField(max_length=64, unique=True)
    holder_id = models.CharField(max_length=64, blank=True, null=True)
    ticket_type = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    state = models.CharField(
        max_length=16, choices=TicketStatus.choices, default=TicketStatus.PENDING
    )
    purchased_at = models.DateTimeField()
    checked_in_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["event_id", "id"], name="tickets_tic_event_i_3c1f0a_idx"),
            models.Index(fields=["event_id", "state"], name="tickets_tic_event_i_8d2b4e_idx"),
            models.Index(fields=["holder_id", "id"], name="tickets_tic_holder__5e2c7d_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.ticket_code} [{self.state}]"


class CheckInAttempt(models.Model):
    """Append-only audit log of scans."""

    ticket_code = models.CharField(max_length=255)
    event_id = models.CharField(max_length=64)
    outcome = models.CharField(max_length=16, choices=CheckInOutcomeChoice.choices)
    message = models.CharField(max_length=255)
    operator_id = models.CharField(max_length=64, blank=True, null=True)
    attempted_at = models.DateTimeField()

    class Meta:
        ordering = ["-attempted_at"]
        indexes = [
            models.Index(fields=["event_id", "-attempted_at"], name="tickets_che_event_i_5a7e91_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.ticket_code} -> {self.outcome}"

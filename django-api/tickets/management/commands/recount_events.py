"""Rebuild event counters from ticket states."""

from django.core.management.base import BaseCommand, CommandError

from tickets.domain.errors import DomainError
from tickets.models import EventAggregate
from tickets.wiring import get_services


class Command(BaseCommand):
    help = "Recompute sold/checked-in/revenue counters from ticket states."

    def add_arguments(self, parser):
        parser.add_argument("event_ids", nargs="*", help="Events to recount (default: all).")

    def handle(self, *args, **options):
        counter = get_services().counter
        event_ids = options["event_ids"] or list(
            EventAggregate.objects.values_list("event_id", flat=True)
        )
        for event_id in event_ids:
            try:
                snapshot = counter.recount(event_id)
            except DomainError as exc:
                raise CommandError(f"{event_id}: {exc}") from exc
            self.stdout.write(
                f"{snapshot.event_id}: sold={snapshot.sold} checkedIn={snapshot.checked_in} "
                f"revenue={snapshot.revenue:.2f}"
            )

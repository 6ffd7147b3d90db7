"""Open a demo event and issue paid tickets for it."""

from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError

from tickets.domain.errors import DomainError
from tickets.wiring import get_services


class Command(BaseCommand):
    help = "Open an event and issue confirmed tickets for local testing."

    def add_arguments(self, parser):
        parser.add_argument("event_id")
        parser.add_argument("--capacity", type=int, default=100)
        parser.add_argument("--count", type=int, default=10)
        parser.add_argument("--ticket-type", default="Regular")
        parser.add_argument("--price", default="25.00")

    def handle(self, *args, **options):
        services = get_services()
        try:
            services.counter.open_event(options["event_id"], options["capacity"])
            for _ in range(options["count"]):
                ticket = services.tickets.issue_ticket(
                    options["event_id"], options["ticket_type"], Decimal(options["price"])
                )
                services.tickets.confirm_payment(str(ticket.id))
                self.stdout.write(ticket.ticket_code.value)
        except DomainError as exc:
            raise CommandError(str(exc)) from exc

        snapshot = services.counter.snapshot(options["event_id"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Event {snapshot.event_id}: {snapshot.sold}/{snapshot.capacity} sold, "
                f"revenue {snapshot.revenue:.2f}"
            )
        )

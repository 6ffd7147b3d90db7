"""HTTP tests for the tickets API.

Run with: pytest tests/test_api.py -v
"""

import json

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

from tickets.domain import EventId, LiveUpdate, TicketState
from tickets.domain.errors import TransientStoreError
from tickets.models import CheckInAttempt
from tickets.services.checkin_service import utcnow
from tickets.wiring import get_services

pytestmark = pytest.mark.django_db


def validate(api_client, payload, event_id="E1"):
    return api_client.post(
        reverse("validate-checkin"), {"payload": payload, "eventId": event_id}, format="json"
    )


def read_frame(response) -> tuple[str, dict]:
    chunk = next(response.streaming_content)
    text = chunk.decode() if isinstance(chunk, bytes) else chunk
    lines = text.strip().splitlines()
    assert lines[0].startswith("event: ")
    assert lines[1].startswith("data: ")
    return lines[0][len("event: "):], json.loads(lines[1][len("data: "):])


class TestValidateCheckIn:
    def test_success(self, api_client, seed):
        seed(get_services(), code="ABC123")

        response = validate(api_client, "ABC123")

        assert response.status_code == 200
        assert response.data["outcome"] == "success"
        assert response.data["message"] == "Ticket verified successfully"
        assert response.data["ticket"]["state"] == "used"
        assert response.data["ticket"]["ticketCode"] == "ABC123"
        assert response.data["ticket"]["checkInTimestamp"] is not None

    def test_second_scan_already_used(self, api_client, seed):
        seed(get_services(), code="ABC123")
        validate(api_client, "ABC123")

        response = validate(api_client, "ABC123")

        assert response.status_code == 200
        assert response.data["outcome"] == "already_used"

    def test_wrong_event(self, api_client, seed):
        seed(get_services(), code="ABC123")

        response = validate(api_client, "ABC123", event_id="E2")

        assert response.status_code == 200
        assert response.data["outcome"] == "wrong_event"
        assert response.data["ticket"]["eventId"] == "E1"

    def test_structured_payload_as_json_string(self, api_client, seed):
        seed(get_services(), code="ABC123")

        response = validate(api_client, json.dumps({"ticketCode": "ABC123", "eventId": "E1"}))

        assert response.data["outcome"] == "success"

    def test_structured_payload_as_object(self, api_client, seed):
        seed(get_services(), code="ABC123")

        response = validate(api_client, {"code": "ABC123"})

        assert response.data["outcome"] == "success"

    def test_malformed_code(self, api_client):
        response = validate(api_client, "<<>>")

        assert response.status_code == 200
        assert response.data == {"outcome": "invalid", "message": "malformed code", "ticket": None}

    def test_missing_fields(self, api_client):
        response = api_client.post(reverse("validate-checkin"), {}, format="json")

        assert response.status_code == 400
        assert "eventId" in response.data

    def test_transient_error_is_retryable(self, api_client, seed, monkeypatch):
        services = get_services()
        seed(services, code="ABC123")

        def unavailable(code):
            raise TransientStoreError("get_by_code")

        monkeypatch.setattr(services.store, "get_by_code", unavailable)

        response = validate(api_client, "ABC123")

        assert response.status_code == 503
        assert response["Retry-After"] == "1"
        assert response.data["outcome"] == "transient_error"

    def test_operator_is_audited(self, api_client, seed):
        seed(get_services(), code="ABC123")
        user = get_user_model().objects.create_user(username="gate", password="pw")
        api_client.force_authenticate(user=user)

        validate(api_client, "ABC123")

        attempt = CheckInAttempt.objects.get()
        assert attempt.operator_id == str(user.pk)
        assert attempt.outcome == "success"


class TestEventSnapshot:
    def test_snapshot(self, api_client, seed):
        services = get_services()
        seed(services, code="ABC123", price="40.00")
        seed(services, code="DEF456", price="10.00", state=TicketState.USED)

        response = api_client.get(reverse("event-snapshot", kwargs={"event_id": "E1"}))

        assert response.status_code == 200
        assert response.data == {
            "eventId": "E1",
            "capacity": 100,
            "sold": 2,
            "checkedIn": 1,
            "remaining": 98,
            "rate": 0.5,
            "revenue": "50.00",
        }

    def test_unknown_event(self, api_client):
        response = api_client.get(reverse("event-snapshot", kwargs={"event_id": "E404"}))

        assert response.status_code == 404
        assert response.data["error"]["code"] == "EVENT_NOT_FOUND"


class TestEventUpdates:
    def test_stream_starts_with_snapshot_then_live_updates(self, api_client, seed):
        services = get_services()
        seed(services, code="ABC123")

        response = api_client.get(
            reverse("event-updates", kwargs={"event_id": "E1"}), HTTP_ACCEPT="text/event-stream"
        )

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/event-stream")
        assert response["Cache-Control"] == "no-cache"
        kind, message = read_frame(response)
        assert kind == "counter_update"
        assert message["payload"]["checkedIn"] == 0

        services.checkin.validate("ABC123", "E1")

        kind, message = read_frame(response)
        assert kind == "checkin_success"
        assert message["eventId"] == "E1"
        assert message["payload"]["ticketCode"] == "ABC123"
        kind, message = read_frame(response)
        assert kind == "counter_update"
        assert message["payload"]["checkedIn"] == 1
        response.close()

    def test_closing_stream_unsubscribes(self, api_client, seed):
        services = get_services()
        seed(services, code="ABC123")

        response = api_client.get(reverse("event-updates", kwargs={"event_id": "E1"}))
        read_frame(response)
        assert services.publisher.subscriber_count(EventId("E1")) == 1

        response.close()

        assert services.publisher.subscriber_count(EventId("E1")) == 0

    def test_closing_unread_stream_unsubscribes(self, api_client, seed):
        services = get_services()
        seed(services, code="ABC123")

        response = api_client.get(reverse("event-updates", kwargs={"event_id": "E1"}))
        assert services.publisher.subscriber_count(EventId("E1")) == 1

        response.close()

        assert services.publisher.subscriber_count(EventId("E1")) == 0
        services.checkin.validate("ABC123", "E1")
        assert services.publisher.subscriber_count(EventId("E1")) == 0

    def test_other_events_are_not_streamed(self, api_client, seed):
        services = get_services()
        seed(services, code="ABC123", event_id="E1")
        seed(services, code="XYZ789", event_id="E2")

        response = api_client.get(reverse("event-updates", kwargs={"event_id": "E1"}))
        read_frame(response)
        services.publisher.publish(
            EventId("E2"), LiveUpdate.counter_update(services.counter.snapshot("E2"), utcnow())
        )
        services.checkin.validate("ABC123", "E1")

        kind, message = read_frame(response)
        assert (kind, message["eventId"]) == ("checkin_success", "E1")
        response.close()

    def test_unknown_event(self, api_client):
        response = api_client.get(reverse("event-updates", kwargs={"event_id": "E404"}))
        assert response.status_code == 404


class TestTicketEndpoints:
    def test_open_event_and_issue_ticket(self, api_client):
        response = api_client.post(
            reverse("event-list"), {"eventId": "E1", "capacity": 2}, format="json"
        )
        assert response.status_code == 201
        assert response.data["remaining"] == 2

        response = api_client.post(
            reverse("ticket-issue"),
            {"eventId": "E1", "ticketType": "Regular", "price": "15.00", "ticketCode": "ABC123"},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["state"] == "pending"
        ticket_id = response.data["id"]

        response = api_client.post(reverse("ticket-confirm", kwargs={"ticket_id": ticket_id}))
        assert response.status_code == 200
        assert response.data["changed"] is True
        assert response.data["ticket"]["state"] == "valid"

        response = api_client.post(reverse("ticket-confirm", kwargs={"ticket_id": ticket_id}))
        assert response.data["changed"] is False

        response = api_client.get(reverse("ticket-detail", kwargs={"ticket_id": ticket_id}))
        assert response.data["price"] == "15.00"

    def test_open_event_twice(self, api_client):
        api_client.post(reverse("event-list"), {"eventId": "E1", "capacity": 2}, format="json")
        response = api_client.post(
            reverse("event-list"), {"eventId": "E1", "capacity": 2}, format="json"
        )
        assert response.status_code == 409
        assert response.data["error"]["code"] == "EVENT_ALREADY_EXISTS"

    def test_sold_out(self, api_client, seed):
        seed(get_services(), code="ABC123", capacity=1)

        response = api_client.post(
            reverse("ticket-issue"),
            {"eventId": "E1", "ticketType": "Regular", "price": "15.00"},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["error"]["code"] == "CAPACITY_EXCEEDED"

    def test_illegal_transition(self, api_client, seed):
        ticket = seed(get_services(), code="ABC123", state=TicketState.USED)

        response = api_client.post(reverse("ticket-cancel", kwargs={"ticket_id": str(ticket.id)}))

        assert response.status_code == 409
        assert response.data["error"]["code"] == "ILLEGAL_TRANSITION"

    def test_refund(self, api_client, seed):
        ticket = seed(get_services(), code="ABC123")

        response = api_client.post(reverse("ticket-refund", kwargs={"ticket_id": str(ticket.id)}))

        assert response.status_code == 200
        assert response.data["ticket"]["state"] == "refunded"

    def test_ticket_not_found(self, api_client):
        response = api_client.get(
            reverse("ticket-detail", kwargs={"ticket_id": "0b6f6c1e-4c1a-4c5e-9a57-3f0f3c6c2e11"})
        )
        assert response.status_code == 404
        assert response.data["error"]["code"] == "TICKET_NOT_FOUND"

    def test_lookup_by_code(self, api_client, seed):
        ticket = seed(get_services(), code="ABC123")

        response = api_client.get(reverse("ticket-issue"), {"code": "ABC123"})
        missing = api_client.get(reverse("ticket-issue"), {"code": "NOPE99"})

        assert response.status_code == 200
        assert response.data["id"] == str(ticket.id)
        assert missing.status_code == 404
        assert api_client.get(reverse("ticket-issue")).status_code == 400

    def test_malformed_ticket_id(self, api_client):
        response = api_client.get(reverse("ticket-detail", kwargs={"ticket_id": "nope"}))
        assert response.status_code == 400
        assert response.data["error"]["code"] == "INVALID_ID"

    def test_list_tickets_with_cursor(self, api_client, seed):
        services = get_services()
        for i in range(3):
            seed(services, code=f"CODE{i:03d}")
        url = reverse("event-tickets", kwargs={"event_id": "E1"})

        first = api_client.get(url, {"limit": 2})
        second = api_client.get(url, {"limit": 2, "cursor": first.data["nextCursor"]})

        assert len(first.data["results"]) == 2
        assert len(second.data["results"]) == 1
        assert second.data["nextCursor"] is None
        ids = [t["id"] for t in first.data["results"] + second.data["results"]]
        assert ids == sorted(ids)

    def test_list_tickets_rejects_bad_query(self, api_client, seed):
        seed(get_services(), code="ABC123")
        url = reverse("event-tickets", kwargs={"event_id": "E1"})

        assert api_client.get(url, {"state": "lost"}).status_code == 400
        assert api_client.get(url, {"limit": 500}).status_code == 400
        assert api_client.get(url, {"cursor": "zzz"}).status_code == 400


class TestTicketQRCode:
    def test_renders_png_of_ticket_code(self, api_client, seed):
        ticket = seed(get_services(), code="ABC123")

        response = api_client.get(reverse("ticket-qr", kwargs={"ticket_id": str(ticket.id)}))

        assert response.status_code == 200
        assert response["Content-Type"] == "image/png"
        assert response.content.startswith(b"\x89PNG\r\n\x1a\n")

    def test_negotiates_image_accept_header(self, api_client, seed):
        ticket = seed(get_services(), code="ABC123")

        response = api_client.get(
            reverse("ticket-qr", kwargs={"ticket_id": str(ticket.id)}), HTTP_ACCEPT="image/png"
        )

        assert response.status_code == 200
        assert response["Content-Type"] == "image/png"

    def test_unknown_ticket(self, api_client):
        response = api_client.get(
            reverse("ticket-qr", kwargs={"ticket_id": "0b6f6c1e-4c1a-4c5e-9a57-3f0f3c6c2e11"})
        )

        assert response.status_code == 404
        assert response.data["error"]["code"] == "TICKET_NOT_FOUND"


class TestHolderTickets:
    def test_lists_across_events_with_cursor(self, api_client):
        services = get_services()
        for event_id in ("E1", "E2"):
            services.counter.open_event(event_id, 10)
            services.tickets.issue_ticket(event_id, "Regular", "10.00", holder_id="h-1")
        services.tickets.issue_ticket("E2", "VIP", "90.00", holder_id="h-1")
        services.tickets.issue_ticket("E1", "Regular", "10.00", holder_id="h-2")
        url = reverse("holder-tickets", kwargs={"holder_id": "h-1"})

        first = api_client.get(url, {"limit": 2})
        second = api_client.get(url, {"limit": 2, "cursor": first.data["nextCursor"]})

        tickets = first.data["results"] + second.data["results"]
        assert first.status_code == 200
        assert len(tickets) == 3
        assert second.data["nextCursor"] is None
        assert {t["holderId"] for t in tickets} == {"h-1"}
        assert {t["eventId"] for t in tickets} == {"E1", "E2"}

    def test_state_filter(self, api_client):
        services = get_services()
        services.counter.open_event("E1", 10)
        paid = services.tickets.issue_ticket("E1", "Regular", "10.00", holder_id="h-1")
        services.tickets.issue_ticket("E1", "Regular", "10.00", holder_id="h-1")
        services.tickets.confirm_payment(str(paid.id))

        response = api_client.get(
            reverse("holder-tickets", kwargs={"holder_id": "h-1"}), {"state": "valid"}
        )

        assert [t["id"] for t in response.data["results"]] == [str(paid.id)]

    def test_rejects_bad_query(self, api_client):
        url = reverse("holder-tickets", kwargs={"holder_id": "h-1"})

        assert api_client.get(url, {"state": "lost"}).status_code == 400
        assert api_client.get(url, {"limit": 0}).status_code == 400
        assert api_client.get(url, {"cursor": "zzz"}).status_code == 400

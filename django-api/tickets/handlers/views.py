"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses (see handlers/errors.py)
- Never contain business logic
- Never expose internal error details
"""

import json
from collections.abc import Iterator

from django.conf import settings
from django.core.cache import cache
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpResponse, StreamingHttpResponse
from rest_framework import status
from rest_framework.renderers import JSONRenderer
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from tickets.domain import CallerContext, LiveUpdate
from tickets.handlers.errors import RETRY_AFTER_SECONDS
from tickets.handlers.renderers import EventStreamRenderer, PNGRenderer
from tickets.handlers.serializers import (
    CheckInResultSerializer,
    HolderTicketListQuerySerializer,
    IssueTicketSerializer,
    OpenEventSerializer,
    SnapshotSerializer,
    TicketListQuerySerializer,
    TicketLookupQuerySerializer,
    TicketPageSerializer,
    TicketSerializer,
    TransitionOutcomeSerializer,
    ValidateCheckInSerializer,
)
from tickets.services.checkin_service import utcnow
from tickets.services.parsing import parse_event_id
from tickets.services.publisher import Subscription
from tickets.services.qrcodes import render_ticket_qr
from tickets.signals import snapshot_cache_key
from tickets.wiring import get_services


def caller_from_request(request: Request) -> CallerContext:
    user = request.user
    if not user or not user.is_authenticated:
        return CallerContext.anonymous()
    return CallerContext(operator_id=str(user.pk), role="staff" if user.is_staff else "operator")


def format_sse(update: LiveUpdate) -> str:
    data = json.dumps(update.as_message(), cls=DjangoJSONEncoder)
    return f"event: {update.type.value}\ndata: {data}\n\n"


class EventStream:
    """SSE frames for one subscription; the first frame is a snapshot to resync from.

    StreamingHttpResponse calls close() when the response is closed, whether
    or not a frame was ever pulled, which ends the subscription.
    """

    def __init__(self, subscription: Subscription, first: LiveUpdate, heartbeat: float) -> None:
        self.subscription = subscription
        self._first = first
        self._heartbeat = heartbeat

    def __iter__(self) -> Iterator[str]:
        try:
            yield format_sse(self._first)
            while not self.subscription.closed:
                update = self.subscription.get(timeout=self._heartbeat)
                if update is None:
                    yield ": keepalive\n\n"
                    continue
                yield format_sse(update)
        finally:
            self.subscription.close()

    def close(self) -> None:
        self.subscription.close()


class ValidateCheckInView(APIView):
    """Handler for POST /api/validate-checkin"""

    def post(self, request: Request) -> Response:
        serializer = ValidateCheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = get_services().checkin.validate(
            serializer.validated_data["payload"],
            serializer.validated_data["eventId"],
            caller=caller_from_request(request),
        )
        response = Response(CheckInResultSerializer(result).data)
        if result.retryable:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            response["Retry-After"] = RETRY_AFTER_SECONDS
        return response


class EventListView(APIView):
    """Handler for POST /api/events"""

    def post(self, request: Request) -> Response:
        serializer = OpenEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        counter = get_services().counter
        if "ticketTypes" in data:
            snapshot = counter.open_event(data["eventId"], data["capacity"], data["ticketTypes"])
        else:
            snapshot = counter.open_event(data["eventId"], data["capacity"])
        return Response(SnapshotSerializer(snapshot).data, status=status.HTTP_201_CREATED)


class EventSnapshotView(APIView):
    """Handler for GET /api/events/{event_id}/snapshot"""

    def get(self, request: Request, event_id: str) -> Response:
        eid = parse_event_id(event_id)
        key = snapshot_cache_key(eid.value)
        snapshot = cache.get(key)
        if snapshot is None:
            snapshot = get_services().counter.snapshot(eid)
            # add, not set: a snapshot written after a later commit is never replaced
            cache.add(key, snapshot, settings.TICKETGATE["SNAPSHOT_CACHE_SECONDS"])
        return Response(SnapshotSerializer(snapshot).data)


class EventUpdatesView(APIView):
    """Handler for GET /api/events/{event_id}/updates (server-sent events)"""

    renderer_classes = [JSONRenderer, EventStreamRenderer]

    def get(self, request: Request, event_id: str) -> StreamingHttpResponse:
        services = get_services()
        snapshot = services.counter.snapshot(event_id)
        subscription = services.publisher.subscribe(snapshot.event_id)
        stream = EventStream(
            subscription,
            LiveUpdate.counter_update(snapshot, utcnow()),
            settings.TICKETGATE["STREAM_HEARTBEAT_SECONDS"],
        )
        response = StreamingHttpResponse(stream, content_type="text/event-stream")
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response


class EventTicketListView(APIView):
    """Handler for GET /api/events/{event_id}/tickets"""

    def get(self, request: Request, event_id: str) -> Response:
        query = TicketListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        page = get_services().tickets.list_tickets(
            event_id,
            state=params.get("state"),
            ticket_type=params.get("ticketType"),
            holder_id=params.get("holderId"),
            cursor=params.get("cursor"),
            limit=params["limit"],
        )
        return Response(TicketPageSerializer(page).data)


class TicketIssueView(APIView):
    """Handler for POST /api/tickets and GET /api/tickets?code={ticket_code}"""

    def get(self, request: Request) -> Response:
        query = TicketLookupQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        ticket = get_services().tickets.get_by_code(query.validated_data["code"])
        return Response(TicketSerializer(ticket).data)

    def post(self, request: Request) -> Response:
        serializer = IssueTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        ticket = get_services().tickets.issue_ticket(
            data["eventId"],
            data["ticketType"],
            data["price"],
            holder_id=data.get("holderId"),
            ticket_code=data.get("ticketCode"),
        )
        return Response(TicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


class TicketDetailView(APIView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        ticket = get_services().tickets.get_ticket(ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketTransitionView(APIView):
    """Handler for POST /api/tickets/{ticket_id}/{confirm,cancel,refund}"""

    lifecycle_action = ""

    def post(self, request: Request, ticket_id: str) -> Response:
        service = get_services().tickets
        handlers = {
            "confirm": service.confirm_payment,
            "cancel": service.cancel,
            "refund": service.refund,
        }
        outcome = handlers[self.lifecycle_action](ticket_id)
        return Response(TransitionOutcomeSerializer(outcome).data)


class TicketQRCodeView(APIView):
    """Handler for GET /api/tickets/{ticket_id}/qr (PNG of the ticket code)"""

    renderer_classes = [JSONRenderer, PNGRenderer]

    def get(self, request: Request, ticket_id: str) -> HttpResponse:
        ticket = get_services().tickets.get_ticket(ticket_id)
        response = HttpResponse(render_ticket_qr(ticket.ticket_code), content_type="image/png")
        response["Cache-Control"] = "private, max-age=300"
        return response


class HolderTicketListView(APIView):
    """Handler for GET /api/holders/{holder_id}/tickets"""

    def get(self, request: Request, holder_id: str) -> Response:
        query = HolderTicketListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        page = get_services().tickets.list_holder_tickets(
            holder_id,
            state=params.get("state"),
            cursor=params.get("cursor"),
            limit=params["limit"],
        )
        return Response(TicketPageSerializer(page).data)

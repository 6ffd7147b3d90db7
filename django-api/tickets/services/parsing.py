"""Turn raw caller input into domain primitives, raising domain errors."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tickets.domain import EventId, TicketCode, TicketId
from tickets.domain.errors import InvalidIdError, MalformedInputError

_CODE_KEYS = ("ticketCode", "ticket_code", "ticketNumber", "code")
_TICKET_ID_KEYS = ("ticketId", "ticket_id")
_EVENT_ID_KEYS = ("eventId", "event_id")


@dataclass(frozen=True)
class ScanPayload:
    """What a scanner read off a ticket."""

    ticket_code: TicketCode
    ticket_id: str | None = None
    event_id: str | None = None


def _first(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise MalformedInputError()
    return str(value).strip()


def _code(value: Any) -> TicketCode:
    if not isinstance(value, str):
        raise MalformedInputError()
    try:
        return TicketCode.from_string(value)
    except ValueError as exc:
        raise MalformedInputError() from exc


def parse_scan_payload(raw: Any) -> ScanPayload:
    """Parse a scan: a bare code, a JSON object string, or an already-decoded mapping.

    Raises:
        MalformedInputError: If no usable ticket code can be extracted.
    """
    if isinstance(raw, str):
        text = raw.strip()
        if not text.startswith("{"):
            return ScanPayload(ticket_code=_code(text))
        try:
            raw = json.loads(text)
        except ValueError as exc:
            raise MalformedInputError() from exc

    if not isinstance(raw, Mapping):
        raise MalformedInputError()

    return ScanPayload(
        ticket_code=_code(_first(raw, _CODE_KEYS)),
        ticket_id=_optional_text(_first(raw, _TICKET_ID_KEYS)),
        event_id=_optional_text(_first(raw, _EVENT_ID_KEYS)),
    )


def parse_event_id(value: Any) -> EventId:
    if isinstance(value, EventId):
        return value
    if not isinstance(value, str):
        raise InvalidIdError("event ID")
    try:
        return EventId.from_string(value)
    except (TypeError, ValueError) as exc:
        raise InvalidIdError("event ID") from exc


def parse_ticket_id(value: Any) -> TicketId:
    if isinstance(value, TicketId):
        return value
    try:
        return TicketId.from_string(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidIdError("ticket ID") from exc

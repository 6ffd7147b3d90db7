"""Maps domain errors to HTTP responses without leaking internals."""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from tickets.domain.errors import DomainError, ErrorCode

logger = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    ErrorCode.MALFORMED_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TICKET_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.WRONG_EVENT: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_IN_TARGET_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.ILLEGAL_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT_STATE_CHANGED: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.COUNTER_INVARIANT: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_TICKET_CODE: status.HTTP_409_CONFLICT,
    ErrorCode.TRANSIENT_STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}

RETRY_AFTER_SECONDS = "1"


def error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def domain_exception_handler(exc, context):
    """DRF exception handler that also understands DomainError."""
    if not isinstance(exc, DomainError):
        return exception_handler(exc, context)

    http_status = _STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    view = context.get("view")
    logger.info(
        "%s answered %d: %s", type(view).__name__ if view else "handler", http_status, exc
    )
    response = Response(error_body(exc.code.value, exc.message), status=http_status)
    if exc.retryable:
        response["Retry-After"] = RETRY_AFTER_SECONDS
    return response

"""Domain primitives that enforce validity at creation time."""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID, uuid4

TICKET_CODE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{2,63}$")
EVENT_ID_MAX_LENGTH = 64


@dataclass(frozen=True)
class EventId:
    """Opaque identifier of the event a ticket admits to."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or len(self.value) > EVENT_ID_MAX_LENGTH:
            raise ValueError("EventId must be 1-64 characters")
        if self.value != self.value.strip():
            raise ValueError("EventId cannot have surrounding whitespace")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=str(value).strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TicketId:
    """Unique identifier for a Ticket."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketCode:
    """Scannable code printed in the ticket's QR image. Immutable once issued."""

    value: str

    def __post_init__(self) -> None:
        if not TICKET_CODE_PATTERN.match(self.value):
            raise ValueError("Ticket code has an invalid format")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=str(value).strip())

    @classmethod
    def generate(cls, now: datetime) -> Self:
        return cls(value=f"TIX-{now:%Y%m%d%H%M%S}-{secrets.token_hex(4)}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if not self.amount.is_finite():
            raise ValueError("Money amount must be finite")
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


@dataclass(frozen=True)
class CallerContext:
    """Identity of whoever is driving a call (scanner operator, organizer, admin)."""

    operator_id: str | None = None
    role: str | None = None

    @classmethod
    def anonymous(cls) -> Self:
        return cls()

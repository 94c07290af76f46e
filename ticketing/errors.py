"""Domain error codes for ticket issuance and rendering."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    CODE_EXHAUSTED = "CODE_EXHAUSTED"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    NO_TICKETS = "NO_TICKETS"
    SEAT_ALREADY_ISSUED = "SEAT_ALREADY_ISSUED"
    ASSET_UNRESOLVED = "ASSET_UNRESOLVED"
    PRIMARY_RENDER_UNAVAILABLE = "PRIMARY_RENDER_UNAVAILABLE"
    FALLBACK_RENDER_FAILED = "FALLBACK_RENDER_FAILED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    retryable = False

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class TicketCodeExhausted(DomainError):
    """Raised when no unused ticket code could be generated."""

    retryable = True

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.CODE_EXHAUSTED,
            message="Ticket generation temporarily unavailable, please retry",
        )
        self.attempts = attempts


class BookingNotFound(DomainError):
    """Raised when the referenced booking does not exist."""

    def __init__(self, booking_id) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_FOUND,
            message="Booking not found",
        )
        self.booking_id = booking_id


class TicketNotFound(DomainError):
    """Raised when the referenced ticket does not exist."""

    def __init__(self, ticket_id) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Ticket not found",
        )
        self.ticket_id = ticket_id


class NoTicketsToRender(DomainError):
    """Raised when a booking reserves no seats, so there is no page to render."""

    def __init__(self, booking_id) -> None:
        super().__init__(
            code=ErrorCode.NO_TICKETS,
            message="Booking has no tickets to render",
        )
        self.booking_id = booking_id


class SeatAlreadyIssued(DomainError):
    """Raised by a store when another caller already created the seat."""

    def __init__(self, booking_id, seat_number: int) -> None:
        super().__init__(
            code=ErrorCode.SEAT_ALREADY_ISSUED,
            message=f"Seat {seat_number} already has a ticket",
        )
        self.booking_id = booking_id
        self.seat_number = seat_number


class AssetUnresolved(DomainError):
    """Raised when an image reference cannot be resolved through any fallback."""

    def __init__(self, reference) -> None:
        super().__init__(
            code=ErrorCode.ASSET_UNRESOLVED,
            message=f"Asset could not be resolved: {reference!r}",
        )
        self.reference = reference


class PrimaryRenderUnavailable(DomainError):
    """Raised when the HTML renderer could not produce a document."""

    retryable = True

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.PRIMARY_RENDER_UNAVAILABLE,
            message=f"HTML renderer unavailable: {reason}",
        )
        self.reason = reason


class FallbackRenderFailed(DomainError):
    """Raised when the canvas renderer itself failed; nothing can be delivered."""

    retryable = True

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.FALLBACK_RENDER_FAILED,
            message="Ticket document could not be produced, please retry",
        )
        self.reason = reason

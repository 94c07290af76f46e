"""Persistence seam for ticket issuance.

The coordinator depends only on TicketStore; DjangoTicketStore is the ORM
implementation used in production and in the test suite.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from django.db import IntegrityError, transaction

from .errors import SeatAlreadyIssued
from .models import Booking, Ticket, TicketTemplate

log = logging.getLogger("ticketing.stores")


class TicketStore(ABC):
    """Abstract interface for booking, ticket and template lookups."""

    @abstractmethod
    def get_booking(self, booking_id) -> Optional[Booking]:
        """Return the booking with experience, session and explorer loaded, or None."""

    @abstractmethod
    def list_tickets(self, booking_id) -> list[Ticket]:
        """Return the booking's tickets in ascending seat order."""

    @abstractmethod
    def create_ticket(self, booking: Booking, code: str, seat_number: int) -> Ticket:
        """Persist one ticket.

        Raises:
            SeatAlreadyIssued: If the seat was taken by a concurrent caller.
        """

    @abstractmethod
    def code_exists(self, code: str) -> bool:
        """Return True if the code is already used by any ticket."""

    @abstractmethod
    def find_active_template(self) -> Optional[TicketTemplate]:
        """Return the active ticket template, or None."""

    @abstractmethod
    def get_ticket(self, ticket_id) -> Optional[Ticket]:
        """Return one ticket with its booking graph loaded, or None."""

    @abstractmethod
    def list_explorer_tickets(self, explorer_id) -> list[Ticket]:
        """Return every ticket held by an explorer, newest first."""


_GRAPH = ("experience", "session", "explorer")


class DjangoTicketStore(TicketStore):
    """Ticket store backed by the Django ORM."""

    def get_booking(self, booking_id) -> Optional[Booking]:
        return Booking.objects.select_related(*_GRAPH).filter(pk=booking_id).first()

    def list_tickets(self, booking_id) -> list[Ticket]:
        return list(Ticket.objects.filter(booking_id=booking_id).order_by("seat_number"))

    def create_ticket(self, booking: Booking, code: str, seat_number: int) -> Ticket:
        try:
            # per-seat savepoint
            with transaction.atomic():
                return Ticket.objects.create(
                    code=code,
                    seat_number=seat_number,
                    booking=booking,
                    experience_id=booking.experience_id,
                    session_id=booking.session_id,
                    explorer_id=booking.explorer_id,
                )
        except IntegrityError:
            if Ticket.objects.filter(booking=booking, seat_number=seat_number).exists():
                log.info("seat already issued booking=%s seat=%s", booking.pk, seat_number)
                raise SeatAlreadyIssued(booking.pk, seat_number)
            raise

    def code_exists(self, code: str) -> bool:
        return Ticket.objects.filter(code=code).exists()

    def find_active_template(self) -> Optional[TicketTemplate]:
        return TicketTemplate.objects.filter(is_active=True).order_by("-updated_at").first()

    def get_ticket(self, ticket_id) -> Optional[Ticket]:
        return (
            Ticket.objects.select_related("booking", *_GRAPH)
            .filter(pk=ticket_id)
            .first()
        )

    def list_explorer_tickets(self, explorer_id) -> list[Ticket]:
        return list(
            Ticket.objects.select_related(*_GRAPH)
            .filter(explorer_id=explorer_id)
            .order_by("-created_at", "-id")
        )

"""Ticket issuance and document rendering.

The coordinator depends on a TicketStore and two renderers:
- ensure_tickets creates one ticket per reserved seat, at most once
- render_document / render_ticket pick the HTML renderer when an active
  template exists and fall back to the canvas renderer otherwise
- render_preview runs an arbitrary template through the HTML renderer only
"""

import logging
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from .codes import generate_unique_code
from .conf import ticket_setting
from .context import COVER_PLACEHOLDER_PATH, TicketRenderContext, VariableContextBuilder
from .errors import (
    BookingNotFound,
    FallbackRenderFailed,
    NoTicketsToRender,
    PrimaryRenderUnavailable,
    SeatAlreadyIssued,
    TicketNotFound,
)
from .models import Booking, Experience, ExperienceSession, Ticket
from .pdf import CanvasPdfRenderer
from .rendering import HtmlPdfRenderer
from .stores import DjangoTicketStore, TicketStore
from .templating import build_tickets_html, render_page, wrap_pages

log = logging.getLogger("ticketing.services")

PREVIEW_CODE = "T-TEST-ABC123"


def preview_variables(builder: Optional[VariableContextBuilder] = None) -> Dict[str, str]:
    """Variables for a made-up booking, used to preview templates."""
    experience = Experience(
        title="Sample Experience Title",
        slug="sample-experience-title",
        meeting_address="123 Main Street",
        currency="USD",
        price=49,
        duration="2h 00m",
        hero_image=COVER_PLACEHOLDER_PATH,
        organizer_name="Jane Organizer",
    )
    session = ExperienceSession(
        experience=experience,
        start_at=timezone.now(),
        duration="2h 00m",
        meeting_address="123 Main Street",
        location_label="City Center",
    )
    explorer = get_user_model()(first_name="John", last_name="Doe", email="john@example.com")
    booking = Booking(experience=experience, session=session, guests=1, created_at=timezone.now())
    ticket = Ticket(code=PREVIEW_CODE, seat_number=1)
    return (builder or VariableContextBuilder()).build(ticket, booking, session, experience, explorer)


class TicketIssuanceCoordinator:
    """Entry point for ticket issuance and rendering."""

    def __init__(
        self,
        store: Optional[TicketStore] = None,
        html_renderer: Optional[HtmlPdfRenderer] = None,
        canvas_renderer: Optional[CanvasPdfRenderer] = None,
        resolver=None,
    ) -> None:
        self._store = store or DjangoTicketStore()
        self._html = html_renderer or HtmlPdfRenderer()
        self._canvas = canvas_renderer or CanvasPdfRenderer()
        self._resolver = resolver

    # ------------------------------------------------------------------
    # issuance
    # ------------------------------------------------------------------

    def ensure_tickets(self, booking_id) -> List[Ticket]:
        """Return the booking's tickets, creating the missing seats first.

        Raises:
            BookingNotFound: If the booking does not exist.
            TicketCodeExhausted: If no unused code could be generated; no
                ticket from this call is kept.
        """
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)

        existing = self._store.list_tickets(booking.pk)
        guests = int(booking.guests or 0)
        if len(existing) >= guests:
            if len(existing) > guests:
                log.warning(
                    "booking %s has %d tickets for %d guests; extra tickets left in place",
                    booking.pk, len(existing), guests,
                )
            return existing

        taken = {t.seat_number for t in existing}
        missing = [seat for seat in range(1, guests + 1) if seat not in taken]
        max_attempts = ticket_setting("CODE_MAX_ATTEMPTS")

        with transaction.atomic():
            for seat in missing:
                code = generate_unique_code(self._store.code_exists, max_attempts=max_attempts)
                try:
                    self._store.create_ticket(booking, code, seat)
                except SeatAlreadyIssued:
                    continue

        tickets = self._store.list_tickets(booking.pk)
        log.info("booking %s: %d tickets (%d requested)", booking.pk, len(tickets), len(missing))
        return tickets

    def list_explorer_tickets(self, explorer_id) -> List[Ticket]:
        return self._store.list_explorer_tickets(explorer_id)

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    def render_document(self, booking_id) -> bytes:
        """One PDF page per ticket of the booking, in seat order.

        Raises:
            NoTicketsToRender: If the booking reserves no seats.
            FallbackRenderFailed: If neither renderer produced a document.
        """
        tickets = self.ensure_tickets(booking_id)
        if not tickets:
            raise NoTicketsToRender(booking_id)
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)

        builder = self._builder()
        contexts = [
            builder.build_context(t, booking, booking.session, booking.experience, booking.explorer)
            for t in tickets
        ]
        return self._render(contexts)

    def render_ticket(self, ticket_id) -> bytes:
        """Single-page PDF for one existing ticket."""
        ticket = self._store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFound(ticket_id)
        ctx = self._builder().build_context(
            ticket, ticket.booking, ticket.session, ticket.experience, ticket.explorer
        )
        return self._render([ctx])

    def render_preview(self, template_html: str, variables: Optional[Dict[str, str]] = None) -> bytes:
        """Render one page of an unsaved template.

        Raises:
            PrimaryRenderUnavailable: If the HTML renderer produced no PDF.
        """
        if variables is None:
            variables = preview_variables(self._builder())
        result = self._html.render(wrap_pages([render_page(template_html, variables)]))
        if not result.ok:
            raise PrimaryRenderUnavailable(result.reason)
        return result.pdf

    def _builder(self) -> VariableContextBuilder:
        return VariableContextBuilder(resolver=self._resolver)

    def _render(self, contexts: List[TicketRenderContext]) -> bytes:
        template = self._store.find_active_template()
        if template is not None:
            result = self._html.render(build_tickets_html(template.html, contexts))
            if result.ok:
                return result.pdf
            log.warning(
                "template %s not rendered (%s: %s), using canvas renderer",
                template.pk, result.status.value, result.reason,
            )
        return self._render_fallback(contexts)

    def _render_fallback(self, contexts: List[TicketRenderContext]) -> bytes:
        try:
            result = self._canvas.render(contexts)
        except Exception as e:
            log.exception("canvas renderer failed")
            raise FallbackRenderFailed(str(e)) from e
        if not result.ok:
            log.error("canvas renderer %s: %s", result.status.value, result.reason)
            raise FallbackRenderFailed(result.reason)
        return result.pdf

"""Tests for TicketIssuanceCoordinator.

Issuance invariants (one ticket per seat, unique codes, idempotency) and the
renderer selection policy.
"""

import re

import pytest
import requests

from conftest import FakeHtmlRenderer, page_count
from ticketing import context as ctx_module
from ticketing.assets import AssetResolver
from ticketing.errors import (
    BookingNotFound,
    ErrorCode,
    FallbackRenderFailed,
    NoTicketsToRender,
    PrimaryRenderUnavailable,
    SeatAlreadyIssued,
    TicketCodeExhausted,
    TicketNotFound,
)
from ticketing.models import Ticket, TicketTemplate
from ticketing.pdf import CanvasPdfRenderer
from ticketing.rendering import RenderResult
from ticketing.services import PREVIEW_CODE, TicketIssuanceCoordinator, preview_variables
from ticketing.stores import DjangoTicketStore

CODE_PATTERN = re.compile(r"^T-[A-Z0-9]+-[A-Z0-9]+$")


class RecordingCanvasRenderer(CanvasPdfRenderer):
    def __init__(self):
        self.contexts = []

    def render(self, contexts):
        self.contexts.extend(contexts)
        return super().render(contexts)


class ExplodingCanvasRenderer:
    def render(self, contexts):
        raise RuntimeError("canvas exploded")


class EmptyCanvasRenderer:
    def render(self, contexts):
        return RenderResult.empty()


class UnreachableSession:
    def get(self, url, timeout=None):
        raise requests.ConnectionError("unreachable")


class CollidingStore(DjangoTicketStore):
    """First code is free, every later one collides."""

    def __init__(self):
        self.checks = 0

    def code_exists(self, code):
        self.checks += 1
        return self.checks > 1


class StaleStore(DjangoTicketStore):
    """Misses tickets created by a concurrent caller on the first read."""

    def __init__(self):
        self.reads = 0

    def list_tickets(self, booking_id):
        self.reads += 1
        if self.reads == 1:
            return []
        return super().list_tickets(booking_id)


@pytest.fixture
def coordinator(fake_html_renderer):
    return TicketIssuanceCoordinator(html_renderer=fake_html_renderer)


@pytest.fixture
def active_template(db):
    return TicketTemplate.objects.create(
        name="Default",
        html='<div class="ticket"><h1>{{ experienceTitle }}</h1><p>{{ code }}</p></div>',
        is_active=True,
    )


@pytest.mark.django_db
class TestEnsureTickets:
    def test_creates_one_ticket_per_guest(self, coordinator, make_booking):
        """Seat numbers are exactly 1..guests with unique codes."""
        booking = make_booking(guests=3)

        tickets = coordinator.ensure_tickets(booking.pk)

        assert [t.seat_number for t in tickets] == [1, 2, 3]
        assert len({t.code for t in tickets}) == 3
        assert all(CODE_PATTERN.match(t.code) for t in tickets)
        assert all(t.experience_id == booking.experience_id for t in tickets)
        assert all(t.session_id == booking.session_id for t in tickets)
        assert all(t.explorer_id == booking.explorer_id for t in tickets)

    def test_idempotent(self, coordinator, booking):
        """A second call returns the same tickets and creates nothing."""
        first = coordinator.ensure_tickets(booking.pk)
        second = coordinator.ensure_tickets(booking.pk)

        assert [(t.pk, t.code) for t in first] == [(t.pk, t.code) for t in second]
        assert Ticket.objects.filter(booking=booking).count() == 2

    def test_fills_only_missing_seats(self, coordinator, booking):
        existing = Ticket.objects.create(
            code="T-OLD-1", seat_number=1, booking=booking, experience=booking.experience,
            session=booking.session, explorer=booking.explorer,
        )

        tickets = coordinator.ensure_tickets(booking.pk)

        assert [t.seat_number for t in tickets] == [1, 2]
        assert tickets[0].pk == existing.pk
        assert tickets[0].code == "T-OLD-1"

    def test_codes_unique_across_bookings(self, coordinator, make_booking):
        codes = []
        for _ in range(3):
            codes += [t.code for t in coordinator.ensure_tickets(make_booking(guests=4).pk)]
        assert len(codes) == len(set(codes)) == 12

    def test_unknown_booking(self, coordinator):
        with pytest.raises(BookingNotFound) as exc:
            coordinator.ensure_tickets(999999)
        assert exc.value.code is ErrorCode.BOOKING_NOT_FOUND

    def test_extra_tickets_left_alone(self, coordinator, booking, caplog):
        """Fewer guests than tickets: nothing is deleted, a warning is logged."""
        coordinator.ensure_tickets(booking.pk)
        booking.guests = 1
        booking.save(update_fields=["guests"])

        tickets = coordinator.ensure_tickets(booking.pk)

        assert len(tickets) == 2
        assert "extra tickets left in place" in caplog.text

    def test_code_exhaustion_rolls_back_batch(self, booking):
        """Seat 1 succeeds, seat 2 exhausts its attempts: nothing is kept."""
        coordinator = TicketIssuanceCoordinator(store=CollidingStore(), html_renderer=FakeHtmlRenderer())

        with pytest.raises(TicketCodeExhausted):
            coordinator.ensure_tickets(booking.pk)

        assert Ticket.objects.filter(booking=booking).count() == 0

    def test_concurrent_seat_conflict_ignored(self, booking):
        """A seat created by another caller is treated as already issued."""
        Ticket.objects.create(
            code="T-RACE-1", seat_number=1, booking=booking, experience=booking.experience,
            session=booking.session, explorer=booking.explorer,
        )
        coordinator = TicketIssuanceCoordinator(store=StaleStore(), html_renderer=FakeHtmlRenderer())

        tickets = coordinator.ensure_tickets(booking.pk)

        assert [t.seat_number for t in tickets] == [1, 2]
        assert tickets[0].code == "T-RACE-1"


@pytest.mark.django_db
class TestDjangoTicketStore:
    def test_create_ticket_seat_conflict(self, booking):
        store = DjangoTicketStore()
        store.create_ticket(booking, "T-A-1", 1)

        with pytest.raises(SeatAlreadyIssued) as exc:
            store.create_ticket(booking, "T-A-2", 1)

        assert exc.value.seat_number == 1
        assert Ticket.objects.filter(booking=booking).count() == 1

    def test_code_exists(self, booking):
        store = DjangoTicketStore()
        store.create_ticket(booking, "T-A-1", 1)
        assert store.code_exists("T-A-1")
        assert not store.code_exists("T-A-2")

    def test_list_explorer_tickets_newest_first(self, coordinator, make_booking, explorer):
        first = coordinator.ensure_tickets(make_booking(guests=1).pk)
        second = coordinator.ensure_tickets(make_booking(guests=1).pk)

        listed = coordinator.list_explorer_tickets(explorer.pk)

        assert [t.pk for t in listed] == [second[0].pk, first[0].pk]


@pytest.mark.django_db
class TestRenderDocument:
    def test_end_to_end_with_canvas_renderer(self, booking, monkeypatch):
        """Two guests: two tickets, two pages, each barcode carries its page's code."""
        payloads = []
        real_barcode = ctx_module.encoding.render_barcode

        def spy(payload):
            payloads.append(payload)
            return real_barcode(payload)

        monkeypatch.setattr(ctx_module.encoding, "render_barcode", spy)
        canvas = RecordingCanvasRenderer()
        coordinator = TicketIssuanceCoordinator(canvas_renderer=canvas)

        pdf = coordinator.render_document(booking.pk)

        tickets = list(Ticket.objects.filter(booking=booking))
        codes = [t.code for t in tickets]
        assert [t.seat_number for t in tickets] == [1, 2]
        assert all(CODE_PATTERN.match(c) for c in codes)
        assert pdf.startswith(b"%PDF")
        assert page_count(pdf) == 2
        assert payloads == codes
        assert [c.code for c in canvas.contexts] == codes
        assert [c.variables["barcodeDataUrl"] != "" for c in canvas.contexts] == [True, True]

    def test_context_values(self, booking):
        canvas = RecordingCanvasRenderer()
        TicketIssuanceCoordinator(canvas_renderer=canvas).render_document(booking.pk)

        v = canvas.contexts[0].variables
        assert v["experienceTitle"] == "Sunset Kayaking"
        assert v["pricePerSpot"] == "45.00 USD / Spot"
        assert v["sessionDate"] == "Sunday 1 Jun 2025"
        assert v["sessionTimeRange"] == "18:00 to 20:00"
        assert v["experienceUrl"] == "https://tickets.example/experiences/sunset-kayaking"
        assert v["explorerName"] == "Amina Benali"

    def test_without_template_external_renderer_never_runs(self, booking, fake_html_renderer, coordinator):
        pdf = coordinator.render_document(booking.pk)
        assert page_count(pdf) == 2
        assert fake_html_renderer.documents == []

    def test_active_template_uses_html_renderer(self, booking, active_template, fake_html_renderer, coordinator):
        pdf = coordinator.render_document(booking.pk)

        assert pdf == b"%PDF-1.7 fake"
        html = fake_html_renderer.documents[0]
        assert html.count('<section class="ticket-page">') == 2
        codes = [t.code for t in Ticket.objects.filter(booking=booking)]
        assert html.index(codes[0]) < html.index(codes[1])
        assert "Sunset Kayaking" in html

    @pytest.mark.parametrize("result", [
        RenderResult.unavailable("timed out after 30s"),
        RenderResult.empty(),
    ])
    def test_html_failure_falls_back_to_canvas(self, booking, active_template, result):
        html = FakeHtmlRenderer(result)
        pdf = TicketIssuanceCoordinator(html_renderer=html).render_document(booking.pk)

        assert len(html.documents) == 1
        assert pdf.startswith(b"%PDF")
        assert page_count(pdf) == 2

    def test_missing_renderer_binary_falls_back(self, booking, active_template):
        """The configured command does not exist in the test settings."""
        pdf = TicketIssuanceCoordinator().render_document(booking.pk)
        assert page_count(pdf) == 2

    def test_canvas_exception_is_fallback_failure(self, booking):
        coordinator = TicketIssuanceCoordinator(
            html_renderer=FakeHtmlRenderer(), canvas_renderer=ExplodingCanvasRenderer()
        )
        with pytest.raises(FallbackRenderFailed) as exc:
            coordinator.render_document(booking.pk)
        assert exc.value.retryable is True
        assert "canvas exploded" in exc.value.reason

    def test_canvas_empty_is_fallback_failure(self, booking):
        coordinator = TicketIssuanceCoordinator(
            html_renderer=FakeHtmlRenderer(), canvas_renderer=EmptyCanvasRenderer()
        )
        with pytest.raises(FallbackRenderFailed):
            coordinator.render_document(booking.pk)

    def test_unreachable_hero_image_still_renders(self, booking):
        booking.experience.hero_image = "https://cdn.example/kayak.jpg"
        booking.experience.save(update_fields=["hero_image"])
        canvas = RecordingCanvasRenderer()
        coordinator = TicketIssuanceCoordinator(
            canvas_renderer=canvas,
            resolver=AssetResolver(session=UnreachableSession()),
        )

        pdf = coordinator.render_document(booking.pk)

        assert page_count(pdf) == 2
        assert canvas.contexts[0].variables["experienceCoverDataUrl"] == ""
        assert canvas.contexts[0].variables["logoDataUrl"].startswith("data:image/png;base64,")

    def test_unknown_booking(self, coordinator):
        with pytest.raises(BookingNotFound):
            coordinator.render_document(424242)

    def test_booking_without_seats_is_not_retryable(self, make_booking):
        """guests=0 never reaches a renderer and is not reported as retryable."""
        canvas = RecordingCanvasRenderer()
        html = FakeHtmlRenderer()
        coordinator = TicketIssuanceCoordinator(html_renderer=html, canvas_renderer=canvas)
        booking = make_booking(guests=0)

        with pytest.raises(NoTicketsToRender) as exc:
            coordinator.render_document(booking.pk)

        assert exc.value.code is ErrorCode.NO_TICKETS
        assert exc.value.retryable is False
        assert canvas.contexts == []
        assert html.documents == []
        assert Ticket.objects.filter(booking=booking).count() == 0


@pytest.mark.django_db
class TestRenderTicket:
    def test_single_page(self, coordinator, booking):
        tickets = coordinator.ensure_tickets(booking.pk)
        pdf = coordinator.render_ticket(tickets[1].pk)
        assert page_count(pdf) == 1

    def test_unknown_ticket(self, coordinator):
        with pytest.raises(TicketNotFound):
            coordinator.render_ticket(31337)


@pytest.mark.django_db
class TestRenderPreview:
    def test_preview_uses_sample_variables(self, coordinator, fake_html_renderer):
        pdf = coordinator.render_preview("<p>{{ code }} {{ experienceTitle }} {{ explorerName }}</p>")

        assert pdf == b"%PDF-1.7 fake"
        html = fake_html_renderer.documents[0]
        assert f"{PREVIEW_CODE} Sample Experience Title John Doe" in html
        assert html.count('<section class="ticket-page">') == 1

    def test_preview_with_caller_variables(self, coordinator, fake_html_renderer):
        coordinator.render_preview("<p>{{ code }}</p>", {"code": "T-MINE-1"})
        assert "<p>T-MINE-1</p>" in fake_html_renderer.documents[0]

    def test_preview_never_falls_back(self):
        coordinator = TicketIssuanceCoordinator(html_renderer=FakeHtmlRenderer(RenderResult.unavailable("down")))
        with pytest.raises(PrimaryRenderUnavailable) as exc:
            coordinator.render_preview("<p>{{ code }}</p>")
        assert exc.value.reason == "down"

    def test_preview_creates_nothing(self, coordinator):
        coordinator.render_preview("<p/>")
        assert Ticket.objects.count() == 0

    def test_preview_variables(self):
        v = preview_variables()
        assert v["code"] == PREVIEW_CODE
        assert v["meetingAddress"] == "123 Main Street"
        assert v["pricePerSpot"] == "49.00 USD / Spot"
        assert v["explorerEmail"] == "john@example.com"
        assert v["sessionDuration"] == "2h 00m"


@pytest.mark.django_db
class TestTicketTemplate:
    def test_activate_keeps_one_active(self, active_template):
        other = TicketTemplate.objects.create(name="Summer", html="<p/>")

        other.activate()

        active_template.refresh_from_db()
        assert other.is_active
        assert not active_template.is_active
        assert DjangoTicketStore().find_active_template() == other

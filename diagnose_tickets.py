import os
import sys

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

from ticketing.conf import ticket_setting
from ticketing.errors import DomainError
from ticketing.services import TicketIssuanceCoordinator
from ticketing.stores import DjangoTicketStore


def diagnose(booking_id, out=None):
    print(f"--- DIAGNOSING TICKETS FOR BOOKING {booking_id} ---")
    store = DjangoTicketStore()

    booking = store.get_booking(booking_id)
    if booking is None:
        print("  Booking not found.")
        return 1
    print(f"  Booking {booking.pk} | Status: {booking.status} | Guests: {booking.guests}")
    print(f"  Experience: {booking.experience.title} | Session: {booking.session.start_at}")
    print(f"  Explorer: {booking.explorer.get_full_name() or booking.explorer.get_username()}")

    tickets = store.list_tickets(booking.pk)
    print(f"  Tickets before: {[(t.seat_number, t.code) for t in tickets]}")

    template = store.find_active_template()
    print(f"  Active template: {template or 'none (canvas renderer)'}")
    print(f"  HTML renderer: {' '.join(ticket_setting('HTML_RENDERER_COMMAND'))}")
    print(f"  Asset root: {ticket_setting('ASSET_ROOT')}")

    coordinator = TicketIssuanceCoordinator(store=store)
    try:
        tickets = coordinator.ensure_tickets(booking.pk)
        print(f"  Tickets after: {[(t.seat_number, t.code) for t in tickets]}")
        pdf = coordinator.render_document(booking.pk)
    except DomainError as e:
        print(f"  FAILED: {e}")
        return 1

    print(f"  PDF: {len(pdf)} bytes")
    if out:
        with open(out, "wb") as fh:
            fh.write(pdf)
        print(f"  Written to {out}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python diagnose_tickets.py <booking_id> [out.pdf]")
        sys.exit(2)
    sys.exit(diagnose(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))

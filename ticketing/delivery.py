# delivery.py
import logging

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import DatabaseError

from .errors import DomainError
from .services import TicketIssuanceCoordinator
from .stores import DjangoTicketStore

log = logging.getLogger("ticketing.delivery")


def send_booking_tickets(booking_id, coordinator=None) -> bool:
    """
    Email the booking's tickets to the explorer as one PDF attachment.
    Called from the confirmation flow, so failures are logged and reported
    through the return value, never raised.
    """
    coordinator = coordinator or TicketIssuanceCoordinator()
    booking = DjangoTicketStore().get_booking(booking_id)
    if booking is None:
        log.warning("send_booking_tickets: booking %s not found", booking_id)
        return False

    recipient = (getattr(booking.explorer, "email", "") or "").strip()
    if not recipient:
        log.warning("send_booking_tickets: booking %s has no explorer email", booking_id)
        return False

    try:
        pdf = coordinator.render_document(booking.pk)
    except (DomainError, DatabaseError) as e:
        log.error("send_booking_tickets: booking %s not rendered: %s", booking_id, e)
        return False

    title = booking.experience.title
    msg = EmailMessage(
        subject=f"Your tickets for {title}",
        body=(
            f"Hi {booking.explorer.get_full_name() or recipient},\n\n"
            f"Your booking #{booking.pk} for {title} is confirmed. "
            f"Your {booking.guests} ticket(s) are attached.\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
    )
    msg.attach(f"tickets-{booking.pk}.pdf", pdf, "application/pdf")
    try:
        msg.send(fail_silently=False)
    except OSError as e:
        log.error("send_booking_tickets: mail for booking %s failed: %s", booking_id, e)
        return False

    log.info("tickets for booking %s sent to %s", booking.pk, recipient)
    return True

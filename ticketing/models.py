#models.py
from django.conf import settings
from django.db import models, transaction
from django.utils import timezone
from django.core.validators import MinValueValidator


class Experience(models.Model):
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, blank=True, default="")
    meeting_address = models.CharField(max_length=255, blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    currency = models.CharField(max_length=8, default="MAD")
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    hero_image = models.CharField(
        max_length=500, blank=True, default="",
        help_text="Remote URL or path relative to the ticket asset root",
    )
    duration = models.CharField(max_length=64, blank=True, default="", help_text='e.g. "2 hours 30 min"')
    organizer_name = models.CharField(max_length=120, blank=True, default="")

    def __str__(self):
        return self.title


class ExperienceSession(models.Model):
    """
    One scheduled run of an experience. Blank/null fields fall back to the experience.
    """
    experience = models.ForeignKey(Experience, on_delete=models.CASCADE, related_name="sessions")
    start_at = models.DateTimeField()
    duration = models.CharField(max_length=64, blank=True, default="")
    price_override = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    meeting_address = models.CharField(max_length=255, blank=True, default="")
    location_label = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["start_at"]

    def __str__(self):
        return f"{self.experience.title} @ {self.start_at:%Y-%m-%d %H:%M}"


class Booking(models.Model):
    STATUS = (
        ("PENDING", "Pending"),
        ("CONFIRMED", "Confirmed"),
        ("CANCELLED", "Cancelled"),
    )

    experience = models.ForeignKey(Experience, on_delete=models.PROTECT, related_name="bookings")
    session = models.ForeignKey(ExperienceSession, on_delete=models.PROTECT, related_name="bookings")
    explorer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bookings")
    guests = models.PositiveSmallIntegerField(default=1, help_text="Reserved seats, one ticket each")
    status = models.CharField(max_length=20, choices=STATUS, default="CONFIRMED")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"Booking #{self.pk} ({self.experience_id} x{self.guests})"


class Ticket(models.Model):
    """
    One per reserved seat. Created once, never updated or deleted here.
    """
    code = models.CharField(max_length=40, unique=True)
    seat_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="tickets")
    experience = models.ForeignKey(Experience, on_delete=models.PROTECT, related_name="tickets")
    session = models.ForeignKey(ExperienceSession, on_delete=models.PROTECT, related_name="tickets")
    explorer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tickets")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["seat_number"]
        constraints = [
            models.UniqueConstraint(fields=["booking", "seat_number"], name="uniq_ticket_booking_seat"),
        ]

    def __str__(self):
        return f"{self.code} (booking={self.booking_id} seat={self.seat_number})"


class TicketTemplate(models.Model):
    name = models.CharField(max_length=120)
    html = models.TextField(help_text="HTML with {{ variableName }} placeholders")
    is_active = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self):
        return f"{self.name} ({'ACTIVE' if self.is_active else 'inactive'})"

    def activate(self):
        """Make this the only active template."""
        with transaction.atomic():
            TicketTemplate.objects.filter(is_active=True).exclude(pk=self.pk).update(is_active=False)
            self.is_active = True
            self.save(update_fields=["is_active", "updated_at"])

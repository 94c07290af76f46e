import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Experience",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, default="", max_length=220)),
                ("meeting_address", models.CharField(blank=True, default="", max_length=255)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("currency", models.CharField(default="MAD", max_length=8)),
                ("price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("hero_image", models.CharField(blank=True, default="", help_text="Remote URL or path relative to the ticket asset root", max_length=500)),
                ("duration", models.CharField(blank=True, default="", help_text='e.g. "2 hours 30 min"', max_length=64)),
                ("organizer_name", models.CharField(blank=True, default="", max_length=120)),
            ],
        ),
        migrations.CreateModel(
            name="ExperienceSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_at", models.DateTimeField()),
                ("duration", models.CharField(blank=True, default="", max_length=64)),
                ("price_override", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("meeting_address", models.CharField(blank=True, default="", max_length=255)),
                ("location_label", models.CharField(blank=True, default="", max_length=255)),
                ("experience", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sessions", to="ticketing.experience")),
            ],
            options={
                "ordering": ["start_at"],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("guests", models.PositiveSmallIntegerField(default=1, help_text="Reserved seats, one ticket each")),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("CANCELLED", "Cancelled")], default="CONFIRMED", max_length=20)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("experience", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="ticketing.experience")),
                ("explorer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bookings", to=settings.AUTH_USER_MODEL)),
                ("session", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="ticketing.experiencesession")),
            ],
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=40, unique=True)),
                ("seat_number", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("booking", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tickets", to="ticketing.booking")),
                ("experience", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="tickets", to="ticketing.experience")),
                ("explorer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tickets", to=settings.AUTH_USER_MODEL)),
                ("session", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="tickets", to="ticketing.experiencesession")),
            ],
            options={
                "ordering": ["seat_number"],
            },
        ),
        migrations.AddConstraint(
            model_name="ticket",
            constraint=models.UniqueConstraint(fields=("booking", "seat_number"), name="uniq_ticket_booking_seat"),
        ),
        migrations.CreateModel(
            name="TicketTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("html", models.TextField(help_text="HTML with {{ variableName }} placeholders")),
                ("is_active", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-updated_at"],
            },
        ),
    ]

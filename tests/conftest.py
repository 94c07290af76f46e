"""Pytest configuration and shared fixtures."""

import re
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from PIL import Image

from ticketing.models import Booking, Experience, ExperienceSession
from ticketing.rendering import RenderResult


@pytest.fixture
def asset_root(tmp_path):
    root = tmp_path / "assets"
    (root / "images").mkdir(parents=True)
    Image.new("RGB", (40, 20), "navy").save(root / "images" / "logo.png")
    return root


@pytest.fixture(autouse=True)
def ticket_settings(settings, asset_root):
    """Isolated asset root; the HTML renderer binary never exists in tests."""
    settings.TIME_ZONE = "UTC"
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.TICKETS = {
        "APP_URL": "https://tickets.example",
        "ASSET_ROOT": str(asset_root),
        "BRAND_NAME": "Kamleen",
        "DEFAULT_CURRENCY": "MAD",
        "CODE_PREFIX": "T",
        "CODE_MAX_ATTEMPTS": 10,
        "HTML_RENDERER_COMMAND": ["ticketing-test-no-such-renderer", "-", "-"],
        "HTML_RENDER_TIMEOUT": 5.0,
        "ASSET_FETCH_TIMEOUT": 1.0,
        "DEBUG_DUMP_DIR": None,
        "FONT_DIRS": [],
    }
    return settings.TICKETS


@pytest.fixture
def explorer(db, django_user_model):
    return django_user_model.objects.create_user(
        username="amina",
        email="amina@example.com",
        password="x",
        first_name="Amina",
        last_name="Benali",
    )


@pytest.fixture
def experience(db):
    return Experience.objects.create(
        title="Sunset Kayaking",
        slug="sunset-kayaking",
        meeting_address="Marina Dock 3",
        currency="USD",
        price=Decimal("45"),
        duration="2 hours",
        organizer_name="Bay Paddlers",
    )


@pytest.fixture
def session(experience):
    return ExperienceSession.objects.create(
        experience=experience,
        start_at=datetime(2025, 6, 1, 18, 0, tzinfo=dt_timezone.utc),
    )


@pytest.fixture
def make_booking(experience, session, explorer):
    def _make(guests=2, **kwargs):
        return Booking.objects.create(
            experience=kwargs.pop("experience", experience),
            session=kwargs.pop("session", session),
            explorer=kwargs.pop("explorer", explorer),
            guests=guests,
            **kwargs,
        )
    return _make


@pytest.fixture
def booking(make_booking):
    return make_booking(guests=2)


PDF_PAGE = re.compile(rb"/Type\s*/Page\b")


def page_count(pdf: bytes) -> int:
    return len(PDF_PAGE.findall(pdf))


class FakeHtmlRenderer:
    """Stands in for the external HTML renderer; records every document."""

    def __init__(self, result=None):
        self.result = result or RenderResult.rendered(b"%PDF-1.7 fake")
        self.documents = []

    def render(self, html):
        self.documents.append(html)
        return self.result


@pytest.fixture
def fake_html_renderer():
    return FakeHtmlRenderer()

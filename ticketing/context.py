# context.py
"""
Projection of booking / session / experience / explorer records into the flat
string map used to fill ticket templates and lay out the canvas fallback.

Every helper here is total: missing or malformed input yields "" (or 0),
never None, so template substitution never sees a non-string.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.utils import dateformat, timezone

from . import encoding
from .assets import Asset, AssetResolver
from .conf import ticket_setting

LOGO_PATH = "images/logo.png"
LOGO_WHITE_PATH = "images/logo-w.png"
PATTERN_PATH = "images/pattern.png"
COVER_PLACEHOLDER_PATH = "images/placeholder-experience.svg"


# =====================================================================
# DURATION
# =====================================================================
#
#   duration  := term { separator term }
#   term      := INTEGER [ws] unit
#   unit      := day | hour | minute
#   day       := "d" | "day" | "days"
#   hour      := "h" | "hr" | "hrs" | "hour" | "hours"
#   minute    := "m" | "min" | "mins" | "minute" | "minutes"
#   separator := ws | "," | "and"
#
# Units may come in any order and any subset; repeats add up; anything
# that is not a term is skipped.

_TERM = re.compile(r"(\d+)\s*([a-z]+)")

_UNIT_MINUTES = {
    "d": 1440, "day": 1440, "days": 1440,
    "h": 60, "hr": 60, "hrs": 60, "hour": 60, "hours": 60,
    "m": 1, "min": 1, "mins": 1, "minute": 1, "minutes": 1,
}


def parse_duration(label: Optional[str]) -> int:
    """'1 day 2 hours 30 min' -> 1590. Unparseable input -> 0."""
    if not label:
        return 0
    total = 0
    for number, unit in _TERM.findall(str(label).lower()):
        factor = _UNIT_MINUTES.get(unit)
        if factor:
            total += int(number) * factor
    return total


def _plural(n: int, one: str, many: str) -> str:
    return f"{n} {one if n == 1 else many}"


def format_duration(minutes: int) -> str:
    """1590 -> '1 day 2 hours 30 min'. Zero or negative -> ''."""
    if not minutes or minutes <= 0:
        return ""
    days, rest = divmod(int(minutes), 1440)
    hours, mins = divmod(rest, 60)
    parts = []
    if days:
        parts.append(_plural(days, "day", "days"))
    if hours:
        parts.append(_plural(hours, "hour", "hours"))
    if mins:
        parts.append(f"{mins} min")
    return " ".join(parts)


def effective_duration_label(session, experience) -> str:
    for label in (getattr(session, "duration", None), getattr(experience, "duration", None)):
        if parse_duration(label) > 0:
            return str(label).strip()
    return ""


def effective_duration_minutes(session, experience) -> int:
    return parse_duration(effective_duration_label(session, experience))


# =====================================================================
# PRICE / LOCATION / URL
# =====================================================================

def _to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def effective_price(session, experience) -> Optional[Decimal]:
    """Session price_override wins whenever it is set (even 0)."""
    override = _to_decimal(getattr(session, "price_override", None))
    if override is not None:
        return override
    return _to_decimal(getattr(experience, "price", None))


def format_price_per_spot(amount, currency: Optional[str] = None) -> str:
    value = _to_decimal(amount)
    if value is None or not value.is_finite() or value <= 0:
        return ""
    cur = (currency or ticket_setting("DEFAULT_CURRENCY") or "").strip().upper()
    return f"{value.quantize(Decimal('0.01'))} {cur} / Spot"


def _first_filled(*values) -> str:
    for v in values:
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


def effective_location(session, experience) -> str:
    return _first_filled(
        getattr(session, "meeting_address", None),
        getattr(session, "location_label", None),
        getattr(experience, "meeting_address", None),
        getattr(experience, "location", None),
    )


def experience_url(experience, base_url: Optional[str] = None) -> str:
    slug = _first_filled(getattr(experience, "slug", None))
    if not slug:
        return ""
    base = (base_url if base_url is not None else ticket_setting("APP_URL")) or ""
    return f"{base.rstrip('/')}/experiences/{slug}"


# =====================================================================
# DATES
# =====================================================================

def _local(value: Optional[datetime]) -> Optional[datetime]:
    if not isinstance(value, datetime):
        return None
    if timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def _fmt(value: Optional[datetime], pattern: str) -> str:
    return dateformat.format(value, pattern) if value else ""


def session_window(session, experience):
    """(local start, local end or None) for the session."""
    start = _local(getattr(session, "start_at", None))
    if start is None:
        return None, None
    minutes = effective_duration_minutes(session, experience)
    return start, (start + timedelta(minutes=minutes) if minutes else None)


def date_variables(session, experience) -> Dict[str, str]:
    start, end = session_window(session, experience)
    time_start = _fmt(start, "H:i")
    time_end = _fmt(end, "H:i")
    return {
        "sessionStart": _fmt(start, "j M Y H:i"),
        "sessionDate": _fmt(start, "l j M Y"),
        "sessionWeekday": _fmt(start, "l"),
        "sessionDay": _fmt(start, "j"),
        "sessionMonth": _fmt(start, "F"),
        "sessionYear": _fmt(start, "Y"),
        "sessionTimeStart": time_start,
        "sessionTimeEnd": time_end,
        "sessionTimeRange": f"{time_start} to {time_end}" if time_end else time_start,
    }


def format_reservation_date(value) -> str:
    return _fmt(_local(value), "j M Y")


# =====================================================================
# BUILDER
# =====================================================================

@dataclass
class TicketRenderContext:
    code: str
    seat_number: int
    variables: Dict[str, str] = field(default_factory=dict)
    logo: Optional[Asset] = None
    barcode_png: bytes = b""


def _explorer_name(explorer) -> str:
    if explorer is None:
        return ""
    full = getattr(explorer, "get_full_name", None)
    name = full() if callable(full) else getattr(explorer, "name", "")
    return _first_filled(name)


class VariableContextBuilder:
    """
    Builds the per-ticket variable map. Shared imagery (logo, pattern, cover)
    is resolved once per builder, so use one builder per render request.
    """

    def __init__(self, resolver: Optional[AssetResolver] = None, base_url: Optional[str] = None,
                 brand_name: Optional[str] = None):
        self.resolver = resolver or AssetResolver()
        self.base_url = base_url if base_url is not None else ticket_setting("APP_URL")
        self.brand_name = brand_name if brand_name is not None else ticket_setting("BRAND_NAME")
        self._shared: Dict[str, Optional[Asset]] = {}

    def _shared_asset(self, key: str, reference: Optional[str], fallback: Optional[str]) -> Optional[Asset]:
        if key not in self._shared:
            self._shared[key] = self.resolver.resolve(reference, fallback)
        return self._shared[key]

    def _data_url(self, asset: Optional[Asset]) -> str:
        return asset.data_url if asset else ""

    def build(self, ticket, booking, session, experience, explorer) -> Dict[str, str]:
        return self.build_context(ticket, booking, session, experience, explorer).variables

    def build_context(self, ticket, booking, session, experience, explorer) -> TicketRenderContext:
        code = _first_filled(getattr(ticket, "code", None))
        seat = getattr(ticket, "seat_number", None)

        logo = self._shared_asset("logo", None, LOGO_PATH)
        logo_white = self._shared_asset("logo_white", None, LOGO_WHITE_PATH)
        pattern = self._shared_asset("pattern", None, PATTERN_PATH)
        cover = self._shared_asset("cover", getattr(experience, "hero_image", None), COVER_PLACEHOLDER_PATH)

        url = experience_url(experience, self.base_url)
        barcode_png = encoding.render_barcode(code) if code else b""
        qr_png = encoding.render_qr(url) if url else b""

        currency = getattr(experience, "currency", None)
        variables = {
            "code": code,
            "seatNumber": str(seat) if seat is not None else "",
            "experienceTitle": _first_filled(getattr(experience, "title", None)),
            "experienceSlug": _first_filled(getattr(experience, "slug", None)),
            "experienceUrl": url,
            "organizerName": _first_filled(getattr(experience, "organizer_name", None)),
            "meetingAddress": effective_location(session, experience),
            "locationLabel": _first_filled(getattr(session, "location_label", None)),
            "sessionDuration": effective_duration_label(session, experience),
            "sessionDurationMinutes": str(effective_duration_minutes(session, experience) or ""),
            "pricePerSpot": format_price_per_spot(effective_price(session, experience), currency),
            "explorerName": _explorer_name(explorer),
            "explorerEmail": _first_filled(getattr(explorer, "email", None)),
            "bookingRef": str(booking.pk) if getattr(booking, "pk", None) is not None else "",
            "reservationDate": format_reservation_date(getattr(booking, "created_at", None)),
            "brandName": self.brand_name or "",
            "logoDataUrl": self._data_url(logo),
            "logoWhiteDataUrl": self._data_url(logo_white),
            "patternDataUrl": self._data_url(pattern),
            "experienceCoverDataUrl": self._data_url(cover),
            "barcodeDataUrl": encoding.to_data_url(barcode_png),
            "qrcodeDataUrl": encoding.to_data_url(qr_png),
        }
        variables.update(date_variables(session, experience))

        return TicketRenderContext(
            code=code,
            seat_number=int(seat or 0),
            variables=variables,
            logo=logo,
            barcode_png=barcode_png,
        )

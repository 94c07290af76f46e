# pdf.py
"""
Canvas ticket renderer (fallback strategy). Draws every ticket directly with
reportlab primitives; no HTML, no external process.
"""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence

from reportlab.pdfgen import canvas
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfbase.ttfonts import TTFError

from .conf import ticket_setting
from .context import TicketRenderContext
from .rendering import RenderResult

log = logging.getLogger("ticketing.pdf")


# =====================================================================
# DESIGN TOKENS & LAYOUT SYSTEM
# =====================================================================

# Slim vertical ticket, same box as the HTML page
PAGE_W, PAGE_H = 420, 840

OUTER = 16
CARD_X = OUTER
CARD_Y = OUTER
CARD_W = PAGE_W - OUTER * 2
CARD_H = PAGE_H - OUTER * 2
CARD_PAD = 22

LEFT = CARD_X + CARD_PAD
RIGHT = CARD_X + CARD_W - CARD_PAD
CONTENT_W = RIGHT - LEFT

GRID_ROW_GAP = 44
LOGO_H = 24


def _hex(rgb: str) -> colors.Color:
    rgb = rgb.lstrip("#")
    r, g, b = tuple(int(rgb[i:i+2], 16) / 255 for i in (0, 2, 4))
    return colors.Color(r, g, b)

CARD_BG = colors.white
ACCENT = _hex("#5EBAD9")
DIVIDER = _hex("#E3E6ED")
TITLE = _hex("#12192E")
BRAND = _hex("#1A1F29")
MUTE = _hex("#788294")
VALUE = _hex("#212633")

# Type scale (pt)
T_10 = 10
T_12 = 12
T_14 = 14
T_16 = 16
T_24 = 24

# Fonts (registered in ensure_unicode_font)
_FONT_READY = False
_FONT_BODY = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


# =====================================================================
# FONT UTILITIES
# =====================================================================

# Where distro packages (fonts-dejavu-core, dejavu-sans-fonts) install DejaVu
SYSTEM_FONT_DIRS = (
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/usr/local/share/fonts",
)


def _font_dirs() -> List[Path]:
    root = Path(ticket_setting("ASSET_ROOT"))
    extra = [Path(d) for d in (ticket_setting("FONT_DIRS") or ())]
    return [root / "fonts", root, *extra, *(Path(d) for d in SYSTEM_FONT_DIRS)]


def _find_font(*filenames: str) -> Optional[str]:
    """Asset root first, then TICKETS["FONT_DIRS"], then the system font dirs."""
    for base in _font_dirs():
        for name in filenames:
            cand = base / name
            if cand.is_file():
                return str(cand)
    return None


def ensure_unicode_font() -> bool:
    """
    Register DejaVu Sans Regular/Bold so Latin-extended, Greek, Cyrillic and
    (unshaped) Arabic names render. Falls back to the built-in Helvetica pair,
    which only covers WinAnsi.
    """
    global _FONT_READY, _FONT_BODY, _FONT_BOLD
    if _FONT_READY:
        return _FONT_BODY.startswith("DejaVu")

    reg = _find_font("DejaVuSans.ttf")
    bold = _find_font("DejaVuSans-Bold.ttf")

    ok = False
    try:
        if reg:
            pdfmetrics.registerFont(TTFont("DejaVuSans", reg))
            _FONT_BODY = "DejaVuSans"
            ok = True
        if bold:
            pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", bold))
            _FONT_BOLD = "DejaVuSans-Bold"
        elif ok:
            _FONT_BOLD = "DejaVuSans"
    except (TTFError, OSError) as e:
        log.warning("unicode font registration failed: %s", e)
        _FONT_BODY, _FONT_BOLD = "Helvetica", "Helvetica-Bold"
        ok = False

    if not ok:
        log.warning("no usable DejaVuSans.ttf in %s; non-Latin text will not render",
                    ", ".join(str(d) for d in _font_dirs()))
    _FONT_READY = True
    return ok


# =====================================================================
# HELPERS
# =====================================================================

def _text_width(c: canvas.Canvas, text: str, font: str, size: float) -> float:
    return c.stringWidth(text or "", font, size)


def _ellipsis(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> str:
    """Truncate with ellipsis; falls back to character cuts for long single tokens."""
    txt = (text or "").strip()
    if _text_width(c, txt, font, size) <= max_w:
        return txt
    dots = "…"
    out = txt
    while out and _text_width(c, out + dots, font, size) > max_w:
        out = out[:-1]
    return (out.rstrip() or txt[:1]) + dots


def _image_size(data: bytes):
    img = ImageReader(BytesIO(data))
    return img, img.getSize()


def _safe_img(c: canvas.Canvas, data: Optional[bytes], x: float, y: float,
              w: float, h: float, keep_aspect: bool = True) -> Optional[tuple]:
    """Draw image bytes into the box; returns the drawn (w, h) or None. Never crashes."""
    if not data:
        return None
    try:
        img, (iw, ih) = _image_size(data)
        if keep_aspect:
            r = min(w / iw, h / ih)
            rw, rh = iw * r, ih * r
            c.drawImage(img, x, y, rw, rh, mask='auto')
            return rw, rh
        c.drawImage(img, x, y, w, h, mask='auto')
        return w, h
    except (OSError, ValueError) as e:
        log.warning("image skipped on ticket: %s", e)
        return None


# =====================================================================
# PRIMITIVES
# =====================================================================

def draw_card(c: canvas.Canvas):
    c.saveState()
    c.setFillColor(CARD_BG)
    c.rect(CARD_X, CARD_Y, CARD_W, CARD_H, stroke=0, fill=1)
    # left accent bar
    c.setFillColor(ACCENT)
    c.rect(CARD_X + 6, CARD_Y + 10, 6, CARD_H - 20, stroke=0, fill=1)
    c.restoreState()


def draw_h_rule(c: canvas.Canvas, x1: float, y: float, x2: float):
    c.saveState()
    c.setFillColor(DIVIDER)
    c.rect(x1, y, x2 - x1, 1, stroke=0, fill=1)
    c.restoreState()


def _label(c: canvas.Canvas, x: float, y: float, text: str):
    c.setFillColor(MUTE); c.setFont(_FONT_BODY, T_10)
    c.drawString(x, y, text)


def _value(c: canvas.Canvas, x: float, y: float, text: str, max_w: float):
    c.setFillColor(VALUE); c.setFont(_FONT_BOLD, T_12)
    c.drawString(x, y, _ellipsis(c, text or "-", max_w, _FONT_BOLD, T_12))


# =====================================================================
# PAGE COMPOSER
# =====================================================================

def _brand_row(c: canvas.Canvas, ctx: TicketRenderContext, top: float):
    brand = ctx.variables.get("brandName", "")
    logo_y = top - 18
    logo_bytes = ctx.logo.data if ctx.logo is not None and ctx.logo.is_raster else None
    drawn = _safe_img(c, logo_bytes, LEFT, logo_y, 120, LOGO_H, keep_aspect=True)
    c.setFillColor(BRAND)
    if drawn:
        c.setFont(_FONT_BOLD, T_14)
        c.drawString(LEFT + drawn[0] + 8, logo_y + 2, brand)
    else:
        c.setFont(_FONT_BOLD, T_16)
        c.drawString(LEFT, logo_y + 2, brand)


def _ticket_page(c: canvas.Canvas, ctx: TicketRenderContext):
    """One ticket = one page."""
    v = ctx.variables
    draw_card(c)

    cursor = CARD_Y + CARD_H - CARD_PAD
    _brand_row(c, ctx, cursor)

    # Title
    cursor -= 42
    c.setFillColor(TITLE); c.setFont(_FONT_BOLD, T_24)
    c.drawString(LEFT, cursor, _ellipsis(c, v.get("experienceTitle", ""), CONTENT_W, _FONT_BOLD, T_24))

    # Date/time + meeting point
    cursor -= 8
    when = " · ".join(p for p in (v.get("sessionDate", ""), v.get("sessionTimeRange", "")) if p)
    c.setFillColor(MUTE); c.setFont(_FONT_BODY, T_12)
    c.drawString(LEFT, cursor - 16, _ellipsis(c, when, CONTENT_W, _FONT_BODY, T_12))
    location = v.get("meetingAddress", "")
    if location:
        c.drawString(LEFT, cursor - 34, _ellipsis(c, location, CONTENT_W, _FONT_BODY, T_12))

    # Divider
    draw_h_rule(c, LEFT, CARD_Y + CARD_H / 2, RIGHT)

    # Details grid (2 rows x 3 cols)
    grid_top = CARD_Y + CARD_H / 2 - 14
    col_w = CONTENT_W // 3
    cell_w = col_w - 6
    passenger = v.get("explorerName") or v.get("explorerEmail") or "Explorer"
    rows = [
        (grid_top, [
            ("Passenger Name", passenger),
            ("Booking Reference", (v.get("bookingRef", "") or "")[:10] or "-"),
            ("Seat Number", v.get("seatNumber", "") or str(ctx.seat_number)),
        ]),
        (grid_top - GRID_ROW_GAP, [
            ("Boarding Time", v.get("sessionStart", "")),
            ("Ticket Number", ctx.code),
            ("Meeting Point", location or "-"),
        ]),
    ]
    for y, cells in rows:
        for i, (lbl, val) in enumerate(cells):
            x = LEFT + col_w * i
            _label(c, x, y, lbl)
            _value(c, x, y - 16, val, cell_w)

    # Full-width barcode at the bottom of the card
    if ctx.barcode_png:
        drawn = _safe_img(c, ctx.barcode_png, LEFT, CARD_Y + 22, CONTENT_W, CARD_H / 4, keep_aspect=True)
        if not drawn:
            c.setFillColor(VALUE); c.setFont(_FONT_BOLD, T_14)
            c.drawCentredString(PAGE_W / 2.0, CARD_Y + 40, ctx.code)


# =====================================================================
# PUBLIC API
# =====================================================================

def build_tickets_pdf(contexts: Sequence[TicketRenderContext]) -> bytes:
    """One page per context, in the order given."""
    ensure_unicode_font()
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(PAGE_W, PAGE_H))
    c.setTitle("Tickets")
    for ctx in contexts:
        _ticket_page(c, ctx)
        c.showPage()
    c.save()
    return buf.getvalue()


class CanvasPdfRenderer:
    """Strategy B. Exceptions propagate; the caller treats them as fatal."""

    def render(self, contexts: List[TicketRenderContext]) -> RenderResult:
        if not contexts:
            return RenderResult.empty("no tickets to render")
        pdf = build_tickets_pdf(contexts)
        if not pdf:
            return RenderResult.empty()
        return RenderResult.rendered(pdf)

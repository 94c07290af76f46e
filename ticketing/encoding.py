# encoding.py
import base64
from io import BytesIO

import qrcode
from barcode import Code128
from barcode.writer import ImageWriter
from qrcode.image.pil import PilImage

PRINT_DPI = 300

# Code 128, bars 15mm high, readable code printed below the bars.
_BARCODE_OPTIONS = {
    "dpi": PRINT_DPI,
    "module_width": 0.3,
    "module_height": 15.0,
    "quiet_zone": 4.0,
    "font_size": 10,
    "text_distance": 4.0,
    "write_text": True,
}


def render_barcode(payload: str) -> bytes:
    """Code 128 PNG for `payload` with the payload as text beneath."""
    buf = BytesIO()
    Code128(payload, writer=ImageWriter(format="PNG")).write(buf, options=_BARCODE_OPTIONS)
    return buf.getvalue()


def render_qr(payload: str) -> bytes:
    """QR PNG with default (M) error correction."""
    qr = qrcode.QRCode(box_size=12, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(image_factory=PilImage, fill_color="black", back_color="white")
    buf = BytesIO()
    img.save(buf, format="PNG", dpi=(PRINT_DPI, PRINT_DPI))
    return buf.getvalue()


def to_data_url(png: bytes, content_type: str = "image/png") -> str:
    if not png:
        return ""
    return f"data:{content_type};base64,{base64.b64encode(png).decode('ascii')}"

# conf.py
from django.conf import settings

DEFAULTS = {
    "APP_URL": "https://kamleen.com",
    "ASSET_ROOT": "static",
    "BRAND_NAME": "Kamleen",
    "DEFAULT_CURRENCY": "MAD",
    "CODE_PREFIX": "T",
    "CODE_MAX_ATTEMPTS": 10,
    "HTML_RENDERER_COMMAND": ["weasyprint", "-", "-"],
    "HTML_RENDER_TIMEOUT": 30.0,
    "ASSET_FETCH_TIMEOUT": 10.0,
    "DEBUG_DUMP_DIR": None,
    "FONT_DIRS": (),
}


def ticket_setting(key: str):
    """
    Lazy-read settings.TICKETS so overrides made after import (tests,
    per-environment settings) are always honoured.
    """
    cfg = getattr(settings, "TICKETS", {}) or {}
    if key in cfg:
        return cfg[key]
    return DEFAULTS[key]

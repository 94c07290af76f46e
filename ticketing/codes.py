# codes.py
import logging
import re
import secrets
import time
from typing import Callable, Optional

from .conf import ticket_setting
from .errors import TicketCodeExhausted

log = logging.getLogger("ticketing.codes")

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_B36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def _random_segment() -> str:
    # token_urlsafe may yield only "-"/"_" after upper-casing; draw again.
    while True:
        seg = _NON_ALNUM.sub("", secrets.token_urlsafe(6).upper())
        if seg:
            return seg


def generate_ticket_code(prefix: Optional[str] = None, now: Optional[float] = None) -> str:
    """PREFIX-<unix seconds, base36>-<random alnum>, e.g. T-SEXK80-4QZ7TM."""
    prefix = prefix or ticket_setting("CODE_PREFIX")
    ts = _base36(int(now if now is not None else time.time()))
    return f"{prefix}-{ts}-{_random_segment()}"


def generate_unique_code(exists: Callable[[str], bool], max_attempts: Optional[int] = None) -> str:
    """
    Generate a code not yet present in the persistent namespace.
    `exists` is the uniqueness check (e.g. store.code_exists). Nothing is written here.
    """
    attempts = int(max_attempts or ticket_setting("CODE_MAX_ATTEMPTS"))
    for i in range(attempts):
        code = generate_ticket_code()
        if not exists(code):
            return code
        log.warning("ticket code collision attempt=%s code=%s", i + 1, code)
    raise TicketCodeExhausted(attempts)

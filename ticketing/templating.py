# templating.py
import re
from typing import Iterable, Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

TICKET_PAGE_WIDTH_PX = 420
TICKET_PAGE_HEIGHT_PX = 840

# Print CSS shared by every rendered ticket document. Vertical ticket, 1:2.
_DOCUMENT = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root {{ --text:#0b0d12; --muted:#6b7280; }}
      html, body {{ margin:0; padding:0; font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, Helvetica, Arial, sans-serif; color: var(--text); }}
      body {{ -webkit-print-color-adjust: exact; print-color-adjust: exact; }}
      @page {{ size: {w}px {h}px; margin: 0; }}
      .ticket-page {{ position: relative; width: {w}px; height: {h}px; padding: 0; margin: 0; box-sizing: border-box; overflow: hidden; page-break-after: always; break-after: page; }}
      .ticket-page:last-child {{ page-break-after: auto; break-after: auto; }}
      .muted {{ color: var(--muted); }}
      .ticket {{ display: flex; flex-direction: column; height: 100%; box-sizing: border-box; }}
      .ticket-bottom {{ margin-top: auto; }}
    </style>
  </head>
  <body>
{pages}
  </body>
</html>"""


def render_template(template_html: str, variables: Mapping[str, str]) -> str:
    """
    Single-pass {{ name }} substitution. Unknown names become "".
    Substituted values are not rescanned.
    """
    return _PLACEHOLDER.sub(lambda m: variables.get(m.group(1), "") or "", template_html or "")


def render_page(template_html: str, variables: Mapping[str, str]) -> str:
    return f'<section class="ticket-page">{render_template(template_html, variables)}</section>'


def wrap_pages(pages: Iterable[str]) -> str:
    return _DOCUMENT.format(w=TICKET_PAGE_WIDTH_PX, h=TICKET_PAGE_HEIGHT_PX, pages="\n".join(pages))


def build_tickets_html(template_html: str, contexts) -> str:
    """One page per TicketRenderContext, in the order given."""
    return wrap_pages(render_page(template_html, ctx.variables) for ctx in contexts)

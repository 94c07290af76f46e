# rendering.py
"""
Render results shared by both document strategies, and the HTML strategy:
the assembled HTML document is piped to an external renderer process
(weasyprint CLI by default) which writes the PDF to stdout.
"""
from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from .conf import ticket_setting

log = logging.getLogger("ticketing.rendering")


class RenderStatus(Enum):
    RENDERED = "RENDERED"
    UNAVAILABLE = "UNAVAILABLE"
    EMPTY = "EMPTY"


@dataclass(frozen=True)
class RenderResult:
    status: RenderStatus
    pdf: bytes = b""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is RenderStatus.RENDERED

    @classmethod
    def rendered(cls, pdf: bytes) -> "RenderResult":
        return cls(RenderStatus.RENDERED, pdf)

    @classmethod
    def unavailable(cls, reason: str) -> "RenderResult":
        return cls(RenderStatus.UNAVAILABLE, b"", reason)

    @classmethod
    def empty(cls, reason: str = "renderer produced no output") -> "RenderResult":
        return cls(RenderStatus.EMPTY, b"", reason)


class HtmlPdfRenderer:
    """Strategy A. One short-lived renderer process per call."""

    def __init__(self, command: Optional[Sequence[str]] = None, timeout: Optional[float] = None,
                 dump_dir: Optional[str] = None):
        self.command: List[str] = list(command or ticket_setting("HTML_RENDERER_COMMAND"))
        self.timeout = timeout if timeout is not None else ticket_setting("HTML_RENDER_TIMEOUT")
        self.dump_dir = dump_dir if dump_dir is not None else ticket_setting("DEBUG_DUMP_DIR")

    def render(self, html: str) -> RenderResult:
        result = self._run(html)
        if not result.ok:
            log.warning("HTML->PDF %s: %s", result.status.value.lower(), result.reason)
            self._dump(html)
        return result

    def _run(self, html: str) -> RenderResult:
        try:
            proc = subprocess.run(
                self.command,
                input=html.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return RenderResult.unavailable(f"timed out after {self.timeout}s")
        except (OSError, subprocess.SubprocessError) as e:
            return RenderResult.unavailable(f"could not launch {self.command[:1]}: {e}")

        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", "replace").strip()
            return RenderResult.unavailable(f"exit {proc.returncode}: {stderr[:500]}")
        if not proc.stdout:
            return RenderResult.empty()
        if not proc.stdout.startswith(b"%PDF"):
            return RenderResult.unavailable("renderer output is not a PDF")
        return RenderResult.rendered(proc.stdout)

    def _dump(self, html: str) -> None:
        if not self.dump_dir:
            return
        try:
            target = Path(self.dump_dir) / f"ticket-preview-{int(time.time() * 1000)}.html"
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
            log.info("failed ticket HTML written to %s", target)
        except OSError as e:
            log.warning("could not dump ticket HTML: %s", e)

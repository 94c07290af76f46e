# assets.py
from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from .conf import ticket_setting
from .errors import AssetUnresolved

log = logging.getLogger("ticketing.assets")

_MIME_BY_EXT = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class Asset:
    data: bytes
    content_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.content_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @property
    def is_raster(self) -> bool:
        return self.content_type in ("image/png", "image/jpeg", "image/webp")


def _is_remote(reference: str) -> bool:
    return reference.startswith("http://") or reference.startswith("https://")


def _mime_for(path: Path) -> str:
    return _MIME_BY_EXT.get(path.suffix.lower(), "image/svg+xml")


class AssetResolver:
    """
    Turns an image reference into inlineable bytes.

    Order: remote URL -> same reference under the asset root -> fallback path
    under the asset root. Resolution failures never propagate out of resolve().
    """

    def __init__(self, asset_root=None, fetch_timeout: Optional[float] = None, session=None):
        self.asset_root = Path(asset_root or ticket_setting("ASSET_ROOT")).resolve()
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else ticket_setting("ASSET_FETCH_TIMEOUT")
        self.session = session or requests

    def resolve(self, reference: Optional[str], fallback_local_path: Optional[str] = None) -> Optional[Asset]:
        try:
            return self.resolve_strict(reference, fallback_local_path)
        except AssetUnresolved as e:
            log.warning("asset unresolved ref=%r fallback=%r: %s", reference, fallback_local_path, e.message)
            return None

    def resolve_strict(self, reference: Optional[str], fallback_local_path: Optional[str] = None) -> Asset:
        ref = (reference or "").strip()

        if ref and _is_remote(ref):
            asset = self._fetch(ref)
            if asset:
                return asset

        for candidate in (ref, fallback_local_path):
            if not candidate:
                continue
            asset = self._read_local(candidate)
            if asset:
                return asset

        raise AssetUnresolved(reference or fallback_local_path)

    def _fetch(self, url: str) -> Optional[Asset]:
        try:
            resp = self.session.get(url, timeout=self.fetch_timeout)
        except requests.RequestException as e:
            log.info("asset fetch failed url=%s err=%s", url, e)
            return None
        if not resp.ok or not resp.content:
            log.info("asset fetch failed url=%s status=%s", url, resp.status_code)
            return None
        content_type = (resp.headers.get("content-type") or "image/jpeg").split(";")[0].strip()
        return Asset(resp.content, content_type or "image/jpeg")

    def _read_local(self, reference: str) -> Optional[Asset]:
        rel = reference.split("?", 1)[0].split("#", 1)[0].lstrip("/")
        if not rel:
            return None
        path = (self.asset_root / rel).resolve()
        if os.path.commonpath([str(path), str(self.asset_root)]) != str(self.asset_root):
            log.warning("asset path escapes asset root: %r", reference)
            return None
        try:
            data = path.read_bytes()
        except OSError:
            return None
        if not data:
            return None
        return Asset(data, _mime_for(path))

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional

import requests

log = logging.getLogger("brilho.images")


class ImageService:
    """Downloads product photos by URL and keeps a copy on disk."""

    def __init__(self, cache_dir: Path | str, timeout: int = 10):
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout

    def cache_path(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.img"

    def _download(self, url: str) -> bytes:
        r = requests.get(url, timeout=self.timeout)
        r.raise_for_status()
        content_type = r.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            raise ValueError(f"unexpected content type: {content_type or 'none'}")
        return r.content

    def fetch(self, url: Optional[str]) -> Optional[bytes]:
        url = (url or "").strip()
        if not url:
            return None

        cached = self.cache_path(url)
        if cached.exists():
            return cached.read_bytes()

        try:
            data = self._download(url)
        except (requests.RequestException, ValueError) as e:
            log.warning("image_fetch_failed url=%s error=%s", url, e)
            return None

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cached.write_bytes(data)
        except OSError as e:
            log.warning("image_cache_write_failed url=%s error=%s", url, e)
            return data

        log.info("image_cached url=%s bytes=%s", url, len(data))
        return data

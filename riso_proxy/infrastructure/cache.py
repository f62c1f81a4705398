from __future__ import annotations

import hashlib
import time
from typing import Dict, Mapping, Optional, Tuple

from ..config import SETTINGS


CacheEntry = Tuple[float, bytes]


def render_key(source: str, params: Mapping[str, object]) -> str:
    """Stable key for a rendered source under a set of request parameters."""

    canonical = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{source}?{canonical}".encode("utf-8")).hexdigest()


class ResponseCache:
    def __init__(self, max_entries: int = 16) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._max_entries = max_entries

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if not entry:
            return None
        timestamp, data = entry
        if time.time() - timestamp > SETTINGS.cache_ttl:
            self._entries.pop(key, None)
            return None
        return data

    def put(self, key: str, data: bytes) -> None:
        if SETTINGS.cache_ttl <= 0:
            return
        if key not in self._entries and len(self._entries) >= self._max_entries:
            oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
            self._entries.pop(oldest, None)
        self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        self._entries.clear()


CACHE = ResponseCache()
_last_good_png: bytes = b""


def remember_last_good(data: bytes) -> None:
    global _last_good_png
    _last_good_png = data


def last_good_png() -> Optional[bytes]:
    return _last_good_png or None

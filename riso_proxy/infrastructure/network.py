from __future__ import annotations

import io
import logging
import posixpath
import time
from typing import Callable, Mapping

from urllib.parse import urlsplit, urlunsplit

import requests
from PIL import Image, UnidentifiedImageError

from ..config import SETTINGS

log = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes into an RGBA image."""

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Unreadable image data: {exc}") from exc
    return img.convert("RGBA")


def _join_path(base_path: str, relative: str) -> str:
    base = base_path if base_path.endswith("/") else f"{base_path or ''}/"
    joined = posixpath.normpath(f"{base}{relative}")
    return joined if joined.startswith("/") else f"/{joined}"


def _apply_base_and_path(
    url: str,
    *,
    base_url: str | None = None,
    path_override: str | None = None,
) -> str:
    """Re-root ``url`` onto ``base_url`` and/or swap its path.

    Relative override paths are resolved against the base path; the original
    query string and fragment are kept.
    """

    parts = urlsplit(url)
    if not base_url:
        if path_override is None:
            return url
        return urlunsplit(parts._replace(path=path_override))

    base = urlsplit(base_url)
    if not base.scheme or not base.netloc:
        raise ValueError(f"Invalid source_base override: {base_url}")

    path = path_override if path_override is not None else parts.path
    if path and not path.startswith("/"):
        path = _join_path(base.path or "/", path)
    elif not path:
        path = base.path
    return urlunsplit(base._replace(path=path or "", query=parts.query, fragment=parts.fragment))


def resolve_source_url(args: Mapping[str, str]) -> str:
    """Pick the upstream image URL from request arguments.

    ``source_url`` wins outright; otherwise ``source_base`` and
    ``source_path`` are applied on top of the configured source.
    """

    direct = args.get("source_url")
    if direct:
        return direct
    return _apply_base_and_path(
        SETTINGS.source_url,
        base_url=args.get("source_base") or None,
        path_override=args.get("source_path") or None,
    )


class SourceFetcher:
    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "riso-proxy/1.0"})
        return session

    def fetch_source(self, *, source_url: str | None = None) -> Image.Image:
        target_url = source_url or SETTINGS.source_url
        last_exception: Exception | None = None
        for attempt in range(1, SETTINGS.retries + 2):
            try:
                response = self._session.get(target_url, timeout=SETTINGS.timeout)
                response.raise_for_status()
                return decode_image(response.content)
            except (requests.RequestException, ValueError) as exc:
                last_exception = exc
                log.warning("Fetching %s failed (attempt %d): %s", target_url, attempt, exc)
                time.sleep(0.4 * attempt)
        raise RuntimeError(last_exception)


FETCHER = SourceFetcher()

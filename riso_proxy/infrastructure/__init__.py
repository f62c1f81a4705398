"""Infrastructure helpers for fetching, caching and serving images."""

from .cache import CACHE, ResponseCache, last_good_png, remember_last_good, render_key
from .network import FETCHER, SourceFetcher, decode_image, resolve_source_url
from .responses import encode_png, send_png_bytes

__all__ = [
    "CACHE",
    "ResponseCache",
    "last_good_png",
    "remember_last_good",
    "render_key",
    "FETCHER",
    "SourceFetcher",
    "decode_image",
    "resolve_source_url",
    "encode_png",
    "send_png_bytes",
]

"""On-demand image relay with inline base64 support and placeholder fallback."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

import httpx

from config import settings

logger = logging.getLogger(__name__)

PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PLACEHOLDER_CONTENT_TYPE = "image/png"
CACHE_CONTROL = "public, max-age=86400"

INLINE_PREFIXES = ("/9j/", "iVBORw0KGgo", "data:image/")
INLINE_LENGTH_THRESHOLD = 1000
DATA_URI_PATTERN = re.compile(r"^data:image/(\w+);base64,(.+)$", flags=re.DOTALL)
INLINE_CONTENT_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
    ),
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}
INSTAGRAM_MARKERS = ("instagram.", "fbcdn.net")
INSTAGRAM_HEADERS = {
    "Referer": "https://www.instagram.com/",
    "Origin": "https://www.instagram.com",
}
# Signed CDN params that must survive; everything else may carry an expired signature.
INSTAGRAM_KEPT_PARAMS = {"stp", "efg", "_nc_ht", "_nc_cat", "oh", "oe"}


@dataclass
class ProxiedImage:
    content_type: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    placeholder: bool = False


class ImageFetchError(Exception):
    """Upstream image request ended outside the accepted status range."""


def placeholder_image() -> ProxiedImage:
    return ProxiedImage(
        content_type=PLACEHOLDER_CONTENT_TYPE,
        body=PLACEHOLDER_PNG,
        placeholder=True,
    )


def is_inline_image(value: str) -> bool:
    """Heuristic: known base64 magic prefixes, a data URI, or a very long value."""
    return value.startswith(INLINE_PREFIXES) or len(value) > INLINE_LENGTH_THRESHOLD


def _lenient_b64decode(data: str) -> bytes:
    """
    Decode base64 loosely.

    "-" and "_" never occur in standard base64, so mapping the URL-safe
    alphabet onto it leaves standard payloads unchanged.
    """
    # Form decoding of the query string turns "+" into " ".
    normalized = data.replace(" ", "+").replace("-", "+").replace("_", "/")
    cleaned = re.sub(r"[^A-Za-z0-9+/]", "", normalized)
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned)
    except (binascii.Error, ValueError):
        logger.debug("Inline image payload could not be decoded")
        return b""


def decode_inline_image(value: str) -> ProxiedImage:
    """Decode a raw or data-URI base64 payload. Never raises."""
    payload = value
    content_type = "image/jpeg"
    match = DATA_URI_PATTERN.match(value)
    if match:
        payload = match.group(2)
    if value.startswith("data:image/"):
        subtype = value[len("data:image/"):].split(";", 1)[0].lower()
        content_type = INLINE_CONTENT_TYPES.get(subtype, "image/jpeg")
    return ProxiedImage(content_type=content_type, body=_lenient_b64decode(payload))


def is_instagram_url(url: str) -> bool:
    return any(marker in url for marker in INSTAGRAM_MARKERS)


def strip_unsigned_params(url: str) -> str:
    """Keep only allow-listed and ``_nc_*`` query params of an Instagram CDN URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    kept = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key in INSTAGRAM_KEPT_PARAMS or key.startswith("_nc_")
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))


def build_upstream_request(url: str) -> tuple[str, Dict[str, str]]:
    """Return the URL to fetch and the spoofed headers to send with it."""
    headers = dict(BROWSER_HEADERS)
    if is_instagram_url(url):
        headers.update(INSTAGRAM_HEADERS)
        url = strip_unsigned_params(url)
    return url, headers


async def fetch_remote_image(
    url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProxiedImage:
    """Fetch an upstream image. Raises on network errors and non 2xx/3xx statuses."""
    target, headers = build_upstream_request(url)
    async with httpx.AsyncClient(
        transport=transport,
        timeout=settings.PROXY_FETCH_TIMEOUT_SECONDS,
        follow_redirects=True,
        max_redirects=settings.PROXY_MAX_REDIRECTS,
    ) as client:
        response = await client.get(target, headers=headers)
    if not 200 <= response.status_code < 400:
        raise ImageFetchError(f"Upstream responded with HTTP {response.status_code}")
    return ProxiedImage(
        content_type=response.headers.get("content-type") or "image/jpeg",
        body=response.content,
        headers={"Cache-Control": CACHE_CONTROL, "Vary": "Accept-Encoding"},
    )


async def proxy_image(
    value: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProxiedImage:
    """
    Resolve a proxy request to image bytes.

    Inline base64 payloads are decoded locally. Anything else is fetched as a
    URL; every failure on that path yields the 1x1 placeholder PNG.
    """
    decoded = unquote(value)
    if is_inline_image(decoded):
        return decode_inline_image(decoded)

    try:
        return await fetch_remote_image(value, transport=transport)
    except Exception as exc:
        logger.warning("Failed to fetch image %s: %s", value[:200], exc)
        return placeholder_image()

"""Local mirroring of remote images under the media root."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import httpx

from config import settings

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"
EXTENSION_ALIASES = {
    "jpg": "jpg",
    "jpeg": "jpg",
    "png": "png",
    "gif": "gif",
    "webp": "webp",
}
MIRROR_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "image/*",
}


class MirrorFetchError(Exception):
    """Remote image could not be fetched for mirroring."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to mirror {url}: {reason}")
        self.url = url
        self.reason = reason


def _safe_name(name: str) -> str:
    cleaned = "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in str(name or ""))
    return cleaned or "file"


def resolve_extension(url: str) -> str:
    """Return the whitelisted extension of the URL's last path segment, or jpg."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return DEFAULT_EXTENSION
    segment = path.rsplit("/", 1)[-1]
    if "." not in segment:
        return DEFAULT_EXTENSION
    suffix = segment.rsplit(".", 1)[-1].lower()
    return EXTENSION_ALIASES.get(suffix, DEFAULT_EXTENSION)


def url_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def mirror_target(folder: str, key: str, url: str) -> tuple[Path, str]:
    """Return (filesystem path, public path) for a mirrored file."""
    safe_folder = _safe_name(folder)
    file_name = f"{_safe_name(key)}.{resolve_extension(url)}"
    file_path = Path(settings.MEDIA_ROOT) / safe_folder / file_name
    prefix = settings.MEDIA_PUBLIC_PREFIX.rstrip("/")
    return file_path, f"{prefix}/{safe_folder}/{file_name}"


async def fetch_remote_bytes(
    url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    """Download a remote image body. Only 2xx responses count as success."""
    try:
        headers = {**MIRROR_HEADERS, "Referer": url_origin(url)}
        async with httpx.AsyncClient(
            transport=transport,
            timeout=settings.MIRROR_FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as client:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response.content
    except httpx.HTTPStatusError as exc:
        raise MirrorFetchError(url, f"HTTP {exc.response.status_code}") from exc
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        raise MirrorFetchError(url, exc.__class__.__name__) from exc


def _write_atomically(file_path: Path, body: bytes) -> None:
    # The final path only ever holds a complete body.
    part_path = file_path.with_name(f"{file_path.name}.part")
    try:
        part_path.write_bytes(body)
        os.replace(part_path, file_path)
    except BaseException:
        part_path.unlink(missing_ok=True)
        raise


async def mirror_remote_file(
    url: str,
    folder: str,
    key: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Ensure a local copy of ``url`` exists as ``<folder>/<key>.<ext>``.

    Returns the public path. An existing file is reused without touching the
    network, whatever the remote currently serves.
    """
    file_path, public_path = mirror_target(folder, key, url)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    if file_path.exists():
        return public_path

    body = await fetch_remote_bytes(url, transport=transport)
    await asyncio.to_thread(_write_atomically, file_path, body)
    logger.info("Mirrored %s to %s (%d bytes)", url, file_path, len(body))
    return public_path

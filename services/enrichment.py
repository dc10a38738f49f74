"""Response-time rewriting of remote image URLs into mirrored local URLs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from fastapi import Request

from services.media_mirror import MirrorFetchError, mirror_remote_file

logger = logging.getLogger(__name__)

# entity -> (media folder, image field)
ENTITY_MEDIA = {
    "account": ("accounts", "profile_pic_url"),
    "post": ("posts", "image_url"),
}


@dataclass(frozen=True)
class Mirrored:
    url: str


@dataclass(frozen=True)
class Fallback:
    url: str
    reason: str


MirrorOutcome = Union[Mirrored, Fallback]


def _first_header_value(value: Optional[str]) -> str:
    return (value or "").split(",")[0].strip()


def request_base_url(request: Request) -> str:
    """Build ``<proto>://<host>`` honouring reverse-proxy forwarding headers."""
    protocol = (
        _first_header_value(request.headers.get("x-forwarded-proto"))
        or request.url.scheme
        or "http"
    )
    host = (
        _first_header_value(request.headers.get("x-forwarded-host"))
        or request.headers.get("host")
        or request.url.netloc
    )
    return f"{protocol}://{host}"


def is_remote_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


async def resolve_mirrored_url(
    url: str,
    *,
    folder: str,
    key: str,
    base_url: str,
) -> MirrorOutcome:
    try:
        public_path = await mirror_remote_file(url, folder, key)
    except MirrorFetchError as exc:
        return Fallback(url=url, reason=exc.reason)
    except OSError as exc:
        return Fallback(url=url, reason=f"storage: {exc}")
    return Mirrored(url=f"{base_url}{public_path}")


async def enrich_record(record: Dict[str, Any], *, entity: str, base_url: str) -> Dict[str, Any]:
    """Return a copy of ``record`` with its image field pointing at the local mirror."""
    folder, image_field = ENTITY_MEDIA[entity]
    value = record.get(image_field)
    if not is_remote_url(value):
        return record

    key = f"{entity}_{record['id']}"
    outcome = await resolve_mirrored_url(value, folder=folder, key=key, base_url=base_url)
    if isinstance(outcome, Fallback):
        logger.warning("Keeping remote %s for %s: %s", image_field, key, outcome.reason)
    return {**record, image_field: outcome.url}


async def enrich_records(
    records: List[Dict[str, Any]],
    *,
    entity: str,
    base_url: str,
) -> List[Dict[str, Any]]:
    return list(
        await asyncio.gather(
            *(enrich_record(record, entity=entity, base_url=base_url) for record in records)
        )
    )

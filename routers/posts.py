"""Posts router: paginated listings, CRUD and the image proxy."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.rate_limit import rate_limit
from services.enrichment import enrich_record, enrich_records, request_base_url
from services.image_proxy import proxy_image
from services.pagination import MAX_PAGE, MAX_PAGE_LIMIT, page_meta
from services.posts import (
    create_post_service,
    delete_post_service,
    get_account_service,
    get_post_service,
    list_posts_service,
    serialize_account,
    serialize_post,
    update_post_service,
)

router = APIRouter()


class CreatePostRequest(BaseModel):
    account_id: int = Field(ge=1)
    post_url: Optional[str] = None
    image_url: Optional[str] = None
    caption: Optional[str] = None
    likes: Optional[int] = Field(default=None, ge=0)
    comments_count: Optional[int] = Field(default=None, ge=0)
    created: Optional[datetime] = None


class UpdatePostRequest(BaseModel):
    post_url: Optional[str] = None
    image_url: Optional[str] = None
    caption: Optional[str] = None
    likes: Optional[int] = Field(default=None, ge=0)
    comments_count: Optional[int] = Field(default=None, ge=0)
    created: Optional[datetime] = None


@router.post("")
async def create_post(
    request: CreatePostRequest,
    db: AsyncSession = Depends(get_db),
):
    post = await create_post_service(payload=request.model_dump(), db=db)
    return serialize_post(post)


@router.get("")
async def list_posts(
    request: Request,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=settings.POSTS_DEFAULT_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    account_id: Optional[int] = Query(default=None, alias="accountId"),
    db: AsyncSession = Depends(get_db),
):
    """Paginated posts of one account, with the account and images mirrored locally."""
    if not account_id:
        raise HTTPException(status_code=400, detail="accountId is required")

    posts, total = await list_posts_service(account_id=account_id, page=page, limit=limit, db=db)
    account = await get_account_service(account_id=account_id, db=db)

    base_url = request_base_url(request)
    account_payload = None
    if account is not None:
        account_payload = await enrich_record(
            serialize_account(account), entity="account", base_url=base_url
        )
    data = await enrich_records(
        [serialize_post(post) for post in posts], entity="post", base_url=base_url
    )

    return {
        "account": account_payload,
        "data": data,
        "meta": page_meta(page=page, limit=limit, total=total),
    }


@router.get("/proxy")
async def proxy_remote_image(
    url: Optional[str] = Query(default=None),
    _rate_limit: None = Depends(
        rate_limit("image_proxy", limit=settings.PROXY_RATE_LIMIT_PER_HOUR, window_seconds=3600)
    ),
):
    """Relay a remote image (or decode an inline base64 one) through this origin."""
    if not url:
        raise HTTPException(status_code=400, detail="url query parameter is required")

    image = await proxy_image(url)
    return Response(content=image.body, media_type=image.content_type, headers=image.headers)


@router.get("/{post_id}")
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    post = await get_post_service(post_id=post_id, db=db)
    return serialize_post(post)


@router.patch("/{post_id}")
async def update_post(
    post_id: int,
    request: UpdatePostRequest,
    db: AsyncSession = Depends(get_db),
):
    post = await update_post_service(
        post_id=post_id,
        changes=request.model_dump(exclude_unset=True),
        db=db,
    )
    return serialize_post(post)


@router.delete("/{post_id}")
async def delete_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await delete_post_service(post_id=post_id, db=db)

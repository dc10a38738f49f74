"""Account and post data access for dashboard listings."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.account import Account
from models.post import Post
from services.pagination import page_offset

POST_MUTABLE_FIELDS = ("post_url", "image_url", "caption", "likes", "comments_count", "created")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_account(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "username": account.username,
        "full_name": account.full_name,
        "tip_social": account.tip_social,
        "profile_pic_url": account.profile_pic_url,
        "followers": account.followers,
        "created_at": _iso(account.created_at),
    }


def serialize_post(post: Post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "account_id": post.account_id,
        "post_url": post.post_url,
        "image_url": post.image_url,
        "caption": post.caption,
        "likes": post.likes,
        "comments_count": post.comments_count,
        "created": _iso(post.created),
    }


async def list_accounts_service(*, db: AsyncSession) -> List[Account]:
    result = await db.execute(select(Account).order_by(Account.id.asc()))
    return list(result.scalars().all())


async def get_account_service(*, account_id: int, db: AsyncSession) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def list_posts_service(
    *,
    account_id: int,
    page: int,
    limit: int,
    db: AsyncSession,
) -> Tuple[List[Post], int]:
    """Return one page of an account's posts, newest first, and the total count."""
    total_result = await db.execute(
        select(func.count(Post.id)).where(Post.account_id == account_id)
    )
    total = int(total_result.scalar_one() or 0)

    result = await db.execute(
        select(Post)
        .where(Post.account_id == account_id)
        .order_by(Post.created.desc(), Post.id.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def get_post_service(*, post_id: int, db: AsyncSession) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found.")
    return post


async def create_post_service(*, payload: Dict[str, Any], db: AsyncSession) -> Post:
    account = await get_account_service(account_id=int(payload["account_id"]), db=db)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found.")
    post = Post(
        account_id=account.id,
        **{key: payload[key] for key in POST_MUTABLE_FIELDS if payload.get(key) is not None},
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return post


async def update_post_service(*, post_id: int, changes: Dict[str, Any], db: AsyncSession) -> Post:
    post = await get_post_service(post_id=post_id, db=db)
    for key, value in changes.items():
        if key in POST_MUTABLE_FIELDS:
            setattr(post, key, value)
    await db.commit()
    await db.refresh(post)
    return post


async def delete_post_service(*, post_id: int, db: AsyncSession) -> Dict[str, Any]:
    post = await get_post_service(post_id=post_id, db=db)
    await db.delete(post)
    await db.commit()
    return {"success": True, "id": post_id}

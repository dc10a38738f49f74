"""
Comment mood reports.

Filters arrive as a tagged structure of optional clauses and are composed into
a single SQLAlchemy select over comments left-joined with their parent post.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql.elements import ColumnElement

from config import settings
from models.comment import Comment
from models.post import Post
from services.pagination import normalize_page, page_meta, page_offset

logger = logging.getLogger(__name__)

ALL_SPHERES_SENTINEL = 999
SPHERE_RANGE = tuple(range(1, 19))


@dataclass(frozen=True)
class AnySphere:
    """No category restriction."""


@dataclass(frozen=True)
class AllSpheres:
    """Every enumerated category (the 999 sentinel)."""

    ids: Tuple[int, ...] = SPHERE_RANGE


@dataclass(frozen=True)
class ExactSphere:
    sphere_id: int


SphereSelector = Union[AnySphere, AllSpheres, ExactSphere]


@dataclass(frozen=True)
class Unbounded:
    """No creation-time restriction."""


@dataclass(frozen=True)
class From:
    start: datetime


@dataclass(frozen=True)
class Until:
    end: datetime


@dataclass(frozen=True)
class Between:
    start: datetime
    end: datetime


DateRange = Union[Unbounded, From, Until, Between]


def sphere_selector(sphere_id: Optional[int]) -> SphereSelector:
    if sphere_id == ALL_SPHERES_SENTINEL:
        return AllSpheres()
    if sphere_id:
        return ExactSphere(sphere_id)
    return AnySphere()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def date_range(start: Optional[datetime], end: Optional[datetime]) -> DateRange:
    start, end = _as_utc(start), _as_utc(end)
    if start is not None and end is not None:
        return Between(start, end)
    if start is not None:
        return From(start)
    if end is not None:
        return Until(end)
    return Unbounded()


@dataclass(frozen=True)
class ReportFilters:
    moods: Tuple[str, ...] = ()
    socials: Tuple[str, ...] = ()
    sphere: SphereSelector = field(default_factory=AnySphere)
    created: DateRange = field(default_factory=Unbounded)
    page: int = 1
    limit: int = 100

    @classmethod
    def from_request(
        cls,
        *,
        moods: Optional[Sequence[str]] = None,
        tip_social: Optional[Sequence[str]] = None,
        sphere_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> "ReportFilters":
        return cls(
            moods=tuple(moods or ()),
            socials=tuple(tip_social or ()),
            sphere=sphere_selector(sphere_id),
            created=date_range(start_date, end_date),
            page=normalize_page(page, 1),
            limit=normalize_page(limit, settings.REPORT_DEFAULT_LIMIT),
        )


def _mood_clause(moods: Tuple[str, ...]) -> Optional[ColumnElement]:
    if not moods:
        return None
    if len(moods) == 1:
        return Comment.label == moods[0]
    return Comment.label.in_(moods)


def _social_clause(socials: Tuple[str, ...]) -> Optional[ColumnElement]:
    if not socials:
        return None
    return Comment.tip_social.in_(socials)


def _sphere_clause(sphere: SphereSelector) -> Optional[ColumnElement]:
    if isinstance(sphere, AllSpheres):
        return Comment.category_id.in_(sphere.ids)
    if isinstance(sphere, ExactSphere):
        return Comment.category_id == sphere.sphere_id
    return None


def _created_clause(created: DateRange) -> Optional[ColumnElement]:
    if isinstance(created, Between):
        return Comment.created.between(created.start, created.end)
    if isinstance(created, From):
        return Comment.created >= created.start
    if isinstance(created, Until):
        return Comment.created <= created.end
    return None


def build_filter_clauses(filters: ReportFilters) -> List[ColumnElement]:
    """Return the AND-ed predicates for ``filters``; an empty list means no filtering."""
    clauses = (
        _mood_clause(filters.moods),
        _social_clause(filters.socials),
        _sphere_clause(filters.sphere),
        _created_clause(filters.created),
    )
    return [clause for clause in clauses if clause is not None]


def _comment_rows_query(*clauses: ColumnElement):
    return (
        select(Comment, Post.post_url, Post.id)
        .outerjoin(Post, Comment.post_id == Post.id)
        .where(*clauses)
        .order_by(Comment.created.desc(), Comment.id.desc())
    )


def serialize_report_row(
    comment: Comment,
    post_url: Optional[str],
    post_id: Optional[int],
    *,
    is_read: Optional[bool] = None,
) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "text": comment.text,
        "label": comment.label,
        "likes": comment.likes,
        "tip_social": comment.tip_social,
        "created": comment.created.isoformat() if comment.created else None,
        "category_id": comment.category_id,
        "is_read": bool(comment.is_read) if is_read is None else is_read,
        "post_url": post_url,
        "post_id": post_id,
    }


async def generate_report_service(*, filters: ReportFilters, db: AsyncSession) -> Dict[str, Any]:
    """Return one page of filtered comments with total count and page metadata."""
    clauses = build_filter_clauses(filters)

    total_result = await db.execute(select(func.count(Comment.id)).where(*clauses))
    total = int(total_result.scalar_one() or 0)

    result = await db.execute(
        _comment_rows_query(*clauses)
        .offset(page_offset(filters.page, filters.limit))
        .limit(filters.limit)
    )
    rows = [serialize_report_row(comment, post_url, post_id) for comment, post_url, post_id in result.all()]

    return {"data": rows, **page_meta(page=filters.page, limit=filters.limit, total=total)}


async def _unread_rows(db: AsyncSession):
    result = await db.execute(_comment_rows_query(Comment.is_read.is_(False)))
    return result.all()


async def list_unread_and_mark_read_service(*, db: AsyncSession) -> List[Dict[str, Any]]:
    """Return every unread comment and flip them to read in one bulk update."""
    rows = await _unread_rows(db)
    if rows:
        comment_ids = [comment.id for comment, _, _ in rows]
        await db.execute(
            update(Comment)
            .where(Comment.id.in_(comment_ids))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info("Marked %d comments as read", len(comment_ids))

    return [
        serialize_report_row(comment, post_url, post_id, is_read=True)
        for comment, post_url, post_id in rows
    ]


async def list_unread_comments_service(*, db: AsyncSession) -> List[Dict[str, Any]]:
    """Return unread comments without changing their read state."""
    rows = await _unread_rows(db)
    return [serialize_report_row(comment, post_url, post_id) for comment, post_url, post_id in rows]


async def mark_all_unread_as_read_service(*, db: AsyncSession) -> Dict[str, Any]:
    result = await db.execute(select(Comment.id).where(Comment.is_read.is_(False)))
    comment_ids = list(result.scalars().all())
    if not comment_ids:
        return {"success": True, "markedCount": 0}

    update_result = await db.execute(
        update(Comment)
        .where(Comment.id.in_(comment_ids))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    marked = max(int(update_result.rowcount or 0), 0)
    logger.info("Bulk marked %d comments as read", marked)
    return {"success": True, "markedCount": marked}

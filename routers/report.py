"""
Router for comment mood reports and read-state transitions.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.pagination import MAX_PAGE, MAX_PAGE_LIMIT
from services.report import (
    ReportFilters,
    generate_report_service,
    list_unread_and_mark_read_service,
    list_unread_comments_service,
    mark_all_unread_as_read_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateReportRequest(BaseModel):
    moods: List[str] = Field(default_factory=list)
    tip_social: List[str] = Field(default_factory=list)
    sphere_id: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: Optional[int] = Field(default=None, le=MAX_PAGE)
    limit: Optional[int] = Field(default=None, le=MAX_PAGE_LIMIT)


@router.post("")
async def generate_report(
    request: CreateReportRequest,
    db: AsyncSession = Depends(get_db),
):
    """Filtered, paginated comments joined with their post."""
    filters = ReportFilters.from_request(**request.model_dump())
    logger.debug("Generating report with filters %s", filters)
    return await generate_report_service(filters=filters, db=db)


@router.get("/unread")
async def list_unread_and_mark_read(db: AsyncSession = Depends(get_db)):
    """Return unread comments and mark them read as they are viewed."""
    return await list_unread_and_mark_read_service(db=db)


@router.get("/read")
async def list_unread_comments(db: AsyncSession = Depends(get_db)):
    """Peek at unread comments without changing their read state."""
    return await list_unread_comments_service(db=db)


@router.post("/mark-all-read")
async def mark_all_unread_as_read(db: AsyncSession = Depends(get_db)):
    return await mark_all_unread_as_read_service(db=db)

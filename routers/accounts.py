"""Monitored accounts router."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.enrichment import enrich_records, request_base_url
from services.posts import list_accounts_service, serialize_account

router = APIRouter()


@router.get("")
async def list_accounts(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List accounts with profile pictures served from the local mirror."""
    accounts = await list_accounts_service(db=db)
    return await enrich_records(
        [serialize_account(account) for account in accounts],
        entity="account",
        base_url=request_base_url(request),
    )

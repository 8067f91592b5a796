from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional, List
from datetime import datetime

from app.db.session import get_db
from app.models.quote_action import QuoteAction
from app.schemas.quote_action import QuoteActionOut, UserStatsOut, ActivitySummaryOut
from app.core.enums import QuoteActionType, Permission
from app.core.auth_utils import permission_required
from app.core.response_builders import build_quote_action_response_list
from app.services.quote_stats import user_stats, activity_summary

router = APIRouter(prefix="/quote-actions", tags=["quote-actions"])


@router.get("/", response_model=List[QuoteActionOut])
async def list_actions(
    quote_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    action_type: Optional[QuoteActionType] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    q = select(QuoteAction)

    if quote_id is not None:
        q = q.where(QuoteAction.quote_id == quote_id)
    if user_id is not None:
        q = q.where(QuoteAction.user_id == user_id)
    if action_type:
        q = q.where(QuoteAction.action_type == action_type)
    if start_date:
        q = q.where(QuoteAction.timestamp >= start_date)
    if end_date:
        q = q.where(QuoteAction.timestamp <= end_date)

    q = q.order_by(QuoteAction.timestamp.desc(), QuoteAction.id.desc()).limit(limit).offset(offset)
    res = await db.execute(q)
    return build_quote_action_response_list(res.scalars().all())


@router.get("/stats", response_model=List[UserStatsOut])
async def action_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    return await user_stats(db, start_date=start_date, end_date=end_date)


@router.get("/summary", response_model=ActivitySummaryOut)
async def action_summary(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    return await activity_summary(db)

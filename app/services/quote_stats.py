"""Reporting over the quote_actions audit trail"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, case, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.enums import QuoteActionType
from app.models.quote_action import QuoteAction
from app.models.user import User

_STAT_COLUMNS = {
    "quotes_created": QuoteActionType.CREATED,
    "quotes_priced": QuoteActionType.PRICED,
    "quotes_verified": QuoteActionType.VERIFIED,
    "quotes_completed": QuoteActionType.COMPLETED,
    "quotes_marked_wrong": QuoteActionType.MARKED_WRONG,
}


async def user_stats(
    db: AsyncSession,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list:
    """Per-user action counts, busiest users first.

    Users with no actions in the range are included with zero counts.
    """
    join_condition = [QuoteAction.user_id == User.id]
    if start_date:
        join_condition.append(QuoteAction.timestamp >= start_date)
    if end_date:
        join_condition.append(QuoteAction.timestamp <= end_date)

    counts = [
        func.count(case((QuoteAction.action_type == action_type, QuoteAction.id))).label(name)
        for name, action_type in _STAT_COLUMNS.items()
    ]
    total = func.count(QuoteAction.id).label("total_actions")

    q = (
        select(User.id, User.username, User.full_name, *counts, total)
        .outerjoin(QuoteAction, and_(*join_condition))
        .group_by(User.id, User.username, User.full_name)
        .order_by(total.desc(), counts[0].desc(), User.id)
    )
    res = await db.execute(q)

    return [
        {
            "user_id": row.id,
            "username": row.username,
            "full_name": row.full_name,
            **{name: getattr(row, name) for name in _STAT_COLUMNS},
            "total_actions": row.total_actions,
        }
        for row in res.all()
    ]


async def activity_summary(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    q = select(
        func.count(QuoteAction.id),
        func.count(case((QuoteAction.timestamp >= start_of_day, QuoteAction.id))),
        func.count(case((QuoteAction.timestamp >= week_ago, QuoteAction.id))),
        func.count(case((QuoteAction.timestamp >= month_ago, QuoteAction.id))),
    )
    total, today, week, month = (await db.execute(q)).one()

    return {
        "total_actions": total or 0,
        "actions_today": today or 0,
        "actions_this_week": week or 0,
        "actions_this_month": month or 0,
    }

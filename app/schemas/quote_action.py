from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from app.core.enums import QuoteActionType


class QuoteActionOut(BaseModel):
    id: int
    quote_id: int
    user_id: int
    action_type: QuoteActionType
    timestamp: datetime


class UserStatsOut(BaseModel):
    user_id: int
    username: str
    full_name: Optional[str] = None
    quotes_created: int = 0
    quotes_priced: int = 0
    quotes_verified: int = 0
    quotes_completed: int = 0
    quotes_marked_wrong: int = 0
    total_actions: int = 0


class ActivitySummaryOut(BaseModel):
    total_actions: int
    actions_today: int
    actions_this_week: int
    actions_this_month: int

"""Best-effort quote action logging"""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.quote_action import QuoteAction
from app.core.enums import QuoteActionType
from app.core.metrics import quote_actions_recorded

logger = logging.getLogger(__name__)


async def record_quote_action(
    db: AsyncSession,
    quote_id: int,
    user_id: int,
    action_type: QuoteActionType,
) -> Optional[QuoteAction]:
    """Add an audit row inside a savepoint of the caller's transaction.

    A failure rolls back the savepoint only and is logged; the caller's
    pending changes are kept and nothing is raised.
    """
    try:
        async with db.begin_nested():
            action = QuoteAction(
                quote_id=int(quote_id),
                user_id=int(user_id),
                action_type=action_type,
            )
            db.add(action)
        quote_actions_recorded.labels(action_type=str(action_type), status="success").inc()
        return action
    except Exception as e:
        quote_actions_recorded.labels(action_type=str(action_type), status="error").inc()
        logger.error(
            f"Audit logging failed for quote {quote_id} action {action_type}: {e}",
            exc_info=True,
        )
        return None

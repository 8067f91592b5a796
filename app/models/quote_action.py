from sqlalchemy import Column, ForeignKey, Enum, DateTime
from sqlalchemy.orm import relationship
from app.models.base import BaseModel, utcnow
from app.core.enums import QuoteActionType


class QuoteAction(BaseModel):
    """Append-only audit row for a workflow event on a quote."""
    __tablename__ = "quote_actions"

    quote_id = Column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)

    user = relationship("User", backref="quote_actions")

    action_type = Column(Enum(QuoteActionType), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

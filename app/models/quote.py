from sqlalchemy import Column, String, ForeignKey, Enum, JSON, DateTime
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
from app.core.enums import QuoteStatus

class Quote(BaseModel):
    __tablename__ = "quotes"

    quote_ref = Column(String(40), nullable=True, index=True)
    customer_id = Column(ForeignKey("customers.id"), nullable=False)
    vehicle_id = Column(ForeignKey("vehicles.id"), nullable=False)
    created_by = Column(ForeignKey("users.id"), nullable=False)

    customer = relationship("Customer", backref="quotes")
    vehicle = relationship("Vehicle", backref="quotes")
    creator = relationship("User", backref="quotes")

    status = Column(Enum(QuoteStatus), default=QuoteStatus.UNPRICED, nullable=False, index=True)
    # list of QuotePartItem dicts; always reassign, never mutate in place
    parts_requested = Column(JSON, nullable=False, default=list)
    tax_invoice_number = Column(String(60), nullable=True)
    required_by = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String, nullable=True)

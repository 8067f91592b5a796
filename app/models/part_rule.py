from sqlalchemy import Column, String, ForeignKey, Enum, JSON
from app.models.base import BaseModel
from app.core.enums import RuleType

class PartRule(BaseModel):
    __tablename__ = "parts_rules"

    part_name = Column(String(120), unique=True, nullable=False, index=True)
    rule_type = Column(Enum(RuleType), nullable=False, default=RuleType.NONE)
    brands = Column(JSON, nullable=False, default=list)
    description = Column(String, nullable=True)
    created_by = Column(ForeignKey("users.id"), nullable=True)

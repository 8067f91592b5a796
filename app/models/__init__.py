from app.models.base import Base, BaseModel
from app.models.user import User
from app.models.customer import Customer
from app.models.vehicle import Vehicle
from app.models.quote import Quote
from app.models.part_rule import PartRule
from app.models.quote_action import QuoteAction

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Customer",
    "Vehicle",
    "Quote",
    "PartRule",
    "QuoteAction",
]

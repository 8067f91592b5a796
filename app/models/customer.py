from sqlalchemy import Column, String
from app.models.base import BaseModel

class Customer(BaseModel):
    __tablename__ = "customers"
    name = Column(String(120), nullable=False)
    phone = Column(String(40), unique=True, nullable=True)
    address = Column(String(255))

from sqlalchemy import Column, String, Integer
from app.models.base import BaseModel

class Vehicle(BaseModel):
    __tablename__ = "vehicles"
    rego = Column(String(20))
    make = Column(String(60), nullable=False, index=True)
    model = Column(String(80))
    series = Column(String(80))
    year = Column(Integer, nullable=True)
    vin = Column(String(40))
    color = Column(String(40))
    transmission = Column(String(10))
    body = Column(String(60))
    notes = Column(String, nullable=True)

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime
from app.core.enums import QuoteStatus
from app.utils.dates import parse_australian_datetime


def _parse_required_by(value):
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        parsed = parse_australian_datetime(value)
        if parsed is not None:
            return parsed
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError("required_by must be ISO-8601 or dd/mm/yyyy [h:mm am|pm]")
    return value


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    phone: Optional[str] = None
    address: Optional[str] = None


class VehicleIn(BaseModel):
    make: str = Field(..., min_length=1, max_length=60)
    model: Optional[str] = None
    series: Optional[str] = None
    year: Optional[Union[int, str]] = None
    rego: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    auto: bool = False
    body: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("year")
    @classmethod
    def year_as_int(cls, v):
        if v is None or isinstance(v, int):
            return v
        v = v.strip()
        if not v:
            return None
        # "mthyr" values such as "03/2019" keep only the year
        digits = v.split("/")[-1]
        if not digits.isdigit():
            raise ValueError("year must be numeric")
        return int(digits)


class PartRequestIn(BaseModel):
    name: str = Field(..., min_length=1)
    number: Optional[str] = None
    note: Optional[str] = None


class QuoteCreate(BaseModel):
    customer: CustomerIn
    vehicle: VehicleIn
    parts: List[PartRequestIn] = Field(default_factory=list)
    notes: Optional[str] = None
    required_by: Optional[datetime] = None
    quote_ref: Optional[str] = None

    @field_validator("required_by", mode="before")
    @classmethod
    def parse_required_by(cls, v):
        return _parse_required_by(v)


class QuoteUpdate(BaseModel):
    notes: Optional[str] = None
    required_by: Optional[datetime] = None
    quote_ref: Optional[str] = None

    @field_validator("required_by", mode="before")
    @classmethod
    def parse_required_by(cls, v):
        return _parse_required_by(v)


class PartVariant(BaseModel):
    id: str
    note: str = ""
    final_price: Optional[float] = Field(None, ge=0)
    list_price: Optional[float] = Field(None, ge=0)
    af: bool = False
    is_default: bool = False
    created_at: Optional[str] = None


class QuotePartItem(BaseModel):
    part_id: str = ""
    part_name: Optional[str] = None
    note: str = ""
    final_price: Optional[float] = None
    list_price: Optional[float] = None
    variants: List[PartVariant] = Field(default_factory=list)

    @field_validator("variants")
    @classmethod
    def single_default(cls, v: List[PartVariant]) -> List[PartVariant]:
        if sum(1 for variant in v if variant.is_default) > 1:
            raise ValueError("At most one variant may be the default")
        return v


class PartsReplace(BaseModel):
    parts: List[QuotePartItem]


class PartPriceUpdate(BaseModel):
    final_price: Optional[float] = Field(None, ge=0)
    list_price: Optional[float] = Field(None, ge=0)
    note: str = ""
    af: bool = False


class VariantCreate(BaseModel):
    note: str = ""
    final_price: Optional[float] = Field(None, ge=0)
    list_price: Optional[float] = Field(None, ge=0)
    af: bool = False


class OrderIn(BaseModel):
    tax_invoice_number: Optional[str] = None


class DeliverIn(BaseModel):
    quote_ids: List[int] = Field(..., min_length=1)


class CustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None


class VehicleOut(BaseModel):
    id: int
    make: str
    model: Optional[str] = None
    series: Optional[str] = None
    year: Optional[int] = None
    rego: Optional[str] = None
    vin: Optional[str] = None
    color: Optional[str] = None
    transmission: Optional[str] = None
    body: Optional[str] = None
    notes: Optional[str] = None


class QuoteOut(BaseModel):
    id: int
    quote_ref: Optional[str] = None
    status: QuoteStatus
    customer: Optional[CustomerOut] = None
    vehicle: Optional[VehicleOut] = None
    parts_requested: List[QuotePartItem]
    tax_invoice_number: Optional[str] = None
    required_by: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None

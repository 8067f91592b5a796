from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from app.core.enums import RuleType


class PartRuleIn(BaseModel):
    part_name: str = Field(..., min_length=1, max_length=120)
    rule_type: RuleType
    brands: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator("part_name")
    @classmethod
    def part_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("part_name must not be blank")
        return v

    @field_validator("brands")
    @classmethod
    def unique_brands(cls, v: List[str]) -> List[str]:
        seen = set()
        brands = []
        for brand in v:
            brand = brand.strip()
            key = brand.casefold()
            if brand and key not in seen:
                seen.add(key)
                brands.append(brand)
        return brands

    @field_validator("description")
    @classmethod
    def empty_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class PartRuleOut(BaseModel):
    id: int
    part_name: str
    rule_type: RuleType
    brands: List[str]
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class EligibilityOut(BaseModel):
    brand: Optional[str]
    available: List[str]
    unavailable: List[str]
    descriptions: Dict[str, str]
    rules_version: str

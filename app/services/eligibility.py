"""Brand based part eligibility.

Decides which part types are offered for a vehicle brand. Everything here is
a pure function of ``(part_name, brand, rules)``; loading rules from the
database lives in ``app.services.parts_rules``.

Evaluation order for a single part, first match wins:

1. no rule for the part -> available
2. brand listed in ``not_required_for`` -> not available
3. ``required_for`` is non-empty -> available only for listed brands
4. otherwise -> available

Brands are compared after ``strip()`` and ``casefold()`` on both sides.
"""
import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from app.core.enums import RuleType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrandPartRule:
    required_for: tuple = ()
    not_required_for: tuple = ()
    description: Optional[str] = None


def normalize_brand(brand: Optional[str]) -> str:
    if not brand:
        return ""
    return brand.strip().casefold()


def _contains_brand(brands: Iterable[str], brand: str) -> bool:
    if not brand:
        return False
    return any(normalize_brand(b) == brand for b in brands)


DEFAULT_BRAND_PART_RULES = {
    "Fan Assembly": BrandPartRule(
        required_for=("Kia", "Hyundai", "Mazda", "Holden", "Nissan"),
        description="Required for Asian and Australian brands",
    ),
    "Oil Cooler": BrandPartRule(
        not_required_for=("Subaru",),
        description="Not required for Subaru",
    ),
    "Intercooler": BrandPartRule(
        not_required_for=("Subaru",),
        description="Not required for Subaru",
    ),
    "Parking Sensor": BrandPartRule(
        required_for=("Nissan", "Mitsubishi"),
        description="Only required for Nissan and Mitsubishi",
    ),
    "Left Blindspot Sensor": BrandPartRule(
        required_for=("Kia", "Hyundai", "BMW", "Audi", "Volkswagen", "Mercedes",
                      "Porsche", "Volvo", "Jaguar", "Land Rover"),
        description="Required for Korean, European, and premium brands",
    ),
    "Right Blindspot Sensor": BrandPartRule(
        required_for=("Kia", "Hyundai", "BMW", "Audi", "Volkswagen", "Mercedes",
                      "Porsche", "Volvo", "Jaguar", "Land Rover"),
        description="Required for Korean, European, and premium brands",
    ),
    "Camera": BrandPartRule(
        required_for=("Volkswagen", "Skoda", "Seat", "Cupra", "Audi", "BMW",
                      "MG", "LDV", "Ssang Yong"),
        description="Required for European and Chinese brands",
    ),
    "Auxiliary Radiator": BrandPartRule(
        required_for=("Land Rover", "Mercedes", "Audi", "BMW", "Volkswagen",
                      "Porsche", "Volvo", "Jaguar"),
        description="Required for European luxury brands",
    ),
    "Left Intercooler": BrandPartRule(
        required_for=("Mercedes", "Land Rover", "BMW"),
        description="Required for Mercedes, Land Rover, and BMW",
    ),
    "Right Intercooler": BrandPartRule(
        required_for=("Mercedes", "Land Rover", "BMW"),
        description="Required for Mercedes, Land Rover, and BMW",
    ),
    "Add Cooler": BrandPartRule(
        required_for=("Mercedes", "Land Rover", "BMW"),
        description="Required for Mercedes, Land Rover, and BMW",
    ),
    "Left Rear Lamp": BrandPartRule(
        required_for=("Kia", "Hyundai", "Toyota"),
        description="Rear combination lamp required for Kia, Hyundai, and Toyota",
    ),
    "Right Rear Lamp": BrandPartRule(
        required_for=("Kia", "Hyundai", "Toyota"),
        description="Rear combination lamp required for Kia, Hyundai, and Toyota",
    ),
}


class RuleSet(Mapping):
    """Immutable part name -> BrandPartRule mapping with a content version."""

    def __init__(self, rules: Optional[Mapping] = None):
        self._rules = dict(rules or {})
        self.version = self._compute_version()

    def _compute_version(self) -> str:
        payload = {
            name: [list(rule.required_for), list(rule.not_required_for), rule.description]
            for name, rule in self._rules.items()
        }
        s = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(s.encode()).hexdigest()[:16]

    def __getitem__(self, part_name: str) -> BrandPartRule:
        return self._rules[part_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def to_dict(self) -> dict:
        return {
            name: {
                "required_for": list(rule.required_for),
                "not_required_for": list(rule.not_required_for),
                "description": rule.description,
            }
            for name, rule in self._rules.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "RuleSet":
        return cls({
            name: BrandPartRule(
                required_for=tuple(raw.get("required_for") or ()),
                not_required_for=tuple(raw.get("not_required_for") or ()),
                description=raw.get("description"),
            )
            for name, raw in data.items()
        })


def rule_from_record(rule_type, brands, description: Optional[str] = None) -> BrandPartRule:
    """Convert a persisted (rule_type, brands) pair into the evaluation form."""
    brands = tuple(b for b in (brands or ()) if isinstance(b, str) and b.strip())
    try:
        rule_type = RuleType(str(rule_type))
    except ValueError:
        logger.warning(f"Unknown rule_type {rule_type!r}; treating part as unrestricted")
        return BrandPartRule(description=description)

    if rule_type == RuleType.REQUIRED_FOR:
        return BrandPartRule(required_for=brands, description=description)
    if rule_type == RuleType.NOT_REQUIRED_FOR:
        return BrandPartRule(not_required_for=brands, description=description)
    return BrandPartRule(description=description)


def build_rule_set(records: Iterable = (), defaults: Optional[Mapping] = None) -> RuleSet:
    """Overlay persisted rules on the baked-in defaults.

    ``records`` yields objects with ``part_name``, ``rule_type``, ``brands``
    and ``description`` attributes. A persisted rule replaces the default
    entry for the same part name outright.
    """
    rules = dict(DEFAULT_BRAND_PART_RULES if defaults is None else defaults)
    for record in records:
        rules[record.part_name] = rule_from_record(
            record.rule_type, record.brands, record.description
        )
    return RuleSet(rules)


def is_available(part_name: str, brand: Optional[str], rules: Mapping) -> bool:
    rule = rules.get(part_name)
    if rule is None:
        return True

    normalized = normalize_brand(brand)

    if _contains_brand(rule.not_required_for, normalized):
        return False

    if rule.required_for:
        return _contains_brand(rule.required_for, normalized)

    return True


def filter_available(all_parts: Iterable[str], brand: Optional[str], rules: Mapping) -> list:
    return [p for p in all_parts if is_available(p, brand, rules)]


def filter_unavailable(all_parts: Iterable[str], brand: Optional[str], rules: Mapping) -> list:
    return [p for p in all_parts if not is_available(p, brand, rules)]


def describe_part_for_brand(part_name: str, brand: Optional[str], rules: Mapping) -> Optional[str]:
    rule = rules.get(part_name)
    if rule is None:
        return None

    normalized = normalize_brand(brand)
    label = (brand or "").strip()

    if _contains_brand(rule.not_required_for, normalized):
        return f"Not required for {label}"
    if _contains_brand(rule.required_for, normalized):
        return f"Required for {label}"
    return rule.description or None

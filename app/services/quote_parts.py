"""Helpers over the ``parts_requested`` JSON array of a quote.

Items are plain dicts in their persisted shape::

    {"part_id": "...", "part_name": "...", "note": "...",
     "final_price": None, "list_price": None,
     "variants": [{"id": "...", "note": "", "final_price": None,
                   "list_price": None, "af": False, "is_default": True,
                   "created_at": "..."}]}

Every function returns new lists/dicts and leaves its input untouched.
"""
import copy
import secrets
from typing import Optional

from app.models.base import utcnow

PLACEHOLDER_PART_IDS = frozenset({"L", "R"})

VARIANT_FIELDS = ("note", "final_price", "list_price", "af")


def new_variant(part_id: str, note: str = "", final_price: Optional[float] = None,
                list_price: Optional[float] = None, af: bool = False,
                is_default: bool = False) -> dict:
    return {
        "id": f"var_{part_id or 'part'}_{secrets.token_hex(4)}",
        "note": note or "",
        "final_price": final_price,
        "list_price": list_price,
        "af": af,
        "is_default": is_default,
        "created_at": utcnow().isoformat(),
    }


def new_part_item(part_id: str, part_name: Optional[str] = None, note: str = "",
                  final_price: Optional[float] = None) -> dict:
    return {
        "part_id": part_id or "",
        "part_name": part_name,
        "note": note or "",
        "final_price": None,
        "list_price": None,
        "variants": [new_variant(part_id, note=note, final_price=final_price, is_default=True)],
    }


def default_variant(item: dict) -> Optional[dict]:
    variants = item.get("variants") or []
    for variant in variants:
        if variant.get("is_default"):
            return variant
    return variants[0] if variants else None


def effective_price(item: dict) -> Optional[float]:
    variant = default_variant(item)
    if variant is not None and variant.get("final_price") is not None:
        return variant.get("final_price")
    return item.get("final_price")


def has_priced_part(parts: Optional[list]) -> bool:
    """True when some item's default variant carries a price above zero."""
    for item in parts or []:
        variant = default_variant(item)
        if variant is None:
            continue
        price = variant.get("final_price")
        if price is not None and price > 0:
            return True
    return False


def price_map(parts: Optional[list]) -> dict:
    """Every price on ``parts`` keyed by ``(item index, variant id, field)``.

    Item-level prices use ``None`` as the variant id; a priced default
    variant also contributes an ``is_default`` entry.
    """
    prices = {}
    for index, item in enumerate(parts or []):
        for field in ("final_price", "list_price"):
            if item.get(field) is not None:
                prices[(index, None, field)] = item[field]
        for variant in item.get("variants") or []:
            priced = False
            for field in ("final_price", "list_price"):
                if variant.get(field) is not None:
                    prices[(index, variant.get("id"), field)] = variant[field]
                    priced = True
            if priced and variant.get("is_default"):
                prices[(index, variant.get("id"), "is_default")] = True
    return prices


def prices_changed(old_parts: Optional[list], new_parts: Optional[list]) -> bool:
    return price_map(old_parts) != price_map(new_parts)


def is_identified(part_id) -> bool:
    if not isinstance(part_id, str):
        return False
    stripped = part_id.strip()
    return bool(stripped) and stripped not in PLACEHOLDER_PART_IDS


def all_parts_identified(parts: Optional[list]) -> bool:
    return all(is_identified(item.get("part_id")) for item in parts or [])


def update_default_variant(parts: list, index: int, updates: dict) -> list:
    """Apply ``updates`` (subset of VARIANT_FIELDS) to one item's default variant.

    Raises IndexError for an unknown index.
    """
    if index < 0 or index >= len(parts):
        raise IndexError(index)

    result = copy.deepcopy(parts)
    item = result[index]
    variant = default_variant(item)
    if variant is None:
        variant = new_variant(item.get("part_id", ""), is_default=True)
        item["variants"] = [variant]

    for field in VARIANT_FIELDS:
        if field in updates:
            variant[field] = updates[field]
    return result


def add_variant(parts: list, index: int, note: str = "", final_price: Optional[float] = None,
                list_price: Optional[float] = None, af: bool = False) -> tuple:
    """Append a variant to one item; the first variant of an item becomes default.

    Returns ``(new_parts, variant)``.
    """
    if index < 0 or index >= len(parts):
        raise IndexError(index)

    result = copy.deepcopy(parts)
    item = result[index]
    variants = item.setdefault("variants", [])
    variant = new_variant(
        item.get("part_id", ""),
        note=note,
        final_price=final_price,
        list_price=list_price,
        af=af,
        is_default=not variants,
    )
    variants.append(variant)
    return result, variant


def set_default_variant(parts: list, index: int, variant_id: str) -> list:
    """Flag ``variant_id`` as the only default of one item.

    Raises IndexError for an unknown index and KeyError for an unknown variant.
    """
    if index < 0 or index >= len(parts):
        raise IndexError(index)

    result = copy.deepcopy(parts)
    variants = result[index].get("variants") or []
    if not any(v.get("id") == variant_id for v in variants):
        raise KeyError(variant_id)

    for variant in variants:
        variant["is_default"] = variant.get("id") == variant_id
    return result

"""Parts rules loading with a Redis-cached RuleSet.

Cached rule sets are keyed by a generation counter that every rule write
bumps, so a reader that filled the cache from an older snapshot writes
under a generation nobody reads anymore.
"""
import json
import logging
from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.redis import get_redis
from app.core.metrics import rules_cache_hits, rules_cache_misses
from app.models.part_rule import PartRule
from app.services.eligibility import (
    RuleSet,
    build_rule_set,
    filter_available,
    filter_unavailable,
    describe_part_for_brand,
)

logger = logging.getLogger(__name__)

RULES_CACHE_KEY = "parts_rules:ruleset"
RULES_GENERATION_KEY = "parts_rules:generation"


def rules_cache_key(generation: int) -> str:
    return f"{RULES_CACHE_KEY}:{generation}"


async def load_rule_set(db: AsyncSession) -> RuleSet:
    redis = get_redis()
    cache_key = None

    if redis is not None:
        try:
            # read the generation before the database
            generation = await redis.get(RULES_GENERATION_KEY)
            cache_key = rules_cache_key(int(generation or 0))
            cached = await redis.get(cache_key)
            if cached:
                rules_cache_hits.inc()
                return RuleSet.from_dict(json.loads(cached))
        except Exception as e:
            logger.warning(f"Rules cache retrieval failed: {e}")
            cache_key = None

    rules_cache_misses.inc()
    res = await db.execute(select(PartRule))
    rule_set = build_rule_set(res.scalars().all())

    if cache_key is not None:
        try:
            await redis.set(
                cache_key,
                json.dumps(rule_set.to_dict(), default=str),
                ex=settings.RULES_CACHE_TTL,
            )
        except Exception as e:
            logger.warning(f"Rules cache write failed: {e}")

    return rule_set


async def invalidate_rules_cache() -> None:
    redis = get_redis()
    if redis is None:
        return
    try:
        await redis.incr(RULES_GENERATION_KEY)
    except Exception as e:
        logger.warning(f"Rules cache invalidation failed: {e}")


def evaluate_parts(rule_set: RuleSet, brand: Optional[str], parts: Optional[Iterable[str]] = None) -> dict:
    """Split candidate parts into available/unavailable for ``brand``.

    With no candidates, every part name known to the rule set is evaluated.
    """
    candidates = list(parts) if parts else sorted(rule_set)
    descriptions = {}
    for part_name in candidates:
        description = describe_part_for_brand(part_name, brand, rule_set)
        if description:
            descriptions[part_name] = description
    return {
        "brand": brand,
        "available": filter_available(candidates, brand, rule_set),
        "unavailable": filter_unavailable(candidates, brand, rule_set),
        "descriptions": descriptions,
        "rules_version": rule_set.version,
    }

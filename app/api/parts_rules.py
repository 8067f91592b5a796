import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional, List

from app.db.session import get_db
from app.models.part_rule import PartRule
from app.schemas.part_rule import PartRuleIn, PartRuleOut, EligibilityOut
from app.core.security import get_current_user
from app.core.auth_utils import permission_required, check_not_found
from app.core.enums import Permission
from app.core.rate_limit import check_rate_limit
from app.core.response_builders import build_part_rule_response, build_part_rule_response_list
from app.services.parts_rules import load_rule_set, invalidate_rules_cache, evaluate_parts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts-rules", tags=["parts-rules"])

DUPLICATE_RULE_DETAIL = "A rule for this part already exists"


async def _ensure_unique_part_name(db: AsyncSession, part_name: str, rule_id: Optional[int] = None):
    q = select(PartRule).where(PartRule.part_name == part_name)
    if rule_id is not None:
        q = q.where(PartRule.id != rule_id)
    res = await db.execute(q)
    if res.scalars().first():
        raise HTTPException(status_code=409, detail=DUPLICATE_RULE_DETAIL)


async def _commit_rule(db: AsyncSession):
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICATE_RULE_DETAIL)
    await invalidate_rules_cache()


@router.get("/", response_model=List[PartRuleOut])
async def list_rules(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    res = await db.execute(select(PartRule).order_by(PartRule.part_name))
    return build_part_rule_response_list(res.scalars().all())


@router.get("/eligibility", response_model=EligibilityOut)
async def part_eligibility(
    brand: Optional[str] = Query(None),
    parts: Optional[List[str]] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    rule_set = await load_rule_set(db)
    return evaluate_parts(rule_set, brand, parts)


@router.get("/by-part/{part_name}", response_model=PartRuleOut)
async def get_rule_by_part_name(
    part_name: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    res = await db.execute(select(PartRule).where(PartRule.part_name == part_name))
    rule = res.scalars().first()
    check_not_found(rule, "Parts rule")
    return build_part_rule_response(rule)


@router.get("/{rule_id}", response_model=PartRuleOut)
async def get_rule(
    rule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    res = await db.execute(select(PartRule).where(PartRule.id == rule_id))
    rule = res.scalars().first()
    check_not_found(rule, "Parts rule", rule_id)
    return build_part_rule_response(rule)


@router.post("/", response_model=PartRuleOut, status_code=201)
async def create_rule(
    payload: PartRuleIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_RULES))
):
    await check_rate_limit(int(current_user.id))
    await _ensure_unique_part_name(db, payload.part_name)

    rule = PartRule(
        part_name=payload.part_name,
        rule_type=payload.rule_type,
        brands=payload.brands,
        description=payload.description,
        created_by=int(current_user.id),
    )
    db.add(rule)
    await _commit_rule(db)
    await db.refresh(rule)

    logger.info(f"Parts rule '{rule.part_name}' created by user {current_user.id}")
    return build_part_rule_response(rule)


@router.put("/{rule_id}", response_model=PartRuleOut)
async def update_rule(
    rule_id: int,
    payload: PartRuleIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_RULES))
):
    await check_rate_limit(int(current_user.id))

    res = await db.execute(select(PartRule).where(PartRule.id == rule_id))
    rule = res.scalars().first()
    check_not_found(rule, "Parts rule", rule_id)
    await _ensure_unique_part_name(db, payload.part_name, rule_id)

    rule.part_name = payload.part_name
    rule.rule_type = payload.rule_type
    rule.brands = payload.brands
    rule.description = payload.description
    await _commit_rule(db)
    await db.refresh(rule)

    logger.info(f"Parts rule {rule_id} updated by user {current_user.id}")
    return build_part_rule_response(rule)


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_RULES))
):
    await check_rate_limit(int(current_user.id))

    res = await db.execute(select(PartRule).where(PartRule.id == rule_id))
    rule = res.scalars().first()
    check_not_found(rule, "Parts rule", rule_id)

    await db.delete(rule)
    await _commit_rule(db)

    logger.info(f"Parts rule {rule_id} deleted by user {current_user.id}")
    return {"deleted": True}

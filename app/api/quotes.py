from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import Optional, List

from app.db.session import get_db
from app.models.quote import Quote
from app.models.quote_action import QuoteAction
from app.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteOut,
    PartsReplace,
    PartPriceUpdate,
    VariantCreate,
    OrderIn,
    DeliverIn,
)
from app.schemas.quote_action import QuoteActionOut
from app.core.security import get_current_user
from app.core.enums import QuoteStatus, QuoteEvent, Permission
from app.core.rate_limit import check_rate_limit
from app.core.auth_utils import require_permission, filter_by_user, check_ownership, check_not_found
from app.core.response_builders import (
    build_quote_response,
    build_quote_response_list,
    build_quote_action_response_list,
)
from app.utils.idempotency import get_idempotent, set_idempotent
from app.services import quotes as quote_service
from app.services.quote_parts import update_default_variant, add_variant, set_default_variant, prices_changed
from app.services.quote_workflow import (
    EVENT_PERMISSIONS,
    PARTS_EDITABLE_STATUSES,
    InvalidTransition,
    next_status_after_parts_edit,
    TransitionGuardFailed,
)

router = APIRouter(prefix="/quotes", tags=["quotes"])


async def _load_quote(db: AsyncSession, quote_id: int, current_user) -> Quote:
    quote = await quote_service.get_quote(db, quote_id)
    check_not_found(quote, "Quote", quote_id)
    check_ownership(quote, current_user, "Quote")
    return quote


async def _load_editable_quote(db: AsyncSession, quote_id: int, current_user) -> Quote:
    quote = await _load_quote(db, quote_id, current_user)
    if quote.status not in PARTS_EDITABLE_STATUSES:
        raise HTTPException(
            status_code=409,
            detail=f"Parts of a quote in status '{quote.status}' can no longer be edited",
        )
    return quote


def _part_index(quote: Quote, index: int) -> int:
    if index < 0 or index >= len(quote.parts_requested or []):
        raise HTTPException(status_code=404, detail=f"Quote part {index} not found")
    return index


async def _run(coro):
    """Await a service call, mapping workflow and persistence errors to HTTP."""
    try:
        return await coro
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TransitionGuardFailed as e:
        raise HTTPException(status_code=400, detail=str(e))
    except quote_service.BulkTransitionError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": f"Only ordered quotes can be marked {QuoteStatus.DELIVERED}",
                    "rejected": {str(k): v for k, v in e.rejected.items()}},
        )
    except quote_service.QuotePersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


async def _transition(quote_id: int, event: QuoteEvent, db: AsyncSession, current_user,
                      tax_invoice_number: Optional[str] = None) -> QuoteOut:
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, EVENT_PERMISSIONS[event])

    quote = await _load_quote(db, quote_id, current_user)
    quote = await _run(quote_service.transition_quote(
        db, quote, event, int(current_user.id), tax_invoice_number=tax_invoice_number
    ))
    return build_quote_response(quote)


@router.post("/", response_model=QuoteOut, status_code=201)
async def create_quote(
    payload: QuoteCreate,
    idempotency_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.CREATE)

    if idempotency_key:
        prev = await get_idempotent(idempotency_key)
        if prev:
            return prev

    quote = await _run(quote_service.create_quote(db, payload, int(current_user.id)))

    out = build_quote_response(quote)
    if idempotency_key:
        await set_idempotent(idempotency_key, out.model_dump(mode="json"))
    return out


@router.get("/", response_model=List[QuoteOut])
async def list_quotes(
    status: Optional[QuoteStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    q = select(Quote).options(selectinload(Quote.customer), selectinload(Quote.vehicle))

    q = filter_by_user(q, Quote, current_user)

    if status:
        q = q.where(Quote.status == status)

    q = q.order_by(Quote.created_at.desc(), Quote.id.desc()).limit(limit).offset(offset)
    res = await db.execute(q)
    quotes = res.scalars().all()

    return build_quote_response_list(quotes)


@router.post("/deliver", response_model=List[QuoteOut])
async def deliver_quotes(
    payload: DeliverIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.DELIVER)

    quote_ids = list(dict.fromkeys(payload.quote_ids))
    quotes = []
    for quote_id in quote_ids:
        quotes.append(await _load_quote(db, quote_id, current_user))

    delivered = await _run(quote_service.deliver_quotes(db, quotes, int(current_user.id)))
    return build_quote_response_list(delivered)


@router.get("/{quote_id}", response_model=QuoteOut)
async def get_quote(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    quote = await _load_quote(db, quote_id, current_user)
    return build_quote_response(quote)


@router.patch("/{quote_id}", response_model=QuoteOut)
async def update_quote(
    quote_id: int,
    payload: QuoteUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.UPDATE_DETAILS)

    quote = await _load_quote(db, quote_id, current_user)
    fields = payload.model_dump(exclude_unset=True)
    quote = await _run(quote_service.save_details(db, quote, fields, int(current_user.id)))
    return build_quote_response(quote)


@router.delete("/{quote_id}")
async def delete_quote(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.DELETE)

    quote = await _load_quote(db, quote_id, current_user)
    await _run(quote_service.delete_quote(db, quote))

    return {"deleted": True}


@router.put("/{quote_id}/parts", response_model=QuoteOut)
async def replace_parts(
    quote_id: int,
    payload: PartsReplace,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    """Replace the requested parts; a wrong quote whose parts are all identified returns to unpriced."""
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.EDIT_PARTS)

    quote = await _load_editable_quote(db, quote_id, current_user)
    parts = [item.model_dump() for item in payload.parts]
    if prices_changed(quote.parts_requested, parts):
        require_permission(current_user, Permission.EDIT_PRICES)
    transition = next_status_after_parts_edit(quote.status, parts)
    if transition is not None:
        require_permission(current_user, EVENT_PERMISSIONS[transition.event])

    quote = await _run(quote_service.save_parts(db, quote, parts, int(current_user.id)))
    return build_quote_response(quote)


@router.patch("/{quote_id}/parts/{index}", response_model=QuoteOut)
async def update_part_price(
    quote_id: int,
    index: int,
    payload: PartPriceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    """Edit the default variant of one part; the first positive price moves an unpriced quote on."""
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.EDIT_PRICES)

    quote = await _load_editable_quote(db, quote_id, current_user)
    parts = update_default_variant(
        quote.parts_requested or [],
        _part_index(quote, index),
        payload.model_dump(exclude_unset=True),
    )
    quote = await _run(quote_service.save_parts(db, quote, parts, int(current_user.id)))
    return build_quote_response(quote)


@router.post("/{quote_id}/parts/{index}/variants", response_model=QuoteOut, status_code=201)
async def create_variant(
    quote_id: int,
    index: int,
    payload: VariantCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.EDIT_PRICES)

    quote = await _load_editable_quote(db, quote_id, current_user)
    parts, _ = add_variant(
        quote.parts_requested or [],
        _part_index(quote, index),
        note=payload.note,
        final_price=payload.final_price,
        list_price=payload.list_price,
        af=payload.af,
    )
    quote = await _run(quote_service.save_parts(db, quote, parts, int(current_user.id)))
    return build_quote_response(quote)


@router.post("/{quote_id}/parts/{index}/variants/{variant_id}/default", response_model=QuoteOut)
async def make_default_variant(
    quote_id: int,
    index: int,
    variant_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await check_rate_limit(int(current_user.id))
    require_permission(current_user, Permission.EDIT_PRICES)

    quote = await _load_editable_quote(db, quote_id, current_user)
    try:
        parts = set_default_variant(quote.parts_requested or [], _part_index(quote, index), variant_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Variant {variant_id} not found")
    quote = await _run(quote_service.save_parts(db, quote, parts, int(current_user.id)))
    return build_quote_response(quote)


@router.post("/{quote_id}/verify", response_model=QuoteOut)
async def verify_quote(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    return await _transition(quote_id, QuoteEvent.VERIFY, db, current_user)


@router.post("/{quote_id}/complete", response_model=QuoteOut)
async def complete_quote(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    return await _transition(quote_id, QuoteEvent.COMPLETE, db, current_user)


@router.post("/{quote_id}/order", response_model=QuoteOut)
async def order_quote(
    quote_id: int,
    payload: OrderIn,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    return await _transition(
        quote_id, QuoteEvent.ORDER, db, current_user,
        tax_invoice_number=payload.tax_invoice_number,
    )


@router.post("/{quote_id}/mark-wrong", response_model=QuoteOut)
async def mark_quote_wrong(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    return await _transition(quote_id, QuoteEvent.MARK_WRONG, db, current_user)


@router.get("/{quote_id}/actions", response_model=List[QuoteActionOut])
async def quote_actions(
    quote_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user)
):
    await _load_quote(db, quote_id, current_user)
    res = await db.execute(
        select(QuoteAction)
        .where(QuoteAction.quote_id == quote_id)
        .order_by(QuoteAction.timestamp, QuoteAction.id)
    )
    return build_quote_action_response_list(res.scalars().all())

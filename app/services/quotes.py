"""Persistence for quote creation and status transitions.

Each public coroutine is one unit of work: the quote write and its audit
action commit together, with the audit insert isolated in a savepoint by
``record_quote_action``. On a database error the whole unit is rolled back
and QuotePersistenceError is raised.
"""
import logging
from typing import Optional, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.core.audit_log import record_quote_action
from app.core.enums import QuoteStatus, QuoteEvent, QuoteActionType
from app.core.metrics import quote_transitions
from app.models.customer import Customer
from app.models.quote import Quote
from app.models.vehicle import Vehicle
from app.schemas.quote import QuoteCreate
from app.services.quote_parts import new_part_item
from app.services.quote_workflow import (
    Transition,
    InvalidTransition,
    apply_event,
    next_status_after_parts_edit,
)
from app.services.webhook import send_webhook

logger = logging.getLogger(__name__)

NOTIFY_STATUSES = {QuoteStatus.COMPLETED, QuoteStatus.ORDERED, QuoteStatus.DELIVERED}


class QuotePersistenceError(Exception):
    pass


class BulkTransitionError(Exception):
    def __init__(self, event: QuoteEvent, rejected: dict):
        self.event = event
        self.rejected = rejected
        super().__init__(f"Cannot {event} quotes: {rejected}")


async def get_quote(db: AsyncSession, quote_id: int) -> Optional[Quote]:
    res = await db.execute(
        select(Quote)
        .where(Quote.id == quote_id)
        .options(selectinload(Quote.customer), selectinload(Quote.vehicle))
        .execution_options(populate_existing=True)
    )
    return res.scalars().first()


async def _find_or_create_customer(db: AsyncSession, data) -> Customer:
    phone = (data.phone or "").strip() or None
    if phone:
        res = await db.execute(select(Customer).where(Customer.phone == phone))
        customer = res.scalars().first()
        if customer:
            customer.name = data.name
            customer.address = data.address or ""
            return customer

    customer = Customer(name=data.name, phone=phone, address=data.address)
    db.add(customer)
    return customer


async def create_quote(db: AsyncSession, payload: QuoteCreate, user_id: int) -> Quote:
    try:
        customer = await _find_or_create_customer(db, payload.customer)

        v = payload.vehicle
        vehicle = Vehicle(
            rego=v.rego,
            make=v.make.strip(),
            model=v.model,
            series=v.series,
            year=v.year,
            vin=v.vin,
            color=v.color,
            transmission="auto" if v.auto else "manual",
            body=v.body,
            notes=v.notes,
        )
        db.add(vehicle)
        await db.flush()

        quote = Quote(
            customer_id=customer.id,
            vehicle_id=vehicle.id,
            created_by=int(user_id),
            status=QuoteStatus.UNPRICED,
            parts_requested=[
                new_part_item(
                    (part.number or "").strip(),
                    part_name=part.name,
                    note=part.note or "",
                )
                for part in payload.parts
            ],
            notes=payload.notes,
            required_by=payload.required_by,
            quote_ref=payload.quote_ref,
        )
        db.add(quote)
        await db.flush()

        if not quote.quote_ref:
            quote.quote_ref = f"Q{quote.id:06d}"

        await record_quote_action(db, quote.id, user_id, QuoteActionType.CREATED)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Quote creation failed: {e}", exc_info=True)
        raise QuotePersistenceError("Failed to create quote") from e

    logger.info(f"Quote {quote.id} created by user {user_id}")
    return await get_quote(db, quote.id)


async def _commit(db: AsyncSession, quote: Quote, user_id: int,
                  transition: Optional[Transition], failure_message: str) -> Quote:
    quote_id = quote.id
    old_status = quote.status
    if transition is not None:
        quote.status = transition.target

    try:
        await db.flush()
        if transition is not None and transition.audit_action is not None:
            await record_quote_action(db, quote_id, user_id, transition.audit_action)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"{failure_message} for quote {quote_id}: {e}", exc_info=True)
        raise QuotePersistenceError(failure_message) from e

    if transition is not None:
        quote_transitions.labels(
            event=str(transition.event),
            from_status=str(old_status),
            to_status=str(transition.target),
        ).inc()
        logger.info(f"Quote {quote_id}: {old_status} -> {transition.target} ({transition.event})")

    return await get_quote(db, quote_id)


async def notify_status_change(quote: Quote) -> None:
    if quote.status not in NOTIFY_STATUSES:
        return
    await send_webhook({
        "quote_id": quote.id,
        "quote_ref": quote.quote_ref,
        "status": str(quote.status),
        "tax_invoice_number": quote.tax_invoice_number,
    })


async def transition_quote(db: AsyncSession, quote: Quote, event: QuoteEvent, user_id: int,
                           tax_invoice_number: Optional[str] = None) -> Quote:
    """Apply an explicit workflow event; guard failures raise before any write."""
    transition = apply_event(
        quote.status,
        event,
        parts=quote.parts_requested,
        tax_invoice_number=tax_invoice_number,
    )

    if event == QuoteEvent.ORDER:
        quote.tax_invoice_number = tax_invoice_number.strip()

    quote = await _commit(db, quote, user_id, transition, f"Failed to {event} quote")
    await notify_status_change(quote)
    return quote


async def save_parts(db: AsyncSession, quote: Quote, parts: List[dict], user_id: int) -> Quote:
    """Persist a new ``parts_requested`` array and apply any automatic transition."""
    quote.parts_requested = parts
    transition = next_status_after_parts_edit(quote.status, parts)
    return await _commit(db, quote, user_id, transition, "Failed to update quote parts")


async def save_details(db: AsyncSession, quote: Quote, fields: dict, user_id: int) -> Quote:
    for field, value in fields.items():
        setattr(quote, field, value)
    return await _commit(db, quote, user_id, None, "Failed to update quote")


async def deliver_quotes(db: AsyncSession, quotes: List[Quote], user_id: int) -> List[Quote]:
    """Mark every quote delivered, or none of them if any is not ordered."""
    rejected = {}
    transitions = []
    for quote in quotes:
        try:
            transitions.append((quote, apply_event(quote.status, QuoteEvent.DELIVER)))
        except InvalidTransition:
            rejected[quote.id] = str(quote.status)

    if rejected:
        raise BulkTransitionError(QuoteEvent.DELIVER, rejected)

    for quote, transition in transitions:
        quote.status = transition.target

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Bulk delivery failed: {e}", exc_info=True)
        raise QuotePersistenceError("Failed to mark quotes as delivered") from e

    quote_transitions.labels(
        event=str(QuoteEvent.DELIVER),
        from_status=str(QuoteStatus.ORDERED),
        to_status=str(QuoteStatus.DELIVERED),
    ).inc(len(transitions))
    logger.info(f"User {user_id} marked {len(transitions)} quotes delivered")

    delivered = []
    for quote, _ in transitions:
        quote = await get_quote(db, quote.id)
        await notify_status_change(quote)
        delivered.append(quote)
    return delivered


async def delete_quote(db: AsyncSession, quote: Quote) -> None:
    quote_id = quote.id
    try:
        await db.delete(quote)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Quote deletion failed for {quote_id}: {e}", exc_info=True)
        raise QuotePersistenceError("Failed to delete quote") from e

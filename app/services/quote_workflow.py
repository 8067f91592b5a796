"""Quote status state machine and the role/action authorization table.

Transitions are pure decisions; ``app.services.quotes`` persists them.
"""
from dataclasses import dataclass
from typing import Optional

from app.core.enums import QuoteStatus, QuoteEvent, QuoteActionType, UserRole, Permission
from app.services.quote_parts import has_priced_part, all_parts_identified


class WorkflowError(Exception):
    pass


class InvalidTransition(WorkflowError):
    def __init__(self, status: QuoteStatus, event: QuoteEvent):
        self.status = status
        self.event = event
        super().__init__(f"Cannot {event} a quote in status '{status}'")


class TransitionGuardFailed(WorkflowError):
    pass


@dataclass(frozen=True)
class Transition:
    event: QuoteEvent
    sources: frozenset
    target: QuoteStatus
    audit_action: Optional[QuoteActionType] = None
    automatic: bool = False


TRANSITIONS = {
    QuoteEvent.PRICE_ENTERED: Transition(
        QuoteEvent.PRICE_ENTERED,
        frozenset({QuoteStatus.UNPRICED}),
        QuoteStatus.WAITING_VERIFICATION,
        QuoteActionType.PRICED,
        automatic=True,
    ),
    QuoteEvent.VERIFY: Transition(
        QuoteEvent.VERIFY,
        frozenset({QuoteStatus.WAITING_VERIFICATION}),
        QuoteStatus.PRICED,
        QuoteActionType.VERIFIED,
    ),
    QuoteEvent.COMPLETE: Transition(
        QuoteEvent.COMPLETE,
        frozenset({QuoteStatus.WAITING_VERIFICATION, QuoteStatus.PRICED}),
        QuoteStatus.COMPLETED,
        QuoteActionType.COMPLETED,
    ),
    QuoteEvent.ORDER: Transition(
        QuoteEvent.ORDER,
        frozenset({QuoteStatus.COMPLETED, QuoteStatus.PRICED}),
        QuoteStatus.ORDERED,
    ),
    QuoteEvent.DELIVER: Transition(
        QuoteEvent.DELIVER,
        frozenset({QuoteStatus.ORDERED}),
        QuoteStatus.DELIVERED,
    ),
    QuoteEvent.MARK_WRONG: Transition(
        QuoteEvent.MARK_WRONG,
        frozenset({QuoteStatus.UNPRICED, QuoteStatus.PRICED, QuoteStatus.WAITING_VERIFICATION}),
        QuoteStatus.WRONG,
        QuoteActionType.MARKED_WRONG,
    ),
    QuoteEvent.PARTS_CORRECTED: Transition(
        QuoteEvent.PARTS_CORRECTED,
        frozenset({QuoteStatus.WRONG}),
        QuoteStatus.UNPRICED,
        automatic=True,
    ),
}

# completed, ordered and delivered quotes keep their parts and prices
PARTS_EDITABLE_STATUSES = frozenset({
    QuoteStatus.UNPRICED,
    QuoteStatus.WAITING_VERIFICATION,
    QuoteStatus.PRICED,
    QuoteStatus.WRONG,
})

EVENT_PERMISSIONS = {
    QuoteEvent.PRICE_ENTERED: Permission.EDIT_PRICES,
    QuoteEvent.VERIFY: Permission.VERIFY,
    QuoteEvent.COMPLETE: Permission.COMPLETE,
    QuoteEvent.ORDER: Permission.ORDER,
    QuoteEvent.DELIVER: Permission.DELIVER,
    QuoteEvent.MARK_WRONG: Permission.MARK_WRONG,
    QuoteEvent.PARTS_CORRECTED: Permission.EDIT_PARTS,
}

_ROLES_BY_PERMISSION = {
    Permission.CREATE: {UserRole.QUOTE_CREATOR, UserRole.ADMIN},
    Permission.UPDATE_DETAILS: {UserRole.QUOTE_CREATOR, UserRole.PRICE_MANAGER, UserRole.ADMIN},
    Permission.EDIT_PARTS: {UserRole.QUOTE_CREATOR, UserRole.PRICE_MANAGER, UserRole.ADMIN},
    Permission.EDIT_PRICES: {UserRole.PRICE_MANAGER, UserRole.ADMIN},
    Permission.VERIFY: {UserRole.QUALITY_CONTROLLER, UserRole.ADMIN},
    Permission.COMPLETE: {
        UserRole.QUOTE_CREATOR,
        UserRole.PRICE_MANAGER,
        UserRole.QUALITY_CONTROLLER,
        UserRole.ADMIN,
    },
    Permission.ORDER: {UserRole.PRICE_MANAGER, UserRole.QUALITY_CONTROLLER, UserRole.ADMIN},
    Permission.DELIVER: {UserRole.QUALITY_CONTROLLER, UserRole.ADMIN},
    Permission.MARK_WRONG: {UserRole.QUALITY_CONTROLLER, UserRole.ADMIN},
    Permission.DELETE: {UserRole.ADMIN},
    Permission.MANAGE_RULES: {UserRole.ADMIN},
    Permission.MANAGE_USERS: {UserRole.ADMIN},
}

# (role, permission) pairs that are allowed; anything absent is denied
PERMISSIONS = frozenset(
    (role, permission)
    for permission, roles in _ROLES_BY_PERMISSION.items()
    for role in roles
)


def is_permitted(role, permission: Permission) -> bool:
    try:
        role = UserRole(str(role))
    except ValueError:
        return False
    return (role, permission) in PERMISSIONS


def allowed_events(status: QuoteStatus, role=None) -> list:
    """Explicit events available from ``status``, optionally filtered by role."""
    events = []
    for event, transition in TRANSITIONS.items():
        if transition.automatic or status not in transition.sources:
            continue
        if role is not None and not is_permitted(role, EVENT_PERMISSIONS[event]):
            continue
        events.append(event)
    return events


def _guard(event: QuoteEvent, parts, tax_invoice_number) -> bool:
    if event == QuoteEvent.PRICE_ENTERED:
        return has_priced_part(parts)
    if event == QuoteEvent.PARTS_CORRECTED:
        return all_parts_identified(parts)
    if event == QuoteEvent.ORDER:
        return bool(tax_invoice_number and tax_invoice_number.strip())
    return True


def apply_event(status: QuoteStatus, event: QuoteEvent, parts=None,
                tax_invoice_number: Optional[str] = None) -> Optional[Transition]:
    """Decide the transition for ``event`` from ``status``.

    Explicit events raise InvalidTransition or TransitionGuardFailed.
    Automatic events return None when they do not apply.
    """
    transition = TRANSITIONS[event]

    if status not in transition.sources:
        if transition.automatic:
            return None
        raise InvalidTransition(status, event)

    if not _guard(event, parts, tax_invoice_number):
        if transition.automatic:
            return None
        if event == QuoteEvent.ORDER:
            raise TransitionGuardFailed("A tax invoice number is required to mark a quote as ordered")
        raise TransitionGuardFailed(f"Guard failed for {event}")

    return transition


def next_status_after_parts_edit(status: QuoteStatus, parts) -> Optional[Transition]:
    """Automatic transition triggered by editing a quote's parts, if any.

    At most one transition is returned; a wrong quote whose parts are now
    identified goes back to unpriced and is not re-evaluated for prices.
    """
    for event in (QuoteEvent.PARTS_CORRECTED, QuoteEvent.PRICE_ENTERED):
        transition = apply_event(status, event, parts=parts)
        if transition is not None:
            return transition
    return None

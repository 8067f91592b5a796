import pytest

from app.core.enums import QuoteStatus, QuoteEvent, QuoteActionType, UserRole, Permission
from app.services.quote_parts import new_part_item
from app.services.quote_workflow import (
    InvalidTransition,
    TransitionGuardFailed,
    allowed_events,
    apply_event,
    is_permitted,
    next_status_after_parts_edit,
)


def priced_parts(price):
    return [new_part_item("4K0980546", part_name="Camera", final_price=price)]


class TestExplicitEvents:

    @pytest.mark.parametrize("status,event,target", [
        (QuoteStatus.WAITING_VERIFICATION, QuoteEvent.VERIFY, QuoteStatus.PRICED),
        (QuoteStatus.WAITING_VERIFICATION, QuoteEvent.COMPLETE, QuoteStatus.COMPLETED),
        (QuoteStatus.PRICED, QuoteEvent.COMPLETE, QuoteStatus.COMPLETED),
        (QuoteStatus.ORDERED, QuoteEvent.DELIVER, QuoteStatus.DELIVERED),
        (QuoteStatus.UNPRICED, QuoteEvent.MARK_WRONG, QuoteStatus.WRONG),
        (QuoteStatus.PRICED, QuoteEvent.MARK_WRONG, QuoteStatus.WRONG),
        (QuoteStatus.WAITING_VERIFICATION, QuoteEvent.MARK_WRONG, QuoteStatus.WRONG),
    ])
    def test_allowed(self, status, event, target):
        assert apply_event(status, event).target == target

    @pytest.mark.parametrize("status,event", [
        (QuoteStatus.UNPRICED, QuoteEvent.VERIFY),
        (QuoteStatus.PRICED, QuoteEvent.VERIFY),
        (QuoteStatus.UNPRICED, QuoteEvent.COMPLETE),
        (QuoteStatus.WRONG, QuoteEvent.COMPLETE),
        (QuoteStatus.UNPRICED, QuoteEvent.ORDER),
        (QuoteStatus.COMPLETED, QuoteEvent.DELIVER),
        (QuoteStatus.DELIVERED, QuoteEvent.DELIVER),
        (QuoteStatus.COMPLETED, QuoteEvent.MARK_WRONG),
        (QuoteStatus.ORDERED, QuoteEvent.MARK_WRONG),
        (QuoteStatus.WRONG, QuoteEvent.MARK_WRONG),
    ])
    def test_rejected(self, status, event):
        with pytest.raises(InvalidTransition) as exc:
            apply_event(status, event)
        assert exc.value.status == status
        assert exc.value.event == event

    @pytest.mark.parametrize("status", [QuoteStatus.COMPLETED, QuoteStatus.PRICED])
    def test_order_with_invoice(self, status):
        transition = apply_event(status, QuoteEvent.ORDER, tax_invoice_number="INV-1001")
        assert transition.target == QuoteStatus.ORDERED
        assert transition.audit_action is None

    @pytest.mark.parametrize("invoice", [None, "", "   "])
    def test_order_requires_invoice(self, invoice):
        with pytest.raises(TransitionGuardFailed, match="tax invoice number"):
            apply_event(QuoteStatus.COMPLETED, QuoteEvent.ORDER, tax_invoice_number=invoice)

    def test_audit_actions(self):
        assert apply_event(QuoteStatus.WAITING_VERIFICATION, QuoteEvent.VERIFY).audit_action == QuoteActionType.VERIFIED
        assert apply_event(QuoteStatus.PRICED, QuoteEvent.COMPLETE).audit_action == QuoteActionType.COMPLETED
        assert apply_event(QuoteStatus.UNPRICED, QuoteEvent.MARK_WRONG).audit_action == QuoteActionType.MARKED_WRONG
        assert apply_event(QuoteStatus.ORDERED, QuoteEvent.DELIVER).audit_action is None


class TestAutomaticEvents:

    def test_zero_price_stays_unpriced(self):
        assert next_status_after_parts_edit(QuoteStatus.UNPRICED, priced_parts(0)) is None

    def test_missing_price_stays_unpriced(self):
        assert next_status_after_parts_edit(QuoteStatus.UNPRICED, priced_parts(None)) is None

    def test_positive_price_moves_to_waiting_verification(self):
        transition = next_status_after_parts_edit(QuoteStatus.UNPRICED, priced_parts(150))
        assert transition.target == QuoteStatus.WAITING_VERIFICATION
        assert transition.audit_action == QuoteActionType.PRICED

    def test_price_ignored_outside_unpriced(self):
        assert next_status_after_parts_edit(QuoteStatus.PRICED, priced_parts(150)) is None
        assert next_status_after_parts_edit(QuoteStatus.COMPLETED, priced_parts(150)) is None

    def test_only_default_variant_price_counts(self):
        parts = priced_parts(None)
        parts[0]["variants"].append({"id": "alt", "final_price": 99.0, "is_default": False})
        assert next_status_after_parts_edit(QuoteStatus.UNPRICED, parts) is None

    def test_corrected_parts_return_to_unpriced(self):
        parts = [new_part_item("8W0941005"), new_part_item("8W0941006")]
        transition = next_status_after_parts_edit(QuoteStatus.WRONG, parts)
        assert transition.event == QuoteEvent.PARTS_CORRECTED
        assert transition.target == QuoteStatus.UNPRICED

    @pytest.mark.parametrize("bad_id", ["", "   ", "L", "R", " R "])
    def test_placeholder_ids_keep_wrong(self, bad_id):
        parts = [new_part_item("8W0941005"), new_part_item(bad_id)]
        assert next_status_after_parts_edit(QuoteStatus.WRONG, parts) is None

    def test_one_transition_per_edit(self):
        parts = priced_parts(150)
        transition = next_status_after_parts_edit(QuoteStatus.WRONG, parts)
        assert transition.target == QuoteStatus.UNPRICED


class TestPermissions:

    @pytest.mark.parametrize("role,permission,expected", [
        (UserRole.QUOTE_CREATOR, Permission.CREATE, True),
        (UserRole.PRICE_MANAGER, Permission.CREATE, False),
        (UserRole.PRICE_MANAGER, Permission.EDIT_PRICES, True),
        (UserRole.QUOTE_CREATOR, Permission.EDIT_PRICES, False),
        (UserRole.QUOTE_CREATOR, Permission.EDIT_PARTS, True),
        (UserRole.QUALITY_CONTROLLER, Permission.VERIFY, True),
        (UserRole.PRICE_MANAGER, Permission.VERIFY, False),
        (UserRole.QUOTE_CREATOR, Permission.COMPLETE, True),
        (UserRole.QUOTE_CREATOR, Permission.ORDER, False),
        (UserRole.PRICE_MANAGER, Permission.ORDER, True),
        (UserRole.PRICE_MANAGER, Permission.DELIVER, False),
        (UserRole.QUALITY_CONTROLLER, Permission.MARK_WRONG, True),
        (UserRole.QUALITY_CONTROLLER, Permission.DELETE, False),
        (UserRole.ADMIN, Permission.DELETE, True),
        (UserRole.ADMIN, Permission.MANAGE_RULES, True),
        (UserRole.PRICE_MANAGER, Permission.MANAGE_RULES, False),
    ])
    def test_policy_table(self, role, permission, expected):
        assert is_permitted(role, permission) is expected

    def test_role_given_as_string(self):
        assert is_permitted("admin", Permission.MANAGE_USERS) is True

    def test_unknown_role_denied(self):
        assert is_permitted("superuser", Permission.CREATE) is False

    def test_admin_may_do_everything(self):
        assert all(is_permitted(UserRole.ADMIN, p) for p in Permission)

    def test_allowed_events(self):
        events = allowed_events(QuoteStatus.WAITING_VERIFICATION)
        assert set(events) == {QuoteEvent.VERIFY, QuoteEvent.COMPLETE, QuoteEvent.MARK_WRONG}

        qc_events = allowed_events(QuoteStatus.COMPLETED, role=UserRole.QUOTE_CREATOR)
        assert qc_events == []

        assert allowed_events(QuoteStatus.DELIVERED) == []

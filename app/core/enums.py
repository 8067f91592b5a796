from enum import Enum


class UserRole(str, Enum):
    QUOTE_CREATOR = "quote_creator"
    PRICE_MANAGER = "price_manager"
    QUALITY_CONTROLLER = "quality_controller"
    ADMIN = "admin"

    def __str__(self):
        return self.value


class QuoteStatus(str, Enum):
    UNPRICED = "unpriced"
    WAITING_VERIFICATION = "waiting_verification"
    PRICED = "priced"
    COMPLETED = "completed"
    ORDERED = "ordered"
    DELIVERED = "delivered"
    WRONG = "wrong"

    def __str__(self):
        return self.value


class RuleType(str, Enum):
    REQUIRED_FOR = "required_for"
    NOT_REQUIRED_FOR = "not_required_for"
    NONE = "none"

    def __str__(self):
        return self.value


class QuoteActionType(str, Enum):
    CREATED = "CREATED"
    PRICED = "PRICED"
    VERIFIED = "VERIFIED"
    COMPLETED = "COMPLETED"
    MARKED_WRONG = "MARKED_WRONG"

    def __str__(self):
        return self.value


class QuoteEvent(str, Enum):
    PRICE_ENTERED = "price_entered"
    VERIFY = "verify"
    COMPLETE = "complete"
    ORDER = "order"
    DELIVER = "deliver"
    MARK_WRONG = "mark_wrong"
    PARTS_CORRECTED = "parts_corrected"

    def __str__(self):
        return self.value


class Permission(str, Enum):
    CREATE = "create"
    UPDATE_DETAILS = "update_details"
    EDIT_PARTS = "edit_parts"
    EDIT_PRICES = "edit_prices"
    VERIFY = "verify"
    COMPLETE = "complete"
    ORDER = "order"
    DELIVER = "deliver"
    MARK_WRONG = "mark_wrong"
    DELETE = "delete"
    MANAGE_RULES = "manage_rules"
    MANAGE_USERS = "manage_users"

    def __str__(self):
        return self.value

from app.models.quote import Quote
from app.models.part_rule import PartRule
from app.models.quote_action import QuoteAction
from app.models.user import User
from app.schemas.quote import QuoteOut, CustomerOut, VehicleOut
from app.schemas.part_rule import PartRuleOut
from app.schemas.quote_action import QuoteActionOut
from app.schemas.user import UserOut


def build_quote_response(quote: Quote) -> QuoteOut:
    customer = quote.customer
    vehicle = quote.vehicle
    return QuoteOut(
        id=quote.id,
        quote_ref=quote.quote_ref,
        status=quote.status,
        customer=CustomerOut(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            address=customer.address,
        ) if customer else None,
        vehicle=VehicleOut(
            id=vehicle.id,
            make=vehicle.make,
            model=vehicle.model,
            series=vehicle.series,
            year=vehicle.year,
            rego=vehicle.rego,
            vin=vehicle.vin,
            color=vehicle.color,
            transmission=vehicle.transmission,
            body=vehicle.body,
            notes=vehicle.notes,
        ) if vehicle else None,
        parts_requested=quote.parts_requested or [],
        tax_invoice_number=quote.tax_invoice_number,
        required_by=quote.required_by,
        notes=quote.notes,
        created_by=quote.created_by,
        created_at=quote.created_at,
        updated_at=quote.updated_at,
    )


def build_part_rule_response(rule: PartRule) -> PartRuleOut:
    return PartRuleOut(
        id=rule.id,
        part_name=rule.part_name,
        rule_type=rule.rule_type,
        brands=list(rule.brands or []),
        description=rule.description,
        created_by=rule.created_by,
        created_at=rule.created_at,
        updated_at=rule.updated_at,
    )


def build_quote_action_response(action: QuoteAction) -> QuoteActionOut:
    return QuoteActionOut(
        id=action.id,
        quote_id=action.quote_id,
        user_id=action.user_id,
        action_type=action.action_type,
        timestamp=action.timestamp,
    )


def build_user_response(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        role=user.role,
        created_at=user.created_at,
    )


def build_quote_response_list(quotes: list) -> list:
    return [build_quote_response(quote) for quote in quotes]


def build_part_rule_response_list(rules: list) -> list:
    return [build_part_rule_response(rule) for rule in rules]


def build_quote_action_response_list(actions: list) -> list:
    return [build_quote_action_response(action) for action in actions]

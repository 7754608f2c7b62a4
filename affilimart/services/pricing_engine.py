"""
Pricing engine for the Affilimart application.

The final price of a service is computed in four steps:

1. apply the standard discount to the base price;
2. when dynamic pricing is on, walk the rules in order and keep those whose
   condition holds for the booking;
3. apply each kept rule to the running price, so a percentage rule also
   scales every adjustment made before it;
4. clamp at zero.
"""

from typing import Callable, Dict, Iterable, Optional

from affilimart.errors import ValidationError
from affilimart.models.base import round_currency
from affilimart.models.catalog import Service
from affilimart.models.pricing import PricingCondition, PricingContext, PricingRule

LARGE_GROUP_THRESHOLD = 5


def _is_weekday(context: PricingContext) -> bool:
    day = context.weekday()
    return day is not None and day < 5


def _is_weekend(context: PricingContext) -> bool:
    day = context.weekday()
    return day is not None and day >= 5


def _is_large_group(context: PricingContext) -> bool:
    return context.group_size is not None and context.group_size > LARGE_GROUP_THRESHOLD


CONDITION_PREDICATES: Dict[PricingCondition, Callable[[PricingContext], bool]] = {
    PricingCondition.WEEKDAY: _is_weekday,
    PricingCondition.WEEKEND: _is_weekend,
    PricingCondition.GROUP_SIZE_LARGE: _is_large_group,
}


def condition_met(tag: str, context: PricingContext) -> bool:
    """Evaluate a rule condition tag; unknown tags never match."""
    condition = PricingCondition.parse(tag)
    if condition is None:
        return False
    return CONDITION_PREDICATES[condition](context)


def final_price(base_price: float, discount_percentage: float,
                rules: Iterable[PricingRule], context: Optional[PricingContext] = None,
                dynamic_pricing: bool = True) -> float:
    """
    Compute the price a customer pays.

    Args:
        base_price: Listed price, must not be negative
        discount_percentage: Standard discount between 0 and 100
        rules: Ordered pricing rules
        context: Booking date and group size the rules look at
        dynamic_pricing: Whether to apply the rules at all

    Returns:
        float: Final price, never negative, rounded to two decimals

    Raises:
        ValidationError: If the base price or discount is out of range
    """
    if base_price < 0:
        raise ValidationError("Base price cannot be negative")
    if not 0 <= discount_percentage <= 100:
        raise ValidationError("Discount percentage must be between 0 and 100")

    context = context or PricingContext()
    price = base_price * (1 - discount_percentage / 100)

    if dynamic_pricing:
        for rule in rules:
            if not condition_met(rule.condition, context):
                continue
            if rule.is_percentage:
                price += price * rule.adjustment / 100
            else:
                price += rule.adjustment

    return round_currency(max(0.0, price))


def price_service(service: Service, context: Optional[PricingContext] = None) -> float:
    """Final price of a listed service for the given booking context."""
    return final_price(
        service.base_price,
        service.discount_percentage,
        service.dynamic_pricing_rules,
        context,
        dynamic_pricing=service.is_dynamic_pricing,
    )

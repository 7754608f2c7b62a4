"""Dynamic pricing rules for services."""

from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union, Dict, Any

from affilimart.errors import ValidationError
from affilimart.models.base import pick_fields


class PricingCondition(Enum):
    """Conditions a pricing rule can be attached to."""
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    GROUP_SIZE_LARGE = "group_size_large"

    @classmethod
    def parse(cls, tag: str) -> Optional["PricingCondition"]:
        """Return the condition for ``tag``, or None if the tag is unknown."""
        try:
            return cls(tag)
        except ValueError:
            return None


@dataclass(frozen=True)
class PricingRule:
    """
    A conditional price adjustment.

    Attributes:
        condition: Condition tag, see PricingCondition
        adjustment: Percentage or flat amount added to the running price;
            negative values are discounts
        is_percentage: Whether the adjustment is a percentage
    """
    condition: str
    adjustment: float
    is_percentage: bool = False

    def __post_init__(self):
        # Below -100% the running price would flip sign.
        if self.is_percentage and self.adjustment < -100:
            raise ValidationError("Percentage adjustments cannot be below -100%")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingRule":
        return cls(**pick_fields(cls, data))


@dataclass(frozen=True)
class PricingContext:
    """Booking facts the pricing rules are evaluated against."""
    date: Optional[Union[date, datetime, str]] = None
    group_size: Optional[int] = None

    def weekday(self) -> Optional[int]:
        """Day of week of the booking date, Monday is 0; None without a date."""
        if self.date is None:
            return None
        value = self.date
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError:
                raise ValidationError(f"Invalid booking date: {self.date}")
        return value.weekday()

"""
Commission engine for the Affilimart application.

Splits a booking total across the affiliate and the regional admins
according to a CommissionStructure:

    percentage structure:  amount(role) = total * rate(role) / 100
    flat structure:        amount(role) = rate(role)

Each role is computed independently from the same total. The rates are not
required to sum to 100 or less; over-allocation is accepted as configured.
Every role is always computed; dropping roles that have nobody to pay is up
to the caller (see CommissionSplit.without_absent_roles).

Amounts are rounded to two decimal places, halves rounded up.
"""

import logging

from affilimart.errors import ValidationError
from affilimart.models.base import round_currency
from affilimart.models.commission import (
    ROLES,
    CommissionEntry,
    CommissionSplit,
    CommissionStructure,
)

logger = logging.getLogger(__name__)


def split(total_amount: float, structure: CommissionStructure) -> CommissionSplit:
    """
    Compute the commission split for a transaction.

    Args:
        total_amount: Transaction total, must not be negative
        structure: Percentage or flat commission rules

    Returns:
        CommissionSplit: One pending entry per role

    Raises:
        ValidationError: If the total or any rate is negative
    """
    if total_amount < 0:
        raise ValidationError("Total amount cannot be negative")

    entries = {}
    for role in ROLES:
        rate = structure.rate_for(role)
        if rate < 0:
            raise ValidationError(f"{role} commission cannot be negative")
        if structure.is_percentage:
            amount = total_amount * rate / 100
        else:
            amount = rate
        entries[role] = CommissionEntry(amount=round_currency(amount))

    commissions = CommissionSplit(**entries)
    if structure.is_percentage and sum(structure.rate_for(role) for role in ROLES) > 100:
        logger.warning(f"Commission rates sum above 100% for total {total_amount}")
    return commissions

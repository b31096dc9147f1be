"""
Installment Planner

Expands one purchase into N monthly transactions.

DESIGN DECISION: Two plans are supported.
- DIVIDE: the amount is divided in cents across the installments; whatever
  rounding leaves over goes to the last one, so the installments always add
  up to the original values. For a split, each share is divided instead and
  the installment amount is their sum.
- REPEAT: every installment carries the full template values (subscriptions,
  rent).

Month arithmetic follows the calendar-overflow rule: the 31st of January
plus one month lands on the 2nd/3rd of March, not on the last day of
February.
"""

from datetime import date, timedelta
from decimal import ROUND_DOWN, Decimal
from enum import Enum

import structlog

from finance_tracker.config import get_settings
from finance_tracker.models.ledger import SplitDetails, Transaction, new_id


logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


class InstallmentMode(str, Enum):
    """How the template amount is spread."""
    DIVIDE = "divide"
    REPEAT = "repeat"


def add_months(day: date, months: int) -> date:
    """Move `day` forward `months` months, overflowing into the next month."""
    total = day.month - 1 + months
    first = date(day.year + total // 12, total % 12 + 1, 1)
    return first + timedelta(days=day.day - 1)


def divide_evenly(total: Decimal, count: int) -> list[Decimal]:
    """
    Cent-quantized parts of `total`; the last part absorbs the remainder.

    Parts are truncated to the cent, so the remainder is never negative.
    """
    share = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    return [share] * (count - 1) + [total - share * (count - 1)]


def plan_installments(
    template: Transaction,
    count: int,
    mode: InstallmentMode = InstallmentMode.DIVIDE,
) -> list[Transaction]:
    """
    Build the installments of a purchase.

    Args:
        template: Validated transaction describing the whole purchase
        count: Number of installments (values below 1 mean a single one)
        mode: DIVIDE or REPEAT

    Returns:
        `count` new transactions, each with a fresh id

    Raises:
        ValueError: If count is above the configured maximum, or if dividing
            produces an invalid installment (e.g. a zero amount)
    """
    mode = InstallmentMode(mode)
    count = max(1, int(count))
    max_installments = get_settings().ledger.max_installments
    if count > max_installments:
        raise ValueError(
            f"At most {max_installments} installments are allowed, got {count}"
        )

    details = template.split_details if template.is_split else None
    if details is not None:
        # Divided shares sum to the installment amount.
        if mode == InstallmentMode.DIVIDE:
            user_parts = divide_evenly(details.user_part, count)
            partner_parts = divide_evenly(details.partner_part, count)
            amounts = [u + p for u, p in zip(user_parts, partner_parts)]
        else:
            user_parts = [details.user_part] * count
            partner_parts = [details.partner_part] * count
            amounts = [template.amount] * count
    elif mode == InstallmentMode.DIVIDE:
        amounts = divide_evenly(template.amount, count)
    else:
        amounts = [template.amount] * count

    base = template.model_dump()
    installments = []
    for index in range(count):
        due = add_months(template.date, index)
        values = {
            **base,
            "id": new_id(),
            "amount": amounts[index],
            "date": due,
            "payment_date": due if template.is_paid else None,
        }
        if count > 1:
            values["description"] = f"{template.description} ({index + 1}/{count})"
        if details is not None:
            values["split_details"] = SplitDetails(
                user_part=user_parts[index],
                partner_part=partner_parts[index],
                partner_name=details.partner_name,
            )
        installments.append(Transaction.model_validate(values))

    logger.debug(
        "installments_planned",
        template_id=template.id,
        count=count,
        mode=mode.value,
    )
    return installments

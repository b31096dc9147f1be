"""
Credit Card Debt Model

Two independent measures per card:

- Lifetime pending debt: every unpaid expense on the card, whatever its
  date. This is what actually occupies the limit.
- Period statement stats: what was charged on the card in the displayed
  period, paid or not. Display only; never used for the limit.

Changing the displayed period must never move the limit numbers.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from finance_tracker.config import get_settings
from finance_tracker.engine.aggregation import add_partner_share
from finance_tracker.engine.splits import resolve_share
from finance_tracker.models.filters import DateRange
from finance_tracker.models.ledger import CreditCard, Transaction
from finance_tracker.models.reports import ZERO, CardDebtMetrics, PeriodStats


logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")


def pending_debt(card_id: str, transactions: Iterable[Transaction]) -> Decimal:
    """Sum of unpaid expenses charged on `card_id`, all time."""
    return sum(
        (
            t.amount
            for t in transactions
            if t.card_id == card_id and t.is_expense and not t.is_paid
        ),
        ZERO,
    )


def percent_used(total_debt: Decimal, credit_limit: Decimal) -> Decimal:
    """Share of the limit in use, clamped to [0, 100]. A zero limit is 0%."""
    if credit_limit <= 0:
        return ZERO
    percent = HUNDRED * total_debt / credit_limit
    return min(HUNDRED, max(ZERO, percent))


def period_stats(
    card_id: str,
    transactions: Iterable[Transaction],
    date_range: Optional[DateRange],
    undefined_label: Optional[str] = None,
) -> PeriodStats:
    """Charges on the card dated inside `date_range`, regardless of status."""
    undefined_label = undefined_label or get_settings().ledger.undefined_partner_label

    total = ZERO
    user_part = ZERO
    others: dict[str, Decimal] = {}
    count = 0
    for transaction in transactions:
        if transaction.card_id != card_id:
            continue
        if date_range is not None and not date_range.contains(transaction.date):
            continue
        total += transaction.amount
        user_part += resolve_share(transaction)
        add_partner_share(others, transaction, undefined_label)
        count += 1

    return PeriodStats(
        total=total,
        user_part=user_part,
        others=others,
        transaction_count=count,
    )


def card_debt_metrics(
    card: CreditCard,
    transactions: Iterable[Transaction],
    date_range: Optional[DateRange] = None,
) -> CardDebtMetrics:
    """
    Compute limit usage and the period statement of one card.

    Args:
        card: The card
        transactions: Full ledger (not a period-filtered subset)
        date_range: Displayed period, only affects period_stats

    Returns:
        CardDebtMetrics for the card
    """
    transactions = list(transactions)
    limit = card.credit_limit

    total_debt = pending_debt(card.id, transactions)
    if limit <= 0:
        logger.warning("card_without_limit", card_id=card.id, credit_limit=str(limit))

    return CardDebtMetrics(
        card_id=card.id,
        name=card.name,
        credit_limit=limit,
        total_debt=total_debt,
        available_limit=max(ZERO, limit - total_debt),
        percent_used=percent_used(total_debt, limit),
        period_stats=period_stats(card.id, transactions, date_range),
    )


def card_overview(
    cards: Iterable[CreditCard],
    transactions: Iterable[Transaction],
    date_range: Optional[DateRange] = None,
) -> list[CardDebtMetrics]:
    """card_debt_metrics for every card, in registry order."""
    transactions = list(transactions)
    return [card_debt_metrics(card, transactions, date_range) for card in cards]

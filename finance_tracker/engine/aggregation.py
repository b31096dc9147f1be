"""
Aggregation Engine

Reduces a filtered set of transactions to the numbers a view shows: the
balance/income/expenses summary, the per-card breakdown of expenses and
the expenses per category.

DESIGN DECISION: Summaries depend on the payer selection. Looking at
"individual only" counts the owner's share of splits; looking at a single
partner counts that partner's share; anything else counts full amounts.
The same ledger therefore shows different totals per lens.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from finance_tracker.config import get_settings
from finance_tracker.engine.splits import contribution_amount, resolve_share
from finance_tracker.models.filters import PayerSelection
from finance_tracker.models.ledger import CreditCard, Transaction, find_by_id
from finance_tracker.models.reports import ZERO, CardGroup, CategoryTotal, Summary


logger = structlog.get_logger(__name__)

NO_CARD_KEY = "no-card"


def summarize(
    transactions: Iterable[Transaction],
    payer_selection: Optional[PayerSelection] = None,
) -> Summary:
    """
    Compute balance, income and expenses.

    Args:
        transactions: Already-filtered working set
        payer_selection: Lens used to attribute split amounts
            (defaults to everyone, i.e. full amounts)

    Returns:
        Summary of the working set
    """
    selection = payer_selection or PayerSelection.everyone()
    income = ZERO
    expenses = ZERO

    for transaction in transactions:
        amount = contribution_amount(transaction, selection)
        if transaction.is_income:
            income += amount
        else:
            expenses += amount

    return Summary(balance=income - expenses, income=income, expenses=expenses)


def add_partner_share(
    others: dict[str, Decimal],
    transaction: Transaction,
    undefined_label: str,
) -> None:
    """Accumulate a split's partner share into `others` (in place)."""
    name = transaction.partner_name
    if name is None:
        return
    key = name or undefined_label
    others[key] = others.get(key, ZERO) + transaction.split_details.partner_part


def group_by_card(
    transactions: Iterable[Transaction],
    cards: Iterable[CreditCard],
    wallet_label: Optional[str] = None,
    undefined_label: Optional[str] = None,
) -> list[CardGroup]:
    """
    Break expenses down by the card that paid them.

    Expenses without a card, or whose card no longer exists, are grouped
    under the wallet entry.

    Args:
        transactions: Already-filtered working set (income is ignored)
        cards: Known cards, used for labels and colors
        wallet_label: Label of the no-card group
        undefined_label: Bucket for split shares without a partner name

    Returns:
        Groups in the order their first expense appears
    """
    settings = get_settings().ledger
    wallet_label = wallet_label or settings.wallet_label
    undefined_label = undefined_label or settings.undefined_partner_label
    cards = list(cards)

    groups: dict[str, dict] = {}
    for transaction in transactions:
        if not transaction.is_expense:
            continue

        card = find_by_id(cards, transaction.card_id)
        if transaction.card_id and card is None:
            logger.debug("stale_card_reference", card_id=transaction.card_id, transaction_id=transaction.id)
        key = card.id if card is not None else NO_CARD_KEY

        if key not in groups:
            groups[key] = {
                "key": key,
                "label": card.name if card is not None else wallet_label,
                "color": card.color if card is not None else None,
                "total": ZERO,
                "user_part": ZERO,
                "others": {},
                "has_pending": False,
                "transaction_count": 0,
            }

        group = groups[key]
        group["total"] += transaction.amount
        group["user_part"] += resolve_share(transaction)
        add_partner_share(group["others"], transaction, undefined_label)
        group["has_pending"] = group["has_pending"] or not transaction.is_paid
        group["transaction_count"] += 1

    return [CardGroup(**group) for group in groups.values()]


def group_by_category(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Sum full expense amounts per category, in first-seen order."""
    totals: dict[str, dict] = {}
    for transaction in transactions:
        if not transaction.is_expense:
            continue
        entry = totals.setdefault(
            transaction.category,
            {"category": transaction.category, "total": ZERO, "transaction_count": 0},
        )
        entry["total"] += transaction.amount
        entry["transaction_count"] += 1

    return [CategoryTotal(**entry) for entry in totals.values()]

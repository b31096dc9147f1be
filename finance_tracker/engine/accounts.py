"""
Account Derivation

Current value of each account, split into a liquid balance and an invested
(reserve) pool, derived from the account's paid transactions:

    current_liquid   = initial_balance          + balance_change
    current_invested = initial_invested_balance + investment_movements
    total_patrimony  = current_liquid + current_invested

Rules per paid transaction booked on the account:

    income, investment category   balance_change += amount
                                  investment_movements -= amount
    income, other category        balance_change += amount
    expense, reserve withdrawal   investment_movements -= amount
    expense, investment category  balance_change -= amount
                                  investment_movements += amount
    expense, other category       balance_change -= amount

Card purchases never fold into the balances; a card linked to the account
only shows up as credit_card_debt.
"""

from decimal import Decimal
from typing import Iterable, Optional

from finance_tracker.config import get_settings
from finance_tracker.engine.aggregation import summarize
from finance_tracker.engine.filters import (
    matches_category,
    matches_date,
    matches_status,
    sort_by_date_desc,
)
from finance_tracker.models.filters import FilterSpec
from finance_tracker.models.ledger import Account, CreditCard, Transaction
from finance_tracker.models.reports import (
    ZERO,
    AccountMetrics,
    AccountStatement,
    PatrimonyOverview,
)


def is_investment_category(category: str, keyword: Optional[str] = None) -> bool:
    """Case-insensitive substring match on the investment keyword."""
    keyword = keyword or get_settings().ledger.investment_keyword
    return keyword.lower() in category.lower()


def linked_card_ids(account: Account, cards: Iterable[CreditCard]) -> list[str]:
    """IDs of the cards whose statements are paid from `account`."""
    return [card.id for card in cards if card.account_id == account.id]


def movement_deltas(
    transaction: Transaction,
    keyword: Optional[str] = None,
) -> tuple[Decimal, Decimal]:
    """
    (balance_change, investment_movements) contributed by one transaction.

    Assumes the transaction is paid and booked on the account.
    """
    amount = transaction.amount
    investment = is_investment_category(transaction.category, keyword)

    if transaction.is_income:
        if investment:
            return amount, -amount
        return amount, ZERO

    if transaction.is_reserve_withdrawal:
        return ZERO, -amount
    if investment:
        return -amount, amount
    return -amount, ZERO


def account_derived_metrics(
    account: Account,
    transactions: Iterable[Transaction],
    cards: Iterable[CreditCard],
) -> AccountMetrics:
    """
    Compute liquid, invested and total value of an account.

    Args:
        account: The account
        transactions: Full ledger
        cards: Known cards, to find the ones linked to this account

    Returns:
        AccountMetrics with current balances and linked card debt
    """
    keyword = get_settings().ledger.investment_keyword
    transactions = list(transactions)
    card_ids = linked_card_ids(account, cards)

    balance_change = ZERO
    investment_movements = ZERO
    for transaction in transactions:
        if transaction.account_id != account.id or not transaction.is_paid:
            continue
        balance_delta, invested_delta = movement_deltas(transaction, keyword)
        balance_change += balance_delta
        investment_movements += invested_delta

    credit_card_debt = sum(
        (
            t.amount
            for t in transactions
            if t.card_id in card_ids and t.is_expense and not t.is_paid
        ),
        ZERO,
    )

    current_liquid = account.initial_balance + balance_change
    current_invested = account.initial_invested_balance + investment_movements

    return AccountMetrics(
        account_id=account.id,
        name=account.name,
        balance_change=balance_change,
        investment_movements=investment_movements,
        current_liquid=current_liquid,
        current_invested=current_invested,
        total_patrimony=current_liquid + current_invested,
        credit_card_debt=credit_card_debt,
        linked_cards_count=len(card_ids),
    )


def patrimony_overview(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    cards: Iterable[CreditCard],
) -> PatrimonyOverview:
    """Metrics of every account plus consolidated totals."""
    transactions = list(transactions)
    cards = list(cards)
    metrics = [
        account_derived_metrics(account, transactions, cards)
        for account in accounts
    ]
    return PatrimonyOverview(
        accounts=metrics,
        total_liquid=sum((m.current_liquid for m in metrics), ZERO),
        total_invested=sum((m.current_invested for m in metrics), ZERO),
        total_patrimony=sum((m.total_patrimony for m in metrics), ZERO),
        total_credit_card_debt=sum((m.credit_card_debt for m in metrics), ZERO),
    )


def account_statement(
    account: Account,
    transactions: Iterable[Transaction],
    cards: Iterable[CreditCard],
    spec: Optional[FilterSpec] = None,
) -> AccountStatement:
    """
    Transactions booked on the account or on its linked cards.

    Date, category and status predicates of `spec` apply; payer and type
    predicates don't (the statement always shows everything that moved the
    account). Sorted newest first, with a full-amount summary.
    """
    spec = spec or FilterSpec()
    card_ids = linked_card_ids(account, cards)

    selected = [
        t for t in transactions
        if (t.account_id == account.id or (t.card_id and t.card_id in card_ids))
        and matches_date(t, spec)
        and matches_category(t, spec)
        and matches_status(t, spec)
    ]
    return AccountStatement(
        account=account,
        transactions=sort_by_date_desc(selected),
        summary=summarize(selected),
    )

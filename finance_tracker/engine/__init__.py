"""
Derivation Engine

Pure, synchronous functions turning a ledger snapshot into the numbers the
views show. Nothing here mutates its inputs or touches storage.
"""

from finance_tracker.engine.filters import select_transactions, sort_by_date_desc
from finance_tracker.engine.aggregation import (
    NO_CARD_KEY,
    group_by_card,
    group_by_category,
    summarize,
)
from finance_tracker.engine.splits import (
    contribution_amount,
    payer_settlement,
    resolve_share,
)
from finance_tracker.engine.cards import card_debt_metrics, card_overview
from finance_tracker.engine.accounts import (
    account_derived_metrics,
    account_statement,
    is_investment_category,
    patrimony_overview,
)
from finance_tracker.engine.installments import InstallmentMode, plan_installments

__all__ = [
    "NO_CARD_KEY",
    "InstallmentMode",
    "account_derived_metrics",
    "account_statement",
    "card_debt_metrics",
    "card_overview",
    "contribution_amount",
    "group_by_card",
    "group_by_category",
    "is_investment_category",
    "patrimony_overview",
    "payer_settlement",
    "plan_installments",
    "resolve_share",
    "select_transactions",
    "sort_by_date_desc",
    "summarize",
]

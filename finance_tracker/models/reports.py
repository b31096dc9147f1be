"""
Derived Result Models

Everything the derivation engine returns. These are read-only values the
presentation layer renders; they never feed back into the ledger.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.ledger import Account, Transaction


ZERO = Decimal("0")


class ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# SUMMARIES
# =============================================================================

class Summary(ReportModel):
    """Balance, income and expenses of a set of transactions."""

    balance: Decimal = ZERO
    income: Decimal = ZERO
    expenses: Decimal = ZERO


class CardGroup(ReportModel):
    """
    Expenses grouped by the card (or wallet) that paid them.

    `others` maps each partner name to the share they owe.
    """

    key: str
    label: str
    color: Optional[str] = None
    total: Decimal = ZERO
    user_part: Decimal = ZERO
    others: dict[str, Decimal] = Field(default_factory=dict)
    has_pending: bool = False
    transaction_count: int = Field(default=0, ge=0)


class CategoryTotal(ReportModel):
    """Expenses summed under one category."""

    category: str
    total: Decimal = ZERO
    transaction_count: int = Field(default=0, ge=0)


# =============================================================================
# CARDS
# =============================================================================

class PeriodStats(ReportModel):
    """Statement view of a card for the displayed period, any paid status."""

    total: Decimal = ZERO
    user_part: Decimal = ZERO
    others: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = Field(default=0, ge=0)


class CardDebtMetrics(ReportModel):
    """
    Limit usage of a card.

    total_debt, available_limit and percent_used are lifetime measures over
    pending expenses and do not depend on the displayed period; period_stats
    is the only period-scoped value.
    """

    card_id: str
    name: str
    credit_limit: Decimal
    total_debt: Decimal = ZERO
    available_limit: Decimal = ZERO
    percent_used: Decimal = Field(default=ZERO, ge=0, le=100)
    period_stats: PeriodStats = Field(default_factory=PeriodStats)


# =============================================================================
# ACCOUNTS
# =============================================================================

class AccountMetrics(ReportModel):
    """Current liquid, invested and total value of an account."""

    account_id: str
    name: str
    balance_change: Decimal = ZERO
    investment_movements: Decimal = ZERO
    current_liquid: Decimal = ZERO
    current_invested: Decimal = ZERO
    total_patrimony: Decimal = ZERO
    credit_card_debt: Decimal = ZERO
    linked_cards_count: int = Field(default=0, ge=0)


class PatrimonyOverview(ReportModel):
    """Per-account metrics plus consolidated totals."""

    accounts: list[AccountMetrics] = Field(default_factory=list)
    total_liquid: Decimal = ZERO
    total_invested: Decimal = ZERO
    total_patrimony: Decimal = ZERO
    total_credit_card_debt: Decimal = ZERO


class AccountStatement(ReportModel):
    """Transactions touching an account in a period, newest first."""

    account: Account
    transactions: list[Transaction] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)


# =============================================================================
# SETTLEMENTS
# =============================================================================

class PayerSettlement(ReportModel):
    """What one partner owes the owner over split transactions."""

    name: str
    registered: bool = True
    total_to_receive: Decimal = ZERO
    paid: Decimal = ZERO
    pending: Decimal = ZERO
    transactions: list[Transaction] = Field(default_factory=list)


class SettlementReport(ReportModel):
    """Settlement of every known payer for a period."""

    payers: list[PayerSettlement] = Field(default_factory=list)

    @property
    def grand_total_pending(self) -> Decimal:
        return sum((p.pending for p in self.payers), ZERO)

    def for_payer(self, name: str) -> Optional[PayerSettlement]:
        for payer in self.payers:
            if payer.name == name:
                return payer
        return None


class DashboardView(ReportModel):
    """Everything the main screen shows for one filter state."""

    summary: Summary
    transactions: list[Transaction] = Field(default_factory=list)
    card_groups: list[CardGroup] = Field(default_factory=list)
    category_breakdown: list[CategoryTotal] = Field(default_factory=list)

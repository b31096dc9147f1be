"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the read flows the
presentation layer uses:
1. Dashboard (filter → summary + card breakdown)
2. Card overview (limit usage + period statement per card)
3. Patrimony (per-account balances + consolidated totals)
4. Account statement
5. Payer settlement report

DESIGN DECISION: The orchestrator enforces the boundaries:
- Reports only read a LedgerSnapshot; they never mutate the ledger
- Every mutation goes through the LedgerStore (and is audited there)
- Every report is recomputed from scratch, never patched incrementally
"""

from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.engine import (
    account_statement,
    card_overview,
    group_by_card,
    group_by_category,
    patrimony_overview,
    payer_settlement,
    select_transactions,
    sort_by_date_desc,
    summarize,
)
from finance_tracker.models.filters import DateRange, FilterSpec
from finance_tracker.models.reports import (
    AccountStatement,
    CardDebtMetrics,
    DashboardView,
    PatrimonyOverview,
    SettlementReport,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from finance_tracker.store import LedgerStore


logger = structlog.get_logger(__name__)


class ReportFlow:
    """
    Builds every derived view from the store's current snapshot.

    Each call takes one snapshot up front, so a report is always consistent
    with a single ledger state.
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def dashboard(self, spec: Optional[FilterSpec] = None) -> DashboardView:
        """
        Filtered transactions, their summary and the per-card and
        per-category breakdowns.

        The summary uses the filter's payer selection to attribute split
        amounts.
        """
        spec = spec or FilterSpec()
        snapshot = self._store.snapshot()
        selected = select_transactions(snapshot.transactions, spec)
        return DashboardView(
            summary=summarize(selected, spec.payers),
            transactions=sort_by_date_desc(selected),
            card_groups=group_by_card(selected, snapshot.cards),
            category_breakdown=group_by_category(selected),
        )

    def card_overview(
        self,
        date_range: Optional[DateRange] = None,
    ) -> list[CardDebtMetrics]:
        snapshot = self._store.snapshot()
        return card_overview(snapshot.cards, snapshot.transactions, date_range)

    def patrimony(self) -> PatrimonyOverview:
        snapshot = self._store.snapshot()
        return patrimony_overview(
            snapshot.accounts, snapshot.transactions, snapshot.cards,
        )

    def account_statement(
        self,
        account_id: str,
        spec: Optional[FilterSpec] = None,
    ) -> Optional[AccountStatement]:
        """Statement of one account; None when the account doesn't exist."""
        snapshot = self._store.snapshot()
        account = snapshot.find_account(account_id)
        if account is None:
            logger.warning("account_not_found", account_id=account_id)
            return None
        return account_statement(
            account, snapshot.transactions, snapshot.cards, spec,
        )

    def payer_report(
        self,
        date_range: Optional[DateRange] = None,
    ) -> SettlementReport:
        """Settlement of every registered payer (plus unregistered names)."""
        snapshot = self._store.snapshot()
        return payer_settlement(
            snapshot.categories.payers, snapshot.transactions, date_range,
        )


def create_app_components(
    storage: Optional[LedgerStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[LedgerStore, ReportFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        storage: Ledger backend. Defaults to in-memory storage.
        audit_storage: Audit backend. Defaults to in-memory storage.

    Returns:
        (ledger_store, report_flow, audit_logger)

    The store starts empty; call `await store.load()` to read the ledger.
    """
    storage = storage or InMemoryLedgerStorage()
    audit_storage = audit_storage or InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    store = LedgerStore(storage, audit_logger)
    report_flow = ReportFlow(store)

    return store, report_flow, audit_logger
